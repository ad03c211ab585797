"""
Repository abstract base class and generic implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, TypeVar, Optional, List, Type
from sqlalchemy import delete, func, insert, update
from sqlmodel import SQLModel, select
from .entity import AggregateRoot
from .tracking import ChangeKind

T = TypeVar("T", bound=AggregateRoot)
P = TypeVar("P", bound=SQLModel)


class IRepository(ABC, Generic[T]):
    """Repository interface; defines standard data access API."""

    @abstractmethod
    def add(self, entity: T) -> None:
        """Stage a new entity."""
        pass

    @abstractmethod
    async def add_async(self, entity: T) -> None:
        pass

    @abstractmethod
    def update(self, entity: T) -> None:
        """Stage an update from the entity's current values."""
        pass

    @abstractmethod
    async def update_async(self, entity: T) -> None:
        pass

    @abstractmethod
    def remove(self, entity: T) -> None:
        """Stage a delete."""
        pass

    @abstractmethod
    async def remove_async(self, entity: T) -> None:
        pass

    @abstractmethod
    def find(self, id: int) -> Optional[T]:
        """Get the tracked entity by ID, loading and attaching it if needed."""
        pass

    @abstractmethod
    async def find_async(self, id: int) -> Optional[T]:
        pass

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[T]:
        """Get a detached copy of the persisted entity."""
        pass

    @abstractmethod
    async def get_by_id_async(self, id: int) -> Optional[T]:
        pass


class BaseRepository(IRepository[T], Generic[T, P]):
    """Generic repository over a unit of work; subclasses map between entity and row model."""

    def __init__(self, unit_of_work, entity_type: Type[T], model: Type[P]):
        """Initialize repository with unit of work, aggregate type and row model."""
        self.unit_of_work = unit_of_work
        self.entity_type = entity_type
        self.model = model

    @abstractmethod
    def to_entity(self, row: P) -> T:
        """Build a detached entity from a loaded row."""
        pass

    @abstractmethod
    def to_row(self, entity: T) -> P:
        """Build the row model holding the entity's current values."""
        pass

    # --- Staging ---

    def add(self, entity: T) -> None:
        self.unit_of_work.register_new(self, entity)

    async def add_async(self, entity: T) -> None:
        self.add(entity)

    def update(self, entity: T) -> None:
        self.unit_of_work.register_dirty(self, entity)

    async def update_async(self, entity: T) -> None:
        self.update(entity)

    def remove(self, entity: T) -> None:
        self.unit_of_work.register_removed(self, entity)

    async def remove_async(self, entity: T) -> None:
        self.remove(entity)

    # --- Tracked reads ---

    def find(self, id: int) -> Optional[T]:
        entry = self.unit_of_work.tracker.get(self.entity_type, id)
        if entry is not None:
            return None if entry.change is ChangeKind.DELETE else entry.entity
        entity = self.get_by_id(id)
        if entity is not None:
            self.unit_of_work.register_clean(self, entity)
        return entity

    async def find_async(self, id: int) -> Optional[T]:
        entry = self.unit_of_work.tracker.get(self.entity_type, id)
        if entry is not None:
            return None if entry.change is ChangeKind.DELETE else entry.entity
        entity = await self.get_by_id_async(id)
        if entity is not None:
            self.unit_of_work.register_clean(self, entity)
        return entity

    # --- Detached reads ---

    def get_by_id(self, id: int) -> Optional[T]:
        with self.unit_of_work.reading() as session:
            row = session.execute(self._by_id(id)).scalars().first()
            return self.to_entity(row) if row is not None else None

    async def get_by_id_async(self, id: int) -> Optional[T]:
        async with self.unit_of_work.reading_async() as session:
            row = (await session.execute(self._by_id(id))).scalars().first()
            return self.to_entity(row) if row is not None else None

    def get_all(self, limit: int = 100, offset: int = 0) -> List[T]:
        """Get all entities (paginated, ordered by ID)."""
        statement = select(self.model).order_by(self.model.id).limit(limit).offset(offset)
        with self.unit_of_work.reading() as session:
            return [self.to_entity(row) for row in session.execute(statement).scalars().all()]

    async def get_all_async(self, limit: int = 100, offset: int = 0) -> List[T]:
        statement = select(self.model).order_by(self.model.id).limit(limit).offset(offset)
        async with self.unit_of_work.reading_async() as session:
            result = await session.execute(statement)
            return [self.to_entity(row) for row in result.scalars().all()]

    def find_all(self, **filters) -> List[T]:
        """Find entities by column filters (e.g. code='A1')."""
        with self.unit_of_work.reading() as session:
            result = session.execute(self._filtered(select(self.model), filters))
            return [self.to_entity(row) for row in result.scalars().all()]

    async def find_all_async(self, **filters) -> List[T]:
        async with self.unit_of_work.reading_async() as session:
            result = await session.execute(self._filtered(select(self.model), filters))
            return [self.to_entity(row) for row in result.scalars().all()]

    def count(self, **filters) -> int:
        """Count persisted entities matching filters."""
        statement = self._filtered(select(func.count(self.model.id)), filters)
        with self.unit_of_work.reading() as session:
            return session.execute(statement).scalar_one()

    async def count_async(self, **filters) -> int:
        statement = self._filtered(select(func.count(self.model.id)), filters)
        async with self.unit_of_work.reading_async() as session:
            return (await session.execute(statement)).scalar_one()

    def exists(self, id: int) -> bool:
        return self.count(id=id) > 0

    async def exists_async(self, id: int) -> bool:
        return await self.count_async(id=id) > 0

    # --- Write statements (executed by the unit of work at commit) ---

    def statement_for(self, kind: ChangeKind, entity: T):
        if kind is ChangeKind.INSERT:
            return insert(self.model).values(**self._values(entity))
        if kind is ChangeKind.UPDATE:
            values = self._values(entity)
            values.pop("id")
            values["version"] = entity.version + 1
            statement = update(self.model).where(self._current(entity)).values(**values)
        else:
            statement = delete(self.model).where(self._current(entity))
        # Rows are not mirrored in the session; nothing to synchronize
        return statement.execution_options(synchronize_session=False)

    def _values(self, entity: T) -> Dict[str, Any]:
        return self.to_row(entity).model_dump()

    def _current(self, entity: T):
        # Compare-and-swap predicate: same row, same version as when read
        return (self.model.id == entity.id) & (self.model.version == entity.version)

    def _by_id(self, id: int):
        return select(self.model).where(self.model.id == id)

    def _filtered(self, statement, filters: Dict[str, Any]):
        for key, value in filters.items():
            if hasattr(self.model, key):
                statement = statement.where(getattr(self.model, key) == value)
        return statement

