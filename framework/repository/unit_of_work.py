"""
Unit of Work: tracks aggregates, stages changes and commits them in one transaction.
"""

import uuid
from contextlib import asynccontextmanager, contextmanager
from enum import Enum
from typing import AsyncIterator, Callable, Iterator, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from framework.exceptions import (
    ConcurrencyConflictError,
    ConstraintViolationError,
    UnitOfWorkClosedError,
)
from framework.logging.logger import get_logger
from .entity import AggregateRoot
from .tracking import ChangeKind, ChangeTracker, PendingChange


class TrackingPolicy(str, Enum):
    """What happens to attached entities mutated without an explicit update()."""
    EXPLICIT = "explicit"  # ignored; only add/update/remove are persisted
    AUTO = "auto"  # diffed against their snapshot at commit and persisted


class UnitOfWorkState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    CLOSED = "closed"


class UnitOfWork:
    """Shares one tracker across repositories; owns a sync and an async session."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        async_session_factory: Optional[Callable[[], AsyncSession]] = None,
        tracking: TrackingPolicy = TrackingPolicy.EXPLICIT,
    ):
        """Initialize UnitOfWork; at least one session factory must be provided (e.g. UnitOfWork.from_driver())."""
        if session_factory is None and async_session_factory is None:
            raise ValueError("Session factory must be provided. Use UnitOfWork.from_driver() or pass one explicitly.")

        self._session_factory = session_factory
        self._async_session_factory = async_session_factory
        self._session: Optional[Session] = None
        self._async_session: Optional[AsyncSession] = None
        self._repositories = {}
        self._closed = False
        self.tracking = TrackingPolicy(tracking)
        self.tracker = ChangeTracker()
        self.trace_id = uuid.uuid4().hex[:12]
        self.logger = get_logger("unit_of_work", trace_id=self.trace_id)

    @classmethod
    def from_driver(cls, driver, tracking: TrackingPolicy = TrackingPolicy.EXPLICIT) -> "UnitOfWork":
        """Create UnitOfWork from a SQLDriver's session factories."""
        return cls(driver.session_factory, driver.async_session_factory, tracking=tracking)

    @property
    def state(self) -> UnitOfWorkState:
        if self._closed:
            return UnitOfWorkState.CLOSED
        if self._pending():
            return UnitOfWorkState.DIRTY
        return UnitOfWorkState.IDLE

    @property
    def session(self) -> Session:
        """Sync session, opened on first use."""
        self._ensure_open()
        if self._session is None:
            if self._session_factory is None:
                raise RuntimeError("No sync session factory configured for this unit of work")
            self._session = self._session_factory()
        return self._session

    @property
    def async_session(self) -> AsyncSession:
        """Async session, opened on first use."""
        self._ensure_open()
        if self._async_session is None:
            if self._async_session_factory is None:
                raise RuntimeError("No async session factory configured for this unit of work")
            self._async_session = self._async_session_factory()
        return self._async_session

    def get_repository(self, repo_class):
        """Get or create a repository instance (cached)."""
        cache_key = repo_class.__name__
        if cache_key not in self._repositories:
            self._repositories[cache_key] = repo_class(self)
        return self._repositories[cache_key]

    # --- Staging ---

    def register_new(self, repository, entity: AggregateRoot) -> None:
        """Stage an insert; the identity must not be tracked yet."""
        self._check_entity(entity)
        if self.tracker.get(type(entity), entity.id) is not None:
            raise ConstraintViolationError(
                f"{type(entity).__name__} {entity.id} is already tracked by this unit of work",
                detail={"entity_id": entity.id},
            )
        self.tracker.attach(repository, entity, ChangeKind.INSERT)
        self.logger.debug(f"Staged insert of {type(entity).__name__} {entity.id}")

    def register_dirty(self, repository, entity: AggregateRoot) -> None:
        """Stage a full update from ``entity``'s current values."""
        self._check_entity(entity)
        entry = self.tracker.get(type(entity), entity.id)
        # Still unsaved: the insert will carry the new values
        if entry is not None and entry.change is ChangeKind.INSERT:
            change = ChangeKind.INSERT
        else:
            change = ChangeKind.UPDATE

        if entry is not None and entry.entity is entity:
            self.tracker.stage(entry, change)
        else:
            self.tracker.attach(repository, entity, change)
        self.logger.debug(f"Staged {change.value} of {type(entity).__name__} {entity.id}")

    def register_removed(self, repository, entity: AggregateRoot) -> None:
        """Stage a delete; removing an unsaved entity just forgets it."""
        self._check_entity(entity)
        entry = self.tracker.get(type(entity), entity.id)
        if entry is not None and entry.change is ChangeKind.INSERT:
            self.tracker.detach(type(entity), entity.id)
            self.logger.debug(f"Dropped pending insert of {type(entity).__name__} {entity.id}")
            return

        if entry is not None and entry.entity is entity:
            self.tracker.stage(entry, ChangeKind.DELETE)
        else:
            self.tracker.attach(repository, entity, ChangeKind.DELETE)
        self.logger.debug(f"Staged delete of {type(entity).__name__} {entity.id}")

    def register_clean(self, repository, entity: AggregateRoot) -> None:
        """Track a freshly loaded entity with no pending change."""
        self._ensure_open()
        self.tracker.attach(repository, entity)

    # --- Reads ---

    @contextmanager
    def reading(self) -> Iterator[Session]:
        """Session for a read; the read transaction ends on exit."""
        session = self.session
        try:
            yield session
        finally:
            session.rollback()

    @asynccontextmanager
    async def reading_async(self) -> AsyncIterator[AsyncSession]:
        session = self.async_session
        try:
            yield session
        finally:
            await session.rollback()

    # --- Commit ---

    def commit(self) -> int:
        """Commit all staged changes; returns the number of rows written."""
        changes = self._pending()
        if not changes:
            return 0

        session = self.session
        try:
            for change in changes:
                result = session.execute(change.entry.repository.statement_for(change.kind, change.entry.entity))
                self._check_result(change, result.rowcount)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise self._constraint_violation(e) from e
        except (ConcurrencyConflictError, SQLAlchemyError):
            session.rollback()
            raise

        self._accept(changes)
        return len(changes)

    async def commit_async(self) -> int:
        """Commit all staged changes through the async session."""
        changes = self._pending()
        if not changes:
            return 0

        session = self.async_session
        try:
            for change in changes:
                result = await session.execute(change.entry.repository.statement_for(change.kind, change.entry.entity))
                self._check_result(change, result.rowcount)
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise self._constraint_violation(e) from e
        except (ConcurrencyConflictError, SQLAlchemyError):
            await session.rollback()
            raise

        self._accept(changes)
        return len(changes)

    def clear_cache(self) -> None:
        """Detach every tracked entity and drop staged changes; storage is not touched."""
        dropped = self.tracker.clear(detect_changes=self.tracking is TrackingPolicy.AUTO)
        if dropped:
            self.logger.warning(f"Cache cleared, {dropped} unsaved change(s) discarded")

    # --- Lifetime ---

    def close(self) -> None:
        """Discard tracked state and close the sync session.

        An open async session cannot be awaited here; it is dropped with a
        warning. aclose() is the full release.
        """
        if self._closed:
            return
        self.clear_cache()
        self._closed = True
        try:
            if self._session is not None:
                self._session.close()
        finally:
            self._session = None
            if self._async_session is not None:
                self.logger.warning("Async session dropped unclosed by close(); use aclose() in async code")
                self._async_session = None

    async def aclose(self) -> None:
        """Discard tracked state and close both sessions."""
        if self._closed:
            return
        self.clear_cache()
        self._closed = True
        try:
            if self._async_session is not None:
                await self._async_session.close()
        finally:
            self._async_session = None
            try:
                if self._session is not None:
                    self._session.close()
            finally:
                self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
        finally:
            self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self.commit_async()
        finally:
            await self.aclose()

    # --- Internals ---

    def _pending(self) -> List[PendingChange]:
        return self.tracker.pending(detect_changes=self.tracking is TrackingPolicy.AUTO)

    def _ensure_open(self) -> None:
        if self._closed:
            raise UnitOfWorkClosedError()

    def _check_entity(self, entity: Optional[AggregateRoot]) -> None:
        self._ensure_open()
        if entity is None:
            raise ValueError("Entity must not be None")

    def _check_result(self, change: PendingChange, rowcount: int) -> None:
        if change.kind is ChangeKind.INSERT or rowcount == 1:
            return
        entity = change.entry.entity
        self.logger.warning(
            f"Concurrency conflict on {change.kind.value} of {type(entity).__name__} {entity.id} "
            f"(expected version {entity.version})"
        )
        raise ConcurrencyConflictError(type(entity).__name__, entity.id, entity.version)

    def _constraint_violation(self, error: IntegrityError) -> ConstraintViolationError:
        error_msg = str(error.orig) if hasattr(error, "orig") else str(error)
        self.logger.warning(f"Commit rejected by constraint: {error_msg}")
        return ConstraintViolationError("Commit rejected: data conflict", detail=error_msg)

    def _accept(self, changes: List[PendingChange]) -> None:
        for change in changes:
            self.tracker.accept(change)
        self.logger.info(f"Committed {len(changes)} change(s)")
