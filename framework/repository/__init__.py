"""
Repository pattern: data access abstraction over a unit of work with explicit change tracking.
"""

from .base import BaseRepository, IRepository
from .entity import AggregateRoot, EntityState
from .tracking import ChangeKind, ChangeTracker
from .unit_of_work import TrackingPolicy, UnitOfWork, UnitOfWorkState

__all__ = [
    "AggregateRoot",
    "BaseRepository",
    "ChangeKind",
    "ChangeTracker",
    "EntityState",
    "IRepository",
    "TrackingPolicy",
    "UnitOfWork",
    "UnitOfWorkState",
]
