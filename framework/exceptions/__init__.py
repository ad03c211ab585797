"""
Data access exception taxonomy.
"""

from .errors import (
    ConcurrencyConflictError,
    ConstraintViolationError,
    DataAccessException,
    UnitOfWorkClosedError,
)

__all__ = [
    "DataAccessException",
    "ConstraintViolationError",
    "ConcurrencyConflictError",
    "UnitOfWorkClosedError",
]
