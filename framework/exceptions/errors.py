from typing import Any, Optional


class DataAccessException(Exception):
    """Base class for data access exceptions."""
    def __init__(self, message: str, code: int = 500, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail


class ConstraintViolationError(DataAccessException):
    """Duplicate identity (or another constraint) rejected at staging or commit."""
    def __init__(self, message: str, detail: Any = None):
        super().__init__(message, code=409, detail=detail)


class ConcurrencyConflictError(DataAccessException):
    """Row is gone or its version no longer matches the entity being written."""
    def __init__(self, entity_type: str, entity_id: Any, expected_version: Optional[int]):
        super().__init__(
            f"{entity_type} {entity_id} was changed or removed since version {expected_version}",
            code=409,
            detail={"entity_id": entity_id, "expected_version": expected_version},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version


class UnitOfWorkClosedError(DataAccessException):
    """Unit of work used after close()/aclose()."""
    def __init__(self, message: str = "Unit of work is closed"):
        super().__init__(message, code=500)
