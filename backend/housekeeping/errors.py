"""
Exception types for infrastructure failures.

Policy rejections are not exceptions; see housekeeping.guards.base.GuardResult.
"""


class HousekeepingError(Exception):
    """Base class for unexpected failures."""


class RepositoryError(HousekeepingError):
    """A read or write against the data store failed. Nothing was committed."""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ConcurrentModificationError(HousekeepingError):
    """A conditional write matched no row because the record changed underneath."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} changed before the write landed")
