"""Exceptions raised by the settlement engine."""

from typing import Optional


class BillSplitError(Exception):
    """Base exception for settlement engine errors."""
    pass


class DuplicateNameError(BillSplitError):
    """A participant with the same (case-insensitive, trimmed) name exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is already added")


class IndexOutOfRangeError(BillSplitError, IndexError):
    """
    Share matrix access outside current bounds.

    Signals a stale index on the caller's side, not a user error.
    """

    def __init__(self, axis: str, index: int, size: int):
        self.axis = axis
        self.index = index
        self.size = size
        super().__init__(
            f"{axis} index {index} out of range (size {size})"
        )


class NotFoundError(BillSplitError):
    """No participant or item with the given id."""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"No {entity} with id {entity_id}")


class SessionStateError(BillSplitError):
    """The requested action is not valid in the session's current stage."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        super().__init__(message)
