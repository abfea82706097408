"""Assignment validation package."""

from bill_splitter.validation.validator import AssignmentValidator

__all__ = ["AssignmentValidator"]
