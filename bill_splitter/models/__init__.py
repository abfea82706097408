"""
Data Models Package

All Pydantic models used by Bill Splitter.
"""

from bill_splitter.models.bill import (
    AssignmentReport,
    AssignmentStatus,
    ExtractionResult,
    ImageUpload,
    Item,
    ItemAssignmentStatus,
    Participant,
    PersonSummary,
    SessionStage,
)
from bill_splitter.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bill models
    "AssignmentReport",
    "AssignmentStatus",
    "ExtractionResult",
    "ImageUpload",
    "Item",
    "ItemAssignmentStatus",
    "Participant",
    "PersonSummary",
    "SessionStage",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
