"""
Audit Models for Bill Splitter

Every action that changes a bill session is recorded as an AuditEvent.
Events are append-only; a session's history is never edited.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Upload and extraction
    IMAGE_UPLOADED = "image_uploaded"
    UPLOAD_REJECTED = "upload_rejected"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"

    # Session mutations
    ITEMS_REPLACED = "items_replaced"
    PARTICIPANT_ADDED = "participant_added"
    PARTICIPANT_REMOVED = "participant_removed"
    DUPLICATE_NAME_REJECTED = "duplicate_name_rejected"
    SHARE_UPDATED = "share_updated"
    TAX_UPDATED = "tax_updated"
    BILL_SETTLED = "bill_settled"
    SESSION_RESET = "session_reset"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'participant', 'item', 'session')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one upload)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.participant_added(participant_id, "Alice")
        event = AuditEventBuilder.items_replaced(item_count=4)
    """

    @staticmethod
    def image_uploaded(
        upload_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_UPLOADED,
            entity_type="image",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Image uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def upload_rejected(
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPLOAD_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            correlation_id=correlation_id,
            description=f"Upload rejected: {filename}",
            details={"filename": filename},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def extraction_failed(
        upload_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description="No items could be extracted",
            error_message=reason,
        )

    @staticmethod
    def extraction_completed(
        extraction_id: UUID,
        item_count: int,
        truncated: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            severity=AuditSeverity.WARNING if truncated else AuditSeverity.INFO,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Extracted {item_count} items from the bill",
            details={
                "item_count": item_count,
                "truncated": truncated,
            },
        )

    @staticmethod
    def items_replaced(
        item_count: int,
        discarded_assignments: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEMS_REPLACED,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Bill items replaced ({item_count} items)",
            details={
                "item_count": item_count,
                "discarded_assignments": discarded_assignments,
            },
            is_user_action=True,
        )

    @staticmethod
    def participant_added(
        participant_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTICIPANT_ADDED,
            entity_type="participant",
            entity_id=participant_id,
            correlation_id=correlation_id,
            description=f"Participant added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def participant_removed(
        participant_id: UUID,
        name: str,
        position: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTICIPANT_REMOVED,
            entity_type="participant",
            entity_id=participant_id,
            correlation_id=correlation_id,
            description=f"Participant removed: {name}",
            details={"name": name, "position": position},
            is_user_action=True,
        )

    @staticmethod
    def duplicate_name_rejected(
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_NAME_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="participant",
            correlation_id=correlation_id,
            description=f"Duplicate participant name rejected: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def share_updated(
        item_id: UUID,
        participant_id: UUID,
        quantity: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_UPDATED,
            severity=AuditSeverity.DEBUG,
            entity_type="item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description="Share updated",
            details={
                "participant_id": str(participant_id),
                "quantity": quantity,
            },
            is_user_action=True,
        )

    @staticmethod
    def tax_updated(
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TAX_UPDATED,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Tax/tip set to {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def bill_settled(
        participant_count: int,
        grand_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_SETTLED,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Bill settled between {participant_count} people",
            details={
                "participant_count": participant_count,
                "grand_total": grand_total,
            },
            is_user_action=True,
        )

    @staticmethod
    def session_reset(
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESET,
            entity_type="session",
            correlation_id=correlation_id,
            description="Session reset (start over)",
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
