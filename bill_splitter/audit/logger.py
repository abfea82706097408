"""
Audit Logger

Every session mutation and every call to the extraction service is logged.
The logger:
- Writes each event to the structured local log
- Keeps the session's event history in memory so the UI can show it
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from bill_splitter.models.audit import AuditEvent, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    One instance per bill session. History is capped at max_history
    events; the oldest events are dropped first.
    """

    def __init__(
        self,
        correlation_id: Optional[UUID] = None,
        max_history: int = 500,
    ):
        """
        Initialize audit logger.

        Args:
            correlation_id: Default correlation ID stamped on events
                            that don't carry their own.
            max_history: Number of events kept in memory.
        """
        self._correlation_id = correlation_id
        self._max_history = max_history
        self._history: list[AuditEvent] = []
        self._logger = structlog.get_logger("bill_splitter.audit")

    @property
    def history(self) -> tuple[AuditEvent, ...]:
        """Events logged so far, oldest first."""
        return tuple(self._history)

    def events_of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self._history if e.event_type == event_type]

    def log(self, event: AuditEvent) -> AuditEvent:
        """Log an audit event and return it."""
        if event.correlation_id is None and self._correlation_id is not None:
            event = event.model_copy(update={"correlation_id": self._correlation_id})

        self._history.append(event)
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]

        log_dict = event.to_log_dict()
        severity = event.severity.value
        if severity == "error":
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        return event


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a bill upload).
    """
    return uuid4()
