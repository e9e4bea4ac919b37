"""
Audit Logger

DESIGN DECISION: Every automatic change to the shared budget is logged.
This provides:
1. Traceability of automatic debt payments
2. Debugging capability when the balance looks wrong
3. A visible trail of persistence failures

The audit logger:
- Is synchronous, like every ledger mutation
- Writes structured JSON lines through structlog
- Only reads the events it is given; it never touches ledger state
"""

from typing import Optional

import structlog

from timetracker.models.audit import AuditEvent, AuditSeverity


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

    Keeps the emitted events in memory as well (bounded), so the
    front-end can show recent automatic activity.
    """

    def __init__(self, keep_last: int = 200):
        self._logger = structlog.get_logger("timetracker.audit")
        self._keep_last = keep_last
        self._recent: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._recent.append(event)
        if len(self._recent) > self._keep_last:
            del self._recent[: len(self._recent) - self._keep_last]

    def recent(self, limit: Optional[int] = None) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(reversed(self._recent))
        return events[:limit] if limit is not None else events
