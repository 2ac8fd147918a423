"""
Audit Logger

DESIGN DECISION: Every write against a user's namespace is logged,
and so is every amount the valuation layer had to leave out.
This provides:
1. Complete traceability
2. Debugging capability when the store misbehaves
3. A record of why a total was flagged as incomplete

The audit logger:
- Never raises (a logging failure must not fail a write that succeeded)
- Emits structured JSON through structlog
"""

import logging
from typing import Optional

import structlog

from ledgersync.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured local log. Severity picks the log method.
    """

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or structlog.get_logger("ledgersync.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be emitted.
        """
        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break the caller
            return False
        return True

    def log_entity_created(self, user_id: str, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_created(user_id, entity_type, entity_id))

    def log_entity_updated(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> None:
        self.log(AuditEventBuilder.entity_updated(user_id, entity_type, entity_id, fields))

    def log_entity_deleted(self, user_id: str, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_deleted(user_id, entity_type, entity_id))

    def log_collection_fetched(self, user_id: str, entity_type: str, count: int) -> None:
        self.log(AuditEventBuilder.collection_fetched(user_id, entity_type, count))

    def log_record_skipped(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.record_skipped(user_id, entity_type, entity_id, error_message))

    def log_preferences_saved(self, user_id: str, preferred_currency: str) -> None:
        self.log(AuditEventBuilder.preferences_saved(user_id, preferred_currency))

    def log_refresh_completed(self, user_id: str, key: str, count: int) -> None:
        self.log(AuditEventBuilder.refresh_completed(user_id, key, count))

    def log_refresh_failed(self, user_id: str, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.refresh_failed(user_id, key, error_message))

    def log_stale_response(self, user_id: str, key: str, generation: int) -> None:
        self.log(AuditEventBuilder.stale_response_discarded(user_id, key, generation))

    def log_conversion_unavailable(
        self,
        entity_type: str,
        entity_id: str,
        from_currency: str,
        to_currency: str,
    ) -> None:
        self.log(
            AuditEventBuilder.conversion_unavailable(
                entity_type, entity_id, from_currency, to_currency
            )
        )

    def log_store_error(
        self,
        operation: str,
        path: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.store_error(operation, path, error_message, user_id))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
