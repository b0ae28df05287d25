"""
Authentication audit trail.

Append-only JSONL record of login, callback, logout and refresh outcomes.
Events never contain tokens, codes, or the client secret; only outcome,
client address and a short reason.
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger("audit")


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"  # Failed login / callback
    ALERT = "alert"  # CSRF failure


@dataclass
class AuditEvent:
    """A single audit log entry."""

    id: str
    timestamp: str
    severity: AuditSeverity
    action: str  # e.g. "login_started", "callback_failed"
    client: str  # peer address
    status: str  # "success" or "failure"
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        action: str,
        client: str,
        status: str,
        severity: AuditSeverity = AuditSeverity.INFO,
        **context: Any,
    ) -> "AuditEvent":
        return cls(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(tz=UTC).isoformat(),
            severity=severity,
            action=action,
            client=client,
            status=status,
            context=context,
        )


class AuditLogger:
    """
    Writes events to the ``audit`` logger and, when configured, appends them
    to a JSONL file.
    """

    def __init__(self, log_path: Path | None = None):
        self.log_path = log_path
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: AuditEvent) -> None:
        record = asdict(event)
        record["severity"] = event.severity.value
        level = logging.INFO if event.severity is AuditSeverity.INFO else logging.WARNING
        logger.log(
            level, "%s %s client=%s %s", event.action, event.status, event.client, event.context
        )

        if self.log_path is None:
            return
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            logger.critical("FAILED TO WRITE AUDIT LOG: %s | Event: %s", e, event.action)

    def record(
        self,
        action: str,
        client: str,
        status: str = "success",
        severity: AuditSeverity = AuditSeverity.INFO,
        **context: Any,
    ) -> str:
        event = AuditEvent.create(action, client, status, severity, **context)
        self.log(event)
        return event.id
