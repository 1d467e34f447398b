from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from stellar_auth.application.ports.audit_port import CRITICAL_AUDIT_EVENTS, AuditEvent, AuditPort
from stellar_auth.infrastructure.db.models.accounts import AuditLogModel


logger = logging.getLogger(__name__)

audit_logs = AuditLogModel.__table__


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAuditSink(AuditPort):
    """Logs every audit event and persists the critical ones.

    Audit persistence is best effort: a storage failure is logged and the
    request that produced the event carries on.
    """

    def __init__(self, engine, *, clock: Callable[[], datetime] = _utcnow):
        self._engine = engine
        self._clock = clock

    def record(self, event: AuditEvent, data: dict[str, Any]) -> None:
        critical = event in CRITICAL_AUDIT_EVENTS
        level = logging.WARNING if critical else logging.INFO
        logger.log(level, "audit: %s data=%s", event, _serialize(data))
        if not critical:
            return
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    insert(audit_logs).values(
                        event=event,
                        data=_serialize(data),
                        user_id=_optional_str(data.get("user_id")),
                        ip_address=_optional_str(data.get("ip")),
                        created_at=self._clock(),
                    )
                )
        except SQLAlchemyError:
            logger.exception("audit: persist_failed event=%s", event)


def _serialize(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str, sort_keys=True)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
