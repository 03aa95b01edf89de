# Overview: Service-layer operations for the audit trail; append-only, written inside the caller's transaction.

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from ..extensions import db
from ..models import AuditLog
from larder.quantities import decimal_str
from larder.time_utils import to_utc_z


def _json_safe(value):
    if isinstance(value, Decimal):
        return decimal_str(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def record_audit(
    *,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: int,
    details: dict | None = None,
) -> AuditLog:
    """
    Append an audit entry.

    Flushes but does NOT commit: the entry belongs to the transaction of the
    mutation it describes, so it commits or rolls back with it.
    """
    entry = AuditLog(
        user_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=_json_safe(details) if details is not None else None,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
