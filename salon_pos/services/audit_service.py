from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session

from salon_pos.models import AuditLog, AuthEvent

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    AUTH_LOGIN = 'AUTH_LOGIN'
    AUTH_LOGOUT = 'AUTH_LOGOUT'
    PASSWORD_CHANGED = 'PASSWORD_CHANGED'
    STAFF_SIGNED_UP = 'STAFF_SIGNED_UP'
    STAFF_PROVISIONED = 'STAFF_PROVISIONED'
    STAFF_STATUS_UPDATED = 'STAFF_STATUS_UPDATED'
    STAFF_REMOVED = 'STAFF_REMOVED'
    CATEGORY_CREATED = 'CATEGORY_CREATED'
    CATEGORY_DELETED = 'CATEGORY_DELETED'
    SERVICE_CREATED = 'SERVICE_CREATED'
    SERVICE_UPDATED = 'SERVICE_UPDATED'
    SERVICE_DELETED = 'SERVICE_DELETED'
    SALE_RECORDED = 'SALE_RECORDED'


class LoginFailure(str, Enum):
    UNKNOWN_EMAIL = 'UNKNOWN_EMAIL'
    BAD_PASSWORD = 'BAD_PASSWORD'
    PENDING_APPROVAL = 'PENDING_APPROVAL'
    REJECTED = 'REJECTED'


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def log_auth_event(
    db: Session,
    *,
    attempted_email: str,
    success: bool,
    ip: str | None,
    user_agent: str | None,
    staff_id: int | None = None,
    failure_reason: LoginFailure | None = None,
) -> None:
    if failure_reason is not None:
        logger.info('Login failed for %s: %s', attempted_email, failure_reason.value)
    db.add(
        AuthEvent(
            attempted_email=attempted_email,
            success=success,
            failure_reason=failure_reason.value if failure_reason is not None else None,
            staff_id=staff_id,
            ip=ip,
            user_agent=user_agent,
        )
    )


def log_audit(
    db: Session,
    *,
    actor_staff_id: int | None,
    action: AuditAction,
    ip: str | None,
    metadata: dict | None = None,
) -> None:
    """Stage an audit row in the caller's transaction; it lands only if the caller commits."""
    db.add(
        AuditLog(
            actor_staff_id=actor_staff_id,
            action=AuditAction(action).value,
            ip=ip,
            meta=_json_safe(metadata or {}),
        )
    )
