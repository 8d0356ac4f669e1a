from __future__ import annotations

import secrets
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from salon_pos.auth import Principal
from salon_pos.config import settings
from salon_pos.db import SessionLocal
from salon_pos.models import ApprovalStatus, StaffMember, WebSession
from salon_pos.time_utils import ensure_utc, utcnow


AUTH_EXEMPT_PATHS = {'/login', '/signup', '/robots.txt', '/functions/manage-staff'}


def _session_expiry():
    return utcnow() + timedelta(minutes=settings.session_ttl_minutes)


def create_web_session(db: Session, staff_id: int, ip: str | None, user_agent: str | None) -> str:
    token = secrets.token_urlsafe(48)
    web_session = WebSession(
        session_token=token,
        staff_id=staff_id,
        ip=ip,
        user_agent=user_agent,
        expires_at=_session_expiry(),
    )
    db.add(web_session)
    db.flush()
    return token


def revoke_web_session(db: Session, token: str) -> None:
    session = db.execute(select(WebSession).where(WebSession.session_token == token)).scalar_one_or_none()
    if not session or session.revoked_at is not None:
        return
    session.revoked_at = utcnow()


def principal_from_member(member: StaffMember) -> Principal:
    return Principal(
        id=member.id,
        email=member.email,
        full_name=member.full_name,
        role=member.role,
        approval_status=member.approval_status,
    )


def load_principal_from_token(db: Session, token: str | None) -> Principal | None:
    if not token:
        return None

    row = db.execute(
        select(WebSession, StaffMember)
        .join(StaffMember, StaffMember.id == WebSession.staff_id)
        .where(WebSession.session_token == token)
    ).one_or_none()
    if not row:
        return None

    web_session, member = row
    now = utcnow()
    if web_session.revoked_at is not None or ensure_utc(web_session.expires_at) <= now:
        return None
    # Approval can be withdrawn while a session is live.
    if member.approval_status != ApprovalStatus.APPROVED:
        return None

    web_session.last_seen_at = now
    web_session.expires_at = _session_expiry()
    return principal_from_member(member)


def install_auth_session_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def auth_session_middleware(request: Request, call_next):
        token = request.cookies.get(settings.session_cookie_name)
        with SessionLocal() as db:
            principal = load_principal_from_token(db, token)
            request.state.principal = principal
            db.commit()

        if request.url.path not in AUTH_EXEMPT_PATHS and request.state.principal is None:
            return RedirectResponse('/login', status_code=303)

        response = await call_next(request)
        return response
