"""Bearer-authenticated JSON endpoint for managing staff from outside the web UI."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from salon_pos.auth import Principal
from salon_pos.config import settings
from salon_pos.db import get_db
from salon_pos.dependencies import get_client_ip
from salon_pos.security.passwords import generate_password
from salon_pos.security.sessions import load_principal_from_token
from salon_pos.services.audit_service import AuditAction, log_audit
from salon_pos.services.staff_service import provision_staff, remove_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/functions', tags=['functions'])

ALLOWED_HEADERS = 'authorization, x-client-info, apikey, content-type'


class ManageStaffError(Exception):
    pass


def cors_headers() -> dict[str, str]:
    return {
        'Access-Control-Allow-Origin': settings.staff_function_allowed_origin,
        'Access-Control-Allow-Headers': ALLOWED_HEADERS,
        'Access-Control-Allow-Methods': 'POST, OPTIONS',
    }


def _error(message: str) -> JSONResponse:
    return JSONResponse({'error': message}, status_code=400, headers=cors_headers())


def _bearer_token(request: Request) -> str:
    header = request.headers.get('authorization', '').strip()
    if not header:
        raise ManageStaffError('No authorization header')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise ManageStaffError('Error getting user')
    return token.strip()


def _caller(db: Session, request: Request) -> Principal:
    principal = load_principal_from_token(db, _bearer_token(request))
    if principal is None:
        raise ManageStaffError('Error getting user')
    if not principal.is_admin:
        raise ManageStaffError('Unauthorized - Admin access required')
    return principal


async def _json_body(request: Request) -> dict:
    try:
        body = json.loads(await request.body() or b'{}')
    except ValueError as exc:
        raise ManageStaffError('Invalid JSON body') from exc
    if not isinstance(body, dict):
        raise ManageStaffError('Invalid JSON body')
    return body


@router.options('/manage-staff')
def manage_staff_preflight():
    return Response(status_code=200, headers=cors_headers())


@router.post('/manage-staff')
async def manage_staff(request: Request, db: Session = Depends(get_db)):
    try:
        principal = _caller(db, request)
        body = await _json_body(request)
        action = body.get('action')
        ip = get_client_ip(request)

        if action == 'add':
            temporary_password = generate_password()
            member = provision_staff(
                db,
                actor=principal,
                email=str(body.get('email') or ''),
                full_name=str(body.get('full_name') or '') or None,
                password=temporary_password,
            )
            log_audit(
                db,
                actor_staff_id=principal.id,
                action=AuditAction.STAFF_PROVISIONED,
                ip=ip,
                metadata={'staff_id': member.id, 'email': member.email, 'via': 'manage-staff'},
            )
            db.commit()
            return JSONResponse(
                {'message': 'Staff member added successfully', 'temporaryPassword': temporary_password},
                headers=cors_headers(),
            )

        if action == 'remove':
            try:
                staff_id = int(body.get('userId'))
            except (TypeError, ValueError) as exc:
                raise ManageStaffError('Invalid userId') from exc
            member = remove_staff(db, actor=principal, staff_id=staff_id)
            log_audit(
                db,
                actor_staff_id=principal.id,
                action=AuditAction.STAFF_REMOVED,
                ip=ip,
                metadata={'staff_id': staff_id, 'email': member.email, 'via': 'manage-staff'},
            )
            db.commit()
            return JSONResponse({'message': 'Staff member removed successfully'}, headers=cors_headers())

        raise ManageStaffError('Invalid action')
    except (ManageStaffError, ValueError, PermissionError) as exc:
        db.rollback()
        logger.info('manage-staff request rejected: %s', exc)
        return _error(str(exc))
