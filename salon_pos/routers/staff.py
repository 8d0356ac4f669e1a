from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, Role, get_current_principal, require_role
from salon_pos.db import get_db
from salon_pos.dependencies import get_client_ip, render
from salon_pos.models import ApprovalStatus
from salon_pos.security.csrf import verify_csrf
from salon_pos.security.passwords import generate_password
from salon_pos.services.audit_service import AuditAction, log_audit
from salon_pos.services.notification_service import LEVEL_ERROR, Notice, redirect_with_notice
from salon_pos.services.staff_service import (
    display_name,
    list_staff_members,
    provision_staff,
    remove_staff,
    set_approval_status,
)

router = APIRouter(prefix='/staff', tags=['staff'])
admin_access = require_role(Role.ADMIN)


def _render_staff_page(request: Request, principal: Principal, db: Session, **extra):
    members = list_staff_members(db)
    approved = [member for member in members if member.approval_status == ApprovalStatus.APPROVED]
    pending = [member for member in members if member.approval_status == ApprovalStatus.PENDING]
    return render(
        request,
        'staff.html',
        {
            'is_admin': principal.is_admin,
            'approved_staff': approved,
            # Pending requests are only shown to admins.
            'pending_staff': pending if principal.is_admin else [],
            'display_name': display_name,
            'active_tab': 'pending' if request.query_params.get('tab') == 'pending' and principal.is_admin else 'approved',
            **extra,
        },
    )


@router.get('')
def staff_page(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return _render_staff_page(request, principal, db)


@router.post('/add')
async def staff_add(
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    temporary_password = generate_password()
    try:
        member = provision_staff(
            db,
            actor=principal,
            email=str(form.get('email', '')),
            full_name=str(form.get('full_name', '')),
            password=temporary_password,
        )
    except (ValueError, PermissionError) as exc:
        db.rollback()
        return redirect_with_notice('/staff', f'Failed to add staff member: {exc}', LEVEL_ERROR)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.STAFF_PROVISIONED,
        ip=get_client_ip(request),
        metadata={'staff_id': member.id, 'email': member.email},
    )
    db.commit()
    # Shown once, never placed in a redirect URL.
    return _render_staff_page(
        request,
        principal,
        db,
        notice=Notice(message='Staff member added successfully'),
        provisioned={'email': member.email, 'password': temporary_password},
    )


@router.post('/{staff_id}/status')
async def staff_set_status(
    staff_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    status_raw = str(form.get('status', '')).strip().lower()
    try:
        member = set_approval_status(db, actor=principal, staff_id=staff_id, status=status_raw)
    except (ValueError, PermissionError) as exc:
        db.rollback()
        return redirect_with_notice('/staff', f'Failed to update staff member status: {exc}', LEVEL_ERROR)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.STAFF_STATUS_UPDATED,
        ip=get_client_ip(request),
        metadata={'staff_id': member.id, 'approval_status': member.approval_status},
    )
    db.commit()
    return redirect_with_notice('/staff', 'Staff member status updated successfully')


@router.post('/{staff_id}/remove')
def staff_remove(
    staff_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        member = remove_staff(db, actor=principal, staff_id=staff_id)
    except (ValueError, PermissionError) as exc:
        db.rollback()
        return redirect_with_notice('/staff', f'Failed to remove staff member: {exc}', LEVEL_ERROR)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.STAFF_REMOVED,
        ip=get_client_ip(request),
        metadata={'staff_id': staff_id, 'email': member.email},
    )
    db.commit()
    return redirect_with_notice('/staff', 'Staff member removed successfully')
