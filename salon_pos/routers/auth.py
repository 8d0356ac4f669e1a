from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, get_current_principal
from salon_pos.config import settings
from salon_pos.db import get_db
from salon_pos.dependencies import get_client_ip, render
from salon_pos.models import ApprovalStatus
from salon_pos.security.csrf import verify_csrf
from salon_pos.security.passwords import verify_password
from salon_pos.security.sessions import create_web_session, revoke_web_session
from salon_pos.services.audit_service import AuditAction, LoginFailure, log_audit, log_auth_event
from salon_pos.services.notification_service import redirect_with_notice
from salon_pos.services.staff_service import change_password, get_member_by_email, register_staff

router = APIRouter(tags=['auth'])

INVALID_CREDENTIALS = 'Invalid email or password. Please try again.'
PENDING_APPROVAL = 'Your account is pending approval. Please wait for an admin to approve your account.'


def _login_failed(request: Request, email: str, *, pending: bool = False):
    return render(
        request,
        'login.html',
        {
            'email': email,
            'error': None if pending else INVALID_CREDENTIALS,
            'pending_approval': pending,
        },
        status_code=403 if pending else 401,
    )


@router.get('/login')
def login_page(request: Request):
    if getattr(request.state, 'principal', None):
        return RedirectResponse('/', status_code=303)
    return render(request, 'login.html', {'email': '', 'error': None, 'pending_approval': False})


@router.post('/login')
async def login_submit(
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    email = str(form.get('email', '')).strip().lower()
    password = str(form.get('password', ''))
    ip = get_client_ip(request)
    user_agent = request.headers.get('user-agent')

    member = get_member_by_email(db, email) if email else None
    failure_reason = None
    if not member:
        failure_reason = LoginFailure.UNKNOWN_EMAIL
    elif not verify_password(password, member.password_hash):
        failure_reason = LoginFailure.BAD_PASSWORD
    elif member.approval_status == ApprovalStatus.PENDING:
        failure_reason = LoginFailure.PENDING_APPROVAL
    elif member.approval_status != ApprovalStatus.APPROVED:
        failure_reason = LoginFailure.REJECTED

    if failure_reason:
        log_auth_event(
            db,
            attempted_email=email,
            success=False,
            failure_reason=failure_reason,
            staff_id=member.id if member else None,
            ip=ip,
            user_agent=user_agent,
        )
        db.commit()
        return _login_failed(request, email, pending=failure_reason == LoginFailure.PENDING_APPROVAL)

    token = create_web_session(db, member.id, ip=ip, user_agent=user_agent)
    log_auth_event(
        db,
        attempted_email=email,
        success=True,
        staff_id=member.id,
        ip=ip,
        user_agent=user_agent,
    )
    log_audit(
        db,
        actor_staff_id=member.id,
        action=AuditAction.AUTH_LOGIN,
        ip=ip,
        metadata={'email': email},
    )
    db.commit()

    response = redirect_with_notice('/', 'Successfully logged in!')
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        max_age=settings.session_ttl_minutes * 60,
    )
    return response


@router.get('/signup')
def signup_page(request: Request):
    return render(request, 'signup.html', {'email': '', 'full_name': '', 'error': None})


@router.post('/signup')
async def signup_submit(
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    email = str(form.get('email', '')).strip()
    full_name = str(form.get('full_name', '')).strip()
    password = str(form.get('password', ''))
    try:
        member = register_staff(db, email=email, full_name=full_name, password=password)
    except ValueError as exc:
        db.rollback()
        return render(
            request,
            'signup.html',
            {'email': email, 'full_name': full_name, 'error': str(exc)},
            status_code=400,
        )

    log_audit(
        db,
        actor_staff_id=member.id,
        action=AuditAction.STAFF_SIGNED_UP,
        ip=get_client_ip(request),
        metadata={'email': member.email},
    )
    db.commit()
    return redirect_with_notice(
        '/login',
        'Account created successfully! Please wait for admin approval before logging in.',
    )


@router.post('/logout')
def logout(request: Request, db: Session = Depends(get_db), _: None = Depends(verify_csrf)):
    principal = getattr(request.state, 'principal', None)
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        revoke_web_session(db, token)

    log_audit(
        db,
        actor_staff_id=principal.id if principal else None,
        action=AuditAction.AUTH_LOGOUT,
        ip=get_client_ip(request),
        metadata={},
    )
    db.commit()

    response = RedirectResponse('/login', status_code=303)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get('/settings')
def settings_page(request: Request, principal: Principal = Depends(get_current_principal)):
    return render(request, 'settings.html', {'account': principal, 'error': None})


@router.post('/settings/password')
async def settings_change_password(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    new_password = str(form.get('new_password', ''))
    if new_password != str(form.get('confirm_password', '')):
        error = 'New passwords do not match'
    else:
        try:
            change_password(
                db,
                staff_id=principal.id,
                current_password=str(form.get('current_password', '')),
                new_password=new_password,
            )
            error = None
        except ValueError as exc:
            db.rollback()
            error = str(exc)

    if error:
        return render(request, 'settings.html', {'account': principal, 'error': error}, status_code=400)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.PASSWORD_CHANGED,
        ip=get_client_ip(request),
        metadata={},
    )
    db.commit()
    return redirect_with_notice('/settings', 'Password updated successfully')
