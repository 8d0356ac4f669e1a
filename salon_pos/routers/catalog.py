from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, Role, get_current_principal, require_role
from salon_pos.db import get_db
from salon_pos.dependencies import get_client_ip, render
from salon_pos.security.csrf import verify_csrf
from salon_pos.services.audit_service import AuditAction, log_audit
from salon_pos.services.catalog_service import (
    create_category,
    create_service,
    delete_category,
    delete_service,
    list_categories,
    services_by_category,
    update_service,
)
from salon_pos.services.notification_service import LEVEL_ERROR, redirect_with_notice

router = APIRouter(prefix='/services', tags=['catalog'])
admin_access = require_role(Role.ADMIN)


def _optional_int(raw: object) -> int | None:
    value = str(raw or '').strip()
    if not value.isdecimal() or len(value) > 18:
        return None
    return int(value)


def _failed(db: Session, message: str, exc: Exception):
    db.rollback()
    return redirect_with_notice('/services', f'{message}: {exc}', LEVEL_ERROR)


@router.get('')
def services_page(
    request: Request,
    _: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return render(
        request,
        'services.html',
        {
            'services_by_category': services_by_category(db),
            'categories': list_categories(db),
        },
    )


@router.post('/categories/create')
async def category_create(
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    try:
        category = create_category(db, actor=principal, name=str(form.get('name', '')))
    except (ValueError, PermissionError) as exc:
        return _failed(db, 'Failed to add category', exc)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.CATEGORY_CREATED,
        ip=get_client_ip(request),
        metadata={'category_id': category.id, 'name': category.name},
    )
    db.commit()
    return redirect_with_notice('/services', 'Category added successfully')


@router.post('/categories/{category_id}/delete')
def category_delete(
    category_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        category = delete_category(db, actor=principal, category_id=category_id)
    except (ValueError, PermissionError) as exc:
        return _failed(db, 'Failed to delete category', exc)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.CATEGORY_DELETED,
        ip=get_client_ip(request),
        metadata={'category_id': category_id, 'name': category.name},
    )
    db.commit()
    return redirect_with_notice('/services', 'Category deleted successfully')


@router.post('/create')
async def service_create(
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    try:
        service = create_service(
            db,
            actor=principal,
            name=str(form.get('name', '')),
            price=form.get('price', ''),
            category_id=_optional_int(form.get('category_id')),
        )
    except (ValueError, PermissionError) as exc:
        return _failed(db, 'Failed to add service', exc)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.SERVICE_CREATED,
        ip=get_client_ip(request),
        metadata={'service_id': service.id, 'name': service.name, 'price': service.price},
    )
    db.commit()
    return redirect_with_notice('/services', 'Service added successfully')


@router.post('/{service_id}/update')
async def service_update(
    service_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    try:
        service = update_service(
            db,
            actor=principal,
            service_id=service_id,
            name=str(form.get('name', '')),
            price=form.get('price', ''),
            category_id=_optional_int(form.get('category_id')),
        )
    except (ValueError, PermissionError) as exc:
        return _failed(db, 'Failed to update service', exc)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.SERVICE_UPDATED,
        ip=get_client_ip(request),
        metadata={'service_id': service.id, 'name': service.name, 'price': service.price},
    )
    db.commit()
    return redirect_with_notice('/services', 'Service updated successfully')


@router.post('/{service_id}/delete')
def service_delete(
    service_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        service = delete_service(db, actor=principal, service_id=service_id)
    except (ValueError, PermissionError) as exc:
        return _failed(db, 'Failed to delete service', exc)

    log_audit(
        db,
        actor_staff_id=principal.id,
        action=AuditAction.SERVICE_DELETED,
        ip=get_client_ip(request),
        metadata={'service_id': service_id, 'name': service.name},
    )
    db.commit()
    return redirect_with_notice('/services', 'Service deleted successfully')
