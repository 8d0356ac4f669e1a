from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, get_current_principal
from salon_pos.db import get_db
from salon_pos.dependencies import get_client_ip, render
from salon_pos.security.csrf import verify_csrf
from salon_pos.services.audit_service import AuditAction, log_audit
from salon_pos.services.catalog_service import list_categories, list_service_options
from salon_pos.services.notification_service import LEVEL_WARNING, Notice, redirect_with_notice
from salon_pos.services.sale_builder_service import SaleBuilder
from salon_pos.services.staff_service import display_name, list_staff_for_sale
from salon_pos.services.transaction_service import SaleValidationError, commit_sale

logger = logging.getLogger(__name__)

router = APIRouter(tags=['sales'])

STAFF_UNAVAILABLE = 'Failed to load staff members. Please try again.'


def _optional_int(raw: object) -> int | None:
    value = str(raw or '').strip()
    if not value.isdecimal() or len(value) > 18:
        return None
    return int(value)


def _builder_from_form(form, builder: SaleBuilder) -> SaleBuilder:
    """Rebuild the pending sale posted back by the form, in posted order."""
    for line_id in form.getlist('line_id'):
        line_id = str(line_id)
        prefix = f'line__{line_id}__'
        builder.add_line(line_id)
        builder.set_line_category(line_id, _optional_int(form.get(prefix + 'category')))
        builder.set_line_service(line_id, _optional_int(form.get(prefix + 'service')))
        builder.set_line_price(line_id, form.get(prefix + 'price'))
        builder.set_line_staff(line_id, _optional_int(form.get(prefix + 'staff')))
        builder.set_line_tip(line_id, form.get(prefix + 'tip'))
    return builder


def _apply_action(builder: SaleBuilder, action: str) -> None:
    verb, _, line_id = action.partition(':')
    if verb == 'add_line':
        builder.add_line()
    elif verb == 'remove_line':
        builder.remove_line(line_id)
    elif verb == 'category':
        line = next((line for line in builder.lines if line.id == line_id), None)
        if line is not None:
            builder.set_line_category(line_id, line.category_id)
    elif verb == 'service':
        line = next((line for line in builder.lines if line.id == line_id), None)
        if line is not None:
            builder.set_line_service(line_id, line.service_id)


def _render_sale_page(
    request: Request,
    db: Session,
    builder: SaleBuilder,
    *,
    customer_name: str = '',
    customer_mobile: str = '',
    error: str | None = None,
    status_code: int = 200,
):
    staff = list_staff_for_sale(db)
    context = {
        'categories': list_categories(db),
        'services': list(builder.services.values()),
        'staff': [{'id': member.id, 'name': display_name(member)} for member in staff.members],
        'builder': builder,
        'customer_name': customer_name,
        'customer_mobile': customer_mobile,
        'error': error,
    }
    if staff.unavailable:
        context['staff_warning'] = Notice(message=STAFF_UNAVAILABLE, level=LEVEL_WARNING)
    return render(request, 'new_sale.html', context, status_code=status_code)


@router.get('/new-sale')
def new_sale_page(
    request: Request,
    _: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    builder = SaleBuilder.from_catalog(list_service_options(db))
    return _render_sale_page(request, db, builder)


@router.post('/new-sale')
async def new_sale_submit(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    form = await request.form()
    customer_name = str(form.get('customer_name', ''))
    customer_mobile = str(form.get('customer_mobile', ''))
    action = str(form.get('action', 'refresh')).strip()

    builder = _builder_from_form(form, SaleBuilder.from_catalog(list_service_options(db)))
    if action != 'complete':
        _apply_action(builder, action)
        return _render_sale_page(
            request,
            db,
            builder,
            customer_name=customer_name,
            customer_mobile=customer_mobile,
        )

    try:
        transaction = commit_sale(
            db,
            customer_name=customer_name,
            customer_mobile=customer_mobile,
            lines=builder.lines,
            actor_id=principal.id,
        )
        log_audit(
            db,
            actor_staff_id=principal.id,
            action=AuditAction.SALE_RECORDED,
            ip=get_client_ip(request),
            metadata={
                'transaction_id': transaction.id,
                'line_count': len(builder.lines),
                'total_amount': transaction.total_amount,
                'total_tips': transaction.total_tips,
            },
        )
        db.commit()
    except SaleValidationError as exc:
        db.rollback()
        return _render_sale_page(
            request,
            db,
            builder,
            customer_name=customer_name,
            customer_mobile=customer_mobile,
            error=str(exc),
            status_code=400,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to complete sale for %s', principal.email)
        return _render_sale_page(
            request,
            db,
            builder,
            customer_name=customer_name,
            customer_mobile=customer_mobile,
            error='Failed to complete sale. Please try again.',
            status_code=500,
        )

    builder.clear()
    return redirect_with_notice('/new-sale', 'Sale completed successfully!', transaction_id=transaction.id)
