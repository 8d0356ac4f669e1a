from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, get_current_principal
from salon_pos.config import settings
from salon_pos.db import get_db
from salon_pos.dependencies import parse_date_range, render
from salon_pos.services.reporting_service import staff_performance, total_sales
from salon_pos.services.transaction_service import get_transaction, list_transactions

router = APIRouter(tags=['reports'])


@router.get('/')
@router.get('/dashboard')
def dashboard(
    request: Request,
    _: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    start_date, end_date = parse_date_range(request)
    report = staff_performance(db, start_date=start_date, end_date=end_date)
    return render(
        request,
        'dashboard.html',
        {
            'start_date': start_date,
            'end_date': end_date,
            'total_sales': total_sales(db, start_date=start_date, end_date=end_date),
            'top_tip_earners': report.top_tip_earners(settings.dashboard_top_n),
            'most_services': report.most_services_provided(settings.dashboard_top_n),
        },
    )


@router.get('/transactions')
def transactions_page(
    request: Request,
    _: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    start_date, end_date = parse_date_range(request)
    return render(
        request,
        'transactions.html',
        {
            'start_date': start_date,
            'end_date': end_date,
            'transactions': list_transactions(db, start_date=start_date, end_date=end_date),
        },
    )


@router.get('/transactions/{transaction_id}')
def transaction_detail(
    transaction_id: int,
    request: Request,
    _: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    transaction = get_transaction(db, transaction_id)
    if transaction is None:
        raise HTTPException(status_code=404, detail='Transaction not found')
    return render(request, 'transaction_detail.html', {'transaction': transaction})
