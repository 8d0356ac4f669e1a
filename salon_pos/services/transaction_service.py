from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from salon_pos.models import Service, StaffMember, Transaction, TransactionItem
from salon_pos.services.sale_builder_service import ZERO, PendingSaleItem, coerce_amount
from salon_pos.services.sort_utils import person_label
from salon_pos.time_utils import business_tz, day_range, utcnow

UNKNOWN_SERVICE_LABEL = 'Unknown service'


class SaleValidationError(ValueError):
    pass


@dataclass(frozen=True)
class SaleTotals:
    total_amount: Decimal
    total_tips: Decimal


@dataclass(frozen=True)
class TransactionItemView:
    id: int
    service_id: int | None
    service_name: str
    staff_id: int | None
    staff_name: str
    price: Decimal
    tip: Decimal


@dataclass(frozen=True)
class TransactionView:
    id: int
    customer_name: str
    customer_mobile: str
    total_amount: Decimal
    total_tips: Decimal
    created_by: int | None
    created_at: datetime
    items: tuple[TransactionItemView, ...]


def compute_totals(lines: list[PendingSaleItem] | tuple[PendingSaleItem, ...]) -> SaleTotals:
    total_tips = sum((coerce_amount(line.tip) for line in lines), ZERO)
    total_amount = sum((coerce_amount(line.price) for line in lines), ZERO) + total_tips
    return SaleTotals(total_amount=total_amount, total_tips=total_tips)


def validate_sale(
    db: Session,
    *,
    customer_name: str,
    customer_mobile: str,
    lines: list[PendingSaleItem] | tuple[PendingSaleItem, ...],
) -> None:
    if not (customer_name or '').strip() or not (customer_mobile or '').strip() or not lines:
        raise SaleValidationError('Please fill in all required fields')

    for position, line in enumerate(lines, start=1):
        if line.service_id is None:
            raise SaleValidationError(f'Select a service for line {position}')
        if line.staff_id is None:
            raise SaleValidationError(f'Select a staff member for line {position}')

    service_ids = {line.service_id for line in lines}
    known_services = set(db.execute(select(Service.id).where(Service.id.in_(service_ids))).scalars().all())
    if service_ids - known_services:
        raise SaleValidationError('One or more selected services no longer exist')

    staff_ids = {line.staff_id for line in lines}
    known_staff = set(db.execute(select(StaffMember.id).where(StaffMember.id.in_(staff_ids))).scalars().all())
    if staff_ids - known_staff:
        raise SaleValidationError('One or more selected staff members no longer exist')


def commit_sale(
    db: Session,
    *,
    customer_name: str,
    customer_mobile: str,
    lines: list[PendingSaleItem] | tuple[PendingSaleItem, ...],
    actor_id: int | None,
) -> Transaction:
    """Stage a transaction header and its items in the caller's unit of work.

    Nothing is added to the session when validation fails. The caller commits
    once, so header and items land together or not at all.
    """
    validate_sale(db, customer_name=customer_name, customer_mobile=customer_mobile, lines=lines)
    totals = compute_totals(lines)
    created_at = utcnow()

    transaction = Transaction(
        customer_name=customer_name.strip(),
        customer_mobile=customer_mobile.strip(),
        total_amount=totals.total_amount,
        total_tips=totals.total_tips,
        created_by=actor_id,
        created_at=created_at,
    )
    db.add(transaction)
    # Items reference the header id.
    db.flush()

    db.add_all(
        [
            TransactionItem(
                transaction_id=transaction.id,
                service_id=line.service_id,
                staff_id=line.staff_id,
                price=coerce_amount(line.price),
                tip=coerce_amount(line.tip),
                created_at=created_at,
            )
            for line in lines
        ]
    )
    db.flush()
    return transaction


def _item_views(db: Session, transaction_ids: list[int]) -> dict[int, list[TransactionItemView]]:
    items_by_transaction: dict[int, list[TransactionItemView]] = {tid: [] for tid in transaction_ids}
    if not transaction_ids:
        return items_by_transaction

    rows = db.execute(
        select(TransactionItem, Service.name, StaffMember.full_name, StaffMember.email)
        .outerjoin(Service, Service.id == TransactionItem.service_id)
        .outerjoin(StaffMember, StaffMember.id == TransactionItem.staff_id)
        .where(TransactionItem.transaction_id.in_(transaction_ids))
        .order_by(TransactionItem.id.asc())
    ).all()
    for item, service_name, full_name, email in rows:
        items_by_transaction[item.transaction_id].append(
            TransactionItemView(
                id=item.id,
                service_id=item.service_id,
                service_name=service_name or UNKNOWN_SERVICE_LABEL,
                staff_id=item.staff_id,
                staff_name=person_label(full_name, email),
                price=Decimal(item.price),
                tip=Decimal(item.tip),
            )
        )
    return items_by_transaction


def _to_view(transaction: Transaction, items: list[TransactionItemView]) -> TransactionView:
    return TransactionView(
        id=transaction.id,
        customer_name=transaction.customer_name,
        customer_mobile=transaction.customer_mobile,
        total_amount=Decimal(transaction.total_amount),
        total_tips=Decimal(transaction.total_tips),
        created_by=transaction.created_by,
        created_at=transaction.created_at,
        items=tuple(items),
    )


def get_transaction(db: Session, transaction_id: int) -> TransactionView | None:
    transaction = db.execute(select(Transaction).where(Transaction.id == transaction_id)).scalar_one_or_none()
    if not transaction:
        return None
    items = _item_views(db, [transaction.id])
    return _to_view(transaction, items[transaction.id])


def list_transactions(db: Session, *, start_date: date, end_date: date) -> list[TransactionView]:
    start, end = day_range(start_date, end_date, business_tz())
    transactions = db.execute(
        select(Transaction)
        .where(Transaction.created_at >= start, Transaction.created_at < end)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    ).scalars().all()
    items = _item_views(db, [transaction.id for transaction in transactions])
    return [_to_view(transaction, items[transaction.id]) for transaction in transactions]
