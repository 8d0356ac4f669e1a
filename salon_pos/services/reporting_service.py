from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from salon_pos.models import StaffMember, Transaction, TransactionItem
from salon_pos.services.sale_builder_service import ZERO
from salon_pos.services.sort_utils import person_label
from salon_pos.time_utils import business_tz, day_range

DEFAULT_TOP_N = 5


@dataclass(frozen=True)
class StaffPerformance:
    staff_id: int | None
    name: str
    total_tips: Decimal
    service_count: int


@dataclass(frozen=True)
class StaffPerformanceReport:
    rows: tuple[StaffPerformance, ...]

    def top_tip_earners(self, n: int = DEFAULT_TOP_N) -> list[StaffPerformance]:
        # sorted() is stable, so ties keep encounter order.
        return sorted(self.rows, key=lambda row: row.total_tips, reverse=True)[: max(n, 0)]

    def most_services_provided(self, n: int = DEFAULT_TOP_N) -> list[StaffPerformance]:
        return sorted(self.rows, key=lambda row: row.service_count, reverse=True)[: max(n, 0)]


def total_sales(db: Session, *, start_date: date, end_date: date) -> Decimal:
    start, end = day_range(start_date, end_date, business_tz())
    total = db.execute(
        select(func.coalesce(func.sum(Transaction.total_amount), 0)).where(
            Transaction.created_at >= start,
            Transaction.created_at < end,
        )
    ).scalar_one()
    return Decimal(str(total)).quantize(Decimal('0.01')) if total else ZERO


def staff_performance(db: Session, *, start_date: date, end_date: date) -> StaffPerformanceReport:
    start, end = day_range(start_date, end_date, business_tz())
    rows = db.execute(
        select(TransactionItem.staff_id, TransactionItem.tip, StaffMember.full_name, StaffMember.email)
        .outerjoin(StaffMember, StaffMember.id == TransactionItem.staff_id)
        .where(TransactionItem.created_at >= start, TransactionItem.created_at < end)
        .order_by(TransactionItem.created_at.asc(), TransactionItem.id.asc())
    ).all()

    names: dict[int | None, str] = {}
    tips: dict[int | None, Decimal] = {}
    counts: dict[int | None, int] = {}
    for staff_id, tip, full_name, email in rows:
        if staff_id not in names:
            names[staff_id] = person_label(full_name, email)
            tips[staff_id] = ZERO
            counts[staff_id] = 0
        tips[staff_id] += Decimal(tip or 0)
        counts[staff_id] += 1

    return StaffPerformanceReport(
        rows=tuple(
            StaffPerformance(
                staff_id=staff_id,
                name=name,
                total_tips=tips[staff_id],
                service_count=counts[staff_id],
            )
            for staff_id, name in names.items()
        )
    )
