from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from salon_pos.auth import Principal
from salon_pos.db import build_engine, init_db
from salon_pos.models import (
    ApprovalStatus,
    Category,
    Service,
    StaffMember,
    StaffRole,
    Transaction,
    TransactionItem,
)
from salon_pos.security.passwords import hash_password
from salon_pos.security.sessions import principal_from_member

DEFAULT_PASSWORD = 'password123'


def make_engine() -> Engine:
    engine = build_engine('sqlite+pysqlite:///:memory:')
    init_db(bind=engine)
    return engine


def make_session(engine: Engine) -> Session:
    return sessionmaker(bind=engine, expire_on_commit=False)()


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


def add_member(
    db: Session,
    email: str,
    *,
    full_name: str | None = None,
    role: StaffRole = StaffRole.STAFF,
    status: ApprovalStatus = ApprovalStatus.APPROVED,
    password: str = DEFAULT_PASSWORD,
    created_at: datetime | None = None,
) -> StaffMember:
    member = StaffMember(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        approval_status=status,
    )
    if created_at is not None:
        member.created_at = created_at
    db.add(member)
    db.flush()
    return member


def add_admin(db: Session, email: str = 'admin@example.com', full_name: str | None = 'Admin') -> StaffMember:
    return add_member(db, email, full_name=full_name, role=StaffRole.ADMIN)


def principal_for(member: StaffMember) -> Principal:
    return principal_from_member(member)


def add_category(db: Session, name: str) -> Category:
    category = Category(name=name)
    db.add(category)
    db.flush()
    return category


def add_service(db: Session, category: Category, name: str, price: str) -> Service:
    service = Service(name=name, price=Decimal(price), category_id=category.id)
    db.add(service)
    db.flush()
    return service


def add_sale(
    db: Session,
    *,
    created_at: datetime,
    items: list[tuple[int | None, int | None, str, str]],
    customer_name: str = 'Customer',
    customer_mobile: str = '0400000000',
) -> Transaction:
    """Insert a recorded sale directly. Items are (service_id, staff_id, price, tip)."""
    tips = sum((Decimal(tip) for _, _, _, tip in items), Decimal('0'))
    amount = sum((Decimal(price) for _, _, price, _ in items), Decimal('0')) + tips
    transaction = Transaction(
        customer_name=customer_name,
        customer_mobile=customer_mobile,
        total_amount=amount,
        total_tips=tips,
        created_at=created_at,
    )
    db.add(transaction)
    db.flush()
    for service_id, staff_id, price, tip in items:
        db.add(
            TransactionItem(
                transaction_id=transaction.id,
                service_id=service_id,
                staff_id=staff_id,
                price=Decimal(price),
                tip=Decimal(tip),
                created_at=created_at,
            )
        )
    db.flush()
    return transaction
