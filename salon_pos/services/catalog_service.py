from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, assert_admin
from salon_pos.models import Category, Service

UNCATEGORIZED_LABEL = 'Uncategorized'
CENT = Decimal('0.01')
# Upper bound of the Numeric(10, 2) money columns.
MAX_AMOUNT = Decimal('99999999.99')


@dataclass(frozen=True)
class ServiceOption:
    id: int
    name: str
    price: Decimal
    category_id: int


def parse_price(raw: object) -> Decimal:
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError('Price must be a number') from exc
    if not price.is_finite():
        raise ValueError('Price must be a number')
    if price < 0:
        raise ValueError('Price cannot be negative')
    if price > MAX_AMOUNT:
        raise ValueError('Price is too large')
    return price.quantize(CENT, rounding=ROUND_DOWN)


def list_categories(db: Session) -> list[Category]:
    return db.execute(select(Category).order_by(Category.name.asc(), Category.id.asc())).scalars().all()


def list_services(db: Session) -> list[Service]:
    return db.execute(select(Service).order_by(Service.name.asc(), Service.id.asc())).scalars().all()


def list_service_options(db: Session) -> list[ServiceOption]:
    return [
        ServiceOption(id=service.id, name=service.name, price=Decimal(service.price), category_id=service.category_id)
        for service in list_services(db)
    ]


def services_by_category(db: Session) -> dict[str, list[Service]]:
    names = {category.id: category.name for category in list_categories(db)}
    grouped: dict[str, list[Service]] = {}
    for service in list_services(db):
        grouped.setdefault(names.get(service.category_id, UNCATEGORIZED_LABEL), []).append(service)
    return grouped


def _get_category(db: Session, category_id: int) -> Category:
    category = db.execute(select(Category).where(Category.id == category_id)).scalar_one_or_none()
    if not category:
        raise ValueError('Category not found')
    return category


def _get_service(db: Session, service_id: int) -> Service:
    service = db.execute(select(Service).where(Service.id == service_id)).scalar_one_or_none()
    if not service:
        raise ValueError('Service not found')
    return service


def create_category(db: Session, *, actor: Principal, name: str) -> Category:
    assert_admin(actor)
    clean_name = name.strip()
    if not clean_name:
        raise ValueError('Category name is required')
    exists = db.execute(
        select(Category.id).where(func.lower(Category.name) == clean_name.lower())
    ).scalar_one_or_none()
    if exists:
        raise ValueError('Category already exists')

    category = Category(name=clean_name)
    db.add(category)
    db.flush()
    return category


def delete_category(db: Session, *, actor: Principal, category_id: int) -> Category:
    assert_admin(actor)
    category = _get_category(db, category_id)
    in_use = db.execute(select(func.count(Service.id)).where(Service.category_id == category_id)).scalar_one()
    if in_use:
        raise ValueError('Category still has services; move or delete them first')
    db.delete(category)
    db.flush()
    return category


def _validated_service_fields(db: Session, *, name: str, price: object, category_id: int | None) -> tuple[str, Decimal]:
    clean_name = name.strip()
    if not clean_name:
        raise ValueError('Service name is required')
    if category_id is None:
        raise ValueError('Category is required')
    _get_category(db, category_id)
    return clean_name, parse_price(price)


def create_service(
    db: Session,
    *,
    actor: Principal,
    name: str,
    price: object,
    category_id: int | None,
) -> Service:
    assert_admin(actor)
    clean_name, clean_price = _validated_service_fields(db, name=name, price=price, category_id=category_id)
    service = Service(name=clean_name, price=clean_price, category_id=category_id)
    db.add(service)
    db.flush()
    return service


def update_service(
    db: Session,
    *,
    actor: Principal,
    service_id: int,
    name: str,
    price: object,
    category_id: int | None,
) -> Service:
    assert_admin(actor)
    service = _get_service(db, service_id)
    clean_name, clean_price = _validated_service_fields(db, name=name, price=price, category_id=category_id)
    service.name = clean_name
    service.price = clean_price
    service.category_id = category_id
    db.flush()
    return service


def delete_service(db: Session, *, actor: Principal, service_id: int) -> Service:
    assert_admin(actor)
    service = _get_service(db, service_id)
    db.delete(service)
    db.flush()
    return service
