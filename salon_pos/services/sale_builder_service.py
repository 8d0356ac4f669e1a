"""In-memory composition of a single pending sale.

The builder only ever copies values out of the catalog snapshots it is given;
it never touches persisted reference data.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from salon_pos.services.catalog_service import CENT, MAX_AMOUNT, ServiceOption

ZERO = Decimal('0.00')


def coerce_amount(value: object) -> Decimal:
    """Non-negative money amount within column range; anything else becomes zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0 or amount > MAX_AMOUNT:
        return ZERO
    return amount.quantize(CENT, rounding=ROUND_DOWN)


@dataclass
class PendingSaleItem:
    id: str
    category_id: int | None = None
    service_id: int | None = None
    service_name: str = ''
    staff_id: int | None = None
    price: Decimal = ZERO
    tip: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return coerce_amount(self.price) + coerce_amount(self.tip)


@dataclass
class SaleBuilder:
    services: dict[int, ServiceOption] = field(default_factory=dict)
    _lines: list[PendingSaleItem] = field(default_factory=list)

    @classmethod
    def from_catalog(cls, services: Iterable[ServiceOption]) -> SaleBuilder:
        return cls(services={service.id: service for service in services})

    @property
    def lines(self) -> tuple[PendingSaleItem, ...]:
        return tuple(self._lines)

    def _find(self, line_id: str) -> PendingSaleItem | None:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def _new_line_id(self) -> str:
        taken = {line.id for line in self._lines}
        while True:
            candidate = uuid.uuid4().hex[:12]
            if candidate not in taken:
                return candidate

    def add_line(self, line_id: str | None = None) -> PendingSaleItem:
        if line_id is None or self._find(line_id) is not None:
            line_id = self._new_line_id()
        line = PendingSaleItem(id=line_id)
        self._lines.append(line)
        return line

    def set_line_category(self, line_id: str, category_id: int | None) -> None:
        line = self._find(line_id)
        if line is None:
            return
        line.category_id = category_id
        # A new category invalidates whatever service was picked before.
        line.service_id = None
        line.service_name = ''
        line.price = ZERO

    def set_line_service(self, line_id: str, service_id: int | None) -> None:
        line = self._find(line_id)
        service = self.services.get(service_id) if service_id is not None else None
        if line is None or service is None:
            return
        line.service_id = service.id
        line.service_name = service.name
        line.price = coerce_amount(service.price)

    def set_line_staff(self, line_id: str, staff_id: int | None) -> None:
        line = self._find(line_id)
        if line is not None:
            line.staff_id = staff_id

    def set_line_price(self, line_id: str, price: object) -> None:
        line = self._find(line_id)
        if line is not None:
            line.price = coerce_amount(price)

    def set_line_tip(self, line_id: str, tip: object) -> None:
        line = self._find(line_id)
        if line is not None:
            line.tip = coerce_amount(tip)

    def remove_line(self, line_id: str) -> None:
        self._lines = [line for line in self._lines if line.id != line_id]

    def clear(self) -> None:
        self._lines = []

    def line_total(self, line_id: str) -> Decimal:
        line = self._find(line_id)
        return line.total if line is not None else ZERO

    def total(self) -> Decimal:
        return sum((line.total for line in self._lines), ZERO)

    def total_tips(self) -> Decimal:
        return sum((coerce_amount(line.tip) for line in self._lines), ZERO)
