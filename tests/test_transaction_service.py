from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from salon_pos.models import Transaction, TransactionItem
from salon_pos.services.sale_builder_service import PendingSaleItem
from salon_pos.services.transaction_service import (
    UNKNOWN_SERVICE_LABEL,
    SaleValidationError,
    commit_sale,
    compute_totals,
    get_transaction,
    list_transactions,
)
from tests.support import add_category, add_member, add_sale, add_service, make_engine, make_session, utc


class TransactionServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session(self.engine)
        hair = add_category(self.db, 'Hair')
        self.haircut = add_service(self.db, hair, 'Haircut', '50.00')
        self.colour = add_service(self.db, hair, 'Colour', '30.00')
        self.jane = add_member(self.db, 'jane@example.com', full_name='Jane Doe')
        self.sam = add_member(self.db, 'sam@example.com')
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _lines(self) -> list[PendingSaleItem]:
        return [
            PendingSaleItem(id='a', service_id=self.haircut.id, staff_id=self.jane.id, price=Decimal('50.00'), tip=Decimal('5.00')),
            PendingSaleItem(id='b', service_id=self.colour.id, staff_id=self.sam.id, price=Decimal('30.00')),
        ]

    def _count(self, model) -> int:
        return self.db.execute(select(func.count()).select_from(model)).scalar_one()

    def test_compute_totals_adds_tips_to_prices(self) -> None:
        totals = compute_totals(self._lines())
        self.assertEqual(totals.total_amount, Decimal('85.00'))
        self.assertEqual(totals.total_tips, Decimal('5.00'))

    def test_commit_sale_records_header_and_items(self) -> None:
        transaction = commit_sale(
            self.db,
            customer_name=' Alice ',
            customer_mobile='0400 111 222',
            lines=self._lines(),
            actor_id=self.jane.id,
        )
        self.db.commit()

        view = get_transaction(self.db, transaction.id)
        self.assertIsNotNone(view)
        self.assertEqual(view.customer_name, 'Alice')
        self.assertEqual(view.total_amount, Decimal('85.00'))
        self.assertEqual(view.total_tips, Decimal('5.00'))
        self.assertEqual(view.created_by, self.jane.id)
        self.assertEqual(len(view.items), 2)
        self.assertEqual([item.service_name for item in view.items], ['Haircut', 'Colour'])
        self.assertEqual([item.staff_name for item in view.items], ['Jane Doe', 'sam@example.com'])
        self.assertEqual(sum((item.price + item.tip for item in view.items), Decimal('0')), view.total_amount)

        item_times = self.db.execute(
            select(TransactionItem.created_at).where(TransactionItem.transaction_id == transaction.id)
        ).scalars().all()
        header_time = self.db.execute(
            select(Transaction.created_at).where(Transaction.id == transaction.id)
        ).scalar_one()
        self.assertTrue(all(value == header_time for value in item_times))

    def test_missing_customer_details_are_rejected_without_writes(self) -> None:
        for name, mobile, lines in (('', '0400', self._lines()), ('Alice', '  ', self._lines()), ('Alice', '0400', [])):
            with self.assertRaises(SaleValidationError) as ctx:
                commit_sale(self.db, customer_name=name, customer_mobile=mobile, lines=lines, actor_id=None)
            self.assertEqual(str(ctx.exception), 'Please fill in all required fields')
            self.assertFalse(self.db.new)

        self.assertEqual(self._count(Transaction), 0)
        self.assertEqual(self._count(TransactionItem), 0)

    def test_line_without_staff_is_rejected(self) -> None:
        lines = self._lines()
        lines[1].staff_id = None
        with self.assertRaises(SaleValidationError):
            commit_sale(self.db, customer_name='Alice', customer_mobile='0400', lines=lines, actor_id=None)
        self.assertEqual(self._count(Transaction), 0)

    def test_unknown_service_is_rejected(self) -> None:
        lines = self._lines()
        lines[0].service_id = 9999
        with self.assertRaises(SaleValidationError):
            commit_sale(self.db, customer_name='Alice', customer_mobile='0400', lines=lines, actor_id=None)
        self.assertEqual(self._count(Transaction), 0)

    def test_rollback_discards_header_and_items_together(self) -> None:
        commit_sale(self.db, customer_name='Alice', customer_mobile='0400', lines=self._lines(), actor_id=None)
        self.db.rollback()

        self.assertEqual(self._count(Transaction), 0)
        self.assertEqual(self._count(TransactionItem), 0)

    def test_deleted_service_and_staff_are_labelled_unknown(self) -> None:
        transaction = commit_sale(
            self.db, customer_name='Alice', customer_mobile='0400', lines=self._lines(), actor_id=None
        )
        self.db.commit()
        self.db.delete(self.haircut)
        self.db.delete(self.sam)
        self.db.commit()
        self.db.expire_all()

        view = get_transaction(self.db, transaction.id)
        self.assertEqual(view.items[0].service_name, UNKNOWN_SERVICE_LABEL)
        self.assertEqual(view.items[1].staff_name, 'Unknown')
        self.assertEqual(view.total_amount, Decimal('85.00'))

    def test_get_transaction_returns_none_when_missing(self) -> None:
        self.assertIsNone(get_transaction(self.db, 12345))

    def test_list_transactions_filters_by_day_newest_first(self) -> None:
        early = add_sale(self.db, created_at=utc(2024, 3, 1, 9), items=[(self.haircut.id, self.jane.id, '50.00', '0')])
        late = add_sale(self.db, created_at=utc(2024, 3, 2, 23, 59, 59), items=[(self.colour.id, self.sam.id, '30.00', '2')])
        add_sale(self.db, created_at=utc(2024, 3, 3, 0), items=[(self.colour.id, self.sam.id, '30.00', '0')])
        self.db.commit()

        rows = list_transactions(self.db, start_date=date(2024, 3, 1), end_date=date(2024, 3, 2))

        self.assertEqual([row.id for row in rows], [late.id, early.id])
        self.assertEqual(rows[0].total_tips, Decimal('2.00'))
        self.assertEqual(len(rows[1].items), 1)


if __name__ == '__main__':
    unittest.main()
