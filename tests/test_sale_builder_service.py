from __future__ import annotations

import unittest
from decimal import Decimal

from salon_pos.services.catalog_service import ServiceOption
from salon_pos.services.sale_builder_service import SaleBuilder, coerce_amount

HAIRCUT = ServiceOption(id=1, name='Haircut', price=Decimal('50.00'), category_id=10)
COLOUR = ServiceOption(id=2, name='Colour', price=Decimal('95.00'), category_id=10)
MANICURE = ServiceOption(id=3, name='Manicure', price=Decimal('30.00'), category_id=20)


class SaleBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.builder = SaleBuilder.from_catalog([HAIRCUT, COLOUR, MANICURE])

    def test_new_builder_is_empty(self) -> None:
        self.assertEqual(self.builder.lines, ())
        self.assertEqual(self.builder.total(), Decimal('0.00'))
        self.assertEqual(self.builder.total_tips(), Decimal('0.00'))

    def test_add_line_generates_unique_ids(self) -> None:
        first = self.builder.add_line()
        second = self.builder.add_line()
        duplicate = self.builder.add_line(first.id)

        ids = [line.id for line in self.builder.lines]
        self.assertEqual(len(ids), 3)
        self.assertEqual(len(set(ids)), 3)
        self.assertNotEqual(duplicate.id, first.id)
        self.assertEqual(second.price, Decimal('0.00'))
        self.assertIsNone(second.service_id)

    def test_selecting_service_copies_name_and_price(self) -> None:
        line = self.builder.add_line('a')
        self.builder.set_line_category('a', 10)
        self.builder.set_line_service('a', HAIRCUT.id)

        self.assertEqual(line.service_id, 1)
        self.assertEqual(line.service_name, 'Haircut')
        self.assertEqual(line.price, Decimal('50.00'))

    def test_changing_category_clears_service_and_price(self) -> None:
        line = self.builder.add_line('a')
        self.builder.set_line_service('a', COLOUR.id)
        self.builder.set_line_category('a', 20)

        self.assertEqual(line.category_id, 20)
        self.assertIsNone(line.service_id)
        self.assertEqual(line.service_name, '')
        self.assertEqual(line.price, Decimal('0.00'))

    def test_unknown_service_leaves_line_unchanged(self) -> None:
        line = self.builder.add_line('a')
        self.builder.set_line_service('a', HAIRCUT.id)
        self.builder.set_line_service('a', 999)

        self.assertEqual(line.service_id, HAIRCUT.id)
        self.assertEqual(line.price, Decimal('50.00'))

    def test_price_override_does_not_touch_catalog(self) -> None:
        self.builder.add_line('a')
        self.builder.set_line_service('a', HAIRCUT.id)
        self.builder.set_line_price('a', '42.5')

        self.assertEqual(self.builder.lines[0].price, Decimal('42.50'))
        self.assertEqual(self.builder.services[HAIRCUT.id].price, Decimal('50.00'))

    def test_totals_include_tips(self) -> None:
        self.builder.add_line('a')
        self.builder.set_line_service('a', HAIRCUT.id)
        self.builder.set_line_tip('a', '5')
        self.builder.add_line('b')
        self.builder.set_line_service('b', MANICURE.id)

        self.assertEqual(self.builder.line_total('a'), Decimal('55.00'))
        self.assertEqual(self.builder.line_total('b'), Decimal('30.00'))
        self.assertEqual(self.builder.total(), Decimal('85.00'))
        self.assertEqual(self.builder.total_tips(), Decimal('5.00'))

    def test_remove_line_keeps_order_of_remaining_lines(self) -> None:
        for line_id in ('a', 'b', 'c'):
            self.builder.add_line(line_id)
        self.builder.remove_line('b')
        self.builder.remove_line('missing')

        self.assertEqual([line.id for line in self.builder.lines], ['a', 'c'])

    def test_setters_ignore_unknown_lines(self) -> None:
        self.builder.set_line_staff('missing', 7)
        self.builder.set_line_tip('missing', '3')
        self.assertEqual(self.builder.lines, ())
        self.assertEqual(self.builder.line_total('missing'), Decimal('0.00'))

    def test_clear_empties_builder(self) -> None:
        self.builder.add_line()
        self.builder.add_line()
        self.builder.clear()
        self.assertEqual(self.builder.lines, ())


class CoerceAmountTests(unittest.TestCase):
    def test_invalid_and_negative_values_become_zero(self) -> None:
        for raw in (None, '', 'abc', '-1', 'NaN', 'Infinity', True):
            self.assertEqual(coerce_amount(raw), Decimal('0.00'), raw)

    def test_values_are_quantized_to_cents(self) -> None:
        self.assertEqual(coerce_amount('12.345'), Decimal('12.34'))
        self.assertEqual(coerce_amount(7), Decimal('7.00'))
        self.assertEqual(coerce_amount(' 3.5 '), Decimal('3.50'))

    def test_amounts_beyond_column_range_become_zero(self) -> None:
        for raw in ('1e30', '100000000', '1E+400'):
            self.assertEqual(coerce_amount(raw), Decimal('0.00'), raw)
        self.assertEqual(coerce_amount('99999999.99'), Decimal('99999999.99'))

    def test_huge_tip_on_a_line_is_ignored(self) -> None:
        builder = SaleBuilder.from_catalog([HAIRCUT])
        builder.add_line('a')
        builder.set_line_tip('a', '1e30')
        builder.set_line_price('a', '1e30')

        self.assertEqual(builder.total(), Decimal('0.00'))
        self.assertEqual(builder.total_tips(), Decimal('0.00'))


if __name__ == '__main__':
    unittest.main()
