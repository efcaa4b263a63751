"""
Tests for the Line Item Totaler.

Covers:
- Subtotal of priced items
- Unpriced items (zero or negative unit price) contribute nothing
- Form-shaped mappings and value coercion
- Submission filtering with priced_items
"""

from decimal import Decimal

import pytest

from billing_engines.line_items import (
    LineItem,
    LineItemTotaler,
    as_line_item,
    compute_subtotal,
    priced_items,
)
from billing_kernel.domain.values import Money


class TestComputeSubtotal:
    """Tests for compute_subtotal."""

    def setup_method(self):
        self.totaler = LineItemTotaler()

    def test_sum_of_line_totals(self):
        items = [LineItem(unit_price="10.00", quantity=2), LineItem(unit_price="5.00", quantity=1)]
        assert self.totaler.compute_subtotal(items, "USD") == Money.of("25.00")

    def test_empty_is_zero(self):
        assert compute_subtotal([]) == Money.zero()

    def test_unpriced_items_contribute_nothing(self):
        items = [
            LineItem(unit_price="12.00", quantity=1),
            LineItem(unit_price=0, quantity=5),
            LineItem(unit_price=Decimal("-3.00"), quantity=2),
        ]
        assert compute_subtotal(items) == Money.of("12.00")

    def test_no_intermediate_rounding(self):
        items = [LineItem(unit_price="0.005", quantity=1), LineItem(unit_price="0.005", quantity=1)]
        assert compute_subtotal(items).amount == Decimal("0.010")

    def test_uses_policy_currency_by_default(self):
        assert compute_subtotal([LineItem(unit_price="1")]).currency == "USD"

    def test_explicit_currency(self):
        assert compute_subtotal([LineItem(unit_price="1")], "EUR").currency == "EUR"

    def test_accepts_mappings(self):
        items = [
            {"quantity": 2, "unitPrice": "10.00"},
            {"quantity": "1", "unit_price": 5},
        ]
        assert compute_subtotal(items) == Money.of("25")

    def test_logs_subtotal(self, captured_logs):
        compute_subtotal([LineItem(unit_price="4.00", quantity=3), LineItem(unit_price=0)])
        records = [r for r in captured_logs() if r["message"] == "subtotal_computed"]
        assert len(records) == 1
        assert records[0]["item_count"] == 2
        assert records[0]["priced_item_count"] == 1
        assert records[0]["subtotal"] == "12.00"


class TestLineItem:
    """Tests for the LineItem value object."""

    def test_line_total(self):
        assert LineItem(unit_price="2.50", quantity=4).line_total == Decimal("10.00")

    def test_unpriced_line_total_is_zero(self):
        item = LineItem(unit_price=-1, quantity=3)
        assert not item.is_priced
        assert item.line_total == Decimal("0")

    def test_default_quantity(self):
        assert LineItem(unit_price="3").quantity == 1

    def test_form_values_coerced(self):
        item = LineItem(unit_price="$1,000.00", quantity="")
        assert item.unit_price == Decimal("1000.00")
        assert item.quantity == 1

    def test_from_mapping(self):
        item = LineItem.from_mapping({
            "quantity": "3",
            "unitPrice": "19.99",
            "description": "Consultation",
            "productId": 42,
        })
        assert item.unit_price == Decimal("19.99")
        assert item.quantity == 3
        assert item.description == "Consultation"
        assert item.product_reference == "42"

    def test_from_mapping_missing_price_is_unpriced(self):
        item = LineItem.from_mapping({"quantity": 2})
        assert item.unit_price == Decimal("0")
        assert not item.is_priced

    def test_immutable(self):
        item = LineItem(unit_price="1")
        with pytest.raises(AttributeError):
            item.quantity = 5


class TestItemHelpers:
    """Tests for as_line_item and priced_items."""

    def test_as_line_item_passthrough(self):
        item = LineItem(unit_price="1")
        assert as_line_item(item) is item

    def test_as_line_item_rejects_other_types(self):
        with pytest.raises(TypeError):
            as_line_item(("1.00", 2))

    def test_priced_items_drops_unpriced_rows(self):
        kept = priced_items([
            {"quantity": 1, "unitPrice": "5.00"},
            {"quantity": 1, "unitPrice": ""},
            {"quantity": 1, "unitPrice": "0"},
        ])
        assert len(kept) == 1
        assert kept[0].unit_price == Decimal("5.00")
