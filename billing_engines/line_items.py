"""
Line Item Totaler - Reduce invoice line items to a subtotal.

Pure functions with no I/O.

An item whose unit price is zero or negative is treated as "not yet priced":
it contributes nothing to the subtotal and is not an error. Draft invoices
routinely hold such rows while the user is still filling them in, and they
are dropped when the invoice is submitted (see ``priced_items``).

Usage:
    from billing_engines.line_items import LineItem, compute_subtotal

    items = [
        LineItem(unit_price=Decimal("10.00"), quantity=2),
        LineItem.from_mapping({"quantity": "1", "unitPrice": "5.00"}),
    ]
    compute_subtotal(items)  # Money: 25.00 USD
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from billing_config import get_active_policy
from billing_kernel.domain.coercion import parse_amount, parse_quantity
from billing_kernel.domain.values import Money
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.line_items")

_UNIT_PRICE_KEYS = ("unitPrice", "unit_price", "price")
_PRODUCT_KEYS = ("productId", "product_id", "product_reference")


@dataclass(frozen=True)
class LineItem:
    """
    One priced row of an invoice.

    unit_price and quantity accept form values (strings or numbers) and are
    coerced on construction; description and product_reference are
    informational and never affect totals.
    """

    unit_price: Decimal
    quantity: int = 1
    description: str | None = None
    product_reference: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", parse_amount(self.unit_price))
        object.__setattr__(self, "quantity", parse_quantity(self.quantity))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LineItem:
        """Build a LineItem from the form/wire shape (camelCase or snake_case keys)."""
        unit_price = next((data[k] for k in _UNIT_PRICE_KEYS if k in data), None)
        product = next((data[k] for k in _PRODUCT_KEYS if data.get(k)), None)
        return cls(
            unit_price=unit_price,
            quantity=data.get("quantity"),
            description=data.get("description"),
            product_reference=str(product) if product is not None else None,
        )

    @property
    def is_priced(self) -> bool:
        """True when the item carries a positive unit price."""
        return self.unit_price > 0

    @property
    def line_total(self) -> Decimal:
        """quantity * unit_price, or zero for an unpriced item. Never negative."""
        if not self.is_priced:
            return Decimal("0")
        return self.unit_price * self.quantity


LineItemInput = Union[LineItem, Mapping[str, Any]]


def as_line_item(item: LineItemInput) -> LineItem:
    """Accept a LineItem or a mapping in the form/wire shape."""
    if isinstance(item, LineItem):
        return item
    if isinstance(item, Mapping):
        return LineItem.from_mapping(item)
    raise TypeError(f"Expected LineItem or mapping, got {type(item).__name__}")


def line_item_fingerprint(line_items: Iterable[LineItemInput]) -> list[list[Any]]:
    """
    The priced content of ``line_items`` as JSON-ready rows of [unit price, quantity].

    A mapping and the LineItem built from it give the same rows, and so do
    "10" and "10.00". Descriptions and product references are left out.
    """
    return [
        [str(item.unit_price.normalize()), item.quantity]
        for item in map(as_line_item, line_items)
    ]


def priced_items(line_items: Iterable[LineItemInput]) -> tuple[LineItem, ...]:
    """The items a submitted invoice keeps: those with a positive unit price."""
    return tuple(item for item in map(as_line_item, line_items) if item.is_priced)


class LineItemTotaler:
    """
    Sum line items into an unrounded subtotal.

    Order of items never affects the result. No intermediate rounding is
    applied; the invoice composer rounds once at the output boundary.
    """

    def compute_subtotal(
        self,
        line_items: Iterable[LineItemInput],
        currency: str,
    ) -> Money:
        items = [as_line_item(item) for item in line_items]
        total = sum((item.line_total for item in items), Decimal("0"))

        logger.debug("subtotal_computed", extra={
            "item_count": len(items),
            "priced_item_count": sum(1 for item in items if item.is_priced),
            "subtotal": str(total),
            "currency": currency,
        })

        return Money.of(total, currency)


def compute_subtotal(
    line_items: Iterable[LineItemInput],
    currency: str | None = None,
) -> Money:
    """Convenience wrapper around LineItemTotaler.compute_subtotal."""
    return LineItemTotaler().compute_subtotal(
        line_items, currency or get_active_policy().currency
    )
