"""
Invoice Composer - Subtotal, discount, tax, total and balance for an invoice.

Pure functions with deterministic behavior. No I/O.

Every screen that shows or stores invoice totals goes through this module;
none re-derives the formula. The stages run in a fixed order, and changing
the order changes the result:

    1. subtotal       = sum of priced line totals
    2. discount       = min(resolved discount, subtotal)
    3. after_discount = subtotal - discount            (never negative)
    4. tax            = after_discount * tax_rate_percent / 100
    5. total          = after_discount + tax
    6. balance_due    = total - amount_paid            (unclamped; negative = credit)

Nothing is rounded until the output boundary, where every monetary field is
rounded once to the policy's decimal places (half-up by default).
balance_due is taken from the rounded total, so paying the displayed total
always leaves a zero balance.

Two entry paths must agree for equivalent inputs:
    - compose(invoice): an issued invoice with an already-resolved
      discount_amount (editing)
    - compose_draft(...): a Discount resolved fresh at ``now`` (drafting)

Usage:
    from billing_engines.invoice import compose_invoice

    totals = compose_invoice(
        [{"quantity": 2, "unitPrice": "10.00"}, {"quantity": 1, "unitPrice": "5.00"}],
        discount=Discount(kind="percentage", value=10),
        tax_rate_percent=Decimal("8.5"),
        now=datetime.now(timezone.utc),
    )
    totals.total  # Money: 24.41 USD
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from billing_config import BillingPolicy, get_active_policy
from billing_engines.discounts import Discount, DiscountApplier
from billing_engines.line_items import (
    LineItem,
    LineItemInput,
    LineItemTotaler,
    as_line_item,
    line_item_fingerprint,
)
from billing_engines.tax import TaxCalculator
from billing_engines.tracer import traced_engine
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import Money, to_decimal
from billing_kernel.exceptions import (
    ConflictingDiscountError,
    CurrencyMismatchError,
    InvalidDiscountValueError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.invoice")

# Amounts may be passed as form values or as Money from another engine call.
AmountInput = Union[Money, Decimal, int, str]


def _amount_in(
    value: AmountInput,
    currency: str,
    field: str,
    *,
    allow_negative: bool = True,
) -> Decimal:
    """Decimal amount of ``value``; a Money must already be in ``currency``."""
    if isinstance(value, Money) and value.currency != currency:
        logger.error("invoice_currency_mismatch", extra={
            "field": field,
            "currency": value.currency,
            "expected_currency": currency,
        })
        raise CurrencyMismatchError(value.currency, currency, f"apply {field} to")
    return to_decimal(value, allow_negative=allow_negative)


class PaymentStatus(str, Enum):
    """Where an invoice stands against payments received."""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERPAID = "overpaid"


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class Invoice:
    """
    An invoice as stored: line items plus an already-resolved discount.

    Attributes:
        line_items: Ordered rows (order matters for display only)
        discount_amount: Flat amount to subtract, before clamping
        tax_rate_percent: Percentage, e.g. 8.5 for 8.5%
        amount_paid: Payments received so far
    """

    line_items: tuple[LineItem, ...]
    discount_amount: Decimal = Decimal("0")
    tax_rate_percent: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "line_items", tuple(as_line_item(item) for item in self.line_items)
        )
        discount_amount = to_decimal(self.discount_amount)
        if discount_amount < 0:
            raise InvalidDiscountValueError("fixed_amount", discount_amount)
        object.__setattr__(self, "discount_amount", discount_amount)
        object.__setattr__(self, "tax_rate_percent", to_decimal(self.tax_rate_percent))
        object.__setattr__(
            self, "amount_paid", to_decimal(self.amount_paid, allow_negative=False)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Invoice:
        """Build an Invoice from a stored record (items/discount_amount/tax_rate/amount_paid)."""
        items = data.get("items", data.get("line_items", data.get("lineItems"))) or ()
        return cls(
            line_items=tuple(items),
            discount_amount=data.get("discount_amount", data.get("discountAmount")) or 0,
            tax_rate_percent=data.get("tax_rate", data.get("taxRate")) or 0,
            amount_paid=data.get("amount_paid", data.get("amountPaid")) or 0,
        )


@dataclass(frozen=True)
class InvoiceTotals:
    """
    Complete, rounded result of composing an invoice.

    Immutable value object. Either a complete InvoiceTotals is produced or
    an error is raised; there are no partial results.
    """

    line_items: tuple[LineItem, ...]
    tax_rate_percent: Decimal
    subtotal: Money
    discount_amount: Money
    after_discount: Money
    tax_amount: Money
    total: Money
    amount_paid: Money
    balance_due: Money

    @property
    def show_tax_line(self) -> bool:
        """False when the tax is zero; screens omit the tax line then."""
        return TaxCalculator.show_tax_line(self.tax_amount)

    @property
    def payment_status(self) -> PaymentStatus:
        if self.balance_due.is_negative:
            return PaymentStatus.OVERPAID
        if self.balance_due.is_zero:
            return PaymentStatus.PAID
        if self.amount_paid.is_zero:
            return PaymentStatus.UNPAID
        return PaymentStatus.PARTIALLY_PAID

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe snapshot with amounts as strings."""
        return {
            "currency": self.total.currency,
            "subtotal": str(self.subtotal.amount),
            "discount_amount": str(self.discount_amount.amount),
            "after_discount": str(self.after_discount.amount),
            "tax_rate_percent": str(self.tax_rate_percent),
            "tax_amount": str(self.tax_amount.amount),
            "total": str(self.total.amount),
            "amount_paid": str(self.amount_paid.amount),
            "balance_due": str(self.balance_due.amount),
            "payment_status": self.payment_status.value,
        }


# ============================================================================
# Composer
# ============================================================================


class InvoiceComposer:
    """
    Orchestrates line totals, discount, tax and payments into InvoiceTotals.

    Pure computation. The clock is only read when a draft is composed with a
    Discount and no explicit ``now``.
    """

    def __init__(
        self,
        policy: BillingPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._policy = policy or get_active_policy()
        self._clock = clock or SystemClock()
        self._totaler = LineItemTotaler()
        self._discounts = DiscountApplier()
        self._tax = TaxCalculator()

    @property
    def policy(self) -> BillingPolicy:
        return self._policy

    def compose(self, invoice: Invoice) -> InvoiceTotals:
        """Compose an issued invoice whose discount is already resolved."""
        return self._compose(
            invoice.line_items,
            resolve_discount=lambda subtotal: Money.of(invoice.discount_amount, subtotal.currency),
            tax_rate_percent=invoice.tax_rate_percent,
            amount_paid=invoice.amount_paid,
        )

    def compose_draft(
        self,
        line_items: Iterable[LineItemInput],
        discount: Discount | None = None,
        tax_rate_percent: Decimal | int | str = Decimal("0"),
        amount_paid: AmountInput = Decimal("0"),
        now: datetime | None = None,
    ) -> InvoiceTotals:
        """Compose a new invoice, resolving ``discount`` at ``now``."""
        items = tuple(as_line_item(item) for item in line_items)
        if discount is not None and now is None:
            now = self._clock.now()
        return self._compose(
            items,
            resolve_discount=lambda subtotal: self._discounts.resolve_discount_amount(
                discount, subtotal, now
            ),
            tax_rate_percent=tax_rate_percent,
            amount_paid=amount_paid,
        )

    def apply_payment(
        self,
        totals: InvoiceTotals,
        amount_paid: AmountInput | None = None,
    ) -> InvoiceTotals:
        """
        Record the amount paid against composed totals.

        With no amount, the invoice is settled in full (amount_paid = total).
        """
        if amount_paid is None:
            paid = totals.total
        else:
            currency = totals.total.currency
            paid = Money.of(
                _amount_in(amount_paid, currency, "amount_paid", allow_negative=False), currency
            )
        balance = totals.total.subtract(paid)

        logger.info("invoice_payment_applied", extra={
            "total": str(totals.total.amount),
            "amount_paid": str(paid.amount),
            "balance_due": str(balance.amount),
        })
        return replace(totals, amount_paid=paid, balance_due=self._round(balance))

    def _round(self, money: Money) -> Money:
        return money.round(self._policy.decimal_places, self._policy.rounding)

    def _compose(
        self,
        line_items: tuple[LineItem, ...],
        resolve_discount: Callable[[Money], Money],
        tax_rate_percent: Decimal | int | str,
        amount_paid: AmountInput,
    ) -> InvoiceTotals:
        t0 = time.monotonic()
        currency = self._policy.currency
        paid = Money.of(
            _amount_in(amount_paid, currency, "amount_paid", allow_negative=False), currency
        )

        logger.info("invoice_composition_started", extra={
            "line_item_count": len(line_items),
            "tax_rate_percent": str(tax_rate_percent),
            "amount_paid": str(paid.amount),
            "currency": currency,
        })

        subtotal = self._totaler.compute_subtotal(line_items, currency)

        # Clamp here, not in the discount engine: the cap belongs to this invoice
        resolved = resolve_discount(subtotal)
        discount = min(resolved, subtotal)
        if discount < resolved:
            logger.debug("discount_clamped_to_subtotal", extra={
                "resolved_discount": str(resolved.amount),
                "subtotal": str(subtotal.amount),
            })

        after_discount = subtotal.subtract(discount, floor=0)
        tax = self._tax.compute_tax(after_discount, tax_rate_percent)
        total = after_discount.add(tax)

        rounded_total = self._round(total)
        balance_due = rounded_total.subtract(paid)

        result = InvoiceTotals(
            line_items=line_items,
            tax_rate_percent=to_decimal(tax_rate_percent),
            subtotal=self._round(subtotal),
            discount_amount=self._round(discount),
            after_discount=self._round(after_discount),
            tax_amount=self._round(tax),
            total=rounded_total,
            amount_paid=self._round(paid),
            balance_due=self._round(balance_due),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("invoice_composition_completed", extra={
            "subtotal": str(result.subtotal.amount),
            "discount_amount": str(result.discount_amount.amount),
            "tax_amount": str(result.tax_amount.amount),
            "total": str(result.total.amount),
            "balance_due": str(result.balance_due.amount),
            "payment_status": result.payment_status.value,
            "duration_ms": duration_ms,
        })
        return result


# ============================================================================
# Module-level entry points
# ============================================================================


@traced_engine(
    "invoice",
    "1.0",
    fingerprint_fields=("line_items", "discount", "discount_amount", "tax_rate_percent", "amount_paid"),
    canonicalizers={"line_items": line_item_fingerprint},
)
def compose_invoice(
    line_items: Iterable[LineItemInput],
    *,
    discount: Discount | None = None,
    discount_amount: AmountInput | None = None,
    tax_rate_percent: Decimal | int | str = Decimal("0"),
    amount_paid: AmountInput = Decimal("0"),
    now: datetime | None = None,
    policy: BillingPolicy | None = None,
    clock: Clock | None = None,
) -> InvoiceTotals:
    """
    Compose invoice totals from either a Discount or a resolved discount_amount.

    Raises:
        ConflictingDiscountError: If both discount and discount_amount are given.
        InvalidDiscountValueError: If discount_amount is negative.
        InvalidTaxRateError: If tax_rate_percent is negative.
        InvalidAmountError: If an amount is not a finite number, or
            amount_paid is negative.
        CurrencyMismatchError: If a Money amount is not in the policy currency.
    """
    composer = InvoiceComposer(policy=policy, clock=clock)

    if discount is not None and discount_amount is not None:
        logger.error("invoice_conflicting_discount_inputs", extra={
            "discount_code": discount.code,
            "discount_amount": str(discount_amount),
        })
        raise ConflictingDiscountError(discount_amount)

    if discount_amount is not None:
        currency = composer.policy.currency
        invoice = Invoice(
            line_items=tuple(line_items),
            discount_amount=_amount_in(discount_amount, currency, "discount_amount"),
            tax_rate_percent=tax_rate_percent,
            amount_paid=_amount_in(amount_paid, currency, "amount_paid", allow_negative=False),
        )
        return composer.compose(invoice)

    return composer.compose_draft(
        line_items,
        discount=discount,
        tax_rate_percent=tax_rate_percent,
        amount_paid=amount_paid,
        now=now,
    )


def apply_payment(
    totals: InvoiceTotals,
    amount_paid: AmountInput | None = None,
    policy: BillingPolicy | None = None,
) -> InvoiceTotals:
    """Convenience wrapper around InvoiceComposer.apply_payment."""
    return InvoiceComposer(policy=policy).apply_payment(totals, amount_paid)
