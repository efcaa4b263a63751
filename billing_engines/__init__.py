"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    pricing engines. This is the canonical import surface for the calling
    application (admin invoice screens, patient subscription screens).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import billing_kernel and read billing_config through
    ``get_active_policy()``.

Invariants enforced:
    - Purity: engines never call ``datetime.now()``; "now" is passed in or
      read from an injected Clock.
    - Decimal-only arithmetic: all monetary amounts use ``Money``.
    - Determinism: identical inputs always produce identical outputs.
    - Rounding happens once, at the output boundary.

Usage:
    from billing_engines import compose_invoice, Discount, DiscountKind
    from billing_engines import compose_subscription_price, SubscriptionPlan
"""

from billing_engines.bundles import BundleSavings, compute_bundle_savings
from billing_engines.discounts import (
    Discount,
    DiscountApplier,
    DiscountKind,
    DiscountState,
    DiscountStatus,
    discount_state,
    resolve_discount_amount,
)
from billing_engines.invoice import (
    Invoice,
    InvoiceComposer,
    InvoiceTotals,
    PaymentStatus,
    apply_payment,
    compose_invoice,
)
from billing_engines.line_items import (
    LineItem,
    LineItemTotaler,
    compute_subtotal,
    priced_items,
)
from billing_engines.subscriptions import (
    CYCLE_MULTIPLIERS,
    BillingFrequency,
    SubscriptionDuration,
    SubscriptionPlan,
    SubscriptionPrice,
    SubscriptionPriceComposer,
    compose_billed_amount,
    compose_effective_price,
    compose_subscription_price,
    cycle_multiplier,
)
from billing_engines.tax import TaxCalculator, compute_tax

__all__ = [
    # Line items
    "LineItem",
    "LineItemTotaler",
    "compute_subtotal",
    "priced_items",
    # Discounts
    "Discount",
    "DiscountApplier",
    "DiscountKind",
    "DiscountState",
    "DiscountStatus",
    "discount_state",
    "resolve_discount_amount",
    # Tax
    "TaxCalculator",
    "compute_tax",
    # Invoice
    "Invoice",
    "InvoiceComposer",
    "InvoiceTotals",
    "PaymentStatus",
    "apply_payment",
    "compose_invoice",
    # Subscriptions
    "BillingFrequency",
    "CYCLE_MULTIPLIERS",
    "SubscriptionDuration",
    "SubscriptionPlan",
    "SubscriptionPrice",
    "SubscriptionPriceComposer",
    "compose_billed_amount",
    "compose_effective_price",
    "compose_subscription_price",
    "cycle_multiplier",
    # Bundles
    "BundleSavings",
    "compute_bundle_savings",
]
