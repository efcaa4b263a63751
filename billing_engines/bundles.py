"""
Bundle Pricing - Savings of a bundle price against its components.

Pure functions with no I/O.

A bundle sells several products together at one price. The regular total is
what the components would cost as separate line items; the savings are the
difference, also shown as a percentage of the regular total. When either the
bundle price or the regular total is not positive the savings percentage is
zero, since there is nothing meaningful to compare.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from billing_config import BillingPolicy, get_active_policy
from billing_engines.line_items import LineItemInput, LineItemTotaler
from billing_kernel.domain.values import Money, to_decimal
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.bundles")


@dataclass(frozen=True)
class BundleSavings:
    """Rounded comparison of a bundle price with its components' regular total."""

    regular_total: Money
    bundle_price: Money
    savings_amount: Money
    savings_percent: Decimal

    @property
    def is_discounted(self) -> bool:
        return self.savings_percent > 0


def compute_bundle_savings(
    components: Iterable[LineItemInput],
    bundle_price: Decimal | int | str,
    policy: BillingPolicy | None = None,
) -> BundleSavings:
    """
    Compare ``bundle_price`` with the regular total of ``components``.

    savings_percent is rounded to two places; it is negative when the bundle
    costs more than its parts.
    """
    policy = policy or get_active_policy()
    regular = LineItemTotaler().compute_subtotal(components, policy.currency)
    price = Money.of(to_decimal(bundle_price), policy.currency)
    savings = regular.subtract(price)

    if price.is_positive and regular.is_positive:
        percent = (savings.amount / regular.amount * 100).quantize(
            Decimal("0.01"), rounding=policy.rounding
        )
    else:
        percent = Decimal("0")

    result = BundleSavings(
        regular_total=regular.round(policy.decimal_places, policy.rounding),
        bundle_price=price.round(policy.decimal_places, policy.rounding),
        savings_amount=savings.round(policy.decimal_places, policy.rounding),
        savings_percent=percent,
    )

    logger.debug("bundle_savings_computed", extra={
        "regular_total": str(result.regular_total.amount),
        "bundle_price": str(result.bundle_price.amount),
        "savings_percent": str(result.savings_percent),
    })
    return result
