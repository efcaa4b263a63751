"""
Subscription Price Composer - Effective recurring price and billed amount.

Pure functions with no I/O.

A plan's base price is its monthly (base-cycle) price. A duration discount
percentage reduces it to the effective price, and the billing frequency's
cycle multiplier turns that into the amount billed per cycle:

    effective_price = base_price * (1 - discount_percent / 100)
    billed_amount   = effective_price * CYCLE_MULTIPLIERS[billing_frequency]

Usage:
    from billing_engines.subscriptions import compose_effective_price, compose_billed_amount

    effective = compose_effective_price(Money.of("99.00"), Decimal("15"))  # 84.15
    compose_billed_amount(effective, "quarterly")                          # 252.45
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_config import BillingPolicy, get_active_policy
from billing_engines.tracer import traced_engine
from billing_kernel.domain.values import Money, to_decimal
from billing_kernel.exceptions import (
    InvalidAmountError,
    InvalidBillingFrequencyError,
    InvalidDiscountValueError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.subscriptions")

_HUNDRED = Decimal("100")


class BillingFrequency(str, Enum):
    """How often a subscription is billed."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUALLY = "biannually"
    ANNUALLY = "annually"


# Months of base price billed per cycle. Kept as an explicit table; reports
# and labels read it too, so it is never derived from the frequency name.
CYCLE_MULTIPLIERS: dict[BillingFrequency, int] = {
    BillingFrequency.MONTHLY: 1,
    BillingFrequency.QUARTERLY: 3,
    BillingFrequency.BIANNUALLY: 6,
    BillingFrequency.ANNUALLY: 12,
}


def parse_billing_frequency(value: BillingFrequency | str) -> BillingFrequency:
    """
    Look up a billing frequency key.

    Raises:
        InvalidBillingFrequencyError: If the key is not in CYCLE_MULTIPLIERS.
    """
    if isinstance(value, BillingFrequency):
        return value
    try:
        return BillingFrequency(str(value).strip().lower())
    except ValueError:
        supported = tuple(f.value for f in CYCLE_MULTIPLIERS)
        logger.error("billing_frequency_unknown", extra={
            "frequency": str(value),
            "supported": list(supported),
        })
        raise InvalidBillingFrequencyError(value, supported) from None


def cycle_multiplier(billing_frequency: BillingFrequency | str) -> int:
    """Months of base price billed per cycle for ``billing_frequency``."""
    return CYCLE_MULTIPLIERS[parse_billing_frequency(billing_frequency)]


def _validate_discount_percent(discount_percent: Decimal | int | str) -> Decimal:
    percent = to_decimal(discount_percent)
    if not (Decimal("0") <= percent <= _HUNDRED):
        logger.error("subscription_discount_out_of_range", extra={
            "discount_percent": str(percent),
        })
        raise InvalidDiscountValueError("percentage", percent)
    return percent


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class SubscriptionDuration:
    """
    A billing cycle length with its discount.

    Stored records carry a month count, a day count, or both. When both are
    present the day count takes precedence (see ``cycle_length``).
    """

    discount_percent: Decimal = Decimal("0")
    duration_months: int | None = None
    duration_days: int | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "discount_percent", _validate_discount_percent(self.discount_percent)
        )
        for attr in ("duration_months", "duration_days"):
            val = getattr(self, attr)
            if val is not None and val <= 0:
                raise ValueError(f"{attr} must be positive")
        if self.duration_months is None and self.duration_days is None:
            raise ValueError("duration_months or duration_days is required")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SubscriptionDuration:
        return cls(
            discount_percent=data.get("discount_percent") or 0,
            duration_months=data.get("duration_months") or None,
            duration_days=data.get("duration_days") or None,
            name=data.get("name"),
        )

    @property
    def cycle_length(self) -> tuple[int, str]:
        """(units, "days") when a day count is present, else (units, "months")."""
        if self.duration_days is not None:
            return self.duration_days, "days"
        return self.duration_months, "months"


@dataclass(frozen=True)
class SubscriptionPlan:
    """A subscription plan priced per base cycle (month)."""

    base_price: Money
    billing_frequency: BillingFrequency = BillingFrequency.MONTHLY
    discount_percent: Decimal = Decimal("0")
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.base_price, Money):
            object.__setattr__(
                self, "base_price", Money.of(self.base_price, allow_negative=False)
            )
        elif self.base_price.is_negative:
            raise InvalidAmountError(self.base_price.amount, "base price cannot be negative")
        object.__setattr__(
            self, "billing_frequency", parse_billing_frequency(self.billing_frequency)
        )
        object.__setattr__(
            self, "discount_percent", _validate_discount_percent(self.discount_percent)
        )


@dataclass(frozen=True)
class SubscriptionPrice:
    """Rounded result of pricing a plan for one billing cycle."""

    base_price: Money
    discount_percent: Decimal
    billing_frequency: BillingFrequency
    cycle_multiplier: int
    effective_price: Money
    billed_amount: Money

    @property
    def savings_per_cycle(self) -> Money:
        """Undiscounted cycle price minus the billed amount."""
        return self.base_price.multiply(self.cycle_multiplier).subtract(self.billed_amount)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.billed_amount.currency,
            "base_price": str(self.base_price.amount),
            "discount_percent": str(self.discount_percent),
            "billing_frequency": self.billing_frequency.value,
            "cycle_multiplier": self.cycle_multiplier,
            "effective_price": str(self.effective_price.amount),
            "billed_amount": str(self.billed_amount.amount),
        }


# ============================================================================
# Composer
# ============================================================================


class SubscriptionPriceComposer:
    """
    Compose subscription prices.

    Pure functions - no state beyond the output policy, no side effects.
    """

    def __init__(self, policy: BillingPolicy | None = None):
        self._policy = policy or get_active_policy()

    def compose_effective_price(
        self,
        base_price: Money,
        discount_percent: Decimal | int | str,
    ) -> Money:
        """
        base_price * (1 - discount_percent / 100), unrounded.

        Raises:
            InvalidDiscountValueError: If discount_percent is outside [0, 100].
        """
        return compose_effective_price(base_price, discount_percent)

    def compose_billed_amount(
        self,
        effective_price: Money,
        billing_frequency: BillingFrequency | str,
    ) -> Money:
        """
        effective_price * cycle multiplier, unrounded.

        Raises:
            InvalidBillingFrequencyError: If the frequency is unknown.
        """
        return compose_billed_amount(effective_price, billing_frequency)

    def compose(
        self,
        plan: SubscriptionPlan,
        duration: SubscriptionDuration | None = None,
    ) -> SubscriptionPrice:
        """
        Price ``plan`` for one billing cycle.

        The duration's discount applies when a duration is given; otherwise
        the plan's own discount percent does.
        """
        percent = duration.discount_percent if duration is not None else plan.discount_percent
        effective = self.compose_effective_price(plan.base_price, percent)
        billed = self.compose_billed_amount(effective, plan.billing_frequency)
        places, rounding = self._policy.decimal_places, self._policy.rounding

        result = SubscriptionPrice(
            base_price=plan.base_price,
            discount_percent=percent,
            billing_frequency=plan.billing_frequency,
            cycle_multiplier=CYCLE_MULTIPLIERS[plan.billing_frequency],
            effective_price=effective.round(places, rounding),
            billed_amount=billed.round(places, rounding),
        )

        logger.info("subscription_price_composed", extra={
            "plan": plan.name,
            "duration": duration.name if duration is not None else None,
            "base_price": str(plan.base_price.amount),
            "discount_percent": str(percent),
            "billing_frequency": plan.billing_frequency.value,
            "effective_price": str(result.effective_price.amount),
            "billed_amount": str(result.billed_amount.amount),
        })
        return result


# ============================================================================
# Module-level entry points
# ============================================================================


def compose_effective_price(
    base_price: Money,
    discount_percent: Decimal | int | str,
) -> Money:
    """
    base_price * (1 - discount_percent / 100), unrounded.

    Raises:
        InvalidAmountError: If base_price is negative.
        InvalidDiscountValueError: If discount_percent is outside [0, 100].
    """
    if base_price.is_negative:
        logger.error("subscription_base_price_negative", extra={
            "base_price": str(base_price.amount),
        })
        raise InvalidAmountError(base_price.amount, "base price cannot be negative")
    percent = _validate_discount_percent(discount_percent)
    return base_price.multiply(Decimal("1") - percent / _HUNDRED)


def compose_billed_amount(
    effective_price: Money,
    billing_frequency: BillingFrequency | str,
) -> Money:
    """effective_price * cycle multiplier, unrounded."""
    return effective_price.multiply(cycle_multiplier(billing_frequency))


@traced_engine(
    "subscription_price",
    "1.0",
    fingerprint_fields=("plan", "duration"),
)
def compose_subscription_price(
    plan: SubscriptionPlan,
    duration: SubscriptionDuration | None = None,
    policy: BillingPolicy | None = None,
) -> SubscriptionPrice:
    """Price ``plan`` for one billing cycle with the active policy."""
    return SubscriptionPriceComposer(policy).compose(plan, duration)
