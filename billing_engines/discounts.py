"""
Discount Engine - Resolve a discount against a subtotal at a point in time.

Pure functions with no I/O. "Now" is always passed in.

A discount resolves to zero when it is absent, Inactive, outside its
validity window, or has used up its usage limit. Otherwise:

    percentage    -> subtotal * value / 100
    fixed_amount  -> value (NOT clamped to the subtotal here)

Clamping to the subtotal is a property of "this discount applied to this
invoice" and lives in the invoice composer, so the same fixed discount can
exceed a small invoice and still resolve to its face value.

Usage:
    from billing_engines.discounts import Discount, DiscountKind, resolve_discount_amount

    discount = Discount(kind=DiscountKind.PERCENTAGE, value=Decimal("10"))
    resolve_discount_amount(discount, Money.of("25.00"), now)  # Money: 2.50 USD
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_kernel.domain.clock import as_utc
from billing_kernel.domain.values import Money, to_decimal
from billing_kernel.exceptions import InvalidDiscountValueError, InvalidDiscountWindowError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.discounts")

_HUNDRED = Decimal("100")


class DiscountKind(str, Enum):
    """How a discount's value is interpreted."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"

    @classmethod
    def _missing_(cls, value: object) -> DiscountKind | None:
        # Accept "fixedAmount", "Fixed Amount", "PERCENTAGE", ...
        if isinstance(value, str):
            key = "".join(ch for ch in value.lower() if ch.isalpha())
            for member in cls:
                if member.value.replace("_", "") == key:
                    return member
        return None


class DiscountStatus(str, Enum):
    """Stored administrative status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"

    @classmethod
    def _missing_(cls, value: object) -> DiscountStatus | None:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class DiscountState(str, Enum):
    """Derived state, computed on read against a point in time."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"  # valid_from in the future
    EXPIRED = "expired"  # valid_until in the past
    EXHAUSTED = "exhausted"  # usage_count reached usage_limit


def _parse_moment(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise ValueError(f"Cannot parse date/time from {value!r}")


@dataclass(frozen=True)
class Discount:
    """
    Discount definition.

    Immutable value object. Validated on construction: a percentage must lie
    in [0, 100], a fixed amount must be non-negative, and the validity window
    must not end before it starts.
    """

    kind: DiscountKind
    value: Decimal
    status: DiscountStatus = DiscountStatus.ACTIVE

    # Validity window (None = open on that side)
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    # Optional usage cap (None = unlimited)
    usage_limit: int | None = None
    usage_count: int = 0

    code: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", DiscountKind(self.kind))
        object.__setattr__(self, "status", DiscountStatus(self.status))
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "valid_from", _parse_moment(self.valid_from))
        object.__setattr__(self, "valid_until", _parse_moment(self.valid_until))

        if self.value < 0 or (
            self.kind == DiscountKind.PERCENTAGE and self.value > _HUNDRED
        ):
            raise InvalidDiscountValueError(self.kind.value, self.value)

        if (
            self.valid_from is not None
            and self.valid_until is not None
            and as_utc(self.valid_from) > as_utc(self.valid_until)
        ):
            raise InvalidDiscountWindowError(self.valid_from, self.valid_until)

        if self.usage_limit is not None and self.usage_limit < 0:
            raise ValueError("usage_limit cannot be negative")
        if self.usage_count < 0:
            raise ValueError("usage_count cannot be negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Discount:
        """
        Build a Discount from a stored record.

        Accepts both the admin record shape (discount_type, is_active,
        valid_from, ...) and the camelCase shape (kind, status, validFrom, ...).
        """
        kind = data.get("kind", data.get("discount_type"))
        if "status" in data:
            status = data["status"]
        elif "is_active" in data:
            status = DiscountStatus.ACTIVE if data["is_active"] else DiscountStatus.INACTIVE
        else:
            status = DiscountStatus.ACTIVE
        return cls(
            kind=kind,
            value=data["value"],
            status=status,
            valid_from=data.get("valid_from", data.get("validFrom")),
            valid_until=data.get("valid_until", data.get("validUntil")),
            usage_limit=data.get("usage_limit", data.get("usageLimit")),
            usage_count=data.get("usage_count", data.get("usageCount")) or 0,
            code=data.get("code"),
            description=data.get("description"),
        )

    def state(self, now: datetime) -> DiscountState:
        """Derived state of this discount at ``now``."""
        if self.status != DiscountStatus.ACTIVE:
            return DiscountState.INACTIVE
        moment = as_utc(now)
        if self.valid_from is not None and as_utc(self.valid_from) > moment:
            return DiscountState.SCHEDULED
        if self.valid_until is not None and as_utc(self.valid_until) < moment:
            return DiscountState.EXPIRED
        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            return DiscountState.EXHAUSTED
        return DiscountState.ACTIVE

    def is_applicable(self, now: datetime) -> bool:
        return self.state(now) == DiscountState.ACTIVE

    @property
    def display_value(self) -> str:
        """'10%' or '$5.00'."""
        if self.kind == DiscountKind.PERCENTAGE:
            return f"{self.value.normalize():f}%"
        return f"${self.value.quantize(Decimal('0.01')):f}"


class DiscountApplier:
    """
    Resolve discounts to flat amounts.

    Pure functions - no I/O. The result is unrounded and unclamped.
    """

    def resolve_discount_amount(
        self,
        discount: Discount | None,
        subtotal: Money,
        now: datetime,
    ) -> Money:
        if discount is None:
            return Money.zero(subtotal.currency)

        state = discount.state(now)
        if state != DiscountState.ACTIVE:
            logger.debug("discount_not_applicable", extra={
                "discount_code": discount.code,
                "state": state.value,
            })
            return Money.zero(subtotal.currency)

        if discount.kind == DiscountKind.PERCENTAGE:
            resolved = subtotal.multiply(discount.value / _HUNDRED)
        else:
            resolved = Money.of(discount.value, subtotal.currency)

        logger.debug("discount_resolved", extra={
            "discount_code": discount.code,
            "kind": discount.kind.value,
            "value": str(discount.value),
            "subtotal": str(subtotal.amount),
            "resolved_amount": str(resolved.amount),
        })
        return resolved


def resolve_discount_amount(
    discount: Discount | None,
    subtotal: Money,
    now: datetime,
) -> Money:
    """Convenience wrapper around DiscountApplier.resolve_discount_amount."""
    return DiscountApplier().resolve_discount_amount(discount, subtotal, now)


def discount_state(discount: Discount, now: datetime) -> DiscountState:
    """Derived state of ``discount`` at ``now``."""
    return discount.state(now)
