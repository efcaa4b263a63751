"""
Typed Exception Hierarchy for the Billing Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Pricing errors surface in forms and admin screens. Callers translate them
into field errors, so they must be able to catch by type and read structured
data instead of parsing message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

Example:
    try:
        totals = compose_invoice(items, tax_rate_percent=form.tax_rate)
    except InvalidTaxRateError as e:
        form.errors["tax_rate"] = f"Tax rate cannot be negative ({e.tax_rate_percent})"

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingEngineError (base)
    |
    +-- AmountError
    |   +-- InvalidAmountError
    |   +-- CurrencyMismatchError
    |
    +-- DiscountError
    |   +-- InvalidDiscountValueError
    |   +-- InvalidDiscountWindowError
    |   +-- ConflictingDiscountError
    |
    +-- TaxError
    |   +-- InvalidTaxRateError
    |
    +-- SubscriptionError
        +-- InvalidBillingFrequencyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Amount          | INVALID_AMOUNT              | Non-finite, non-numeric or disallowed negative
                | CURRENCY_MISMATCH           | Arithmetic across two currencies
----------------|-----------------------------|-----------------------------------------
Discount        | INVALID_DISCOUNT_VALUE      | Percentage outside 0-100, negative fixed amount
                | INVALID_DISCOUNT_WINDOW     | valid_from later than valid_until
                | CONFLICTING_DISCOUNT        | Both a Discount and a resolved amount given
----------------|-----------------------------|-----------------------------------------
Tax             | INVALID_TAX_RATE            | Negative tax rate
----------------|-----------------------------|-----------------------------------------
Subscription    | INVALID_BILLING_FREQUENCY   | Frequency not in the multiplier table
----------------|-----------------------------|-----------------------------------------

None of these are transient. The engine performs no I/O, so nothing is
retried; every error propagates to the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class BillingEngineError(Exception):
    """
    Base exception for all billing engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_ENGINE_ERROR"


# Amount exceptions


class AmountError(BillingEngineError):
    """Base exception for monetary amount errors."""

    code: str = "AMOUNT_ERROR"


class InvalidAmountError(AmountError):
    """Amount is non-finite, not numeric, or negative where disallowed."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


class CurrencyMismatchError(AmountError):
    """Arithmetic attempted across two different currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str, operation: str):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"Cannot {operation} Money with different currencies: {left} and {right}"
        )


# Discount exceptions


class DiscountError(BillingEngineError):
    """Base exception for discount errors."""

    code: str = "DISCOUNT_ERROR"


class InvalidDiscountValueError(DiscountError):
    """Percentage outside [0, 100] or negative fixed amount."""

    code: str = "INVALID_DISCOUNT_VALUE"

    def __init__(self, kind: str, value: Any):
        self.kind = kind
        self.value = str(value)
        if kind == "fixed_amount":
            detail = "fixed amount cannot be negative"
        else:
            detail = "percentage must be between 0 and 100"
        super().__init__(f"Invalid {kind} discount value {value}: {detail}")


class InvalidDiscountWindowError(DiscountError):
    """Discount validity window ends before it starts."""

    code: str = "INVALID_DISCOUNT_WINDOW"

    def __init__(self, valid_from: Any, valid_until: Any):
        self.valid_from = str(valid_from)
        self.valid_until = str(valid_until)
        super().__init__(
            f"Discount end {valid_until} cannot be before start {valid_from}"
        )


class ConflictingDiscountError(DiscountError):
    """Both a Discount and a pre-resolved discount amount were supplied."""

    code: str = "CONFLICTING_DISCOUNT"

    def __init__(self, discount_amount: Any):
        self.discount_amount = str(discount_amount)
        super().__init__(
            "Supply either a discount or a resolved discount_amount, not both "
            f"(discount_amount={discount_amount})"
        )


# Tax exceptions


class TaxError(BillingEngineError):
    """Base exception for tax errors."""

    code: str = "TAX_ERROR"


class InvalidTaxRateError(TaxError):
    """Tax rate is negative."""

    code: str = "INVALID_TAX_RATE"

    def __init__(self, tax_rate_percent: Any):
        self.tax_rate_percent = str(tax_rate_percent)
        super().__init__(f"Tax rate cannot be negative: {tax_rate_percent}")


# Subscription exceptions


class SubscriptionError(BillingEngineError):
    """Base exception for subscription pricing errors."""

    code: str = "SUBSCRIPTION_ERROR"


class InvalidBillingFrequencyError(SubscriptionError):
    """Billing frequency is not in the cycle multiplier table."""

    code: str = "INVALID_BILLING_FREQUENCY"

    def __init__(self, frequency: Any, supported: tuple[str, ...]):
        self.frequency = str(frequency)
        self.supported = supported
        super().__init__(
            f"Unknown billing frequency {frequency!r}; expected one of {', '.join(supported)}"
        )
