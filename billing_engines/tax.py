"""
Tax Engine - Apply a percentage tax rate to a post-discount amount.

Pure functions with no I/O.

The rate is a percentage, not a fraction: 8.5 means 8.5%. A zero rate is
valid and yields zero tax. Screens omit the tax line when the tax is zero,
but that is a presentation choice; the engine always computes and returns
the value.

Usage:
    from billing_engines.tax import compute_tax

    compute_tax(Money.of("22.50"), Decimal("8.5"))  # Money: 1.9125 USD (unrounded)
"""

from __future__ import annotations

from decimal import Decimal

from billing_kernel.domain.values import Money, to_decimal
from billing_kernel.exceptions import InvalidTaxRateError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.tax")

_HUNDRED = Decimal("100")


class TaxCalculator:
    """
    Calculate exclusive tax on an amount.

    Pure functions - no I/O, no database access.
    """

    def compute_tax(
        self,
        after_discount: Money,
        tax_rate_percent: Decimal | int | str,
    ) -> Money:
        """
        Tax owed on ``after_discount`` at ``tax_rate_percent``.

        Returns an unrounded Money; the invoice composer rounds at the
        output boundary.

        Raises:
            InvalidTaxRateError: If the rate is negative.
            InvalidAmountError: If the rate is not a finite number.
        """
        rate = to_decimal(tax_rate_percent)
        if rate < 0:
            logger.error("tax_rate_negative", extra={
                "tax_rate_percent": str(rate),
            })
            raise InvalidTaxRateError(rate)

        tax = after_discount.multiply(rate / _HUNDRED)

        logger.debug("tax_computed", extra={
            "taxable_amount": str(after_discount.amount),
            "tax_rate_percent": str(rate),
            "tax_amount": str(tax.amount),
        })
        return tax

    @staticmethod
    def show_tax_line(tax_amount: Money) -> bool:
        """Whether a presentation layer should display a tax line."""
        return not tax_amount.is_zero


def compute_tax(
    after_discount: Money,
    tax_rate_percent: Decimal | int | str,
) -> Money:
    """Convenience wrapper around TaxCalculator.compute_tax."""
    return TaxCalculator().compute_tax(after_discount, tax_rate_percent)
