"""
BillingPolicy schema.

The YAML policy file is parsed by the loader into this frozen dataclass.
Engines receive a BillingPolicy; they never read YAML themselves.
"""

from __future__ import annotations

import decimal
import logging
from dataclasses import dataclass

# Rounding modes accepted in YAML, by their decimal module name.
ROUNDING_MODES: frozenset[str] = frozenset({
    decimal.ROUND_HALF_UP,
    decimal.ROUND_HALF_EVEN,
    decimal.ROUND_HALF_DOWN,
    decimal.ROUND_UP,
    decimal.ROUND_DOWN,
    decimal.ROUND_CEILING,
    decimal.ROUND_FLOOR,
})


@dataclass(frozen=True)
class BillingPolicy:
    """
    Output precision and currency policy for the billing engines.

    Attributes:
        currency: Three-letter currency code every composed amount carries.
        decimal_places: Places monetary outputs are rounded to.
        rounding: decimal module rounding mode name.
        log_level: Level passed to configure_logging by applications.
    """

    currency: str = "USD"
    decimal_places: int = 2
    rounding: str = decimal.ROUND_HALF_UP
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        code = self.currency.upper().strip() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"currency must be a three-letter code, got {self.currency!r}")
        object.__setattr__(self, "currency", code)

        if isinstance(self.decimal_places, bool) or not isinstance(self.decimal_places, int):
            raise ValueError(f"decimal_places must be an integer, got {self.decimal_places!r}")
        if not 0 <= self.decimal_places <= 6:
            raise ValueError(f"decimal_places must be between 0 and 6, got {self.decimal_places}")

        if self.rounding not in ROUNDING_MODES:
            raise ValueError(
                f"rounding must be one of {sorted(ROUNDING_MODES)}, got {self.rounding!r}"
            )

        level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log_level: {self.log_level!r}")
        object.__setattr__(self, "log_level", level)
