"""
Values -- Immutable, self-validating monetary value object.

Responsibility:
    Provides Money, the value type for every amount the billing engines
    handle: line totals, subtotals, discounts, tax, invoice totals and
    subscription prices. Replaces raw float/Decimal wherever a currency
    amount appears in engine logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every engine module. No outward dependencies.

Invariants enforced:
    - Amounts are always Decimal (never float); floats are converted via str()
    - Amounts are always finite (no NaN / Infinity)
    - Arithmetic never rounds; rounding is an explicit call made at the
      output boundary, so accumulated sums carry no intermediate drift

Failure modes:
    - InvalidAmountError on construction with non-numeric, non-finite, or
      disallowed negative amounts
    - CurrencyMismatchError when arithmetic mixes currencies
    - ValueError for a malformed currency code
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from billing_kernel.exceptions import CurrencyMismatchError, InvalidAmountError

DEFAULT_CURRENCY = "USD"
DEFAULT_DECIMAL_PLACES = 2


def to_decimal(
    value: Money | Decimal | int | float | str,
    *,
    allow_negative: bool = True,
) -> Decimal:
    """
    Convert a numeric value to a finite Decimal.

    A Money contributes its amount; callers that care about currency check it
    before converting.

    Raises:
        InvalidAmountError: If the value is not numeric, not finite, or
            negative while allow_negative is False.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "booleans are not amounts")
    if isinstance(value, Money):
        result = value.amount
    elif isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidAmountError(value, "not a number") from e
    else:
        raise InvalidAmountError(value, f"unsupported type {type(value).__name__}")

    if not result.is_finite():
        raise InvalidAmountError(value, "amount must be finite")
    if not allow_negative and result < 0:
        raise InvalidAmountError(value, "amount cannot be negative")
    return result


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a finite Decimal amount with a three-letter currency code.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always a finite Decimal
        - currency is always an uppercase three-letter code
        - Arithmetic enforces the same-currency constraint

    Non-goals:
        - Does NOT perform currency conversion
        - Does NOT auto-round -- callers must explicitly call .round()
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))

        code = self.currency.upper().strip() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(
        cls,
        amount: Decimal | int | float | str,
        currency: str = DEFAULT_CURRENCY,
        *,
        allow_negative: bool = True,
    ) -> Money:
        """
        Factory method for creating Money.

        Raises:
            InvalidAmountError: If amount cannot be converted, is not finite,
                or is negative while allow_negative is False.
        """
        return cls(amount=to_decimal(amount, allow_negative=allow_negative), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        """Create a zero amount in the given currency."""
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def round(
        self,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        rounding: str = ROUND_HALF_UP,
    ) -> Money:
        """Return a new Money quantized to decimal_places (half-up by default)."""
        quantum = Decimal(1).scaleb(-decimal_places)
        return Money(self.amount.quantize(quantum, rounding=rounding), self.currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency, operation)

    def add(self, other: Money) -> Money:
        """Add two Money values. Must be same currency."""
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money, floor: Money | Decimal | int | None = None) -> Money:
        """
        Subtract other from self, optionally clamped below at floor.

        With floor=None the result is unclamped and may be negative.
        """
        self._check_currency(other, "subtract")
        result = self.amount - other.amount
        if floor is not None:
            floor_amount = floor.amount if isinstance(floor, Money) else to_decimal(floor)
            result = max(result, floor_amount)
        return Money(result, self.currency)

    def multiply(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar."""
        return Money(self.amount * to_decimal(factor), self.currency)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        if not isinstance(factor, (Decimal, int, str)) or isinstance(factor, bool):
            return NotImplemented
        return self.multiply(factor)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def add(a: Money, b: Money) -> Money:
    """Module-level form of Money.add."""
    return a.add(b)


def subtract(a: Money, b: Money, floor: Money | Decimal | int | None = None) -> Money:
    """Module-level form of Money.subtract."""
    return a.subtract(b, floor=floor)


def multiply(amount: Money, factor: Decimal | int | str) -> Money:
    """Module-level form of Money.multiply."""
    return amount.multiply(factor)
