"""
Pure domain layer.

Immutable value objects and coercion helpers with NO dependencies on
configuration, I/O or wall-clock time (SystemClock aside).
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.coercion import parse_amount, parse_quantity
from billing_kernel.domain.values import Money, add, multiply, subtract

__all__ = [
    # Value Objects
    "Money",
    "add",
    "subtract",
    "multiply",
    # Coercion
    "parse_amount",
    "parse_quantity",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
