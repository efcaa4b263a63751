"""
Billing Kernel

Value objects, typed errors and structured logging shared by the billing
engines:
- Decimal-backed Money with explicit rounding
- Lenient coercion of form-entered amounts and quantities
- Typed exception hierarchy with machine-readable codes
"""

__version__ = "0.1.0"
