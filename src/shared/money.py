"""Money arithmetic.

Amounts are persisted as floats, the way every aggregate field stores them,
and turned into two-place ``Decimal`` values before any sum or comparison.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    # str() first: Decimal(0.1) is not 0.10
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
