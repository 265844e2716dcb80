"""Money helpers — every amount is a Decimal with 2 decimal places."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | str | int | float | None) -> Decimal:
    """Parse a stored amount and round it half-up to cents.

    None, empty strings and unparseable values count as zero, the same as
    a missing setting.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(*amounts: Decimal | str | None) -> Decimal:
    return sum((to_money(a) for a in amounts), ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
