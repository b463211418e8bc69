"""
Values -- Decimal coercion for report amounts.

Responsibility:
    Single place where raw numbers (int, float, str, Decimal) become
    ``Decimal``.  Every amount that flows through the engine passes here.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Amounts are ``Decimal``, never ``float``.  Floats are converted through
      ``str()`` so ``0.1`` becomes ``Decimal("0.1")``, not its binary value.
    - Booleans are rejected; ``True`` is not an amount.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal | None:
    """
    Convert a raw numeric value to ``Decimal``.

    Postconditions:
        - ``None`` and empty strings map to ``None``.
        - int, float, numeric str and Decimal map to a finite ``Decimal``.

    Raises:
        TypeError: if value is a bool or a non-numeric type.
        ValueError: if value is a non-numeric string or not finite.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("Boolean is not a numeric amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric amount: {value!r}") from exc
    else:
        raise TypeError(f"Not a numeric amount: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def amount_or_zero(value: Any) -> Decimal:
    """Like ``to_decimal`` but reads ``None`` as zero (blank cell)."""
    result = to_decimal(value)
    return ZERO if result is None else result


def normalize_amount(value: Decimal | None) -> Decimal | None:
    """
    Drop trailing fractional zeros; whole amounts keep plain integer form.

    Fixed-scale database columns return ``1800.000000000`` for a stored
    ``1800``; normalized, the amount prints the same as one read from CSV.
    """
    if value is None:
        return None
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 2)
        exponent = value.normalize().as_tuple().exponent
        if not isinstance(exponent, int) or exponent >= 0:
            return value.quantize(Decimal(1))
        return value.quantize(Decimal(1).scaleb(exponent))
