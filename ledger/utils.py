from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import ValidationError

MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest amount a MONEY column (15 digits, 2 decimal places) can hold.
MONEY_MAX = Decimal("9999999999999.99")


def to_decimal(value, *, field: str = "amount") -> Decimal:
    """
    Coerce a payload value into a Decimal.

    Floats go through ``str`` so 0.1 stays 0.1. Anything that is not a finite
    number raises the ledger ValidationError naming ``field``.
    """
    if isinstance(value, Decimal):
        result = value
    elif value is None or value == "":
        raise ValidationError(f"{field} is required.", details={"field": field})
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"{field} must be a number.", details={"field": field}) from exc
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number.", details={"field": field})
    return result


def quantize_money(value: Decimal | None) -> Decimal:
    return (value or ZERO).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def decimal_to_str(value: Decimal | None) -> str:
    return format(quantize_money(value), "f")
