"""Charge arithmetic for rent bills.

Everything here is pure: no session, no model instances. The bill model and
the billing service both call into this module so that the derived amounts
are computed the same way on every write path.
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

ZERO = Decimal("0")

DEFAULT_RATE_PER_UNIT = Decimal(os.getenv("RATE_PER_UNIT", "10"))


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Coerce a reading or amount to Decimal.

    Returns ``default`` for None, empty strings, booleans and anything that
    does not parse as a finite number.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return default
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return default
    if not result.is_finite():
        return default
    return result


def derive_bill_amounts(
    base_rent: Any, previous_unit: Any, current_unit: Any, rate_per_unit: Any
) -> Tuple[Decimal, Decimal, Decimal]:
    """Return ``(units_consumed, electricity_amount, total_amount)``.

    A meter that reads lower than last period (rollback or replacement)
    consumes nothing rather than producing a credit.
    """
    base = to_decimal(base_rent)
    prev = to_decimal(previous_unit)
    curr = to_decimal(current_unit)
    rate = to_decimal(rate_per_unit, DEFAULT_RATE_PER_UNIT)

    units = curr - prev if curr >= prev else ZERO
    electricity = units * rate
    return units, electricity, base + electricity
