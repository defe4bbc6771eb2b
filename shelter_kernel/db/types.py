"""
Module: shelter_kernel.db.types
Responsibility: Annotated type aliases and helpers for monetary and short
    text columns, so every model declares amounts and codes identically.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  All fees and payments are Decimal with two
      decimal places; round_money() is the only sanctioned rounding helper.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String, Text

# Adoption fee / payment amount
Money = Annotated[Decimal, Numeric(12, 2)]

# Enum-valued status columns
StatusCode = Annotated[str, String(30)]

# Short identifier strings (payment method, follow-up type)
ShortCode = Annotated[str, String(50)]

# Names, emails, phone numbers
ShortText = Annotated[str, String(255)]

# Free-text notes
LongText = Annotated[str, Text]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """
    Coerce an incoming amount to a two-place Decimal.

    Floats are converted through ``str`` so binary artifacts such as
    150.10000000000002 never reach storage.

    Raises:
        ValueError: If the value is not numeric or is negative.
    """
    if value is None:
        return round_money(Decimal("0"))
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except ArithmeticError as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if amount < 0:
        raise ValueError(f"Monetary amount must not be negative: {value!r}")
    return round_money(amount)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the specified decimal places."""
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
