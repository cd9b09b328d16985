import math
from decimal import Decimal, InvalidOperation
from typing import Optional


class InvalidAmountError(ValueError):
    """Raised when a wager or stake amount is not a positive finite number."""

    def __init__(self, value, reason: str = "Amount must be a positive finite number"):
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {value!r}")


def decimal_places(value: Decimal) -> int:
    """Significant digits after the point; trailing zeros do not count."""
    _, digits, exponent = value.as_tuple()
    while exponent < 0 and digits and digits[-1] == 0:
        digits, exponent = digits[:-1], exponent + 1
    return max(0, -exponent)


def parse_amount(value, places: Optional[int] = None) -> Decimal:
    """
    Convert user input into a positive finite Decimal or raise InvalidAmountError.

    With `places`, amounts carrying more decimal places than that are refused
    rather than rounded.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value)
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidAmountError(value)
    try:
        # str() keeps 0.2 as Decimal("0.2") instead of its binary expansion
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(value)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(value)
    if places is not None and decimal_places(amount) > places:
        raise InvalidAmountError(value, f"Amount must have at most {places} decimal places")
    return amount


def parse_delta(value, places: Optional[int] = None) -> Decimal:
    """Like parse_amount, but any finite sign is allowed (stake adjustments)."""
    if isinstance(value, bool):
        raise InvalidAmountError(value, "Adjustment must be a finite number")
    try:
        delta = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(value, "Adjustment must be a finite number")
    if not delta.is_finite():
        raise InvalidAmountError(value, "Adjustment must be a finite number")
    if places is not None and decimal_places(delta) > places:
        raise InvalidAmountError(value, f"Adjustment must have at most {places} decimal places")
    return delta
