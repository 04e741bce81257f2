"""
Argument checks shared by the registries.

Each check raises ValidationError naming the offending field and value,
before any state is touched.
"""

from revsettle.core.crypto import is_address
from revsettle.core.exceptions import ValidationError
from revsettle.core.models import AMOUNT_MAX, BPS_DENOMINATOR, U32_MAX


def _require_int(name: str, value) -> None:
    # bool is an int subclass; True is never a valid amount
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"{name} must be an integer",
            {name: repr(value)},
        )


def require_bps(name: str, value) -> int:
    _require_int(name, value)
    if not 0 <= value <= BPS_DENOMINATOR:
        raise ValidationError(
            f"{name} must be between 0 and {BPS_DENOMINATOR}",
            {name: value},
        )
    return value


def require_amount(name: str, value, *, positive: bool = False) -> int:
    """Non-negative (or strictly positive) amount within AMOUNT_MAX."""
    _require_int(name, value)
    if positive and value <= 0:
        raise ValidationError(f"{name} must be positive", {name: value})
    if value < 0:
        raise ValidationError(f"{name} must be non-negative", {name: value})
    if value > AMOUNT_MAX:
        raise ValidationError(f"{name} exceeds the amount ceiling", {name: value})
    return value


def require_u32(name: str, value, *, positive: bool = False) -> int:
    _require_int(name, value)
    if not 0 <= value <= U32_MAX:
        raise ValidationError(f"{name} must fit in 32 unsigned bits", {name: value})
    if positive and value == 0:
        raise ValidationError(f"{name} must be positive", {name: value})
    return value


def require_count(name: str, value) -> int:
    _require_int(name, value)
    if value < 0:
        raise ValidationError(f"{name} must be non-negative", {name: value})
    return value


def require_address(name: str, value) -> str:
    if not is_address(value):
        raise ValidationError(
            f"{name} must be a 64-char lowercase hex address",
            {name: repr(value)},
        )
    return value


def require_text(name: str, value, *, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", {name: repr(value)})
    if not allow_empty and not value:
        raise ValidationError(f"{name} must be non-empty")
    return value
