from decimal import Decimal, InvalidOperation

from partmate.core.constants import LOW_STOCK_THRESHOLD, RECENT_PARTS_LIMIT, STOCK_OPERATIONS
from partmate.core.errors import ValidationError
from partmate.schemas.part import DashboardStats

_CENT = Decimal("0.01")
_DELTA_MESSAGE = "Please enter a valid positive integer for quantity change"


def _parse_whole_number(raw, message):
    if raw is None or isinstance(raw, bool):
        raise ValidationError(message)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValidationError(message)
        return int(raw)
    text = str(raw).strip()
    if not text:
        raise ValidationError(message)
    try:
        return int(text, 10)
    except ValueError as exc:
        raise ValidationError(message) from exc


def parse_quantity_delta(raw) -> int:
    delta = _parse_whole_number(raw, _DELTA_MESSAGE)
    if delta <= 0:
        raise ValidationError(_DELTA_MESSAGE)
    return delta


def parse_quantity(raw) -> int:
    message = "Quantity must be a non-negative whole number"
    quantity = _parse_whole_number(raw, message)
    if quantity < 0:
        raise ValidationError(message)
    return quantity


def parse_price(raw) -> Decimal:
    message = "Price must be a non-negative amount"
    if raw is None or isinstance(raw, bool):
        raise ValidationError(message)
    text = str(raw).strip()
    if not text:
        raise ValidationError(message)
    try:
        price = Decimal(text)
    except InvalidOperation as exc:
        raise ValidationError(message) from exc
    if not price.is_finite() or price < 0:
        raise ValidationError(message)
    try:
        return price.quantize(_CENT)
    except InvalidOperation as exc:
        raise ValidationError(message) from exc


def apply_stock_change(quantity: int, delta: int, operation: str) -> int:
    if operation == "add":
        return quantity + delta
    if operation == "subtract":
        return max(0, quantity - delta)
    raise ValidationError(
        "Unknown stock operation: {} (expected {})".format(operation, " or ".join(STOCK_OPERATIONS))
    )


def is_low_stock(part) -> bool:
    return part.quantity < LOW_STOCK_THRESHOLD


def dashboard_stats(parts) -> DashboardStats:
    """Summary over a newest-first part list."""
    parts = list(parts)
    return DashboardStats(
        total_parts=len(parts),
        low_stock_count=sum(1 for part in parts if is_low_stock(part)),
        recent_parts=parts[:RECENT_PARTS_LIMIT],
    )


def filter_parts(parts, term):
    needle = (term or "").lower()
    if not needle:
        return list(parts)
    return [
        part
        for part in parts
        if needle in part.part_id.lower() or needle in part.name.lower()
    ]
