"""Display-ID formatting for counter values.

Widths per namespace: users/services 6 digits, orders 5 digits, deposits
7 digits. Limited-offer orders use their own counter and carry an "L" prefix.
"""

from src.smm_common.enums import CounterName

LIMITED_ORDER_PREFIX = "L"

_WIDTHS: dict[CounterName, int] = {
    CounterName.USERS: 6,
    CounterName.SERVICES: 6,
    CounterName.ORDERS: 5,
    CounterName.LIMITED_ORDERS: 5,
    CounterName.DEPOSITS: 7,
}


def format_display_id(counter: CounterName, value: int) -> str:
    """format_display_id(DEPOSITS, 7) -> '0000007'; (LIMITED_ORDERS, 42) -> 'L00042'."""
    if value < 1:
        raise ValueError(f"Counter values start at 1, got {value}")
    padded = str(value).zfill(_WIDTHS[counter])
    if counter is CounterName.LIMITED_ORDERS:
        return f"{LIMITED_ORDER_PREFIX}{padded}"
    return padded


def order_counter(is_limited_offer: bool) -> CounterName:
    return CounterName.LIMITED_ORDERS if is_limited_offer else CounterName.ORDERS


def parse_display_number(display_id: str | None) -> int | None:
    """Numeric part of a display id ('L00042' -> 42), None when not numeric."""
    if not display_id:
        return None
    digits = display_id.replace(LIMITED_ORDER_PREFIX, "")
    return int(digits) if digits.isdigit() else None
