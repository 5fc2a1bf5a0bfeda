"""Money arithmetic for wallet balances.

All amounts are Decimal with two fractional digits. Every mutation result goes
through to_money() so repeated small adjustments never accumulate drift, and
the live store and the offline mirror produce identical figures.
"""

from decimal import ROUND_HALF_UP, Decimal

from config.settings import settings

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce to Decimal rounded half-up to 2 places: 198 -> Decimal('198.00')."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal | int | float) -> Decimal:
    """percent_of(Decimal('1000'), 10) -> Decimal('100.00')."""
    return to_money(to_money(amount) * Decimal(str(percent)) / Decimal(100))


def money_to_display(amount: Decimal, symbol: str | None = None) -> str:
    """Display string: Decimal('1100') -> '₹1,100.00', Decimal('-12') -> '-₹12.00'."""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    value = to_money(amount)
    if value < 0:
        return f"-{symbol}{-value:,.2f}"
    return f"{symbol}{value:,.2f}"
