"""Ledger arithmetic and audit wording shared by both stores.

Both SqlLedgerStore and OfflineLedgerStore call into this module, so the
figures and descriptions a user sees do not depend on which store served them.
"""

from decimal import Decimal

from src.smm_common.enums import DepositStatus, OrderStatus, TransactionType
from src.smm_common.errors import (
    DepositAlreadyProcessedError,
    InvalidOrderAmountError,
    OrderStatusTransitionError,
)
from src.smm_common.money import ZERO, money_to_display, to_money
from src.smm_ledger.domain.models import DepositRequest, Order

ADMIN_ADJUSTMENT_REF = "admin_adjustment"
ADMIN_PREFIX = "Admin: "


def check_order_amount(amount: Decimal) -> Decimal:
    amount = to_money(amount)
    if amount < ZERO:
        raise InvalidOrderAmountError(amount)
    return amount


def debit_order(balance: Decimal, spent: Decimal, amount: Decimal) -> tuple[Decimal, Decimal]:
    """(wallet_balance, total_spent) after placing an order of `amount`."""
    return to_money(balance - amount), to_money(spent + amount)


def refund_order(balance: Decimal, spent: Decimal, amount: Decimal) -> tuple[Decimal, Decimal]:
    """(wallet_balance, total_spent) after refunding a cancelled order."""
    return to_money(balance + amount), to_money(spent - amount)


def order_description(display_id: str, service: str) -> str:
    return f"Order #{display_id} for {service}"


def refund_description(order: Order) -> str:
    return f"Refund for Cancelled Order #{order.display_id}"


def refund_due(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested == OrderStatus.CANCELLED and current != OrderStatus.CANCELLED


def check_order_transition(order: Order, requested: OrderStatus) -> bool:
    """Return True if the stored status must change.

    Cancelled is terminal: the refund has already been paid, so moving the
    order anywhere else would let a second cancellation refund it again.
    """
    if order.status == requested:
        return False
    if order.status == OrderStatus.CANCELLED:
        raise OrderStatusTransitionError(order.id, order.status.value, requested.value)
    return True


def check_deposit_transition(request: DepositRequest, requested: DepositStatus) -> bool:
    """Return True if the stored status must change. Only Pending requests move."""
    if request.status == requested:
        return False
    if request.status != DepositStatus.PENDING:
        raise DepositAlreadyProcessedError(request.id, request.status.value)
    return True


def deposit_description(request: DepositRequest) -> str:
    bonus = money_to_display(request.bonus_amount or ZERO)
    return f"Deposit #{request.display_id} (Incl. {bonus} Bonus) via {request.utr}"


def adjustment_entry(amount: Decimal, reason: str) -> tuple[TransactionType, Decimal, str, str]:
    """(type, magnitude, status, description) for an admin wallet adjustment."""
    if amount > 0:
        return TransactionType.CREDIT, to_money(amount), DepositStatus.APPROVED.value, f"{ADMIN_PREFIX}{reason}"
    return TransactionType.DEBIT, to_money(-amount), OrderStatus.COMPLETED.value, f"{ADMIN_PREFIX}{reason}"
