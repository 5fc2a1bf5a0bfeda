"""Tests for ledger arithmetic, status transitions and audit wording."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from src.smm_common.enums import DepositStatus, OrderStatus, TransactionType
from src.smm_common.errors import (
    DepositAlreadyProcessedError,
    InvalidOrderAmountError,
    OrderStatusTransitionError,
)
from src.smm_ledger.domain.models import DepositRequest, Order
from src.smm_ledger.domain.rules import (
    adjustment_entry,
    check_deposit_transition,
    check_order_amount,
    check_order_transition,
    debit_order,
    deposit_description,
    order_description,
    refund_description,
    refund_due,
    refund_order,
)

NOW = datetime(2026, 3, 14, 10, 30, tzinfo=UTC)


def _order(status: OrderStatus = OrderStatus.PENDING) -> Order:
    return Order(
        id="o-1", display_id="00007", user_id="user-1", user_name="Asha",
        service="Instagram Likes", target_url="x", quantity=100,
        amount=Decimal("19.80"), status=status, created_at=NOW,
    )


def _deposit(status: DepositStatus = DepositStatus.PENDING, bonus: Decimal | None = None) -> DepositRequest:
    return DepositRequest(
        id="d-1", display_id="0000003", user_id="user-1", user_name="Asha",
        amount=Decimal("1000.00"), utr="UTR42", sender_upi="asha@upi",
        screenshot_url="", status=status, created_at=NOW, bonus_amount=bonus,
    )


class TestArithmetic:
    def test_debit_and_refund_are_inverse(self) -> None:
        balance, spent = debit_order(Decimal("500.00"), Decimal("0.00"), Decimal("198.00"))
        assert (balance, spent) == (Decimal("302.00"), Decimal("198.00"))
        assert refund_order(balance, spent, Decimal("198.00")) == (Decimal("500.00"), Decimal("0.00"))

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(InvalidOrderAmountError):
            check_order_amount(Decimal("-0.01"))

    def test_amount_rounded(self) -> None:
        assert check_order_amount(Decimal("9.999")) == Decimal("10.00")

    def test_total_credit_includes_bonus(self) -> None:
        assert _deposit(bonus=Decimal("100.00")).total_credit == Decimal("1100.00")
        assert _deposit().total_credit == Decimal("1000.00")


class TestOrderTransitions:
    def test_same_status_is_noop(self) -> None:
        assert check_order_transition(_order(OrderStatus.COMPLETED), OrderStatus.COMPLETED) is False

    def test_any_live_status_can_move(self) -> None:
        assert check_order_transition(_order(OrderStatus.COMPLETED), OrderStatus.CANCELLED) is True
        assert check_order_transition(_order(), OrderStatus.IN_PROGRESS) is True

    def test_cancelled_is_terminal(self) -> None:
        with pytest.raises(OrderStatusTransitionError):
            check_order_transition(_order(OrderStatus.CANCELLED), OrderStatus.PENDING)

    def test_refund_due_only_on_entering_cancelled(self) -> None:
        assert refund_due(OrderStatus.PENDING, OrderStatus.CANCELLED) is True
        assert refund_due(OrderStatus.CANCELLED, OrderStatus.CANCELLED) is False
        assert refund_due(OrderStatus.PENDING, OrderStatus.COMPLETED) is False


class TestDepositTransitions:
    def test_pending_moves(self) -> None:
        assert check_deposit_transition(_deposit(), DepositStatus.APPROVED) is True

    def test_repeat_is_noop(self) -> None:
        assert check_deposit_transition(_deposit(DepositStatus.APPROVED), DepositStatus.APPROVED) is False

    def test_processed_cannot_move(self) -> None:
        with pytest.raises(DepositAlreadyProcessedError):
            check_deposit_transition(_deposit(DepositStatus.REJECTED), DepositStatus.APPROVED)


class TestDescriptions:
    def test_order(self) -> None:
        assert order_description("00007", "Instagram Likes") == "Order #00007 for Instagram Likes"

    def test_refund(self) -> None:
        assert refund_description(_order()) == "Refund for Cancelled Order #00007"

    def test_deposit(self) -> None:
        assert (
            deposit_description(_deposit(bonus=Decimal("100")))
            == "Deposit #0000003 (Incl. ₹100.00 Bonus) via UTR42"
        )

    def test_deposit_without_bonus(self) -> None:
        assert deposit_description(_deposit()) == "Deposit #0000003 (Incl. ₹0.00 Bonus) via UTR42"


class TestAdjustmentEntry:
    def test_credit(self) -> None:
        assert adjustment_entry(Decimal("25"), "goodwill") == (
            TransactionType.CREDIT, Decimal("25.00"), "Approved", "Admin: goodwill"
        )

    def test_debit_uses_magnitude(self) -> None:
        assert adjustment_entry(Decimal("-5.5"), "fix") == (
            TransactionType.DEBIT, Decimal("5.50"), "Completed", "Admin: fix"
        )
