"""Unit tests for SqlLedgerStore and SqlSequenceAllocator using a mock AsyncSession."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from src.smm_common.enums import (
    CounterName,
    DepositStatus,
    OrderStatus,
    StoreErrorKind,
    TransactionType,
    UserStatus,
)
from src.smm_common.errors import (
    DepositAlreadyProcessedError,
    DepositNotFoundError,
    InsufficientBalanceError,
    InternalError,
    OrderNotFoundError,
    OrderStatusTransitionError,
    StoreError,
    UserNotFoundError,
)
from src.smm_ledger.domain.models import DepositDraft, OrderDraft
from src.smm_ledger.infrastructure.persistence import SqlLedgerStore
from src.smm_sequence.infrastructure.persistence import SqlSequenceAllocator

NOW = datetime(2026, 3, 14, 10, 30, tzinfo=UTC)


def _result(row: Any) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = [row] if row is not None else []
    return result


def _user_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "user-1")
    row.display_id = kwargs.get("display_id", "000001")
    row.name = kwargs.get("name", "Asha")
    row.email = kwargs.get("email", "asha@example.com")
    row.whatsapp = kwargs.get("whatsapp")
    row.role = kwargs.get("role", "user")
    row.wallet_balance = kwargs.get("wallet_balance", Decimal("500.00"))
    row.total_spent = kwargs.get("total_spent", Decimal("0.00"))
    row.status = kwargs.get("status", "Active")
    row.created_at = kwargs.get("created_at", NOW)
    return row


def _order_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "order-1")
    row.display_id = kwargs.get("display_id", "00001")
    row.user_id = kwargs.get("user_id", "user-1")
    row.user_name = kwargs.get("user_name", "Asha")
    row.user_whatsapp = kwargs.get("user_whatsapp")
    row.service = kwargs.get("service", "Instagram Likes")
    row.service_id = kwargs.get("service_id")
    row.target_url = kwargs.get("target_url", "https://ig/asha")
    row.quantity = kwargs.get("quantity", 100)
    row.unit = kwargs.get("unit")
    row.amount = kwargs.get("amount", Decimal("198.00"))
    row.status = kwargs.get("status", "Pending")
    row.coupon_code = kwargs.get("coupon_code")
    row.is_limited_offer = kwargs.get("is_limited_offer", False)
    row.last_updated_by = kwargs.get("last_updated_by")
    row.created_at = kwargs.get("created_at", NOW)
    return row


def _tx_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "tx-1")
    row.user_id = kwargs.get("user_id", "user-1")
    row.type = kwargs.get("type", "Debit")
    row.amount = kwargs.get("amount", Decimal("198.00"))
    row.description = kwargs.get("description", "Order #00001 for Instagram Likes")
    row.status = kwargs.get("status", "Completed")
    row.related_id = kwargs.get("related_id", "order-1")
    row.created_at = kwargs.get("created_at", NOW)
    return row


def _counter_row(value: int) -> MagicMock:
    row = MagicMock()
    row.current_value = value
    return row


def _deposit_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "dep-1")
    row.display_id = kwargs.get("display_id", "0000007")
    row.user_id = kwargs.get("user_id", "user-1")
    row.user_name = kwargs.get("user_name", "Asha")
    row.user_display_id = kwargs.get("user_display_id", "000001")
    row.amount = kwargs.get("amount", Decimal("1000.00"))
    row.utr = kwargs.get("utr", "UTR777")
    row.sender_upi = kwargs.get("sender_upi", "asha@upi")
    row.screenshot_url = kwargs.get("screenshot_url", "")
    row.status = kwargs.get("status", "Pending")
    row.coupon_code = kwargs.get("coupon_code", "BONUS10")
    row.bonus_amount = kwargs.get("bonus_amount", Decimal("100.00"))
    row.created_at = kwargs.get("created_at", NOW)
    return row


def _coupon_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "c-1")
    row.code = kwargs.get("code", "BONUS10")
    row.discount_percent = kwargs.get("discount_percent", Decimal("10"))
    row.usage_limit = kwargs.get("usage_limit", 0)
    row.used_count = kwargs.get("used_count", 1)
    row.created_at = kwargs.get("created_at", NOW)
    row.expires_at = kwargs.get("expires_at")
    row.is_auto_apply = kwargs.get("is_auto_apply", False)
    row.type = kwargs.get("type", "bonus")
    return row


def _draft(**kwargs: Any) -> OrderDraft:
    fields = {
        "user_id": "user-1",
        "user_name": "Asha",
        "service": "Instagram Likes",
        "target_url": "https://ig/asha",
        "quantity": 100,
        "amount": Decimal("198"),
    }
    fields.update(kwargs)
    return OrderDraft(**fields)


class TestSequenceAllocator:
    async def test_returns_counter_value(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_counter_row(7))

        value = await SqlSequenceAllocator(db).next_value(CounterName.DEPOSITS)

        assert value == 7
        params = db.execute.call_args.args[1]
        assert params == {"name": "deposits"}

    async def test_missing_row_is_internal_error(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        with pytest.raises(InternalError):
            await SqlSequenceAllocator(db).next_value(CounterName.ORDERS)

    async def test_store_next_value_commits(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_counter_row(3))

        assert await SqlLedgerStore(db).next_value(CounterName.USERS) == 3
        db.commit.assert_awaited_once()


class TestPlaceOrder:
    async def test_debit_mint_insert_and_commit(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_user_row(wallet_balance=Decimal("302.00"))),   # debit
            _result(_counter_row(1)),                               # counter
            _result(_order_row()),                                  # order insert
            _result(_tx_row()),                                     # transaction insert
        ]

        order = await SqlLedgerStore(db).place_order(_draft(), enforce_balance=True)

        assert order.display_id == "00001"
        assert order.status == OrderStatus.PENDING
        debit_params = db.execute.call_args_list[0].args[1]
        assert debit_params == {"user_id": "user-1", "amount": Decimal("198.00"), "enforce": True}
        order_params = db.execute.call_args_list[2].args[1]
        assert order_params["display_id"] == "00001"
        tx_params = db.execute.call_args_list[3].args[1]
        assert tx_params["type"] == TransactionType.DEBIT.value
        assert tx_params["description"] == "Order #00001 for Instagram Likes"
        assert tx_params["related_id"] == "order-1"
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_limited_offer_uses_prefixed_counter(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_user_row()),
            _result(_counter_row(42)),
            _result(_order_row(display_id="L00042", is_limited_offer=True)),
            _result(_tx_row()),
        ]

        await SqlLedgerStore(db).place_order(_draft(is_limited_offer=True), enforce_balance=True)

        assert db.execute.call_args_list[1].args[1] == {"name": "limited_orders"}
        assert db.execute.call_args_list[2].args[1]["display_id"] == "L00042"

    async def test_insufficient_balance_rolls_back(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(None),                                          # conditional debit refused
            _result(_user_row(wallet_balance=Decimal("100.00"))),
        ]

        with pytest.raises(InsufficientBalanceError):
            await SqlLedgerStore(db).place_order(_draft(), enforce_balance=True)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
        assert db.execute.await_count == 2

    async def test_unknown_user(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(None), _result(None)]

        with pytest.raises(UserNotFoundError):
            await SqlLedgerStore(db).place_order(_draft(), enforce_balance=False)


class TestUpdateOrderStatus:
    async def test_cancel_refunds_in_same_transaction(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_order_row()),                                  # SELECT ... FOR UPDATE
            _result(_user_row()),                                   # refund
            _result(_tx_row(type="Credit", status="Approved")),     # refund transaction
            _result(_order_row(status="Cancelled", last_updated_by="Admin")),
        ]

        order = await SqlLedgerStore(db).update_order_status("order-1", OrderStatus.CANCELLED, "Admin")

        assert order.status == OrderStatus.CANCELLED
        assert order.last_updated_by == "Admin"
        assert db.execute.call_args_list[1].args[1] == {"user_id": "user-1", "amount": Decimal("198.00")}
        tx_params = db.execute.call_args_list[2].args[1]
        assert tx_params["description"] == "Refund for Cancelled Order #00001"
        assert tx_params["related_id"] == "order-1"
        db.commit.assert_awaited_once()

    async def test_already_cancelled_is_noop(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_order_row(status="Cancelled"))

        order = await SqlLedgerStore(db).update_order_status("order-1", OrderStatus.CANCELLED, "Admin")

        assert order.status == OrderStatus.CANCELLED
        assert db.execute.await_count == 1

    async def test_cancelled_cannot_reopen(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_order_row(status="Cancelled"))

        with pytest.raises(OrderStatusTransitionError):
            await SqlLedgerStore(db).update_order_status("order-1", OrderStatus.PENDING, "Admin")
        db.rollback.assert_awaited_once()

    async def test_missing_order(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        with pytest.raises(OrderNotFoundError):
            await SqlLedgerStore(db).update_order_status("nope", OrderStatus.CANCELLED, "Admin")


class TestCreateDepositRequest:
    async def test_mints_seven_digit_id_and_stores_pending(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(_counter_row(7)), _result(_deposit_row())]
        draft = DepositDraft(
            user_id="user-1", user_name="Asha", amount=Decimal("1000"), utr="UTR777",
            sender_upi="asha@upi", user_display_id="000001",
            coupon_code="BONUS10", bonus_amount=Decimal("100.00"),
        )

        request = await SqlLedgerStore(db).create_deposit_request(draft)

        assert db.execute.call_args_list[0].args[1] == {"name": "deposits"}
        params = db.execute.call_args_list[1].args[1]
        assert params["display_id"] == "0000007"
        assert params["status"] == "Pending"
        assert params["amount"] == Decimal("1000.00")
        assert params["bonus_amount"] == Decimal("100.00")
        assert request.status == DepositStatus.PENDING
        db.commit.assert_awaited_once()


class TestProcessDepositRequest:
    async def test_approve_credits_total_and_consumes_coupon_in_one_commit(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_deposit_row()),                                # SELECT ... FOR UPDATE
            _result(_user_row(wallet_balance=Decimal("1100.00"))),  # credit
            _result(_tx_row(type="Credit", status="Approved")),     # transaction insert
            _result(_coupon_row()),                                 # coupon consume
            _result(_deposit_row(status="Approved")),
        ]

        request = await SqlLedgerStore(db).process_deposit_request("dep-1", DepositStatus.APPROVED)

        assert request.status == DepositStatus.APPROVED
        assert db.execute.call_args_list[1].args[1] == {"user_id": "user-1", "amount": Decimal("1100.00")}
        tx_params = db.execute.call_args_list[2].args[1]
        assert tx_params["type"] == "Credit"
        assert tx_params["amount"] == Decimal("1100.00")
        assert "UTR777" in tx_params["description"]
        assert "₹100.00 Bonus" in tx_params["description"]
        assert tx_params["related_id"] == "dep-1"
        assert db.execute.call_args_list[3].args[1] == {"code": "BONUS10"}
        assert db.execute.call_args_list[4].args[1] == {"id": "dep-1", "status": "Approved"}
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_reject_credits_nothing(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_deposit_row()),
            _result(_deposit_row(status="Rejected")),
        ]

        request = await SqlLedgerStore(db).process_deposit_request("dep-1", DepositStatus.REJECTED)

        assert request.status == DepositStatus.REJECTED
        assert db.execute.await_count == 2
        assert db.execute.call_args_list[1].args[1] == {"id": "dep-1", "status": "Rejected"}
        db.commit.assert_awaited_once()

    async def test_second_decision_refused(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_deposit_row(status="Approved"))

        with pytest.raises(DepositAlreadyProcessedError):
            await SqlLedgerStore(db).process_deposit_request("dep-1", DepositStatus.REJECTED)

        assert db.execute.await_count == 1
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_repeated_approval_is_noop(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_deposit_row(status="Approved"))

        request = await SqlLedgerStore(db).process_deposit_request("dep-1", DepositStatus.APPROVED)

        assert request.status == DepositStatus.APPROVED
        assert db.execute.await_count == 1

    async def test_missing_request(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        with pytest.raises(DepositNotFoundError):
            await SqlLedgerStore(db).process_deposit_request("nope", DepositStatus.APPROVED)


class TestAdjustWallet:
    async def test_zero_touches_nothing(self) -> None:
        db = AsyncMock()
        assert await SqlLedgerStore(db).adjust_wallet("user-1", Decimal("0"), "x") is None
        db.execute.assert_not_awaited()

    async def test_debit_records_magnitude(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_user_row()),
            _result(_tx_row(amount=Decimal("5.25"), related_id="admin_adjustment")),
        ]

        await SqlLedgerStore(db).adjust_wallet("user-1", Decimal("-5.25"), "fix")

        assert db.execute.call_args_list[0].args[1] == {"user_id": "user-1", "amount": Decimal("-5.25")}
        tx_params = db.execute.call_args_list[1].args[1]
        assert tx_params["amount"] == Decimal("5.25")
        assert tx_params["type"] == "Debit"
        assert tx_params["description"] == "Admin: fix"


class TestErrorTranslation:
    async def test_connection_failure_is_network_unavailable(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = OperationalError("UPDATE users", {}, OSError("refused"))

        with pytest.raises(StoreError) as exc_info:
            await SqlLedgerStore(db).place_order(_draft(), enforce_balance=True)

        assert exc_info.value.kind is StoreErrorKind.NETWORK_UNAVAILABLE
        db.rollback.assert_awaited_once()

    async def test_read_failure_translated_without_rollback(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(StoreError) as exc_info:
            await SqlLedgerStore(db).get_user("user-1")

        assert exc_info.value.kind is StoreErrorKind.NETWORK_UNAVAILABLE
        db.rollback.assert_not_awaited()

    async def test_permission_denied(self) -> None:
        orig = Exception("permission denied for table users")
        orig.sqlstate = "42501"  # type: ignore[attr-defined]
        db = AsyncMock()
        db.execute.side_effect = DBAPIError("SELECT", {}, orig)

        with pytest.raises(StoreError) as exc_info:
            await SqlLedgerStore(db).list_transactions("user-1")

        assert exc_info.value.kind is StoreErrorKind.PERMISSION_DENIED


class TestUserAdministration:
    async def test_list_users(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_user_row(status="Suspended"))

        users = await SqlLedgerStore(db).list_users()

        assert [(u.id, u.status) for u in users] == [("user-1", UserStatus.SUSPENDED)]

    async def test_set_status_touches_only_status(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_user_row(status="Suspended"))

        user = await SqlLedgerStore(db).set_user_status("user-1", UserStatus.SUSPENDED)

        assert user.status == UserStatus.SUSPENDED
        assert user.wallet_balance == Decimal("500.00")
        assert db.execute.call_args.args[1] == {"id": "user-1", "status": "Suspended"}
        assert db.execute.await_count == 1
        db.commit.assert_awaited_once()

    async def test_set_status_unknown_user(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        with pytest.raises(UserNotFoundError):
            await SqlLedgerStore(db).set_user_status("ghost", UserStatus.ACTIVE)
        db.rollback.assert_awaited_once()
