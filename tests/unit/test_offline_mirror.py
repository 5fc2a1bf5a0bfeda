"""Unit tests for OfflineLedgerStore over in-memory key-value storage."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.smm_catalog.domain.models import ServiceDraft
from src.smm_common.enums import (
    CounterName,
    CouponType,
    DepositStatus,
    OrderStatus,
    TransactionType,
    UserStatus,
)
from src.smm_common.errors import (
    CategoryNotFoundError,
    CouponExistsError,
    CouponUsageLimitError,
    DepositAlreadyProcessedError,
    InsufficientBalanceError,
    InvalidOrderAmountError,
    OrderNotFoundError,
    OrderStatusTransitionError,
    ServiceNotFoundError,
    UserNotFoundError,
)
from src.smm_ledger.domain.models import DepositDraft, OrderDraft, UserDraft
from src.smm_offline.mirror import (
    CATEGORIES_KEY,
    COUPONS_KEY,
    DEPOSITS_KEY,
    ORDERS_KEY,
    USERS_KEY,
    OfflineLedgerStore,
)
from src.smm_offline.storage import InMemoryKeyValueStorage

FIXED_NOW = datetime(2026, 3, 14, 10, 30, tzinfo=UTC)


def _seed_user(
    storage: InMemoryKeyValueStorage, balance: float = 500, user_id: str = "user-1"
) -> None:
    """Write a user the way the browser client stores it (numbers, camelCase)."""
    storage._data[USERS_KEY] = json.dumps([{
        "id": user_id,
        "displayId": "000001",
        "name": "Asha",
        "email": "asha@example.com",
        "avatarUrl": "https://example.com/a.png",
        "role": "user",
        "walletBalance": balance,
        "totalSpent": 0,
        "status": "Active",
    }])


def _order(amount: str = "198.00", **kwargs) -> OrderDraft:
    fields = {
        "user_id": "user-1",
        "user_name": "Asha",
        "service": "Instagram Followers",
        "target_url": "https://instagram.com/asha",
        "quantity": 1000,
        "amount": Decimal(amount),
    }
    fields.update(kwargs)
    return OrderDraft(**fields)


def _deposit(amount: str = "1000.00", **kwargs) -> DepositDraft:
    fields = {
        "user_id": "user-1",
        "user_name": "Asha",
        "amount": Decimal(amount),
        "utr": "UTR123456789",
        "sender_upi": "asha@upi",
        "screenshot_url": "https://example.com/proof.png",
    }
    fields.update(kwargs)
    return DepositDraft(**fields)


class TestOrderLifecycle:
    async def test_place_then_cancel_restores_wallet(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)

        order = await mirror.place_order(_order("198.00"), enforce_balance=True)

        user = await mirror.get_user("user-1")
        assert order.display_id == "00001"
        assert order.status == OrderStatus.PENDING
        assert user.wallet_balance == Decimal("302.00")
        assert user.total_spent == Decimal("198.00")
        txs = await mirror.list_transactions("user-1")
        assert len(txs) == 1
        assert txs[0].type == TransactionType.DEBIT
        assert txs[0].amount == Decimal("198.00")
        assert txs[0].description == "Order #00001 for Instagram Followers"
        assert txs[0].status == "Completed"
        assert txs[0].related_id == order.id

        cancelled = await mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")

        user = await mirror.get_user("user-1")
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.last_updated_by == "Admin"
        assert user.wallet_balance == Decimal("500.00")
        assert user.total_spent == Decimal("0.00")
        txs = await mirror.list_transactions("user-1")
        credits = [t for t in txs if t.type == TransactionType.CREDIT]
        assert len(credits) == 1
        assert credits[0].related_id == order.id
        assert credits[0].description == "Refund for Cancelled Order #00001"
        assert credits[0].status == "Approved"

    async def test_cancel_twice_refunds_once(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)
        order = await mirror.place_order(_order("120.50"), enforce_balance=True)

        await mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")
        await mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("500.00")
        txs = await mirror.list_transactions("user-1")
        assert sum(1 for t in txs if t.type == TransactionType.CREDIT) == 1

    async def test_concurrent_cancellations_refund_once(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)
        order = await mirror.place_order(_order("50.00"), enforce_balance=True)

        await asyncio.gather(*[
            mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")
            for _ in range(5)
        ])

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("500.00")

    async def test_completed_order_can_still_be_cancelled_with_refund(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)
        order = await mirror.place_order(_order("100.00"), enforce_balance=True)
        await mirror.update_order_status(order.id, OrderStatus.COMPLETED, "Admin")

        await mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("500.00")

    async def test_cancelled_order_cannot_be_reopened(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)
        order = await mirror.place_order(_order("100.00"), enforce_balance=True)
        await mirror.update_order_status(order.id, OrderStatus.CANCELLED, "Admin")

        with pytest.raises(OrderStatusTransitionError):
            await mirror.update_order_status(order.id, OrderStatus.PENDING, "Admin")

    async def test_status_change_without_refund_keeps_wallet(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 500)
        order = await mirror.place_order(_order("100.00"), enforce_balance=True)

        updated = await mirror.update_order_status(order.id, OrderStatus.IN_PROGRESS, "Ravi")

        assert updated.status == OrderStatus.IN_PROGRESS
        assert updated.last_updated_by == "Ravi"
        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("400.00")

    async def test_unknown_order_raises_not_found(self, mirror: OfflineLedgerStore) -> None:
        with pytest.raises(OrderNotFoundError):
            await mirror.update_order_status("missing", OrderStatus.CANCELLED, "Admin")


class TestPlaceOrder:
    async def test_limited_and_standard_orders_use_separate_sequences(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 1000)

        first = await mirror.place_order(_order("10.00"), enforce_balance=True)
        limited = await mirror.place_order(
            _order("10.00", is_limited_offer=True), enforce_balance=True
        )
        second = await mirror.place_order(_order("10.00"), enforce_balance=True)

        assert first.display_id == "00001"
        assert limited.display_id == "L00001"
        assert second.display_id == "00002"

    async def test_order_ids_continue_from_stored_maximum(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 1000)
        storage._data[ORDERS_KEY] = json.dumps([
            {
                "id": "o-41", "displayId": "L00041", "userId": "user-1", "userName": "Asha",
                "service": "Reels Views", "targetUrl": "x", "quantity": 1, "amount": 5,
                "date": "2026-03-01T08:00:00.000Z", "status": "Completed",
                "isLimitedOffer": True,
            },
            {
                "id": "o-7", "displayId": "00007", "userId": "user-1", "userName": "Asha",
                "service": "Likes", "targetUrl": "x", "quantity": 1, "amount": 5,
                "date": "2026-03-01T08:00:00.000Z", "status": "Completed",
            },
        ])

        limited = await mirror.place_order(
            _order("10.00", is_limited_offer=True), enforce_balance=True
        )
        standard = await mirror.place_order(_order("10.00"), enforce_balance=True)

        assert limited.display_id == "L00042"
        assert standard.display_id == "00008"

    async def test_insufficient_balance_leaves_storage_untouched(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 100)
        before = storage.snapshot()

        with pytest.raises(InsufficientBalanceError):
            await mirror.place_order(_order("198.00"), enforce_balance=True)

        assert storage.snapshot() == before

    async def test_balance_may_go_negative_when_not_enforced(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 100)

        await mirror.place_order(_order("198.00"), enforce_balance=False)

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("-98.00")

    async def test_negative_amount_rejected(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 100)
        with pytest.raises(InvalidOrderAmountError):
            await mirror.place_order(_order("-1.00"), enforce_balance=True)

    async def test_unknown_user_raises_not_found(self, mirror: OfflineLedgerStore) -> None:
        with pytest.raises(UserNotFoundError):
            await mirror.place_order(_order(), enforce_balance=True)

    async def test_balance_rounded_to_two_places(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0.3)

        await mirror.place_order(_order("0.10"), enforce_balance=True)
        await mirror.place_order(_order("0.10"), enforce_balance=True)

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("0.10")
        assert user.total_spent == Decimal("0.20")

    async def test_coupon_consumed_and_exhausted(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 1000)
        await mirror.create_coupon("save10", Decimal("10"), 1, None, False, CouponType.DISCOUNT)

        await mirror.place_order(_order("90.00", coupon_code="SAVE10"), enforce_balance=True)

        coupon = await mirror.find_coupon("save10")
        assert coupon.used_count == 1
        with pytest.raises(CouponUsageLimitError):
            await mirror.place_order(_order("90.00", coupon_code="SAVE10"), enforce_balance=True)

    async def test_limited_offer_bumps_service_counter(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 1000)
        service = await mirror.create_service(ServiceDraft(
            title="Flash Followers", description="", rate=Decimal("50"),
            rate_per_quantity=1000, min_quantity=100, max_quantity=1000,
            category_id="cat-1", service_type="Followers", unit_name="Followers",
            is_limited_offer=True, total_limit=10,
        ))

        await mirror.place_order(
            _order("50.00", service_id=service.id, is_limited_offer=True), enforce_balance=True
        )

        refreshed = await mirror.get_service(service.id)
        assert refreshed.current_orders_count == 1


class TestDeposits:
    async def test_approve_with_bonus_credits_once(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        request = await mirror.create_deposit_request(
            _deposit("1000.00", bonus_amount=Decimal("100.00"))
        )
        assert request.display_id == "0000001"
        assert request.status == DepositStatus.PENDING

        approved = await mirror.process_deposit_request(request.id, DepositStatus.APPROVED)
        again = await mirror.process_deposit_request(request.id, DepositStatus.APPROVED)

        user = await mirror.get_user("user-1")
        assert approved.status == DepositStatus.APPROVED
        assert again.status == DepositStatus.APPROVED
        assert user.wallet_balance == Decimal("1100.00")
        assert user.total_spent == Decimal("0.00")
        txs = await mirror.list_transactions("user-1")
        assert len(txs) == 1
        assert txs[0].amount == Decimal("1100.00")
        assert "UTR123456789" in txs[0].description
        assert "₹100.00" in txs[0].description

    async def test_reject_credits_nothing(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        request = await mirror.create_deposit_request(_deposit())

        await mirror.process_deposit_request(request.id, DepositStatus.REJECTED)

        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("0.00")
        assert await mirror.list_transactions("user-1") == []

    async def test_processed_request_cannot_change(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        request = await mirror.create_deposit_request(_deposit())
        await mirror.process_deposit_request(request.id, DepositStatus.APPROVED)

        with pytest.raises(DepositAlreadyProcessedError):
            await mirror.process_deposit_request(request.id, DepositStatus.REJECTED)

    async def test_bonus_coupon_consumed_on_approval(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        await mirror.create_coupon("BONUS10", Decimal("10"), 0, None, False, CouponType.BONUS)
        request = await mirror.create_deposit_request(
            _deposit(coupon_code="BONUS10", bonus_amount=Decimal("100.00"))
        )
        assert (await mirror.find_coupon("BONUS10")).used_count == 0

        await mirror.process_deposit_request(request.id, DepositStatus.APPROVED)

        assert (await mirror.find_coupon("BONUS10")).used_count == 1

    async def test_deposit_ids_follow_running_maximum(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        storage._data[DEPOSITS_KEY] = json.dumps([{
            "id": "d-9", "displayId": "0000009", "userId": "user-1", "userName": "Asha",
            "amount": 100, "utr": "U", "senderUpi": "s", "screenshotUrl": "",
            "status": "Approved", "date": "2026-03-01T08:00:00.000Z",
        }])

        request = await mirror.create_deposit_request(_deposit())

        assert request.display_id == "0000010"

    async def test_legacy_deposit_ids_use_count_plus_three(
        self, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 0)
        legacy = OfflineLedgerStore(storage, legacy_deposit_ids=True, clock=lambda: FIXED_NOW)

        first = await legacy.create_deposit_request(_deposit())
        second = await legacy.create_deposit_request(_deposit())

        assert first.display_id == "0000003"
        assert second.display_id == "0000004"


class TestAdjustWallet:
    async def test_zero_is_silent_noop(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 10)
        before = storage.snapshot()

        assert await mirror.adjust_wallet("user-1", Decimal("0"), "nothing") is None

        assert storage.snapshot() == before

    async def test_credit_and_debit_entries(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 10)

        credit = await mirror.adjust_wallet("user-1", Decimal("25.50"), "goodwill")
        debit = await mirror.adjust_wallet("user-1", Decimal("-5.25"), "correction")

        assert credit.type == TransactionType.CREDIT
        assert credit.amount == Decimal("25.50")
        assert credit.description == "Admin: goodwill"
        assert credit.status == "Approved"
        assert credit.related_id == "admin_adjustment"
        assert debit.type == TransactionType.DEBIT
        assert debit.amount == Decimal("5.25")
        assert debit.status == "Completed"
        user = await mirror.get_user("user-1")
        assert user.wallet_balance == Decimal("30.25")
        assert user.total_spent == Decimal("0.00")


class TestSequence:
    async def test_concurrent_next_value_has_no_duplicates(
        self, mirror: OfflineLedgerStore
    ) -> None:
        start = await mirror.next_value(CounterName.ORDERS)

        values = await asyncio.gather(*[mirror.next_value(CounterName.ORDERS) for _ in range(20)])

        assert sorted(values) == list(range(start + 1, start + 21))

    async def test_counters_are_independent(self, mirror: OfflineLedgerStore) -> None:
        assert await mirror.next_value(CounterName.DEPOSITS) == 1
        assert await mirror.next_value(CounterName.DEPOSITS) == 2
        assert await mirror.next_value(CounterName.USERS) == 1

    async def test_create_user_mints_display_id_once(self, mirror: OfflineLedgerStore) -> None:
        draft = UserDraft(id="uid-9", name="Ravi", email="ravi@example.com")

        first = await mirror.create_user(draft)
        again = await mirror.create_user(draft)

        assert first.display_id == "000001"
        assert again.display_id == "000001"
        assert first.created_at == FIXED_NOW

    async def test_service_ids_are_six_digits(self, mirror: OfflineLedgerStore) -> None:
        draft = ServiceDraft(
            title="YouTube Views", description="", rate=Decimal("30"),
            rate_per_quantity=1000, min_quantity=100, max_quantity=100000,
            category_id="yt", service_type="Views", unit_name="Views",
        )
        first = await mirror.create_service(draft)
        second = await mirror.create_service(draft)
        assert (first.id, second.id) == ("000001", "000002")


class TestCoupons:
    async def test_create_normalises_code_and_rejects_duplicates(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        coupon = await mirror.create_coupon(" diwali ", Decimal("15"), 0, None, True, CouponType.DISCOUNT)

        assert coupon.code == "DIWALI"
        assert json.loads(storage._data[COUPONS_KEY])[0]["code"] == "DIWALI"
        with pytest.raises(CouponExistsError):
            await mirror.create_coupon("Diwali", Decimal("5"), 0, None, False, CouponType.DISCOUNT)

    async def test_delete(self, mirror: OfflineLedgerStore) -> None:
        coupon = await mirror.create_coupon("GONE", Decimal("5"), 0, None, False, CouponType.DISCOUNT)
        await mirror.delete_coupon(coupon.id)
        assert await mirror.find_coupon("GONE") is None


class TestListings:
    async def test_list_orders_filters_by_service_and_time(
        self, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 1000)
        clock_value = [FIXED_NOW - timedelta(days=1)]
        store = OfflineLedgerStore(storage, clock=lambda: clock_value[0])
        await store.place_order(_order("1.00", service_id="000001"), enforce_balance=True)
        clock_value[0] = FIXED_NOW
        await store.place_order(_order("1.00", service_id="000001"), enforce_balance=True)
        await store.place_order(_order("1.00", service_id="000002"), enforce_balance=True)

        today = await store.list_orders(
            service_id="000001", since=datetime(2026, 3, 14, tzinfo=UTC)
        )
        mine = await store.list_orders(user_id="user-1")

        assert [o.display_id for o in today] == ["00002"]
        assert len(mine) == 3
        assert mine[-1].display_id == "00001"


class TestUserAdministration:
    async def test_suspend_keeps_wallet(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 250)

        user = await mirror.set_user_status("user-1", UserStatus.SUSPENDED)

        assert user.status == UserStatus.SUSPENDED
        stored = json.loads(storage._data[USERS_KEY])[0]
        assert stored["status"] == "Suspended"
        assert (await mirror.get_user("user-1")).wallet_balance == Decimal("250.00")
        assert await mirror.list_transactions("user-1") == []

    async def test_unknown_user(self, mirror: OfflineLedgerStore) -> None:
        with pytest.raises(UserNotFoundError):
            await mirror.set_user_status("ghost", UserStatus.SUSPENDED)

    async def test_list_users_in_display_order(self, mirror: OfflineLedgerStore) -> None:
        await mirror.create_user(UserDraft(id="uid-b", name="Ravi", email="ravi@example.com"))
        await mirror.create_user(UserDraft(id="uid-a", name="Asha", email="asha@example.com"))

        users = await mirror.list_users()

        assert [u.display_id for u in users] == ["000001", "000002"]


def _service_draft(**kwargs) -> ServiceDraft:
    fields = {
        "title": "Flash Likes", "description": "", "rate": Decimal("10"),
        "rate_per_quantity": 1000, "min_quantity": 100, "max_quantity": 1000,
        "category_id": "cat-instagram", "service_type": "Likes", "unit_name": "Likes",
    }
    fields.update(kwargs)
    return ServiceDraft(**fields)


class TestCatalogAdministration:
    async def test_update_replaces_caps_and_keeps_order_count(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        _seed_user(storage, 100)
        service = await mirror.create_service(_service_draft(is_limited_offer=True, total_limit=5))
        await mirror.place_order(
            _order("1.00", service_id=service.id, is_limited_offer=True), enforce_balance=True
        )

        updated = await mirror.update_service(
            service.id, _service_draft(is_limited_offer=True, total_limit=50, daily_limit=10)
        )

        assert updated.id == service.id
        assert (updated.total_limit, updated.daily_limit) == (50, 10)
        assert updated.current_orders_count == 1
        assert (await mirror.get_service(service.id)).total_limit == 50

    async def test_update_and_delete_unknown_service(self, mirror: OfflineLedgerStore) -> None:
        with pytest.raises(ServiceNotFoundError):
            await mirror.update_service("999999", _service_draft())
        with pytest.raises(ServiceNotFoundError):
            await mirror.delete_service("999999")

    async def test_delete_service(self, mirror: OfflineLedgerStore) -> None:
        keep = await mirror.create_service(_service_draft(title="Keep"))
        gone = await mirror.create_service(_service_draft(title="Gone"))

        await mirror.delete_service(gone.id)

        assert [s.id for s in await mirror.list_services()] == [keep.id]

    async def test_default_categories_until_first_change(
        self, mirror: OfflineLedgerStore, storage: InMemoryKeyValueStorage
    ) -> None:
        defaults = await mirror.list_categories()
        assert [c.id for c in defaults] == [
            "cat-instagram", "cat-youtube", "cat-facebook", "cat-telegram",
        ]
        assert CATEGORIES_KEY not in storage._data

        added = await mirror.create_category("Twitter", "TwitterIcon")
        await mirror.delete_category("cat-facebook")

        assert added.id.startswith("mock-cat-")
        stored = json.loads(storage._data[CATEGORIES_KEY])
        assert [c["id"] for c in stored] == ["cat-instagram", "cat-youtube", "cat-telegram", added.id]
        assert stored[-1]["iconName"] == "TwitterIcon"

    async def test_delete_unknown_category(self, mirror: OfflineLedgerStore) -> None:
        with pytest.raises(CategoryNotFoundError):
            await mirror.delete_category("cat-myspace")
