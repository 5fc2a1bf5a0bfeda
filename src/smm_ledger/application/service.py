"""LedgerService — the ledger operations as the API and admin console see them.

Each public method runs one closure against the primary store and, when the
fallback policy allows, replays the same closure against the offline mirror.
A closure never mixes stores, so a multi-read operation such as ordering a
limited offer sees one consistent source.

Pre-checks (suspension, coupon validity, limited-offer caps) run here; the
atomic effects themselves belong to the store.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from config.settings import settings
from src.smm_catalog.domain.rules import check_limited_offer, quote_amount
from src.smm_common.datetime_utils import start_of_day, utc_now
from src.smm_common.enums import CounterName, CouponType, DepositStatus, OrderStatus, UserStatus
from src.smm_common.errors import (
    AccountSuspendedError,
    AdminRequiredError,
    ServiceNotFoundError,
    UserNotFoundError,
)
from src.smm_common.money import to_money
from src.smm_coupon.domain.models import Coupon
from src.smm_coupon.domain.rules import (
    bonus_amount,
    discounted_amount,
    require_type,
    validate_coupon,
)
from src.smm_ledger.application.fallback import FallbackPolicy, run_with_fallback
from src.smm_ledger.application.schemas import (
    AdjustWalletResponse,
    CreateDepositRequest,
    DepositListResponse,
    DepositResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    TransactionItem,
    TransactionListResponse,
    UserListResponse,
    UserResponse,
    WalletResponse,
)
from src.smm_ledger.domain.models import DepositDraft, OrderDraft, User, UserDraft
from src.smm_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerService:
    def __init__(
        self,
        store: LedgerStoreProtocol,
        mirror: LedgerStoreProtocol | None = None,
        policy: FallbackPolicy | None = None,
        enforce_balance: bool | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._policy = policy or FallbackPolicy.from_settings()
        self._enforce_balance = (
            settings.ENFORCE_NON_NEGATIVE_BALANCE if enforce_balance is None else enforce_balance
        )
        self._clock = clock

    async def _run(
        self, operation: str, call: Callable[[LedgerStoreProtocol], Awaitable[T]]
    ) -> tuple[T, bool]:
        return await run_with_fallback(operation, call, self._store, self._mirror, self._policy)

    @staticmethod
    async def _active_user(store: LedgerStoreProtocol, user_id: str) -> User:
        user = await store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if user.status == UserStatus.SUSPENDED:
            raise AccountSuspendedError()
        return user

    async def _valid_coupon(
        self, store: LedgerStoreProtocol, code: str, coupon_type: CouponType
    ) -> Coupon:
        coupon = validate_coupon(await store.find_coupon(code), self._clock())
        return require_type(coupon, coupon_type)

    # ------------------------------------------------------------------
    # Sequence allocator and users
    # ------------------------------------------------------------------

    async def next_value(self, counter: CounterName) -> int:
        value, _ = await self._run("next_value", lambda s: s.next_value(counter))
        return value

    async def get_or_create_user(self, draft: UserDraft) -> WalletResponse:
        user, offline = await self._run("create_user", lambda s: s.create_user(draft))
        return WalletResponse.from_user(user, offline)

    async def get_wallet(self, user_id: str) -> WalletResponse:
        async def call(store: LedgerStoreProtocol) -> User:
            user = await store.get_user(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            return user

        user, offline = await self._run("get_wallet", call)
        return WalletResponse.from_user(user, offline)

    async def require_admin(self, user_id: str) -> User:
        user, _ = await self._run("require_admin", lambda s: s.get_user(user_id))
        if user is None or not user.is_admin:
            raise AdminRequiredError()
        return user

    async def list_users(self) -> UserListResponse:
        users, offline = await self._run("list_users", lambda s: s.list_users())
        return UserListResponse(
            items=[UserResponse.from_domain(u, offline) for u in users], offline=offline
        )

    async def set_user_status(self, user_id: str, status: UserStatus) -> UserResponse:
        """Suspended users keep their balance but can no longer order or deposit."""
        user, offline = await self._run(
            "set_user_status", lambda s: s.set_user_status(user_id, status)
        )
        logger.info("User %s set to %s offline=%s", user_id, status.value, offline)
        return UserResponse.from_domain(user, offline)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def place_order(self, draft: OrderDraft) -> OrderResponse:
        """PlaceOrder with a caller-supplied amount."""

        async def call(store: LedgerStoreProtocol):
            await self._active_user(store, draft.user_id)
            if draft.coupon_code:
                coupon = await self._valid_coupon(store, draft.coupon_code, CouponType.DISCOUNT)
                draft.coupon_code = coupon.code
            return await store.place_order(draft, self._enforce_balance)

        order, offline = await self._run("place_order", call)
        logger.info(
            "Order %s placed: user=%s amount=%s offline=%s",
            order.display_id, order.user_id, order.amount, offline,
        )
        return OrderResponse.from_domain(order, offline)

    async def order_service(self, user_id: str, body: PlaceOrderRequest) -> OrderResponse:
        """Quote a service package, apply limited-offer caps and a discount coupon, then place."""

        async def call(store: LedgerStoreProtocol):
            now = self._clock()
            user = await self._active_user(store, user_id)
            service = await store.get_service(body.service_id)
            if service is None:
                raise ServiceNotFoundError(body.service_id)

            amount = quote_amount(service, body.quantity)
            coupon_code = None
            if body.coupon_code:
                coupon = await self._valid_coupon(store, body.coupon_code, CouponType.DISCOUNT)
                amount = to_money(discounted_amount(amount, coupon))
                coupon_code = coupon.code

            if service.is_limited_offer:
                user_orders = await store.list_orders(user_id=user_id)
                today = await store.list_orders(service_id=service.id, since=start_of_day(now))
                live_today = sum(1 for o in today if not o.is_cancelled)
                check_limited_offer(service, user_orders, live_today, now)

            draft = OrderDraft(
                user_id=user.id,
                user_name=user.name,
                service=service.title,
                target_url=body.target_url,
                quantity=body.quantity,
                amount=amount,
                service_id=service.id,
                unit=service.unit_name,
                user_whatsapp=user.whatsapp,
                coupon_code=coupon_code,
                is_limited_offer=service.is_limited_offer,
            )
            return await store.place_order(draft, self._enforce_balance)

        order, offline = await self._run("order_service", call)
        logger.info(
            "Order %s placed: user=%s service=%s amount=%s offline=%s",
            order.display_id, user_id, body.service_id, order.amount, offline,
        )
        return OrderResponse.from_domain(order, offline)

    async def update_order_status(
        self, order_id: str, new_status: OrderStatus, updated_by: str
    ) -> OrderResponse:
        order, offline = await self._run(
            "update_order_status",
            lambda s: s.update_order_status(order_id, new_status, updated_by),
        )
        logger.info(
            "Order %s set to %s by %s offline=%s",
            order.display_id, new_status.value, updated_by, offline,
        )
        return OrderResponse.from_domain(order, offline)

    async def cancel_order(self, order_id: str, updated_by: str) -> OrderResponse:
        return await self.update_order_status(order_id, OrderStatus.CANCELLED, updated_by)

    async def list_orders(self, user_id: str | None = None) -> OrderListResponse:
        orders, offline = await self._run("list_orders", lambda s: s.list_orders(user_id=user_id))
        return OrderListResponse(
            items=[OrderResponse.from_domain(o, offline) for o in orders], offline=offline
        )

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    async def create_deposit_request(
        self, user_id: str, body: CreateDepositRequest
    ) -> DepositResponse:
        async def call(store: LedgerStoreProtocol):
            user = await self._active_user(store, user_id)
            amount = to_money(body.amount)
            coupon = None
            if body.coupon_code:
                coupon = await self._valid_coupon(store, body.coupon_code, CouponType.BONUS)
            draft = DepositDraft(
                user_id=user.id,
                user_name=user.name,
                amount=amount,
                utr=body.utr.strip(),
                sender_upi=body.sender_upi.strip(),
                screenshot_url=body.screenshot_url,
                user_display_id=user.display_id,
                coupon_code=coupon.code if coupon else None,
                bonus_amount=bonus_amount(amount, coupon),
            )
            return await store.create_deposit_request(draft)

        request, offline = await self._run("create_deposit_request", call)
        logger.info(
            "Deposit request %s created: user=%s amount=%s bonus=%s offline=%s",
            request.display_id, user_id, request.amount, request.bonus_amount, offline,
        )
        return DepositResponse.from_domain(request, offline)

    async def process_deposit(
        self, request_id: str, new_status: DepositStatus
    ) -> DepositResponse:
        request, offline = await self._run(
            "process_deposit",
            lambda s: s.process_deposit_request(request_id, new_status),
        )
        logger.info(
            "Deposit request %s set to %s offline=%s",
            request.display_id, new_status.value, offline,
        )
        return DepositResponse.from_domain(request, offline)

    async def list_deposit_requests(self, user_id: str | None = None) -> DepositListResponse:
        requests, offline = await self._run(
            "list_deposit_requests", lambda s: s.list_deposit_requests(user_id=user_id)
        )
        return DepositListResponse(
            items=[DepositResponse.from_domain(r, offline) for r in requests], offline=offline
        )

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    async def adjust_wallet(self, user_id: str, amount: Decimal, reason: str) -> AdjustWalletResponse:
        amount = to_money(amount)
        if amount == 0:
            return AdjustWalletResponse(applied=False)
        tx, offline = await self._run(
            "adjust_wallet", lambda s: s.adjust_wallet(user_id, amount, reason)
        )
        logger.info("Wallet of %s adjusted by %s (%s) offline=%s", user_id, amount, reason, offline)
        return AdjustWalletResponse(
            applied=tx is not None,
            transaction=TransactionItem.from_domain(tx) if tx else None,
            offline=offline,
        )

    async def list_transactions(self, user_id: str) -> TransactionListResponse:
        txs, offline = await self._run("list_transactions", lambda s: s.list_transactions(user_id))
        return TransactionListResponse(
            items=[TransactionItem.from_domain(t) for t in txs], offline=offline
        )

