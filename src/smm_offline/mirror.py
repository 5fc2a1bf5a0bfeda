"""OfflineLedgerStore — the ledger against local key-value storage.

Used when the live store is unreachable, and for development without a
database. Observable results match SqlLedgerStore: the same display-id
formats, the same audit descriptions and the same 2-decimal balances, because
both call into the shared domain rules.

Concurrency model: one writer. Every mutation runs under an asyncio.Lock,
builds the new collections in memory, and writes them back with a single
set_items() call, so a failure part-way through leaves storage unchanged.
"""

import asyncio
import dataclasses
import json
import uuid
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from src.smm_catalog.domain.models import Category, ServiceDraft, ServicePackage
from src.smm_common.datetime_utils import ensure_aware, utc_now
from src.smm_common.display_id import format_display_id, order_counter, parse_display_number
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
    DepositNotFoundError,
    InsufficientBalanceError,
    InvalidCouponError,
    OrderNotFoundError,
    ServiceNotFoundError,
    UserNotFoundError,
)
from src.smm_common.money import ZERO, to_money
from src.smm_coupon.domain.models import Coupon
from src.smm_coupon.domain.rules import normalize_code
from src.smm_ledger.domain.models import (
    DepositDraft,
    DepositRequest,
    Order,
    OrderDraft,
    Transaction,
    User,
    UserDraft,
)
from src.smm_ledger.domain.rules import (
    ADMIN_ADJUSTMENT_REF,
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
from src.smm_offline.codec import (
    CategoryRecord,
    CouponRecord,
    DepositRecord,
    OrderRecord,
    ServiceRecord,
    TransactionRecord,
    UserRecord,
    decode,
    encode,
)
from src.smm_offline.storage import KeyValueStorageProtocol

USERS_KEY = "mock_users"
ORDERS_KEY = "mock_orders"
DEPOSITS_KEY = "mock_deposits"
TRANSACTIONS_KEY = "mock_transactions"
COUPONS_KEY = "mock_coupons"
SERVICES_KEY = "mock_services"
CATEGORIES_KEY = "mock_categories"
COUNTERS_KEY = "mock_counters"

# Served until the first category change is written.
DEFAULT_CATEGORIES = (
    Category("cat-instagram", "Instagram", "InstagramIcon"),
    Category("cat-youtube", "YouTube", "YouTubeIcon"),
    Category("cat-facebook", "Facebook", "FacebookIcon"),
    Category("cat-telegram", "Telegram", "TelegramIcon"),
)

# Offset of the storefront's original deposit numbering (stored count + 3).
_LEGACY_DEPOSIT_OFFSET = 3


def _max_number(display_ids: list[str | None]) -> int:
    numbers = [n for n in (parse_display_number(d) for d in display_ids) if n is not None]
    return max(numbers, default=0)


class _Snapshot:
    """Collections loaded for one operation, plus the keys it changed."""

    def __init__(self) -> None:
        self.users: list[User] = []
        self.orders: list[Order] = []
        self.deposits: list[DepositRequest] = []
        self.transactions: list[Transaction] = []
        self.coupons: list[Coupon] = []
        self.services: list[ServicePackage] = []
        self.categories: list[Category] = []
        self.counters: dict[str, int] = {}
        self.dirty: set[str] = set()

    def find_user(self, user_id: str) -> User:
        for user in self.users:
            if user.id == user_id:
                return user
        raise UserNotFoundError(user_id)

    def find_coupon(self, code: str) -> Coupon | None:
        wanted = normalize_code(code)
        return next((c for c in self.coupons if c.code == wanted), None)


class OfflineLedgerStore:
    """Ledger, coupon and catalog store over a KeyValueStorageProtocol."""

    def __init__(
        self,
        storage: KeyValueStorageProtocol,
        legacy_deposit_ids: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._legacy_deposit_ids = legacy_deposit_ids
        self._clock = clock
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def _load(self, *keys: str) -> _Snapshot:
        snap = _Snapshot()
        for key in keys:
            raw = await self._storage.get_item(key)
            if key == USERS_KEY:
                snap.users = [r.to_domain() for r in decode(raw, UserRecord)]
            elif key == ORDERS_KEY:
                snap.orders = [r.to_domain() for r in decode(raw, OrderRecord)]
            elif key == DEPOSITS_KEY:
                snap.deposits = [r.to_domain() for r in decode(raw, DepositRecord)]
            elif key == TRANSACTIONS_KEY:
                snap.transactions = [r.to_domain() for r in decode(raw, TransactionRecord)]
            elif key == COUPONS_KEY:
                snap.coupons = [r.to_domain() for r in decode(raw, CouponRecord)]
            elif key == SERVICES_KEY:
                snap.services = [r.to_domain() for r in decode(raw, ServiceRecord)]
            elif key == CATEGORIES_KEY:
                if raw is None:
                    snap.categories = [dataclasses.replace(c) for c in DEFAULT_CATEGORIES]
                else:
                    snap.categories = [r.to_domain() for r in decode(raw, CategoryRecord)]
            elif key == COUNTERS_KEY:
                snap.counters = {k: int(v) for k, v in json.loads(raw or "{}").items()}
        return snap

    async def _save(self, snap: _Snapshot) -> None:
        encoders = {
            USERS_KEY: lambda: encode([UserRecord.from_domain(u) for u in snap.users]),
            ORDERS_KEY: lambda: encode([OrderRecord.from_domain(o) for o in snap.orders]),
            DEPOSITS_KEY: lambda: encode([DepositRecord.from_domain(d) for d in snap.deposits]),
            TRANSACTIONS_KEY: lambda: encode(
                [TransactionRecord.from_domain(t) for t in snap.transactions]
            ),
            COUPONS_KEY: lambda: encode([CouponRecord.from_domain(c) for c in snap.coupons]),
            SERVICES_KEY: lambda: encode([ServiceRecord.from_domain(s) for s in snap.services]),
            CATEGORIES_KEY: lambda: encode(
                [CategoryRecord.from_domain(c) for c in snap.categories]
            ),
            COUNTERS_KEY: lambda: json.dumps(snap.counters),
        }
        await self._storage.set_items({key: encoders[key]() for key in snap.dirty})

    # ------------------------------------------------------------------
    # Sequence allocator
    # ------------------------------------------------------------------

    def _highest_minted(self, snap: _Snapshot, counter: CounterName) -> int:
        if counter is CounterName.ORDERS:
            return _max_number([o.display_id for o in snap.orders if not o.is_limited_offer])
        if counter is CounterName.LIMITED_ORDERS:
            return _max_number([o.display_id for o in snap.orders if o.is_limited_offer])
        if counter is CounterName.DEPOSITS:
            return _max_number([d.display_id for d in snap.deposits])
        if counter is CounterName.SERVICES:
            return _max_number([s.id for s in snap.services])
        return _max_number([u.display_id for u in snap.users])

    def _mint(self, snap: _Snapshot, counter: CounterName) -> int:
        """max(stored counter, highest id in storage) + 1, recorded in the counters key."""
        value = max(snap.counters.get(counter.value, 0), self._highest_minted(snap, counter)) + 1
        snap.counters[counter.value] = value
        snap.dirty.add(COUNTERS_KEY)
        return value

    @staticmethod
    def _source_key(counter: CounterName) -> str:
        return {
            CounterName.ORDERS: ORDERS_KEY,
            CounterName.LIMITED_ORDERS: ORDERS_KEY,
            CounterName.DEPOSITS: DEPOSITS_KEY,
            CounterName.SERVICES: SERVICES_KEY,
            CounterName.USERS: USERS_KEY,
        }[counter]

    async def next_value(self, counter: CounterName) -> int:
        async with self._lock:
            snap = await self._load(COUNTERS_KEY, self._source_key(counter))
            value = self._mint(snap, counter)
            await self._save(snap)
            return value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        snap = await self._load(USERS_KEY)
        return next((u for u in snap.users if u.id == user_id), None)

    async def list_users(self) -> list[User]:
        snap = await self._load(USERS_KEY)
        return sorted(snap.users, key=lambda u: u.display_id or "")

    async def get_order(self, order_id: str) -> Order | None:
        snap = await self._load(ORDERS_KEY)
        return next((o for o in snap.orders if o.id == order_id), None)

    async def find_coupon(self, code: str) -> Coupon | None:
        snap = await self._load(COUPONS_KEY)
        return snap.find_coupon(code)

    async def get_service(self, service_id: str) -> ServicePackage | None:
        snap = await self._load(SERVICES_KEY)
        return next((s for s in snap.services if s.id == service_id), None)

    async def list_orders(
        self,
        user_id: str | None = None,
        service_id: str | None = None,
        since: datetime | None = None,
    ) -> list[Order]:
        snap = await self._load(ORDERS_KEY)
        orders = [
            o for o in snap.orders
            if (user_id is None or o.user_id == user_id)
            and (service_id is None or o.service_id == service_id)
            and (since is None or o.created_at >= ensure_aware(since))
        ]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        snap = await self._load(TRANSACTIONS_KEY)
        txs = [t for t in snap.transactions if t.user_id == user_id]
        return sorted(txs, key=lambda t: t.created_at, reverse=True)

    async def list_deposit_requests(self, user_id: str | None = None) -> list[DepositRequest]:
        snap = await self._load(DEPOSITS_KEY)
        deposits = [d for d in snap.deposits if user_id is None or d.user_id == user_id]
        return sorted(deposits, key=lambda d: d.created_at, reverse=True)

    async def list_coupons(self) -> list[Coupon]:
        snap = await self._load(COUPONS_KEY)
        return snap.coupons

    async def list_services(self) -> list[ServicePackage]:
        snap = await self._load(SERVICES_KEY)
        return sorted(snap.services, key=lambda s: s.id)

    async def list_categories(self) -> list[Category]:
        snap = await self._load(CATEGORIES_KEY)
        return snap.categories

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------

    async def create_user(self, draft: UserDraft) -> User:
        async with self._lock:
            snap = await self._load(USERS_KEY, COUNTERS_KEY)
            existing = next((u for u in snap.users if u.id == draft.id), None)
            if existing is not None:
                return existing
            value = self._mint(snap, CounterName.USERS)
            user = User(
                id=draft.id,
                display_id=format_display_id(CounterName.USERS, value),
                name=draft.name,
                email=draft.email,
                role=draft.role,
                whatsapp=draft.whatsapp,
                created_at=self._clock(),
            )
            snap.users.append(user)
            snap.dirty.add(USERS_KEY)
            await self._save(snap)
            return user

    def _consume_coupon(self, snap: _Snapshot, code: str) -> None:
        coupon = snap.find_coupon(code)
        if coupon is None:
            raise InvalidCouponError()
        if coupon.is_exhausted:
            raise CouponUsageLimitError()
        coupon.used_count += 1
        snap.dirty.add(COUPONS_KEY)

    def _record_transaction(
        self,
        snap: _Snapshot,
        user_id: str,
        tx_type: TransactionType,
        amount: Decimal,
        description: str,
        status: str,
        related_id: str,
    ) -> Transaction:
        tx = Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=tx_type,
            amount=to_money(amount),
            description=description,
            status=status,
            related_id=related_id,
            created_at=self._clock(),
        )
        snap.transactions.insert(0, tx)
        snap.dirty.add(TRANSACTIONS_KEY)
        return tx

    async def place_order(self, draft: OrderDraft, enforce_balance: bool) -> Order:
        amount = check_order_amount(draft.amount)
        async with self._lock:
            snap = await self._load(
                USERS_KEY, ORDERS_KEY, TRANSACTIONS_KEY, COUPONS_KEY, SERVICES_KEY, COUNTERS_KEY
            )
            user = snap.find_user(draft.user_id)
            if enforce_balance and user.wallet_balance < amount:
                raise InsufficientBalanceError(amount, user.wallet_balance)

            counter = order_counter(draft.is_limited_offer)
            display_id = format_display_id(counter, self._mint(snap, counter))
            order = Order(
                id=str(uuid.uuid4()),
                display_id=display_id,
                user_id=draft.user_id,
                user_name=draft.user_name,
                service=draft.service,
                target_url=draft.target_url,
                quantity=draft.quantity,
                amount=amount,
                status=OrderStatus.PENDING,
                created_at=self._clock(),
                service_id=draft.service_id,
                unit=draft.unit,
                user_whatsapp=draft.user_whatsapp,
                coupon_code=draft.coupon_code,
                is_limited_offer=draft.is_limited_offer,
            )
            snap.orders.insert(0, order)
            snap.dirty.add(ORDERS_KEY)

            user.wallet_balance, user.total_spent = debit_order(
                user.wallet_balance, user.total_spent, amount
            )
            snap.dirty.add(USERS_KEY)

            self._record_transaction(
                snap,
                user_id=draft.user_id,
                tx_type=TransactionType.DEBIT,
                amount=amount,
                description=order_description(display_id, draft.service),
                status=OrderStatus.COMPLETED.value,
                related_id=order.id,
            )
            if draft.coupon_code:
                self._consume_coupon(snap, draft.coupon_code)
            if draft.is_limited_offer and draft.service_id:
                service = next((s for s in snap.services if s.id == draft.service_id), None)
                if service is None:
                    raise ServiceNotFoundError(draft.service_id)
                service.current_orders_count += 1
                snap.dirty.add(SERVICES_KEY)

            await self._save(snap)
            return order

    async def update_order_status(
        self, order_id: str, new_status: OrderStatus, updated_by: str
    ) -> Order:
        async with self._lock:
            snap = await self._load(USERS_KEY, ORDERS_KEY, TRANSACTIONS_KEY)
            order = next((o for o in snap.orders if o.id == order_id), None)
            if order is None:
                raise OrderNotFoundError(order_id)
            if not check_order_transition(order, new_status):
                return order

            if refund_due(order.status, new_status):
                user = snap.find_user(order.user_id)
                user.wallet_balance, user.total_spent = refund_order(
                    user.wallet_balance, user.total_spent, order.amount
                )
                snap.dirty.add(USERS_KEY)
                self._record_transaction(
                    snap,
                    user_id=order.user_id,
                    tx_type=TransactionType.CREDIT,
                    amount=order.amount,
                    description=refund_description(order),
                    status=DepositStatus.APPROVED.value,
                    related_id=order.id,
                )

            order.status = new_status
            order.last_updated_by = updated_by
            snap.dirty.add(ORDERS_KEY)
            await self._save(snap)
            return order

    async def create_deposit_request(self, draft: DepositDraft) -> DepositRequest:
        async with self._lock:
            snap = await self._load(DEPOSITS_KEY, COUNTERS_KEY)
            if self._legacy_deposit_ids:
                value = len(snap.deposits) + _LEGACY_DEPOSIT_OFFSET
            else:
                value = self._mint(snap, CounterName.DEPOSITS)
            request = DepositRequest(
                id=str(uuid.uuid4()),
                display_id=format_display_id(CounterName.DEPOSITS, value),
                user_id=draft.user_id,
                user_name=draft.user_name,
                amount=to_money(draft.amount),
                utr=draft.utr,
                sender_upi=draft.sender_upi,
                screenshot_url=draft.screenshot_url,
                status=DepositStatus.PENDING,
                created_at=self._clock(),
                user_display_id=draft.user_display_id,
                coupon_code=draft.coupon_code,
                bonus_amount=draft.bonus_amount,
            )
            snap.deposits.insert(0, request)
            snap.dirty.add(DEPOSITS_KEY)
            await self._save(snap)
            return request

    async def process_deposit_request(
        self, request_id: str, new_status: DepositStatus
    ) -> DepositRequest:
        async with self._lock:
            snap = await self._load(USERS_KEY, DEPOSITS_KEY, TRANSACTIONS_KEY, COUPONS_KEY)
            request = next((d for d in snap.deposits if d.id == request_id), None)
            if request is None:
                raise DepositNotFoundError(request_id)
            if not check_deposit_transition(request, new_status):
                return request

            if new_status == DepositStatus.APPROVED:
                user = snap.find_user(request.user_id)
                user.wallet_balance = to_money(user.wallet_balance + request.total_credit)
                snap.dirty.add(USERS_KEY)
                self._record_transaction(
                    snap,
                    user_id=request.user_id,
                    tx_type=TransactionType.CREDIT,
                    amount=request.total_credit,
                    description=deposit_description(request),
                    status=DepositStatus.APPROVED.value,
                    related_id=request.id,
                )
                if request.coupon_code:
                    self._consume_coupon(snap, request.coupon_code)

            request.status = new_status
            snap.dirty.add(DEPOSITS_KEY)
            await self._save(snap)
            return request

    async def adjust_wallet(
        self, user_id: str, amount: Decimal, reason: str
    ) -> Transaction | None:
        amount = to_money(amount)
        if amount == ZERO:
            return None
        tx_type, magnitude, status, description = adjustment_entry(amount, reason)
        async with self._lock:
            snap = await self._load(USERS_KEY, TRANSACTIONS_KEY)
            user = snap.find_user(user_id)
            user.wallet_balance = to_money(user.wallet_balance + amount)
            snap.dirty.add(USERS_KEY)
            tx = self._record_transaction(
                snap,
                user_id=user_id,
                tx_type=tx_type,
                amount=magnitude,
                description=description,
                status=status,
                related_id=ADMIN_ADJUSTMENT_REF,
            )
            await self._save(snap)
            return tx

    async def set_user_status(self, user_id: str, status: UserStatus) -> User:
        async with self._lock:
            snap = await self._load(USERS_KEY)
            user = snap.find_user(user_id)
            user.status = status
            snap.dirty.add(USERS_KEY)
            await self._save(snap)
            return user

    # ------------------------------------------------------------------
    # Coupon and catalog administration
    # ------------------------------------------------------------------

    async def create_coupon(
        self,
        code: str,
        discount_percent: Decimal,
        usage_limit: int,
        expires_at: datetime | None,
        is_auto_apply: bool,
        coupon_type: CouponType,
    ) -> Coupon:
        async with self._lock:
            snap = await self._load(COUPONS_KEY)
            code = normalize_code(code)
            if snap.find_coupon(code) is not None:
                raise CouponExistsError(code)
            coupon = Coupon(
                id=str(uuid.uuid4()),
                code=code,
                discount_percent=Decimal(discount_percent),
                usage_limit=usage_limit,
                used_count=0,
                created_at=self._clock(),
                expires_at=expires_at,
                is_auto_apply=is_auto_apply,
                type=coupon_type,
            )
            snap.coupons.append(coupon)
            snap.dirty.add(COUPONS_KEY)
            await self._save(snap)
            return coupon

    async def delete_coupon(self, coupon_id: str) -> None:
        async with self._lock:
            snap = await self._load(COUPONS_KEY)
            snap.coupons = [c for c in snap.coupons if c.id != coupon_id]
            snap.dirty.add(COUPONS_KEY)
            await self._save(snap)

    async def create_service(self, draft: ServiceDraft) -> ServicePackage:
        async with self._lock:
            snap = await self._load(SERVICES_KEY, COUNTERS_KEY)
            value = self._mint(snap, CounterName.SERVICES)
            service = ServicePackage(
                id=format_display_id(CounterName.SERVICES, value),
                **dataclasses.asdict(draft),
            )
            snap.services.append(service)
            snap.dirty.add(SERVICES_KEY)
            await self._save(snap)
            return service

    def _find_service(self, snap: _Snapshot, service_id: str) -> ServicePackage:
        service = next((s for s in snap.services if s.id == service_id), None)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    async def update_service(self, service_id: str, draft: ServiceDraft) -> ServicePackage:
        async with self._lock:
            snap = await self._load(SERVICES_KEY)
            current = self._find_service(snap, service_id)
            updated = ServicePackage(
                id=service_id,
                current_orders_count=current.current_orders_count,
                **dataclasses.asdict(draft),
            )
            snap.services = [updated if s.id == service_id else s for s in snap.services]
            snap.dirty.add(SERVICES_KEY)
            await self._save(snap)
            return updated

    async def delete_service(self, service_id: str) -> None:
        async with self._lock:
            snap = await self._load(SERVICES_KEY)
            self._find_service(snap, service_id)
            snap.services = [s for s in snap.services if s.id != service_id]
            snap.dirty.add(SERVICES_KEY)
            await self._save(snap)

    async def create_category(self, name: str, icon_name: str) -> Category:
        async with self._lock:
            snap = await self._load(CATEGORIES_KEY)
            category = Category(
                id=f"mock-cat-{uuid.uuid4().hex}", name=name, icon_name=icon_name
            )
            snap.categories.append(category)
            snap.dirty.add(CATEGORIES_KEY)
            await self._save(snap)
            return category

    async def delete_category(self, category_id: str) -> None:
        async with self._lock:
            snap = await self._load(CATEGORIES_KEY)
            if not any(c.id == category_id for c in snap.categories):
                raise CategoryNotFoundError(category_id)
            snap.categories = [c for c in snap.categories if c.id != category_id]
            snap.dirty.add(CATEGORIES_KEY)
            await self._save(snap)
