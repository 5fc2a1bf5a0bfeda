"""SqlLedgerStore — PostgreSQL implementation of LedgerStoreProtocol.

Each ledger operation runs inside one database transaction opened by
`atomic()`: the display-id counter bump, the wallet change, the order or
deposit row, the audit transaction and any coupon/service counters commit
together or not at all.

Contended rows are serialised by the database, never by read-then-write in
Python:
  * wallet changes are single UPDATE ... RETURNING statements; the debit is
    conditional on the balance when non-negativity is enforced;
  * order and deposit status changes read the current row with FOR UPDATE,
    so two concurrent cancellations cannot both observe "not yet cancelled".
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.smm_catalog.domain.models import Category, ServiceDraft, ServicePackage
from src.smm_catalog.infrastructure.persistence import CategoryRepository, ServiceRepository
from src.smm_common.db_errors import atomic, reading
from src.smm_common.display_id import format_display_id, order_counter
from src.smm_common.enums import (
    CounterName,
    CouponType,
    DepositStatus,
    OrderStatus,
    TransactionType,
    UserRole,
    UserStatus,
)
from src.smm_common.errors import (
    DepositNotFoundError,
    InsufficientBalanceError,
    InternalError,
    OrderNotFoundError,
    UserNotFoundError,
)
from src.smm_common.money import ZERO, to_money
from src.smm_coupon.domain.models import Coupon
from src.smm_coupon.infrastructure.persistence import CouponRepository
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
    deposit_description,
    order_description,
    refund_description,
    refund_due,
)
from src.smm_sequence.infrastructure.persistence import SqlSequenceAllocator

# ---------------------------------------------------------------------------
# SQL: users
# ---------------------------------------------------------------------------

_USER_COLUMNS = """id, display_id, name, email, whatsapp, role,
                   wallet_balance, total_spent, status, created_at"""

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :id
""")

_INSERT_USER_SQL = text(f"""
    INSERT INTO users (id, display_id, name, email, whatsapp, role)
    VALUES (:id, :display_id, :name, :email, :whatsapp, :role)
    ON CONFLICT (id) DO NOTHING
    RETURNING {_USER_COLUMNS}
""")

_LIST_USERS_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    ORDER BY created_at, id
""")

_SET_USER_STATUS_SQL = text(f"""
    UPDATE users
    SET status = :status,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_USER_COLUMNS}
""")

_DEBIT_FOR_ORDER_SQL = text("""
    UPDATE users
    SET wallet_balance = wallet_balance - :amount,
        total_spent    = total_spent    + :amount,
        updated_at = NOW()
    WHERE id = :user_id
      AND (NOT CAST(:enforce AS BOOLEAN) OR wallet_balance >= :amount)
    RETURNING wallet_balance
""")

_REFUND_ORDER_SQL = text("""
    UPDATE users
    SET wallet_balance = wallet_balance + :amount,
        total_spent    = total_spent    - :amount,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING wallet_balance
""")

_CREDIT_WALLET_SQL = text("""
    UPDATE users
    SET wallet_balance = wallet_balance + :amount,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING wallet_balance
""")

# ---------------------------------------------------------------------------
# SQL: orders
# ---------------------------------------------------------------------------

_ORDER_COLUMNS = """id, display_id, user_id, user_name, user_whatsapp, service,
                    service_id, target_url, quantity, unit, amount, status,
                    coupon_code, is_limited_offer, last_updated_by, created_at"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders
        (display_id, user_id, user_name, user_whatsapp, service, service_id,
         target_url, quantity, unit, amount, status, coupon_code, is_limited_offer)
    VALUES
        (:display_id, :user_id, :user_name, :user_whatsapp, :service, :service_id,
         :target_url, :quantity, :unit, :amount, :status, :coupon_code, :is_limited_offer)
    RETURNING {_ORDER_COLUMNS}
""")

_GET_ORDER_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE id = :id
""")

_GET_ORDER_FOR_UPDATE_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE id = :id
    FOR UPDATE
""")

_SET_ORDER_STATUS_SQL = text(f"""
    UPDATE orders
    SET status = :status,
        last_updated_by = :updated_by,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_ORDER_COLUMNS}
""")

_LIST_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id = :user_id)
      AND (CAST(:service_id AS TEXT) IS NULL OR service_id = :service_id)
      AND (CAST(:since AS TIMESTAMPTZ) IS NULL OR created_at >= :since)
    ORDER BY created_at DESC
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TX_COLUMNS = "id, user_id, type, amount, description, status, related_id, created_at"

_INSERT_TX_SQL = text(f"""
    INSERT INTO transactions
        (user_id, type, amount, description, status, related_id)
    VALUES
        (:user_id, :type, :amount, :description, :status, :related_id)
    RETURNING {_TX_COLUMNS}
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE user_id = :user_id
    ORDER BY created_at DESC
""")

# ---------------------------------------------------------------------------
# SQL: deposit requests
# ---------------------------------------------------------------------------

_DEPOSIT_COLUMNS = """id, display_id, user_id, user_name, user_display_id, amount,
                      utr, sender_upi, screenshot_url, status, coupon_code,
                      bonus_amount, created_at"""

_INSERT_DEPOSIT_SQL = text(f"""
    INSERT INTO deposit_requests
        (display_id, user_id, user_name, user_display_id, amount, utr,
         sender_upi, screenshot_url, status, coupon_code, bonus_amount)
    VALUES
        (:display_id, :user_id, :user_name, :user_display_id, :amount, :utr,
         :sender_upi, :screenshot_url, :status, :coupon_code, :bonus_amount)
    RETURNING {_DEPOSIT_COLUMNS}
""")

_GET_DEPOSIT_FOR_UPDATE_SQL = text(f"""
    SELECT {_DEPOSIT_COLUMNS}
    FROM deposit_requests
    WHERE id = :id
    FOR UPDATE
""")

_SET_DEPOSIT_STATUS_SQL = text(f"""
    UPDATE deposit_requests
    SET status = :status,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_DEPOSIT_COLUMNS}
""")

_LIST_DEPOSITS_SQL = text(f"""
    SELECT {_DEPOSIT_COLUMNS}
    FROM deposit_requests
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id = :user_id)
    ORDER BY created_at DESC
""")


def _row_to_user(row: object) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        display_id=row.display_id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        role=UserRole(row.role),  # type: ignore[attr-defined]
        wallet_balance=to_money(row.wallet_balance),  # type: ignore[attr-defined]
        total_spent=to_money(row.total_spent),  # type: ignore[attr-defined]
        status=UserStatus(row.status),  # type: ignore[attr-defined]
        whatsapp=row.whatsapp,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_order(row: object) -> Order:
    return Order(
        id=str(row.id),  # type: ignore[attr-defined]
        display_id=row.display_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        user_name=row.user_name,  # type: ignore[attr-defined]
        service=row.service,  # type: ignore[attr-defined]
        target_url=row.target_url,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        status=OrderStatus(row.status),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        service_id=row.service_id,  # type: ignore[attr-defined]
        unit=row.unit,  # type: ignore[attr-defined]
        user_whatsapp=row.user_whatsapp,  # type: ignore[attr-defined]
        coupon_code=row.coupon_code,  # type: ignore[attr-defined]
        is_limited_offer=row.is_limited_offer,  # type: ignore[attr-defined]
        last_updated_by=row.last_updated_by,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        type=TransactionType(row.type),  # type: ignore[attr-defined]
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        related_id=row.related_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_deposit(row: object) -> DepositRequest:
    bonus = row.bonus_amount  # type: ignore[attr-defined]
    return DepositRequest(
        id=str(row.id),  # type: ignore[attr-defined]
        display_id=row.display_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        user_name=row.user_name,  # type: ignore[attr-defined]
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        utr=row.utr,  # type: ignore[attr-defined]
        sender_upi=row.sender_upi,  # type: ignore[attr-defined]
        screenshot_url=row.screenshot_url,  # type: ignore[attr-defined]
        status=DepositStatus(row.status),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        user_display_id=row.user_display_id,  # type: ignore[attr-defined]
        coupon_code=row.coupon_code,  # type: ignore[attr-defined]
        bonus_amount=to_money(bonus) if bonus is not None else None,
    )


class SqlLedgerStore:
    """Ledger, coupon and catalog store bound to one AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        self._sequence = SqlSequenceAllocator(db)
        self._coupons = CouponRepository()
        self._services = ServiceRepository()
        self._categories = CategoryRepository()

    # ------------------------------------------------------------------
    # Sequence allocator
    # ------------------------------------------------------------------

    async def next_value(self, counter: CounterName) -> int:
        async with atomic(self._db):
            return await self._sequence.next_value(counter)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        async with reading():
            result = await self._db.execute(_GET_USER_SQL, {"id": user_id})
            row = result.fetchone()
        return _row_to_user(row) if row else None

    async def get_order(self, order_id: str) -> Order | None:
        async with reading():
            result = await self._db.execute(_GET_ORDER_SQL, {"id": order_id})
            row = result.fetchone()
        return _row_to_order(row) if row else None

    async def find_coupon(self, code: str) -> Coupon | None:
        async with reading():
            return await self._coupons.find_by_code(self._db, code)

    async def get_service(self, service_id: str) -> ServicePackage | None:
        async with reading():
            return await self._services.get(self._db, service_id)

    async def list_users(self) -> list[User]:
        async with reading():
            result = await self._db.execute(_LIST_USERS_SQL)
            rows = result.fetchall()
        return [_row_to_user(r) for r in rows]

    async def list_orders(
        self,
        user_id: str | None = None,
        service_id: str | None = None,
        since: datetime | None = None,
    ) -> list[Order]:
        async with reading():
            result = await self._db.execute(
                _LIST_ORDERS_SQL,
                {"user_id": user_id, "service_id": service_id, "since": since},
            )
            rows = result.fetchall()
        return [_row_to_order(r) for r in rows]

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        async with reading():
            result = await self._db.execute(_LIST_TX_SQL, {"user_id": user_id})
            rows = result.fetchall()
        return [_row_to_transaction(r) for r in rows]

    async def list_deposit_requests(self, user_id: str | None = None) -> list[DepositRequest]:
        async with reading():
            result = await self._db.execute(_LIST_DEPOSITS_SQL, {"user_id": user_id})
            rows = result.fetchall()
        return [_row_to_deposit(r) for r in rows]

    async def list_coupons(self) -> list[Coupon]:
        async with reading():
            return await self._coupons.list_all(self._db)

    async def list_services(self) -> list[ServicePackage]:
        async with reading():
            return await self._services.list_all(self._db)

    async def list_categories(self) -> list[Category]:
        async with reading():
            return await self._categories.list_all(self._db)

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------

    async def create_user(self, draft: UserDraft) -> User:
        async with atomic(self._db):
            result = await self._db.execute(_GET_USER_SQL, {"id": draft.id})
            row = result.fetchone()
            if row is not None:
                return _row_to_user(row)
            value = await self._sequence.next_value(CounterName.USERS)
            result = await self._db.execute(
                _INSERT_USER_SQL,
                {
                    "id": draft.id,
                    "display_id": format_display_id(CounterName.USERS, value),
                    "name": draft.name,
                    "email": draft.email,
                    "whatsapp": draft.whatsapp,
                    "role": draft.role.value,
                },
            )
            row = result.fetchone()
            if row is None:
                # Lost a race against a concurrent sign-in of the same uid.
                result = await self._db.execute(_GET_USER_SQL, {"id": draft.id})
                row = result.fetchone()
            if row is None:
                raise InternalError(f"User insert returned no rows for {draft.id}")
            return _row_to_user(row)

    async def place_order(self, draft: OrderDraft, enforce_balance: bool) -> Order:
        amount = check_order_amount(draft.amount)
        async with atomic(self._db):
            result = await self._db.execute(
                _DEBIT_FOR_ORDER_SQL,
                {"user_id": draft.user_id, "amount": amount, "enforce": enforce_balance},
            )
            if result.fetchone() is None:
                user_result = await self._db.execute(_GET_USER_SQL, {"id": draft.user_id})
                user_row = user_result.fetchone()
                if user_row is None:
                    raise UserNotFoundError(draft.user_id)
                raise InsufficientBalanceError(amount, to_money(user_row.wallet_balance))

            counter = order_counter(draft.is_limited_offer)
            value = await self._sequence.next_value(counter)
            display_id = format_display_id(counter, value)

            result = await self._db.execute(
                _INSERT_ORDER_SQL,
                {
                    "display_id": display_id,
                    "user_id": draft.user_id,
                    "user_name": draft.user_name,
                    "user_whatsapp": draft.user_whatsapp,
                    "service": draft.service,
                    "service_id": draft.service_id,
                    "target_url": draft.target_url,
                    "quantity": draft.quantity,
                    "unit": draft.unit,
                    "amount": amount,
                    "status": OrderStatus.PENDING.value,
                    "coupon_code": draft.coupon_code,
                    "is_limited_offer": draft.is_limited_offer,
                },
            )
            row = result.fetchone()
            if row is None:
                raise InternalError("Order insert returned no rows")
            order = _row_to_order(row)

            await self._insert_transaction(
                user_id=draft.user_id,
                tx_type=TransactionType.DEBIT,
                amount=amount,
                description=order_description(display_id, draft.service),
                status=OrderStatus.COMPLETED.value,
                related_id=order.id,
            )
            if draft.coupon_code:
                await self._coupons.consume(self._db, draft.coupon_code)
            if draft.is_limited_offer and draft.service_id:
                await self._services.increment_orders_count(self._db, draft.service_id)
            return order

    async def update_order_status(
        self, order_id: str, new_status: OrderStatus, updated_by: str
    ) -> Order:
        async with atomic(self._db):
            result = await self._db.execute(_GET_ORDER_FOR_UPDATE_SQL, {"id": order_id})
            row = result.fetchone()
            if row is None:
                raise OrderNotFoundError(order_id)
            order = _row_to_order(row)
            if not check_order_transition(order, new_status):
                return order

            if refund_due(order.status, new_status):
                refund = await self._db.execute(
                    _REFUND_ORDER_SQL, {"user_id": order.user_id, "amount": order.amount}
                )
                if refund.fetchone() is None:
                    raise UserNotFoundError(order.user_id)
                await self._insert_transaction(
                    user_id=order.user_id,
                    tx_type=TransactionType.CREDIT,
                    amount=order.amount,
                    description=refund_description(order),
                    status=DepositStatus.APPROVED.value,
                    related_id=order.id,
                )

            result = await self._db.execute(
                _SET_ORDER_STATUS_SQL,
                {"id": order_id, "status": new_status.value, "updated_by": updated_by},
            )
            updated = result.fetchone()
            if updated is None:
                raise InternalError(f"Order status update returned no rows for {order_id}")
            return _row_to_order(updated)

    async def create_deposit_request(self, draft: DepositDraft) -> DepositRequest:
        async with atomic(self._db):
            value = await self._sequence.next_value(CounterName.DEPOSITS)
            result = await self._db.execute(
                _INSERT_DEPOSIT_SQL,
                {
                    "display_id": format_display_id(CounterName.DEPOSITS, value),
                    "user_id": draft.user_id,
                    "user_name": draft.user_name,
                    "user_display_id": draft.user_display_id,
                    "amount": to_money(draft.amount),
                    "utr": draft.utr,
                    "sender_upi": draft.sender_upi,
                    "screenshot_url": draft.screenshot_url,
                    "status": DepositStatus.PENDING.value,
                    "coupon_code": draft.coupon_code,
                    "bonus_amount": draft.bonus_amount,
                },
            )
            row = result.fetchone()
            if row is None:
                raise InternalError("Deposit request insert returned no rows")
            return _row_to_deposit(row)

    async def process_deposit_request(
        self, request_id: str, new_status: DepositStatus
    ) -> DepositRequest:
        async with atomic(self._db):
            result = await self._db.execute(_GET_DEPOSIT_FOR_UPDATE_SQL, {"id": request_id})
            row = result.fetchone()
            if row is None:
                raise DepositNotFoundError(request_id)
            request = _row_to_deposit(row)
            if not check_deposit_transition(request, new_status):
                return request

            if new_status == DepositStatus.APPROVED:
                credit = await self._db.execute(
                    _CREDIT_WALLET_SQL,
                    {"user_id": request.user_id, "amount": request.total_credit},
                )
                if credit.fetchone() is None:
                    raise UserNotFoundError(request.user_id)
                await self._insert_transaction(
                    user_id=request.user_id,
                    tx_type=TransactionType.CREDIT,
                    amount=request.total_credit,
                    description=deposit_description(request),
                    status=DepositStatus.APPROVED.value,
                    related_id=request.id,
                )
                if request.coupon_code:
                    await self._coupons.consume(self._db, request.coupon_code)

            result = await self._db.execute(
                _SET_DEPOSIT_STATUS_SQL, {"id": request_id, "status": new_status.value}
            )
            updated = result.fetchone()
            if updated is None:
                raise InternalError(f"Deposit status update returned no rows for {request_id}")
            return _row_to_deposit(updated)

    async def adjust_wallet(
        self, user_id: str, amount: Decimal, reason: str
    ) -> Transaction | None:
        amount = to_money(amount)
        if amount == ZERO:
            return None
        tx_type, magnitude, status, description = adjustment_entry(amount, reason)
        async with atomic(self._db):
            result = await self._db.execute(
                _CREDIT_WALLET_SQL, {"user_id": user_id, "amount": amount}
            )
            if result.fetchone() is None:
                raise UserNotFoundError(user_id)
            return await self._insert_transaction(
                user_id=user_id,
                tx_type=tx_type,
                amount=magnitude,
                description=description,
                status=status,
                related_id=ADMIN_ADJUSTMENT_REF,
            )

    async def set_user_status(self, user_id: str, status: UserStatus) -> User:
        async with atomic(self._db):
            result = await self._db.execute(
                _SET_USER_STATUS_SQL, {"id": user_id, "status": status.value}
            )
            row = result.fetchone()
            if row is None:
                raise UserNotFoundError(user_id)
            return _row_to_user(row)

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
        async with atomic(self._db):
            return await self._coupons.create(
                self._db, code, discount_percent, usage_limit,
                expires_at, is_auto_apply, coupon_type,
            )

    async def delete_coupon(self, coupon_id: str) -> None:
        async with atomic(self._db):
            await self._coupons.delete(self._db, coupon_id)

    async def create_service(self, draft: ServiceDraft) -> ServicePackage:
        async with atomic(self._db):
            return await self._services.create(self._db, draft)

    async def update_service(self, service_id: str, draft: ServiceDraft) -> ServicePackage:
        async with atomic(self._db):
            return await self._services.update(self._db, service_id, draft)

    async def delete_service(self, service_id: str) -> None:
        async with atomic(self._db):
            await self._services.delete(self._db, service_id)

    async def create_category(self, name: str, icon_name: str) -> Category:
        async with atomic(self._db):
            return await self._categories.create(self._db, name, icon_name)

    async def delete_category(self, category_id: str) -> None:
        async with atomic(self._db):
            await self._categories.delete(self._db, category_id)

    # ------------------------------------------------------------------

    async def _insert_transaction(
        self,
        user_id: str,
        tx_type: TransactionType,
        amount: Decimal,
        description: str,
        status: str,
        related_id: str,
    ) -> Transaction:
        result = await self._db.execute(
            _INSERT_TX_SQL,
            {
                "user_id": user_id,
                "type": tx_type.value,
                "amount": amount,
                "description": description,
                "status": status,
                "related_id": related_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)
