"""LedgerStore Protocol — the store abstraction behind every ledger operation.

Two implementations exist: SqlLedgerStore (PostgreSQL, one transaction per
operation) and OfflineLedgerStore (local key-value mirror). LedgerService
receives one as its primary store and optionally the other as a fallback.

Every mutating method is one atomic unit: all listed effects apply, or none.
Failures of the backing store surface as StoreError with an explicit kind.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from src.smm_catalog.domain.repository import CatalogStoreProtocol
from src.smm_common.enums import DepositStatus, OrderStatus, UserStatus
from src.smm_coupon.domain.repository import CouponStoreProtocol
from src.smm_ledger.domain.models import (
    DepositDraft,
    DepositRequest,
    Order,
    OrderDraft,
    Transaction,
    User,
    UserDraft,
)
from src.smm_sequence.domain.repository import SequenceAllocatorProtocol


class LedgerStoreProtocol(
    SequenceAllocatorProtocol, CouponStoreProtocol, CatalogStoreProtocol, Protocol
):
    """Also mints sequence values and serves coupon and catalog administration."""

    # --- reads ---

    async def get_user(self, user_id: str) -> User | None: ...

    async def list_users(self) -> list[User]: ...

    async def get_order(self, order_id: str) -> Order | None: ...

    async def list_orders(
        self,
        user_id: str | None = None,
        service_id: str | None = None,
        since: datetime | None = None,
    ) -> list[Order]:
        """Orders newest first, optionally filtered."""
        ...

    async def list_transactions(self, user_id: str) -> list[Transaction]: ...

    async def list_deposit_requests(self, user_id: str | None = None) -> list[DepositRequest]: ...

    # --- ledger operations ---

    async def create_user(self, draft: UserDraft) -> User:
        """Create a profile with a 6-digit display id, or return the existing one."""
        ...

    async def place_order(self, draft: OrderDraft, enforce_balance: bool) -> Order:
        """Mint display id, debit wallet, create order + Debit transaction,
        consume coupon, bump limited-offer counter."""
        ...

    async def update_order_status(
        self, order_id: str, new_status: OrderStatus, updated_by: str
    ) -> Order:
        """Store status + label; refund once on the move into Cancelled."""
        ...

    async def create_deposit_request(self, draft: DepositDraft) -> DepositRequest: ...

    async def process_deposit_request(
        self, request_id: str, new_status: DepositStatus
    ) -> DepositRequest:
        """Store status; credit amount + bonus once on the move into Approved."""
        ...

    async def adjust_wallet(
        self, user_id: str, amount: Decimal, reason: str
    ) -> Transaction | None:
        """Change the balance by `amount` with an audit transaction.

        amount == 0 is a no-op and returns None.
        """
        ...

    async def set_user_status(self, user_id: str, status: UserStatus) -> User:
        """Suspend or reactivate a profile; the wallet is left untouched."""
        ...
