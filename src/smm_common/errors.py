"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity/User
  2xxx: Wallet
  3xxx: Catalog / limited offers
  4xxx: Order
  5xxx: Deposit
  6xxx: Coupon
  9xxx: Store/System
"""

from src.smm_common.enums import StoreErrorKind


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Identity/User ---

class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1001, f"User not found: {user_id}", 404)


class AccountSuspendedError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Account is suspended", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Admin role required", 403)


class InvalidTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Invalid or expired token", 401)


# --- 2xxx: Wallet ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


# --- 3xxx: Catalog / limited offers ---

class ServiceNotFoundError(AppError):
    def __init__(self, service_id: str) -> None:
        super().__init__(3001, f"Service not found: {service_id}", 404)


class QuantityOutOfRangeError(AppError):
    def __init__(self, quantity: int, minimum: int, maximum: int) -> None:
        super().__init__(
            3002, f"Quantity {quantity} outside allowed range {minimum}-{maximum}", 422
        )


class OfferExpiredError(AppError):
    def __init__(self, service_id: str) -> None:
        super().__init__(3003, f"Limited offer has expired: {service_id}", 422)


class OfferSoldOutError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Limited offer unavailable: {detail}", 422)


class CooldownActiveError(AppError):
    def __init__(self, unlocks_at: str) -> None:
        self.unlocks_at = unlocks_at
        super().__init__(3005, f"Service locked until {unlocks_at}", 422)


class CategoryNotFoundError(AppError):
    def __init__(self, category_id: str) -> None:
        super().__init__(3006, f"Category not found: {category_id}", 404)


class CategoryInUseError(AppError):
    def __init__(self, category_id: str, services: int) -> None:
        super().__init__(
            3007, f"Category {category_id} still has {services} service package(s)", 409
        )


# --- 4xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class InvalidOrderAmountError(AppError):
    def __init__(self, amount: object) -> None:
        super().__init__(4001, f"Order amount must not be negative: {amount}", 422)


class OrderStatusTransitionError(AppError):
    def __init__(self, order_id: str, current: str, requested: str) -> None:
        super().__init__(
            4006, f"Order {order_id} cannot move from {current} to {requested}", 422
        )


# --- 5xxx: Deposit ---

class DepositNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(5004, f"Deposit request not found: {request_id}", 404)


class DepositAlreadyProcessedError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(5006, f"Deposit request {request_id} is already {status}", 422)


# --- 6xxx: Coupon ---

class InvalidCouponError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "Invalid coupon code.", 422)


class CouponUsageLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(6002, "Coupon usage limit reached.", 422)


class CouponExpiredError(AppError):
    def __init__(self) -> None:
        super().__init__(6003, "This coupon has expired.", 422)


class CouponTypeMismatchError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(6004, message, 422)


class CouponExistsError(AppError):
    def __init__(self, code: str) -> None:
        super().__init__(6005, f"Coupon already exists: {code}", 409)


# --- 9xxx: Store/System ---

# kind -> (code, http_status)
_STORE_ERROR_CODES: dict[StoreErrorKind, tuple[int, int]] = {
    StoreErrorKind.PERMISSION_DENIED: (9001, 403),
    StoreErrorKind.NOT_FOUND: (9002, 404),
    StoreErrorKind.NETWORK_UNAVAILABLE: (9003, 503),
    StoreErrorKind.CONFLICT: (9004, 409),
    StoreErrorKind.INTERNAL: (9005, 500),
}


class StoreError(AppError):
    """A backing-store failure, tagged with an explicit kind.

    outcome_unknown is set when the connection was lost while committing: the
    server may or may not have applied the unit of work.
    """

    def __init__(
        self, kind: StoreErrorKind, detail: str, outcome_unknown: bool = False
    ) -> None:
        self.kind = kind
        self.outcome_unknown = outcome_unknown
        code, http_status = _STORE_ERROR_CODES[kind]
        super().__init__(code, detail, http_status)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9100, detail, 500)
