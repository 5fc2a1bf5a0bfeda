"""Global enums — values must match DB CHECK constraints and mirror records exactly."""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class DepositStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TransactionType(str, Enum):
    CREDIT = "Credit"
    DEBIT = "Debit"


class CouponType(str, Enum):
    DISCOUNT = "discount"
    BONUS = "bonus"


class CounterName(str, Enum):
    """Counter namespaces; each mints its own independent display-id sequence."""
    ORDERS = "orders"
    LIMITED_ORDERS = "limited_orders"
    DEPOSITS = "deposits"
    SERVICES = "services"
    USERS = "users"


class StoreErrorKind(str, Enum):
    """Why a store call failed. Callers switch on this, never on message text."""
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"
