from enum import Enum


class RoleName(str, Enum):
    CUSTOMER = "CUSTOMER"
    CAMERAMAN = "CAMERAMAN"
    ADMIN = "ADMIN"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class BookingStatus(str, Enum):
    PAYING = "PAYING"
    REQUESTED = "REQUESTED"
    PAY_CANCELLED = "PAY_CANCELLED"
    COMPLETED = "COMPLETED"


# statuses that hold a (cameraman, date, time_of_day) slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.PAYING.value, BookingStatus.REQUESTED.value)


class PaymentType(str, Enum):
    BOOKING = "booking"
    SUBSCRIPTION = "subscription"


class PaymentStatus(str, Enum):
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"


class MembershipTier(str, Enum):
    NORMAL = "NORMAL"
    ONE_MONTH = "ONE_MONTH"
    SIX_MONTH = "SIX_MONTH"


class TransactionKind(str, Enum):
    BOOKING_PAYMENT = "booking_payment"
    BUY_SERVICE = "buy_service"
    MEMBERSHIP_SUBSCRIPTION = "membership_subscription"
    LEGACY_SCHEDULE = "legacy_schedule"


class NotificationType(str, Enum):
    BOOKING_REQUESTED = "booking_requested"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
