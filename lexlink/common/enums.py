import enum


class UserRole(str, enum.Enum):
    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"


class ActorRole(str, enum.Enum):
    """Who is driving a state transition. SYSTEM is used by scheduled jobs."""

    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"
    SYSTEM = "system"


class ProviderType(str, enum.Enum):
    NOTARY = "notary"
    JUDICIAL_EXECUTOR = "judicial_executor"
    LAWYER = "lawyer"
    JUDGE = "judge"


class PricingMode(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    HOURLY = "hourly"


class SortPreference(str, enum.Enum):
    DISTANCE = "distance"
    RATING = "rating"
    PRICE = "price"


class RadiusPolicy(str, enum.Enum):
    FILTER_RADIUS = "filter_radius"
    FILTER_OR_SERVICE_RADIUS = "filter_or_service_radius"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingAction(str, enum.Enum):
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"


class PostingStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PostingAction(str, enum.Enum):
    COMPLETE = "complete"
    CANCEL = "cancel"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class ApplicationAction(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    WITHDRAW = "withdraw"


class JobPricingMode(str, enum.Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


class Urgency(str, enum.Enum):
    ASAP = "asap"
    WITHIN_24H = "within_24h"
    SPECIFIC_DATE = "specific_date"


class SideEffectKind(str, enum.Enum):
    NOTIFY = "notify"
    LOCK_SLOT = "lock_slot"
    RELEASE_SLOT = "release_slot"
    REQUEST_REVIEW = "request_review"
    INCREMENT_COMPLETED = "increment_completed"


class NotificationCategory(str, enum.Enum):
    BOOKING = "booking"
    JOB = "job"
    APPLICATION = "application"
    REVIEW = "review"
