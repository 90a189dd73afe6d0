from lexlink.db.models.booking import Booking, Review
from lexlink.db.models.job import JobApplication, JobPosting
from lexlink.db.models.notification import Notification
from lexlink.db.models.provider import ProviderProfile, ProviderService, Specialization
from lexlink.db.models.user import User

__all__ = [
    "Booking",
    "JobApplication",
    "JobPosting",
    "Notification",
    "ProviderProfile",
    "ProviderService",
    "Review",
    "Specialization",
    "User",
]
