"""SQLAlchemy models."""

from fornada.models.establishment import Establishment
from fornada.models.notification_message import NotificationMessage
from fornada.models.plan import Plan
from fornada.models.push_subscription import EstablishmentSubscription, PushSubscription
from fornada.models.reservation import Reservation
from fornada.models.user import User

__all__ = [
    "User",
    "Establishment",
    "PushSubscription",
    "EstablishmentSubscription",
    "NotificationMessage",
    "Plan",
    "Reservation",
]
