"""Push subscription model for web push notifications."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from fornada.database import Base
from fornada.models.mixins import TimestampMixin


class PushSubscription(Base, TimestampMixin):
    """Stores web push notification subscriptions, unique by endpoint."""

    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    endpoint = Column(String(500), unique=True, nullable=False)
    p256dh_key = Column(String(200), nullable=False)
    auth_key = Column(String(100), nullable=False)

    # Relationships
    user = relationship("User", backref="push_subscriptions")
    establishments = relationship(
        "Establishment",
        secondary="establishment_subscriptions",
        back_populates="subscriptions",
    )

    @property
    def subscription_info(self) -> dict:
        """Subscription in the shape expected by the push transport."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }


class EstablishmentSubscription(Base):
    """Links a push subscription to an establishment it follows."""

    __tablename__ = "establishment_subscriptions"

    subscription_id = Column(
        Integer, ForeignKey("push_subscriptions.id", ondelete="CASCADE"), primary_key=True
    )
    establishment_id = Column(
        Integer, ForeignKey("establishments.id", ondelete="CASCADE"), primary_key=True
    )
