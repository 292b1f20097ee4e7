"""Reservation model."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import backref, relationship

from fornada.database import Base
from fornada.models.mixins import TimestampMixin


class Reservation(Base, TimestampMixin):
    """A user's reservation against an establishment's fornada."""

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    establishment_id = Column(
        Integer, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fornada_id = Column(String(100), nullable=True)  # Stable id of the fornada event, if any
    reservation_time = Column(String(10), nullable=False)  # "HH:MM"

    # Relationships
    establishment = relationship(
        "Establishment", backref=backref("reservations", cascade="all, delete-orphan")
    )
    user = relationship("User", backref=backref("reservations", cascade="all, delete-orphan"))
