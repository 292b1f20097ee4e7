"""Establishment model."""

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from fornada.database import Base
from fornada.models.mixins import TimestampMixin


class Establishment(Base, TimestampMixin):
    """A bakery, market or shop listed in the directory."""

    __tablename__ = "establishments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(100), nullable=True)  # "padaria", "mercado", "casaDeBolos", ...
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    # Opening hours, address, info and the legacy "proximaFornada" string
    details = Column(JSON, nullable=True, default=dict)
    # ["16:00", ...] or [{"id": "a", "time": "16:00", "description": "..."}, ...]
    fornadas = Column(JSON, nullable=True, default=list)
    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Relationships
    owner = relationship("User", backref="establishments")
    subscriptions = relationship(
        "PushSubscription",
        secondary="establishment_subscriptions",
        back_populates="establishments",
    )
