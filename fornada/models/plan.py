"""Subscription plan model."""

from sqlalchemy import JSON, Boolean, Column, Integer, Numeric, String, Text

from fornada.database import Base


class Plan(Base):
    """A paid plan. Ids are assigned explicitly; 0 is reserved for the free plan."""

    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    benefits = Column(JSON, nullable=False, default=list)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
