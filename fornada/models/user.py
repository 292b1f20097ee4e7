"""User model."""

from sqlalchemy import Column, Integer, String

from fornada.database import Base
from fornada.models.enums import UserRole
from fornada.models.mixins import TimestampMixin

FREE_PLAN_ID = 0


class User(Base, TimestampMixin):
    """User model for authentication and ownership."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.CLIENT.value)
    current_plan = Column(Integer, nullable=False, default=FREE_PLAN_ID)  # 0 = free

    @property
    def is_free_plan(self) -> bool:
        """Check if the user is on the free plan."""
        return (self.current_plan or FREE_PLAN_ID) == FREE_PLAN_ID
