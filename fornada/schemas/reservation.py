"""Reservation schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fornada.schemas.establishment import TimeOfDay


class ReservationCreate(BaseModel):
    """Reserve a fornada at an establishment."""

    establishment_id: int
    reservation_time: TimeOfDay
    fornada_id: str | None = Field(None, max_length=100)


class ReservationResponse(BaseModel):
    """Reservation response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    establishment_id: int
    user_id: int
    fornada_id: str | None
    reservation_time: str
    created_at: datetime


class ReservationQuotaResponse(BaseModel):
    """Reservations used this month against the plan's limit."""

    plan_id: int
    used: int
    limit: int | None  # None means unlimited
    remaining: int | None
