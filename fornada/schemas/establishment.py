"""Establishment schemas."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from fornada.services.fornada_schedule import normalize_fornada_events

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

TimeOfDay = Annotated[str, StringConstraints(pattern=TIME_OF_DAY_PATTERN)]


class FornadaEventSchema(BaseModel):
    """A daily fornada."""

    id: str | None = Field(None, max_length=100)
    time: TimeOfDay
    description: str | None = Field(None, max_length=255)


# Bare "HH:MM" strings are still accepted for older clients
FornadaEventInput = FornadaEventSchema | TimeOfDay


class EstablishmentCreate(BaseModel):
    """Create an establishment."""

    name: str = Field(..., min_length=1, max_length=255)
    kind: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    details: dict[str, Any] = Field(default_factory=dict)
    fornadas: list[FornadaEventInput] = Field(default_factory=list)


class EstablishmentUpdate(BaseModel):
    """Update an establishment."""

    name: str | None = Field(None, min_length=1, max_length=255)
    kind: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    details: dict[str, Any] | None = None
    fornadas: list[FornadaEventInput] | None = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: str | None) -> str:
        # Omit the field to leave the name unchanged
        if value is None:
            raise ValueError("name cannot be null")
        return value


class EstablishmentResponse(BaseModel):
    """Establishment response with its fornadas in the object shape."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: str | None
    latitude: float | None
    longitude: float | None
    details: dict[str, Any] | None
    fornadas: list[FornadaEventSchema]
    owner_id: int | None
    created_at: datetime
    distance_km: float | None = None

    @field_validator("fornadas", mode="before")
    @classmethod
    def normalize_fornadas(cls, value: Any) -> list[dict]:
        return [
            {
                "id": event.id,
                "time": f"{event.minutes // 60:02d}:{event.minutes % 60:02d}",
                "description": event.description,
            }
            for event in normalize_fornada_events(value)
        ]


class NotifyFollowersRequest(BaseModel):
    """Manually notify an establishment's followers."""

    message: str | None = Field(None, max_length=500)
    fornada_time: TimeOfDay | None = None
