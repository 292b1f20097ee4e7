"""Pydantic schemas for API requests and responses."""

from fornada.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from fornada.schemas.establishment import (
    EstablishmentCreate,
    EstablishmentResponse,
    EstablishmentUpdate,
    FornadaEventSchema,
    NotifyFollowersRequest,
)
from fornada.schemas.notification import (
    FollowResponse,
    PushSubscriptionCreate,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)
from fornada.schemas.plan import PlanResponse
from fornada.schemas.reservation import (
    ReservationCreate,
    ReservationQuotaResponse,
    ReservationResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "EstablishmentCreate",
    "EstablishmentUpdate",
    "EstablishmentResponse",
    "FornadaEventSchema",
    "NotifyFollowersRequest",
    "PushSubscriptionCreate",
    "PushSubscriptionResponse",
    "FollowResponse",
    "VapidPublicKeyResponse",
    "PlanResponse",
    "ReservationCreate",
    "ReservationResponse",
    "ReservationQuotaResponse",
]
