"""Notification-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PushSubscriptionKeys(BaseModel):
    """Keys of a browser push subscription."""

    p256dh: str = Field(..., max_length=200)
    auth: str = Field(..., max_length=100)


class PushSubscriptionCreate(BaseModel):
    """A subscription as produced by ``PushManager.subscribe()`` in the browser."""

    endpoint: str = Field(..., min_length=1, max_length=500)
    keys: PushSubscriptionKeys


class PushSubscriptionResponse(BaseModel):
    """Schema for push subscription response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    user_id: int | None
    created_at: datetime


class FollowResponse(BaseModel):
    """Result of following an establishment."""

    subscription_id: int
    establishment_id: int
    created: bool


class VapidPublicKeyResponse(BaseModel):
    """Schema for VAPID public key response."""

    public_key: str | None
