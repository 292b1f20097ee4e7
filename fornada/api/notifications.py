"""Notification API endpoints for push subscriptions."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from fornada.api.dependencies import get_optional_user, get_subscription_directory
from fornada.config import get_settings
from fornada.models import PushSubscription
from fornada.models.user import User
from fornada.schemas.notification import (
    PushSubscriptionCreate,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)
from fornada.services.subscription_directory import SubscriptionDirectory

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key() -> VapidPublicKeyResponse:
    """Get the VAPID public key for push notification subscription."""
    settings = get_settings()
    return VapidPublicKeyResponse(public_key=settings.vapid_public_key)


@router.post(
    "/subscribe",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def subscribe_push(
    subscription: PushSubscriptionCreate,
    directory: Annotated[SubscriptionDirectory, Depends(get_subscription_directory)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> PushSubscription:
    """Subscribe to push notifications.

    Re-subscribing with a known endpoint updates its keys instead of
    creating a duplicate. Authenticated requests attach the subscription to
    the user so they receive owner alerts.
    """
    return directory.upsert(
        endpoint=subscription.endpoint,
        p256dh_key=subscription.keys.p256dh,
        auth_key=subscription.keys.auth,
        user_id=current_user.id if current_user else None,
    )


@router.delete("/subscribe")
async def unsubscribe_push(
    endpoint: str,
    directory: Annotated[SubscriptionDirectory, Depends(get_subscription_directory)],
) -> dict:
    """Unsubscribe from push notifications."""
    subscription = directory.get_by_endpoint(endpoint)

    if subscription:
        directory.remove(subscription.id)
        return {"message": "Unsubscribed successfully"}

    return {"message": "Subscription not found"}
