"""Establishment directory API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from fornada.api.dependencies import (
    get_current_user,
    get_establishment_or_404,
    get_optional_user,
    get_owned_establishment,
    get_subscription_directory,
)
from fornada.database import get_db
from fornada.models.enums import UserRole
from fornada.models.establishment import Establishment
from fornada.models.user import User
from fornada.schemas.establishment import (
    EstablishmentCreate,
    EstablishmentResponse,
    EstablishmentUpdate,
    FornadaEventInput,
    FornadaEventSchema,
    NotifyFollowersRequest,
)
from fornada.schemas.notification import FollowResponse, PushSubscriptionCreate
from fornada.services.fornada_sweep import establishment_url
from fornada.services.geo import sort_by_distance
from fornada.services.subscription_directory import SubscriptionDirectory
from fornada.tasks.notifications import notify_establishment_followers, notify_user

router = APIRouter(prefix="/api/v1/establishments", tags=["establishments"])


def serialize_fornadas(fornadas: list[FornadaEventInput]) -> list:
    """Convert fornadas to their stored JSON form, giving object events a stable id."""
    stored = []
    for fornada in fornadas:
        if isinstance(fornada, FornadaEventSchema):
            data = fornada.model_dump()
            data["id"] = data["id"] or uuid.uuid4().hex[:8]
            stored.append(data)
        else:
            stored.append(fornada)
    return stored


@router.get("", response_model=list[EstablishmentResponse])
async def list_establishments(
    db: Annotated[Session, Depends(get_db)],
    lat: Annotated[float | None, Query(ge=-90, le=90)] = None,
    lng: Annotated[float | None, Query(ge=-180, le=180)] = None,
):
    """List all establishments, nearest first when a position is given."""
    establishments = db.query(Establishment).order_by(Establishment.id).all()

    if lat is None or lng is None:
        return [EstablishmentResponse.model_validate(e) for e in establishments]

    result = []
    for establishment, distance in sort_by_distance(establishments, lat, lng):
        response = EstablishmentResponse.model_validate(establishment)
        response.distance_km = round(distance, 3) if distance is not None else None
        result.append(response)
    return result


@router.get("/mine", response_model=list[EstablishmentResponse])
async def list_my_establishments(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """List establishments owned by the current user."""
    return (
        db.query(Establishment)
        .filter(Establishment.owner_id == current_user.id)
        .order_by(Establishment.id)
        .all()
    )


@router.get("/{establishment_id}", response_model=EstablishmentResponse)
async def get_establishment(
    establishment_id: int,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a specific establishment."""
    return get_establishment_or_404(db, establishment_id)


@router.post("", response_model=EstablishmentResponse, status_code=status.HTTP_201_CREATED)
async def create_establishment(
    data: EstablishmentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Create an establishment owned by the current user."""
    if not UserRole(current_user.role).can_own_establishments():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only establishment accounts can create establishments",
        )

    establishment = Establishment(
        name=data.name,
        kind=data.kind,
        latitude=data.latitude,
        longitude=data.longitude,
        details=data.details,
        fornadas=serialize_fornadas(data.fornadas),
        owner_id=current_user.id,
    )
    db.add(establishment)
    db.commit()
    db.refresh(establishment)
    return establishment


@router.put("/{establishment_id}", response_model=EstablishmentResponse)
async def update_establishment(
    establishment_id: int,
    data: EstablishmentUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Update an establishment the current user owns."""
    establishment = get_owned_establishment(db, establishment_id, current_user)

    update_data = data.model_dump(exclude_unset=True)
    if "fornadas" in update_data:
        update_data["fornadas"] = serialize_fornadas(data.fornadas or [])
    for field, value in update_data.items():
        setattr(establishment, field, value)

    db.commit()
    db.refresh(establishment)
    return establishment


@router.delete("/{establishment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_establishment(
    establishment_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Delete an establishment the current user owns."""
    establishment = get_owned_establishment(db, establishment_id, current_user)
    db.delete(establishment)
    db.commit()


@router.post("/{establishment_id}/followers", response_model=FollowResponse)
async def follow_establishment(
    establishment_id: int,
    subscription: PushSubscriptionCreate,
    db: Annotated[Session, Depends(get_db)],
    directory: Annotated[SubscriptionDirectory, Depends(get_subscription_directory)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
):
    """Follow an establishment's fornadas with a push subscription."""
    establishment = get_establishment_or_404(db, establishment_id)

    push_sub = directory.upsert(
        endpoint=subscription.endpoint,
        p256dh_key=subscription.keys.p256dh,
        auth_key=subscription.keys.auth,
        user_id=current_user.id if current_user else None,
    )
    created = directory.link(push_sub.id, establishment.id)

    follower_is_owner = current_user is not None and current_user.id == establishment.owner_id
    if created and establishment.owner_id and not follower_is_owner:
        notify_user.delay(
            establishment.owner_id,
            "Novo seguidor!",
            f"{establishment.name} ganhou um novo seguidor.",
            establishment_url(establishment.id),
        )

    return FollowResponse(
        subscription_id=push_sub.id,
        establishment_id=establishment.id,
        created=created,
    )


@router.delete("/{establishment_id}/followers")
async def unfollow_establishment(
    establishment_id: int,
    endpoint: str,
    db: Annotated[Session, Depends(get_db)],
    directory: Annotated[SubscriptionDirectory, Depends(get_subscription_directory)],
) -> dict:
    """Stop following an establishment."""
    establishment = get_establishment_or_404(db, establishment_id)

    push_sub = directory.get_by_endpoint(endpoint)
    if push_sub and directory.unlink(push_sub.id, establishment.id):
        return {"message": "Unfollowed successfully"}

    return {"message": "Subscription not found"}


@router.post("/{establishment_id}/notify", status_code=status.HTTP_202_ACCEPTED)
async def notify_followers(
    establishment_id: int,
    request: NotifyFollowersRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Queue a notification to all followers of an establishment the user owns."""
    establishment = get_owned_establishment(db, establishment_id, current_user)

    notify_establishment_followers.delay(
        establishment.id,
        message=request.message,
        fornada_time=request.fornada_time,
    )
    return {"message": "Notification queued"}
