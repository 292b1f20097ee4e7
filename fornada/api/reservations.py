"""Reservation API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from fornada.api.dependencies import (
    get_current_user,
    get_establishment_or_404,
    get_reservation_service,
)
from fornada.database import get_db
from fornada.models import Reservation
from fornada.models.user import User
from fornada.schemas.reservation import (
    ReservationCreate,
    ReservationQuotaResponse,
    ReservationResponse,
)
from fornada.services.fornada_sweep import establishment_url
from fornada.services.reservation_service import (
    ReservationLimitReachedError,
    ReservationService,
    UnknownFornadaError,
)
from fornada.tasks.notifications import notify_user

router = APIRouter(prefix="/api/v1/reservations", tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    data: ReservationCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    service: Annotated[ReservationService, Depends(get_reservation_service)],
):
    """Reserve a fornada at an establishment."""
    establishment = get_establishment_or_404(db, data.establishment_id)

    try:
        reservation = service.create(
            current_user,
            establishment,
            reservation_time=data.reservation_time,
            fornada_id=data.fornada_id,
        )
    except UnknownFornadaError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fornada not found for this establishment",
        ) from e
    except ReservationLimitReachedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    if establishment.owner_id and establishment.owner_id != current_user.id:
        notify_user.delay(
            establishment.owner_id,
            "Nova reserva!",
            f"{current_user.name} reservou a fornada das {data.reservation_time}.",
            establishment_url(establishment.id),
        )

    return reservation


@router.get("", response_model=list[ReservationResponse])
async def list_reservations(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """List the current user's reservations, newest first."""
    return (
        db.query(Reservation)
        .filter(Reservation.user_id == current_user.id)
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .all()
    )


@router.get("/quota", response_model=ReservationQuotaResponse)
async def get_reservation_quota(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ReservationService, Depends(get_reservation_service)],
):
    """Get how many reservations the current user has left this month."""
    return ReservationQuotaResponse(**service.quota(current_user))
