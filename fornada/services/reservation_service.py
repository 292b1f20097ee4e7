"""Reservation service with the monthly free plan quota."""

import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from fornada.config import Settings, get_settings
from fornada.models import Establishment, Reservation, User
from fornada.services.fornada_schedule import normalize_fornada_events

logger = logging.getLogger(__name__)


class ReservationLimitReachedError(Exception):
    """The user's plan does not allow more reservations this month."""


class UnknownFornadaError(Exception):
    """The reservation references a fornada the establishment does not have."""


class ReservationService:
    """Service for creating reservations and tracking plan usage."""

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def monthly_limit(self, user: User) -> int | None:
        """Reservations allowed per month, or None when unlimited."""
        if user.is_free_plan:
            return self.settings.free_plan_monthly_reservations
        return None

    def month_start(self, now: datetime | None = None) -> datetime:
        """Start of the current calendar month in the fornada timezone, as UTC."""
        tz = ZoneInfo(self.settings.fornada_timezone)
        local_now = (now or datetime.now(UTC)).astimezone(tz)
        local_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return local_start.astimezone(UTC)

    def count_this_month(self, user_id: int, now: datetime | None = None) -> int:
        return (
            self.db.query(func.count(Reservation.id))
            .filter(
                Reservation.user_id == user_id,
                Reservation.created_at >= self.month_start(now),
            )
            .scalar()
        ) or 0

    def quota(self, user: User, now: datetime | None = None) -> dict:
        used = self.count_this_month(user.id, now)
        limit = self.monthly_limit(user)
        return {
            "plan_id": user.current_plan,
            "used": used,
            "limit": limit,
            "remaining": None if limit is None else max(limit - used, 0),
        }

    def create(
        self,
        user: User,
        establishment: Establishment,
        reservation_time: str,
        fornada_id: str | None = None,
    ) -> Reservation:
        """Create a reservation, enforcing the plan quota.

        Raises:
            UnknownFornadaError: ``fornada_id`` is not one of the establishment's fornadas
            ReservationLimitReachedError: the monthly quota is used up
        """
        if fornada_id is not None:
            events = normalize_fornada_events(establishment.fornadas, establishment.details)
            if not any(event.id == fornada_id for event in events):
                raise UnknownFornadaError(fornada_id)

        limit = self.monthly_limit(user)
        if limit is not None and self.count_this_month(user.id) >= limit:
            raise ReservationLimitReachedError(
                f"Free plan allows {limit} reservations per month"
            )

        reservation = Reservation(
            establishment_id=establishment.id,
            user_id=user.id,
            fornada_id=fornada_id,
            reservation_time=reservation_time,
        )
        self.db.add(reservation)
        self.db.commit()
        self.db.refresh(reservation)

        logger.info(
            f"User {user.id} reserved {reservation_time} at establishment {establishment.id}"
        )
        return reservation
