"""Periodic sweep that sends fornada reminders to followers."""

import logging
import random
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, sessionmaker

from fornada.models import Establishment, NotificationMessage
from fornada.services.fornada_schedule import (
    FornadaEvent,
    NotificationWindow,
    evaluate_window,
    minutes_since_midnight,
    normalize_fornada_events,
)
from fornada.services.notification_service import NotificationPayload, NotificationService
from fornada.services.subscription_directory import SubscriptionDirectory

logger = logging.getLogger(__name__)


@dataclass
class SweepStats:
    """Counters for one sweep tick."""

    establishments: int = 0
    matches: int = 0
    delivered: int = 0
    expired: int = 0
    failed: int = 0
    pruned: int = 0
    errors: int = 0
    skipped: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class _EstablishmentSnapshot:
    id: int
    name: str
    fornadas: Any
    details: Any


class SweepLock(Protocol):
    """Non-blocking mutual exclusion between sweep ticks."""

    def acquire(self, blocking: bool = ...) -> bool: ...

    def release(self) -> None: ...


def establishment_url(establishment_id: int) -> str:
    return f"/estabelecimentos/{establishment_id}"


def reservation_url(establishment_id: int, fornada_id: str) -> str:
    return f"/estabelecimentos/{establishment_id}?reservar={fornada_id}"


def choose_message(
    pool: list[str],
    fornada_time: str | None,
    explicit: str | None = None,
    rng: random.Random | None = None,
) -> str:
    """Pick the notification body.

    An explicit message wins; otherwise a random message from the pool; with an
    empty pool, a generic text naming the fornada time.
    """
    if explicit:
        return explicit
    if pool:
        return (rng or random).choice(pool)
    if fornada_time:
        return f"Nova fornada às {fornada_time}! Venha conferir."
    return "Nova fornada saindo agora! Venha conferir."


def build_fornada_payload(
    establishment_id: int,
    establishment_name: str,
    body: str,
    icon: str,
    window: NotificationWindow = NotificationWindow.FIVE_MINUTES_BEFORE,
    event: FornadaEvent | None = None,
) -> NotificationPayload:
    """Build the push payload for a fornada at an establishment."""
    if window == NotificationWindow.ONE_HOUR_BEFORE:
        title = f"Fornada em 1 hora em {establishment_name}"
    else:
        title = f"Fornada saindo agora em {establishment_name}!"

    tag = f"fornada-{establishment_id}"
    if event is not None:
        tag = f"{tag}-{event.minutes}"

    return NotificationPayload(
        title=title,
        body=body,
        icon=icon,
        url=establishment_url(establishment_id),
        reservation_url=(
            reservation_url(establishment_id, event.id) if event is not None and event.id else None
        ),
        tag=tag,
    )


class FornadaSweep:
    """Checks every establishment's fornadas and notifies followers of upcoming ones.

    A tick that starts while another one holds ``lock`` is skipped. The lock
    defaults to an in-process one; workers share a Redis lock instead so
    ticks running in different processes exclude each other too.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        notification_service: NotificationService,
        timezone: str,
        icon: str,
        rng: random.Random | None = None,
        lock: SweepLock | None = None,
    ):
        self.session_factory = session_factory
        self.notification_service = notification_service
        self.timezone = timezone
        self.icon = icon
        self.rng = rng or random.Random()
        self._running = lock if lock is not None else threading.Lock()

    async def run(self, now: datetime | None = None) -> SweepStats:
        """Run one tick. ``now`` defaults to the current time in the sweep timezone."""
        if not self._running.acquire(blocking=False):
            logger.warning("Previous fornada sweep still running, skipping this tick")
            return SweepStats(skipped=True)
        try:
            return await self._run(now or datetime.now(ZoneInfo(self.timezone)))
        finally:
            try:
                self._running.release()
            except Exception as e:
                # A Redis lock that outlived its timeout is no longer ours to release
                logger.warning(f"Could not release fornada sweep lock: {e}")

    def _load(self, db: Session) -> tuple[list[_EstablishmentSnapshot], list[str]]:
        establishments = [
            _EstablishmentSnapshot(
                id=establishment.id,
                name=establishment.name,
                fornadas=establishment.fornadas,
                details=establishment.details,
            )
            for establishment in db.query(Establishment).all()
        ]
        messages = [row.message for row in db.query(NotificationMessage).all()]
        return establishments, messages

    async def _run(self, now: datetime) -> SweepStats:
        stats = SweepStats()
        db: Session = self.session_factory()

        try:
            try:
                establishments, messages = self._load(db)
            except Exception as e:
                logger.error(f"Error loading establishments for fornada sweep: {e}", exc_info=True)
                stats.errors += 1
                return stats

            now_minutes = minutes_since_midnight(now, self.timezone)
            directory = SubscriptionDirectory(db)

            for establishment in establishments:
                stats.establishments += 1
                try:
                    events = normalize_fornada_events(establishment.fornadas, establishment.details)
                except Exception as e:
                    stats.errors += 1
                    logger.error(
                        f"Unreadable fornadas for establishment {establishment.id}: {e}",
                        exc_info=True,
                    )
                    continue

                for event in events:
                    window = evaluate_window(now_minutes, event.minutes).window
                    if window is None:
                        continue

                    stats.matches += 1
                    try:
                        await self._notify(directory, establishment, event, window, messages, stats)
                    except Exception as e:
                        db.rollback()
                        stats.errors += 1
                        logger.error(
                            f"Error notifying fornada {event.time} of establishment "
                            f"{establishment.id}: {e}",
                            exc_info=True,
                        )

            logger.info(f"Fornada sweep complete: {stats.as_dict()}")
            return stats

        finally:
            db.close()

    async def _notify(
        self,
        directory: SubscriptionDirectory,
        establishment: _EstablishmentSnapshot,
        event: FornadaEvent,
        window: NotificationWindow,
        messages: list[str],
        stats: SweepStats,
    ) -> None:
        logger.info(f"Fornada {event.time} at establishment {establishment.id} matches {window}")
        if not self.notification_service.enabled:
            return

        subscriptions = directory.subscriptions_for(establishment.id)
        if not subscriptions:
            return

        payload = build_fornada_payload(
            establishment.id,
            establishment.name,
            body=choose_message(messages, event.time, rng=self.rng),
            icon=self.icon,
            window=window,
            event=event,
        )
        report = await self.notification_service.notify(directory, subscriptions, payload)
        stats.delivered += report.delivered
        stats.expired += len(report.expired_subscription_ids)
        stats.failed += report.failed
        stats.pruned += report.pruned
