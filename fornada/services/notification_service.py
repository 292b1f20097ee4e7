"""Notification service for web push fan-out."""

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
from typing import Protocol

from sqlalchemy.orm import Session

from fornada.config import Settings, get_settings
from fornada.models import PushSubscription
from fornada.services.subscription_directory import SubscriptionDirectory

logger = logging.getLogger(__name__)

# Push services answer 410 Gone (and some 404) for subscriptions that no longer exist
EXPIRED_STATUS_CODES = (404, 410)


class DeliveryStatus(StrEnum):
    """Outcome of a single push delivery."""

    DELIVERED = "delivered"
    EXPIRED = "expired"
    TRANSIENT_ERROR = "transient_error"


@dataclass
class NotificationPayload:
    """Content of a push notification as read by the service worker."""

    title: str
    body: str
    icon: str
    url: str
    reservation_url: str | None = None
    tag: str = "fornada"

    def to_json(self) -> str:
        data = {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "url": self.url,
            "tag": self.tag,
        }
        if self.reservation_url:
            data["reservation_url"] = self.reservation_url
        return json.dumps(data, ensure_ascii=False)


@dataclass
class DeliveryResult:
    """Delivery outcome for one subscription."""

    subscription_id: int
    status: DeliveryStatus
    error: str | None = None


@dataclass
class DispatchReport:
    """Outcome of a fan-out, in the same order as the input subscriptions."""

    results: list[DeliveryResult] = field(default_factory=list)
    skipped: bool = False
    pruned: int = 0

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.DELIVERED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.TRANSIENT_ERROR)

    @property
    def expired_subscription_ids(self) -> list[int]:
        """Subscriptions the push service reported as permanently gone."""
        return [r.subscription_id for r in self.results if r.status == DeliveryStatus.EXPIRED]


class PushTransport(Protocol):
    """Sends one payload to one subscription."""

    def send(self, subscription_info: dict, data: str) -> DeliveryStatus: ...


class WebPushTransport:
    """Push transport backed by pywebpush and VAPID credentials."""

    def __init__(self, vapid_private_key: str, vapid_email: str) -> None:
        self.vapid_private_key = vapid_private_key
        self.vapid_claims = {"sub": f"mailto:{vapid_email}"}

    def send(self, subscription_info: dict, data: str) -> DeliveryStatus:
        from pywebpush import WebPushException, webpush

        try:
            webpush(
                subscription_info=subscription_info,
                data=data,
                vapid_private_key=self.vapid_private_key,
                vapid_claims=dict(self.vapid_claims),
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in EXPIRED_STATUS_CODES:
                return DeliveryStatus.EXPIRED
            raise
        return DeliveryStatus.DELIVERED


class NotificationService:
    """Fans notifications out to push subscriptions."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: PushTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport if transport is not None else self._init_webpush()

    def _init_webpush(self) -> PushTransport | None:
        """Build the web push transport if VAPID credentials are available."""
        if not self.settings.push_configured:
            logger.warning("VAPID credentials not configured, push notifications disabled")
            return None
        logger.info("Web push notifications initialized")
        return WebPushTransport(self.settings.vapid_private_key, self.settings.vapid_email)

    @property
    def enabled(self) -> bool:
        return self.transport is not None

    def _deliver_one(
        self, subscription_id: int, subscription_info: dict, data: str
    ) -> DeliveryResult:
        try:
            status = self.transport.send(subscription_info, data)
        except Exception as e:
            logger.error(f"Push failed for subscription {subscription_id}: {e}")
            return DeliveryResult(subscription_id, DeliveryStatus.TRANSIENT_ERROR, str(e))

        if status == DeliveryStatus.EXPIRED:
            logger.info(f"Subscription {subscription_id} expired")
        return DeliveryResult(subscription_id, status)

    async def dispatch(
        self,
        subscriptions: Sequence[PushSubscription],
        payload: NotificationPayload,
    ) -> DispatchReport:
        """
        Deliver a payload to every subscription concurrently.

        Never raises for individual delivery failures. Results keep the order of
        ``subscriptions``; expired subscriptions are reported, not deleted.
        """
        if not self.enabled:
            return DispatchReport(skipped=True)
        if not subscriptions:
            return DispatchReport()

        data = payload.to_json()
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self._deliver_one, sub.id, sub.subscription_info, data)
                for sub in subscriptions
            )
        )
        report = DispatchReport(results=list(results))
        logger.info(
            f"Sent push to {report.delivered}/{len(subscriptions)} devices "
            f"({len(report.expired_subscription_ids)} expired, {report.failed} failed)"
        )
        return report

    async def notify(
        self,
        directory: SubscriptionDirectory,
        subscriptions: Sequence[PushSubscription],
        payload: NotificationPayload,
    ) -> DispatchReport:
        """Dispatch, then delete the subscriptions reported as expired."""
        report = await self.dispatch(subscriptions, payload)
        if report.expired_subscription_ids:
            report.pruned = directory.remove_expired(report.expired_subscription_ids)
        return report

    async def notify_followers(
        self, db: Session, establishment_id: int, payload: NotificationPayload
    ) -> DispatchReport:
        """Send a notification to everyone following an establishment."""
        directory = SubscriptionDirectory(db)
        subscriptions = directory.subscriptions_for(establishment_id)
        if not subscriptions:
            logger.info(f"No followers for establishment {establishment_id}")
        return await self.notify(directory, subscriptions, payload)

    async def notify_owner(
        self, db: Session, user_id: int, payload: NotificationPayload
    ) -> DispatchReport:
        """Send a notification to all devices of a user."""
        directory = SubscriptionDirectory(db)
        subscriptions = directory.subscriptions_for_owner(user_id)
        if not subscriptions:
            logger.info(f"No push subscriptions for user {user_id}")
        return await self.notify(directory, subscriptions, payload)


@lru_cache
def get_notification_service() -> NotificationService:
    """Get the process-wide notification service."""
    return NotificationService()
