"""Lookup and maintenance of push subscriptions."""

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fornada.models import EstablishmentSubscription, PushSubscription

logger = logging.getLogger(__name__)


class SubscriptionDirectory:
    """Push subscriptions by establishment and by owning user."""

    def __init__(self, db: Session):
        self.db = db

    def subscriptions_for(self, establishment_id: int) -> list[PushSubscription]:
        """All subscriptions following an establishment, whoever owns them."""
        return (
            self.db.query(PushSubscription)
            .join(
                EstablishmentSubscription,
                EstablishmentSubscription.subscription_id == PushSubscription.id,
            )
            .filter(EstablishmentSubscription.establishment_id == establishment_id)
            .all()
        )

    def subscriptions_for_owner(self, user_id: int) -> list[PushSubscription]:
        """All subscriptions registered by a user."""
        return self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()

    def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        return self.db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()

    def upsert(
        self,
        endpoint: str,
        p256dh_key: str,
        auth_key: str,
        user_id: int | None = None,
    ) -> PushSubscription:
        """Create a subscription or merge into the one with the same endpoint.

        An existing owner is kept when the new registration is anonymous.
        """
        subscription = self.get_by_endpoint(endpoint)
        if subscription is None:
            subscription = PushSubscription(
                endpoint=endpoint,
                p256dh_key=p256dh_key,
                auth_key=auth_key,
                user_id=user_id,
            )
            self.db.add(subscription)
            try:
                self.db.commit()
            except IntegrityError:
                # Registered concurrently; merge into the row that won
                self.db.rollback()
                subscription = self.get_by_endpoint(endpoint)
                if subscription is None:
                    raise
            else:
                self.db.refresh(subscription)
                return subscription

        subscription.p256dh_key = p256dh_key
        subscription.auth_key = auth_key
        if user_id is not None:
            subscription.user_id = user_id
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def link(self, subscription_id: int, establishment_id: int) -> bool:
        """Make a subscription follow an establishment.

        Returns True when the link is new, False when it already existed.
        """
        existing = self.db.get(EstablishmentSubscription, (subscription_id, establishment_id))
        if existing:
            return False
        self.db.add(
            EstablishmentSubscription(
                subscription_id=subscription_id, establishment_id=establishment_id
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def unlink(self, subscription_id: int, establishment_id: int) -> bool:
        """Stop a subscription following an establishment."""
        deleted = (
            self.db.query(EstablishmentSubscription)
            .filter(
                EstablishmentSubscription.subscription_id == subscription_id,
                EstablishmentSubscription.establishment_id == establishment_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    def remove(self, subscription_id: int) -> None:
        """Delete a subscription and its links. Missing rows are a no-op."""
        self.db.query(EstablishmentSubscription).filter(
            EstablishmentSubscription.subscription_id == subscription_id
        ).delete(synchronize_session=False)
        self.db.query(PushSubscription).filter(PushSubscription.id == subscription_id).delete(
            synchronize_session=False
        )
        self.db.commit()

    def remove_expired(self, subscription_ids: Iterable[int]) -> int:
        """Delete subscriptions the push service reported as gone.

        Each delete is attempted independently; failures are logged and not
        retried. Returns the number of deletes that went through.
        """
        removed = 0
        for subscription_id in subscription_ids:
            try:
                self.remove(subscription_id)
                removed += 1
                logger.info(f"Removed expired subscription {subscription_id}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to remove expired subscription {subscription_id}: {e}")
        return removed
