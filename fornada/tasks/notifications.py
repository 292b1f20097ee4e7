"""Celery tasks for on-demand push notifications."""

import asyncio
import logging

from sqlalchemy.orm import Session

from fornada.celery_app import app as celery_app
from fornada.config import get_settings
from fornada.database import SessionLocal
from fornada.models import Establishment, NotificationMessage
from fornada.services.fornada_sweep import build_fornada_payload, choose_message
from fornada.services.notification_service import (
    NotificationPayload,
    get_notification_service,
)

logger = logging.getLogger(__name__)


@celery_app.task
def notify_establishment_followers(
    establishment_id: int,
    message: str | None = None,
    fornada_time: str | None = None,
) -> dict:
    """Send a "fornada now" notification to everyone following an establishment.

    Args:
        establishment_id: ID of the establishment
        message: Explicit notification text; a random canned message otherwise
        fornada_time: "HH:MM" of the fornada, used in the fallback text

    Returns:
        dict with delivery statistics
    """
    db: Session = SessionLocal()
    settings = get_settings()
    notification_service = get_notification_service()

    try:
        establishment = db.get(Establishment, establishment_id)
        if not establishment:
            logger.error(f"Establishment {establishment_id} not found")
            return {"error": "Establishment not found"}

        pool = [] if message else [row.message for row in db.query(NotificationMessage).all()]
        payload = build_fornada_payload(
            establishment.id,
            establishment.name,
            body=choose_message(pool, fornada_time, explicit=message),
            icon=settings.notification_icon,
        )
        report = asyncio.run(notification_service.notify_followers(db, establishment.id, payload))

        return {
            "establishment_id": establishment.id,
            "delivered": report.delivered,
            "expired": len(report.expired_subscription_ids),
            "failed": report.failed,
            "skipped": report.skipped,
        }

    except Exception as e:
        logger.error(
            f"Error notifying followers of establishment {establishment_id}: {e}", exc_info=True
        )
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()


@celery_app.task
def notify_user(user_id: int, title: str, body: str, url: str = "/") -> dict:
    """Send a notification to all devices registered by a user.

    Used to alert establishment owners about new followers and reservations.
    """
    db: Session = SessionLocal()
    settings = get_settings()
    notification_service = get_notification_service()

    try:
        payload = NotificationPayload(
            title=title,
            body=body,
            icon=settings.notification_icon,
            url=url,
            tag="owner-alert",
        )
        report = asyncio.run(notification_service.notify_owner(db, user_id, payload))
        return {"user_id": user_id, "delivered": report.delivered, "skipped": report.skipped}

    except Exception as e:
        logger.error(f"Error notifying user {user_id}: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
