"""Celery tasks for scheduled fornada reminders."""

import asyncio
import logging
from functools import lru_cache

import redis

from fornada.celery_app import app as celery_app
from fornada.config import get_settings
from fornada.database import SessionLocal
from fornada.services.fornada_sweep import FornadaSweep
from fornada.services.notification_service import get_notification_service

logger = logging.getLogger(__name__)

SWEEP_LOCK_NAME = "fornada:sweep-lock"


@lru_cache
def get_fornada_sweep() -> FornadaSweep:
    """Get the process-wide sweep.

    Its skip-if-busy guard is a Redis lock, shared by every worker process
    talking to the same broker.
    """
    settings = get_settings()
    lock = redis.from_url(settings.redis_url).lock(
        SWEEP_LOCK_NAME,
        timeout=settings.sweep_lock_timeout_seconds,
        thread_local=False,
    )
    return FornadaSweep(
        session_factory=SessionLocal,
        notification_service=get_notification_service(),
        timezone=settings.fornada_timezone,
        icon=settings.notification_icon,
        lock=lock,
    )


@celery_app.task
def run_fornada_sweep() -> dict:
    """Notify followers of fornadas starting in one hour or in five minutes.

    This task runs every five minutes via celery-beat.

    Returns:
        dict with sweep statistics
    """
    try:
        stats = asyncio.run(get_fornada_sweep().run())
        return stats.as_dict()
    except Exception as e:
        logger.error(f"Error running fornada sweep: {e}", exc_info=True)
        return {"error": str(e)}
