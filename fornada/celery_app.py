"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from fornada.config import get_settings
from fornada.services.fornada_schedule import WINDOW_WIDTH_MINUTES

settings = get_settings()

app = Celery(
    "fornada",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["fornada.tasks.fornadas", "fornada.tasks.notifications"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Fornada times are wall-clock times in this timezone
    timezone=settings.fornada_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
)

# The sweep cadence must equal the notification window width
app.conf.beat_schedule = {
    "fornada-sweep": {
        "task": "fornada.tasks.fornadas.run_fornada_sweep",
        "schedule": crontab(minute=f"*/{WINDOW_WIDTH_MINUTES}"),
    },
}
