"""Celery application configuration for Tenderflow background tasks."""

import logging

from celery import Celery

from src.config import settings

celery = Celery("tenderflow")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "src.modules.tender.tasks.close_expired_tenders": {"queue": "tender-lifecycle"},
    },
    # --- Reliability settings ---
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24 hours
    # --- Broker transport options (Redis reliability) ---
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
    },
    # --- Beat schedule ---
    beat_schedule={
        "tender-close-expired": {
            "task": "src.modules.tender.tasks.close_expired_tenders",
            "schedule": settings.tender_sweep_interval_seconds,
            # A tick that outlives the next interval is dropped, not queued up
            "options": {"expires": settings.tender_sweep_interval_seconds},
        },
    },
)

logging.getLogger("src").setLevel(settings.log_level.upper())

celery.autodiscover_tasks([
    "src.modules.tender",
])
