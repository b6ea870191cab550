"""
Celery application object for the inbound log-book backend.

Usage
-----
* **Worker**: ``celery -A inbound.core.celery_app worker -Q default,analysis --loglevel=info``

Broker / result backend come from the environment:

    CELERY_BROKER_URL     (default: redis://localhost:6379/0)
    CELERY_RESULT_BACKEND (default: same as broker)
    APP_TIMEZONE          (default: Asia/Jakarta)
"""

from __future__ import annotations

import os
from datetime import timedelta

from celery import Celery
from kombu import Exchange, Queue

# --------------------------------------------------------------------------- #
# Configuration via environment variables                                     #
# --------------------------------------------------------------------------- #

BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", BROKER_URL)
TIMEZONE: str = os.getenv("APP_TIMEZONE", "Asia/Jakarta")

celery_app = Celery(
    "inbound",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
    include=["inbound.services.analysis_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    timezone=TIMEZONE,
    enable_utc=True,
    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("analysis", Exchange("analysis"), routing_key="analysis"),
    ),
    task_routes={"analysis.*": {"queue": "analysis"}},
    result_expires=timedelta(days=1),
)


def init_celery() -> None:  # called from the FastAPI lifespan
    """Import the task modules so ``.delay`` works from the API process."""
    from importlib import import_module

    for module in celery_app.conf.include:
        import_module(module)
