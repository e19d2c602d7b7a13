"""
Celery application configuration.

Runs the daily billing jobs: the subscription cycle and the transaction
currency scan.
"""

from typing import Any

from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from resumeforge.platform.settings import settings

# Create Celery application
celery_app = Celery(
    "resumeforge_platform",
    broker=settings.celery.broker_url,
    backend=settings.celery.result_backend,
    include=["resumeforge.platform.tasks"],
)

celery_app.conf.update(
    task_routes={
        "subscriptions.*": {"queue": "default"},
        "ledger.*": {"queue": "default"},
    },
    task_default_queue="default",
    task_queues=(Queue("default", routing_key="default"),),
    task_serializer=settings.celery.task_serializer,
    accept_content=settings.celery.accept_content,
    result_serializer=settings.celery.result_serializer,
    timezone=settings.celery.timezone,
    enable_utc=settings.celery.enable_utc,
    result_expires=3600,  # 1 hour
    task_track_started=True,
    task_time_limit=settings.celery.task_time_limit,
    task_soft_time_limit=settings.celery.task_soft_time_limit,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)


@celery_app.on_after_finalize.connect  # type: ignore[misc]
def setup_periodic_tasks(sender: Any, **kwargs: Any) -> None:
    """Register the daily billing jobs."""
    from resumeforge.platform.tasks import (
        process_subscription_cycle_task,
        validate_transaction_currencies_task,
    )

    sender.add_periodic_task(
        crontab(hour=settings.billing.subscription_cycle_hour_utc, minute=0),
        process_subscription_cycle_task.s(),
        name="subscriptions-process-cycle",
    )
    sender.add_periodic_task(
        crontab(hour=settings.billing.currency_validation_hour_utc, minute=0),
        validate_transaction_currencies_task.s(),
        name="ledger-validate-currencies",
    )
