"""
Tests for the Celery application configuration.
"""

import pytest

from resumeforge.platform import tasks
from resumeforge.platform.celery_app import celery_app
from resumeforge.platform.settings import settings

pytestmark = pytest.mark.unit


class TestCeleryConfiguration:
    def test_time_limits_come_from_settings(self):
        assert celery_app.conf.task_time_limit == settings.celery.task_time_limit
        assert celery_app.conf.task_soft_time_limit == settings.celery.task_soft_time_limit
        assert settings.celery.task_soft_time_limit < settings.celery.task_time_limit

    def test_billing_task_names(self):
        assert tasks.process_subscription_cycle_task.name == "subscriptions.process_cycle"
        assert tasks.validate_transaction_currencies_task.name == "ledger.validate_currencies"
