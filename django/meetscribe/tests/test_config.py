import logging

from django.conf import settings


def test_test_run_logs_at_warning():
    assert settings.LOGGING["root"]["level"] == "WARNING"
    assert logging.getLogger().level == logging.WARNING


def test_upload_spill_threshold_is_configured():
    assert settings.FILE_UPLOAD_MAX_MEMORY_SIZE == 10 * 1024 * 1024
