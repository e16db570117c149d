import tempfile

from .settings import *  # noqa: F401,F403

DEBUG = False
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

MEDIA_ROOT = tempfile.mkdtemp(prefix="meetscribe-media-")
MEDIA_URL = "/media/"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

OPENAI_API_KEY = "test-key"
OPENAI_BASE_URL = "https://upstream.test/v1"

TRANSCRIPTION_RATE_PER_SECOND = 1000.0
TRANSCRIPTION_RATE_LIMIT_BACKEND = "local"

LOG_LEVEL = "WARNING"
LOGGING["root"]["level"] = LOG_LEVEL
