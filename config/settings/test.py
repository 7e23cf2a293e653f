"""
Test settings for the DrCarCold site.

Uses in-memory SQLite and eager Celery for fast test execution.
"""

import tempfile
from pathlib import Path

from .base import *

# Test mode
DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# Test database - in-memory SQLite for speed
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Test Cache - use local memory cache
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "unique-snowflake",
    }
}

# Test Celery - run tasks synchronously
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Test logging - minimal output
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["drcarcold"]["level"] = "WARNING"

# Password validators disabled for faster tests
AUTH_PASSWORD_VALIDATORS = []

# Use faster password hasher for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Mail goes to django.core.mail.outbox
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Disable Sentry in tests
SENTRY_DSN = ""

# Uploads go to a throwaway directory
DRCARCOLD_UPLOAD_ROOT = Path(tempfile.mkdtemp(prefix="drcarcold-uploads-"))

# Test crawler settings - fail fast
CRAWLER_REQUEST_TIMEOUT = 5
CRAWLER_MAX_RETRIES = 0
CRAWLER_ARTICLE_DELAY = 0

# Test AI settings - no retries or backoff sleeps
AI_REQUEST_TIMEOUT = 5
AI_MAX_RETRIES = 0
AI_RETRY_INITIAL_DELAY = 0
AI_RETRY_MAX_DELAY = 0
