"""
Django settings for Scanman tests.

Collaborators are in-memory fakes (scanman.tests.fakes).
"""

SECRET_KEY = "test-secret-key-for-scanman-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "scanman",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

ROOT_URLCONF = "scanman.tests.urls"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "America/Sao_Paulo"

SCANMAN = {
    "SIGNING_SECRET": "test-qr-signing-secret",
    "ROTATION_INTERVAL_DAYS": 30,
    "RATE_LIMIT_WINDOW_SECONDS": 60,
    "RATE_LIMIT_MAX_ATTEMPTS": 10,
    "RETRY_MAX_ATTEMPTS": 3,
    "RETRY_DELAY_SECONDS": 0,
    "DIRECTORY_BACKEND": "scanman.tests.fakes.InMemoryDirectory",
    "LEDGER_BACKEND": "scanman.tests.fakes.RecordingLedger",
    "NOTIFIER_BACKEND": "scanman.tests.fakes.RecordingNotifier",
}
