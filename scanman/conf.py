"""
Scanman configuration.

Usage in settings.py:
    SCANMAN = {
        "SIGNING_SECRET": env("QR_SECRET_KEY"),
        "ROTATION_INTERVAL_DAYS": 30,
        "RATE_LIMIT_MAX_ATTEMPTS": 10,
        "DIRECTORY_BACKEND": "myproject.loyalty.adapters.LoyaltyDirectory",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class ScanmanSettings:
    """Scanman configuration settings."""

    # Signature Engine (falls back to settings.SECRET_KEY when empty)
    SIGNING_SECRET: str = ""
    SIGNATURE_VALIDITY_DAYS: int = 180
    SIGNATURE_CLOCK_SKEW_SECONDS: int = 300

    # Code lifecycle (0 disables rotation)
    ROTATION_INTERVAL_DAYS: int = 30
    DEFAULT_CODE_TTL_DAYS: int = 30

    # Rate limiting
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_ATTEMPTS: int = 10
    RATE_LIMIT_SWEEP_SECONDS: int = 300
    RATE_LIMIT_MAX_KEYS: int = 10000
    COUNTER_STORE: str = "scanman.ratelimit.InMemoryCounterStore"

    # Transient store error retry
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_DELAY_SECONDS: float = 0.1
    RETRY_JITTER_SECONDS: float = 0.0

    # Collaborators (dotted paths)
    DIRECTORY_BACKEND: str = ""
    LEDGER_BACKEND: str = ""
    NOTIFIER_BACKEND: str = ""

    @property
    def signing_secret(self) -> str:
        return self.SIGNING_SECRET or settings.SECRET_KEY


def get_scanman_settings() -> ScanmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "SCANMAN", {})
    return ScanmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_scanman_settings(), name)


scanman_settings = _LazySettings()
