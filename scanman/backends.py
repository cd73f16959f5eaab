"""
Process-wide collaborators, built once from SCANMAN settings.

    get_directory()    -> EntityDirectory   (DIRECTORY_BACKEND, required)
    get_ledger()       -> PointsLedger      (LEDGER_BACKEND, required to award)
    get_notifier()     -> Notifier | None   (NOTIFIER_BACKEND, optional)
    get_rate_limiter() -> RateLimiter       (COUNTER_STORE + RATE_LIMIT_*)

Instances are cached for the life of the process. Changing settings at
runtime (override_settings in tests) drops the cache.
"""

from functools import lru_cache

from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.module_loading import import_string

from scanman.conf import scanman_settings
from scanman.protocols import EntityDirectory, Notifier, PointsLedger
from scanman.ratelimit import RateLimiter
from scanman.signing import get_signer


def _load(setting_name: str, required: bool = True):
    backend_path = getattr(scanman_settings, setting_name)
    if not backend_path:
        if required:
            raise ImproperlyConfigured(f"SCANMAN['{setting_name}'] is not configured.")
        return None
    backend_class = import_string(backend_path)
    return backend_class()


@lru_cache(maxsize=1)
def get_directory() -> EntityDirectory:
    """Configured EntityDirectory."""
    return _load("DIRECTORY_BACKEND")


@lru_cache(maxsize=1)
def get_ledger() -> PointsLedger:
    """Configured PointsLedger."""
    return _load("LEDGER_BACKEND")


@lru_cache(maxsize=1)
def get_notifier() -> Notifier | None:
    """Configured Notifier, or None when notifications are disabled."""
    return _load("NOTIFIER_BACKEND", required=False)


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """Scan rate limiter over the configured counter store."""
    store_class = import_string(scanman_settings.COUNTER_STORE)
    return RateLimiter(
        store=store_class(),
        limit=scanman_settings.RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds=scanman_settings.RATE_LIMIT_WINDOW_SECONDS,
    )


def reset() -> None:
    """Drop every cached collaborator (next access rebuilds from settings)."""
    get_directory.cache_clear()
    get_ledger.cache_clear()
    get_notifier.cache_clear()
    get_rate_limiter.cache_clear()
    get_signer.cache_clear()


@receiver(setting_changed)
def _on_setting_changed(sender, setting, **kwargs):
    if setting in ("SCANMAN", "SECRET_KEY"):
        reset()
