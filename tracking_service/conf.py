"""
Process-wide tracking configuration

Built once from Django settings and handed to the signer, link encoder and
views. The cache is dropped whenever a tracking setting changes (tests use
override_settings), so nothing else holds on to stale values.
"""
from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

PIXEL_FORMATS = ('gif', 'png')

TRACKING_SETTINGS = {
    'TRACKING_BASE_URL',
    'TRACK_SECRET',
    'TRACKING_DEFAULT_REDIRECT_URL',
    'TRACKING_PIXEL_FORMAT',
    'TRACKING_ALLOWED_ORIGINS',
    'TRACKING_LOOKUP_TIMEOUT',
    'TRACKING_EVENT_STORE',
    'SUPABASE_URL',
    'SUPABASE_ANON_KEY',
}


@dataclass(frozen=True)
class TrackingConfig:
    base_url: str
    secret: str
    default_redirect_url: str
    pixel_format: str = 'gif'
    allowed_origins: tuple = ()
    lookup_timeout: float = 3.0

    def __post_init__(self):
        if not self.secret:
            raise ValueError("TRACK_SECRET must not be empty")
        if self.pixel_format not in PIXEL_FORMATS:
            raise ValueError(
                f"TRACKING_PIXEL_FORMAT must be one of {PIXEL_FORMATS}, got {self.pixel_format!r}"
            )
        # Links are built as base + '/pixel', so never keep a trailing slash
        object.__setattr__(self, 'base_url', self.base_url.rstrip('/'))


@lru_cache(maxsize=None)
def get_tracking_config():
    """Return the TrackingConfig for the current settings"""
    return TrackingConfig(
        base_url=settings.TRACKING_BASE_URL,
        secret=settings.TRACK_SECRET,
        default_redirect_url=settings.TRACKING_DEFAULT_REDIRECT_URL,
        pixel_format=settings.TRACKING_PIXEL_FORMAT,
        allowed_origins=tuple(settings.TRACKING_ALLOWED_ORIGINS),
        lookup_timeout=settings.TRACKING_LOOKUP_TIMEOUT,
    )


@receiver(setting_changed)
def reset_tracking_config(sender, setting, **kwargs):
    if setting in TRACKING_SETTINGS:
        get_tracking_config.cache_clear()
        # Late import: store imports conf
        from .store import get_event_store
        get_event_store.cache_clear()
