from django.apps import AppConfig


class TrackingServiceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tracking_service'
    verbose_name = 'Email Tracking'

    def ready(self):
        # Registers the setting_changed receiver
        from . import conf  # noqa: F401
