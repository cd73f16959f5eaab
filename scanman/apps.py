from django.apps import AppConfig


class ScanmanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "scanman"
    verbose_name = "Scanman - QR Code Trust & Scans"

    def ready(self):
        # Registers the setting_changed receiver that drops cached backends
        from scanman import backends  # noqa: F401
