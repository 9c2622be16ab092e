from django.apps import AppConfig


class ClinicConfig(AppConfig):
    name = 'clinic'
    verbose_name = 'CareLink clinic'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self) -> None:
        from django.conf import settings

        from .storage import Storage

        # The record storage handle lives on the app config; entry points open it.
        self.storage = Storage(settings.RECORD_DATABASE_ALIAS)
