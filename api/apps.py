from django.apps import AppConfig


class ApiConfig(AppConfig):
    name = 'api'

    def ready(self):
        # Connects the review rating signals
        from . import models  # noqa: F401
