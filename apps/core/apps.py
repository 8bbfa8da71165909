from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for Core application

    This app contains:
        - Company model (multi-tenancy)
        - LeadSource model (where leads come from)
        - UserEvent model and track_event() (product analytics)
        - SequenceCounter (proposal numbers)
        - Telegram notifications
        - Dashboard statistics
    """
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'
