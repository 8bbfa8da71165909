# ==============================================================================
# ENERGY SALES CRM - CONFIG PACKAGE INITIALIZER
# ==============================================================================

# Import Celery app so shared_task uses it when Django starts
from .celery import app as celery_app

__all__ = ('celery_app',)
