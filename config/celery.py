# Celery runs the background jobs of the CRM

# - Telegram admin notifications (apps.core.tasks)
# - Bulk WhatsApp template sends (apps.whatsapp.tasks)
# - Daily auto-completion of old withdrawals (apps.wallet.tasks)
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# 'energycrm' appears in logs and monitoring
app = Celery('energycrm')

# All settings prefixed with 'CELERY_' are used (CELERY_BROKER_URL, ...)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py in each installed app
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)

app.conf.beat_schedule = {
    # Pending withdrawals older than WITHDRAWAL_AUTO_COMPLETE_DAYS become completed
    'process-old-withdrawals': {
        'task': 'apps.wallet.tasks.process_old_withdrawals',
        'schedule': crontab(hour=3, minute=0),  # Every day at 3:00 AM
    },
}


# CELERY TASK ANNOTATIONS

app.conf.task_annotations = {
    # Keep bulk sends under the Cloud API throughput limits
    'apps.whatsapp.tasks.send_bulk_template': {
        'rate_limit': '10/m',
    },
}
