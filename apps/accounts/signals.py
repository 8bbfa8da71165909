import logging

from django.contrib.auth import get_user_model
from django.db.models.signals import post_save, pre_delete
from django.dispatch import receiver

logger = logging.getLogger(__name__)

User = get_user_model()


# SIGNAL 1: LOG NEW ACCOUNTS
@receiver(post_save, sender=User)
def log_user_created(sender, instance, created, **kwargs):
    if created:
        logger.info(
            f"User created: {instance.email} (role={instance.role}, "
            f"referred_by={instance.referred_by_id})"
        )


# SIGNAL 2: RELEASE LEADS ON USER DELETION
@receiver(pre_delete, sender=User)
def release_assigned_leads(sender, instance, **kwargs):
    """
    Send the deleted user's open leads back to the unassigned queue

    The FK would only null the assignee; the stage must move back to
    'unassigned' too so admins can hand the lead to someone else.
    """
    from apps.leads.models import Lead

    released = Lead.objects.filter(assigned_to=instance).exclude(
        stage__in=Lead.CLOSED_STAGES
    ).update(assigned_to=None, stage=Lead.STAGE_UNASSIGNED)

    logger.info(f"User deleted: {instance.email}; {released} open leads released")
