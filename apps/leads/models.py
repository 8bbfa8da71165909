from decimal import Decimal

from django.db import models
from django.utils import timezone

from apps.accounts.models import User
from apps.core.models import Company, LeadSource


class Lead(models.Model):
    # Pipeline stages (left to right on the board)
    STAGE_UNASSIGNED = 'unassigned'
    STAGE_CONTACT = 'contact'
    STAGE_INVOICE = 'invoice'
    STAGE_PROPOSAL = 'proposal'
    STAGE_CONTRACT = 'contract'
    STAGE_COMPLIANCE = 'compliance'
    STAGE_SIGNED = 'signed'
    STAGE_COMPLETED = 'completed'
    STAGE_CANCELLED = 'cancelled'
    STAGE_LOST = 'lost'
    STAGE_CHOICES = [
        (STAGE_UNASSIGNED, 'To Assign'),
        (STAGE_CONTACT, 'Initial Contact'),
        (STAGE_INVOICE, 'Invoice Under Review'),
        (STAGE_PROPOSAL, 'Proposal Sent'),
        (STAGE_CONTRACT, 'Contract Sent'),
        (STAGE_COMPLIANCE, 'Compliance'),
        (STAGE_SIGNED, 'Signed'),
        (STAGE_COMPLETED, 'Completed'),
        (STAGE_CANCELLED, 'Cancelled'),
        (STAGE_LOST, 'Lost'),
    ]
    # Leads in these stages no longer count against a seller's assignment limit
    CLOSED_STAGES = [STAGE_SIGNED, STAGE_COMPLETED, STAGE_CANCELLED, STAGE_LOST]

    CUSTOMER_TYPE_CHOICES = [
        ('pf', 'Individual (CPF)'),
        ('pj', 'Company (CNPJ)'),
    ]

    # Basic Information
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='leads', help_text='Which company owns this lead')
    name = models.CharField(max_length=200, help_text="Lead's full name")
    phone = models.CharField(max_length=20, blank=True, db_index=True, help_text='Phone number, digits only')
    email = models.EmailField(blank=True, null=True, help_text='Email address (optional)')
    document = models.CharField(max_length=14, blank=True, db_index=True, help_text='CPF (11 digits) or CNPJ (14 digits)')
    customer_type = models.CharField(max_length=2, choices=CUSTOMER_TYPE_CHOICES, blank=True)

    # Energy & Value
    kwh = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), help_text='Average monthly consumption (kWh)')
    value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), help_text='Estimated monthly bill (R$)')
    value_after_discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), help_text='Billed value after discount (R$)')
    discount_percentage = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0'))
    installation_code = models.CharField(max_length=50, blank=True, help_text='Utility installation / client code')
    utility = models.CharField(max_length=100, blank=True, help_text='Utility company (concessionária)')
    plan = models.CharField(max_length=100, blank=True)

    # Pipeline
    source = models.ForeignKey(LeadSource, on_delete=models.PROTECT, related_name='leads', null=True, blank=True, help_text='Where did this lead come from?')
    stage = models.CharField(max_length=20, choices=STAGE_CHOICES, default=STAGE_UNASSIGNED, db_index=True)
    needs_admin_approval = models.BooleanField(default=False)
    correction_reason = models.TextField(blank=True, help_text='Why an admin sent this lead back for correction')

    # Assignment
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_leads',
                                    help_text='Seller responsible for this lead (empty = unassigned)')
    seller_name = models.CharField(max_length=200, blank=True, help_text='Seller name as received on import')

    # Commercial flags
    commission_paid = models.BooleanField(default=False)
    recurrence_paid = models.BooleanField(default=False)

    # Dates
    signed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_contact = models.DateTimeField(default=timezone.now, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Lead'
        verbose_name_plural = 'Leads'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'stage']),
            models.Index(fields=['company', 'assigned_to']),
            models.Index(fields=['company', 'phone']),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone or 'no phone'}) - {self.get_stage_display()}"

    def is_closed(self):
        return self.stage in self.CLOSED_STAGES

    def can_be_assigned(self):
        """Check if lead can be assigned (not signed/completed/cancelled/lost)"""
        return not self.is_closed()

    def assign_to(self, user, assigned_by=None):
        """
        Assign lead to a seller

        Respects the seller's assignment_limit of open leads (admins are
        not limited). An unassigned lead moves to the contact stage.

        Returns:
            bool: False if the lead is closed or the seller is at the limit
        """
        if not self.can_be_assigned():
            return False

        if not user.is_admin():
            open_leads = Lead.objects.filter(assigned_to=user).exclude(
                stage__in=self.CLOSED_STAGES
            ).exclude(pk=self.pk).count()
            if open_leads >= user.assignment_limit:
                return False

        self.assigned_to = user
        if self.stage == self.STAGE_UNASSIGNED:
            self.stage = self.STAGE_CONTACT
        self.save(update_fields=['assigned_to', 'stage', 'updated_at'])

        Activity.objects.create(
            lead=self,
            user=assigned_by or user,
            activity_type='assigned',
            description=f'Assigned to {user.get_full_name()}'
        )
        return True

    def change_stage(self, new_stage, user=None):
        if new_stage not in dict(self.STAGE_CHOICES):
            raise ValueError(f"Unknown stage: {new_stage}")

        old_display = self.get_stage_display()
        self.stage = new_stage
        update_fields = ['stage', 'updated_at']

        if new_stage == self.STAGE_SIGNED and not self.signed_at:
            self.signed_at = timezone.now()
            update_fields.append('signed_at')
        elif new_stage == self.STAGE_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()
            update_fields.append('completed_at')

        self.save(update_fields=update_fields)

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='stage_changed',
            description=f'Stage changed from "{old_display}" to "{self.get_stage_display()}"'
        )

    def add_note(self, content, user):
        note = Note.objects.create(lead=self, user=user, content=content)
        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='note_added',
            description='Added a note'
        )
        return note

    def touch_contact(self, when=None):
        self.last_contact = when or timezone.now()
        self.save(update_fields=['last_contact', 'updated_at'])

    def get_activities(self):
        """Get all activities for this lead (ordered newest first)"""
        return self.activities.all().select_related('user').order_by('-created_at')

    def get_notes(self):
        """Get all notes for this lead (ordered newest first)"""
        return self.notes_set.all().select_related('user').order_by('-created_at')

    def time_since_created(self):
        """Returns time elapsed since lead was created"""
        delta = timezone.now() - self.created_at
        if delta.days > 30:
            months = delta.days // 30
            return f"{months} month{'s' if months > 1 else ''} ago"
        elif delta.days > 0:
            return f"{delta.days} day{'s' if delta.days > 1 else ''} ago"
        elif delta.seconds >= 3600:
            hours = delta.seconds // 3600
            return f"{hours} hour{'s' if hours > 1 else ''} ago"
        elif delta.seconds >= 60:
            minutes = delta.seconds // 60
            return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
        return "Just now"


class Note(models.Model):
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='notes_set', help_text='Which lead this note belongs to')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='notes', help_text='Who wrote this note')
    content = models.TextField(help_text='Note text/content')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Note'
        verbose_name_plural = 'Notes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
        ]

    def __str__(self):
        preview = self.content[:50] + '...' if len(self.content) > 50 else self.content
        return f"Note by {self.user.get_full_name() if self.user else 'Unknown'}: {preview}"


class Activity(models.Model):
    ACTIVITY_TYPE_CHOICES = [
        ('created', 'Created'),
        ('assigned', 'Assigned'),
        ('stage_changed', 'Stage Changed'),
        ('note_added', 'Note Added'),
        ('message_received', 'Message Received'),
        ('imported', 'Imported'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='activities')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activities', help_text='Who performed this action')
    activity_type = models.CharField(max_length=30, choices=ACTIVITY_TYPE_CHOICES)
    description = models.TextField(help_text='Human-readable description of what happened')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Activity'
        verbose_name_plural = 'Activities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        user_name = self.user.get_full_name() if self.user else 'System'
        return f"{user_name}: {self.description}"
