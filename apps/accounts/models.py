# Models:
# 1. User - Custom user model (email login, roles, balances, referral & team links)

import secrets
from collections import deque
from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# USER MANAGER (handles user creation)
class UserManager(BaseUserManager):
    """
    Custom user manager for User model

    Provides methods to:
    - Create regular users
    - Create superusers (admins)
    - Handle email-based authentication
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user

        Args:
            email (str): User's email address (required)
            password (str): User's password (required)
            **extra_fields: Additional fields (first_name, role, company, etc.)

        Returns:
            User: The created user object

        Raises:
            ValueError: If email is not provided

        Example:
            user = User.objects.create_user(
                email='seller@energy.com',
                password='securepass123',
                first_name='Ana',
                role='seller'
            )
        """
        if not email:
            raise ValueError(_('Users must have an email address'))

        email = self.normalize_email(email)

        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser (admin)

        Superusers have all permissions and can access admin panel
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_SUPERADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)


def _default_assignment_limit():
    return settings.DEFAULT_ASSIGNMENT_LIMIT


def _default_commission_rate():
    return settings.DEFAULT_COMMISSION_RATE


# USER MODEL
class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model

    Features:
    - Email-based authentication (no username)
    - Multi-tenancy support (company field)
    - Role-based access (superadmin, admin, seller, prospector, lawyer, ...)
    - Balances: personal wallet, multi-level (referral) wallet and credits
    - Referral linkage (referred_by) and MLM team (upline)
    """

    # ROLES
    ROLE_SUPERADMIN = 'superadmin'
    ROLE_ADMIN = 'admin'
    ROLE_SELLER = 'seller'
    ROLE_PROSPECTOR = 'prospector'
    ROLE_LAWYER = 'lawyer'
    ROLE_USER = 'user'
    ROLE_PENDING_SETUP = 'pending_setup'
    ROLE_CHOICES = [
        (ROLE_SUPERADMIN, _('Super Administrator')),
        (ROLE_ADMIN, _('Administrator')),
        (ROLE_SELLER, _('Seller')),
        (ROLE_PROSPECTOR, _('Prospector')),
        (ROLE_LAWYER, _('Lawyer')),
        (ROLE_USER, _('User')),
        (ROLE_PENDING_SETUP, _('Pending Setup')),
    ]
    ADMIN_ROLES = (ROLE_SUPERADMIN, ROLE_ADMIN)
    # Roles that unlock invoice contacts without spending credits
    FREE_UNLOCK_ROLES = (ROLE_SUPERADMIN, ROLE_ADMIN, ROLE_LAWYER)

    # PLANS
    PLAN_FREE = 'free'
    PLAN_SDR_PRO = 'sdr_pro'
    PLAN_CHOICES = [
        (PLAN_FREE, _('Free')),
        (PLAN_SDR_PRO, _('SDR Pro')),
    ]

    # Email as primary identifier (instead of username)
    email = models.EmailField(_('email address'), unique=True, max_length=255, db_index=True, help_text=_('Required. Used for login.'))
    first_name = models.CharField(_('first name'), max_length=50, blank=True)
    last_name = models.CharField(_('last name'), max_length=50, blank=True)

    # Phone validator (accepts: +5511987654321, 11987654321, etc.)
    phone_validator = RegexValidator(regex=r'^\+?1?\d{9,15}$', message=_('Phone number must be entered in the format: +999999999. Up to 15 digits allowed.'))
    phone = models.CharField(_('phone number'), validators=[phone_validator], max_length=17, blank=True, null=True)
    document = models.CharField(_('CPF/CNPJ'), max_length=14, blank=True, null=True, unique=True,
                                help_text=_('CPF (11 digits) or CNPJ (14 digits), digits only'))

    # COMPANY & ROLE (Multi-tenancy)
    company = models.ForeignKey('core.Company', on_delete=models.CASCADE, related_name='users',
                                null=True, blank=True, verbose_name=_('company'))
    role = models.CharField(_('role'), max_length=20, choices=ROLE_CHOICES, default=ROLE_SELLER, db_index=True)

    # BALANCES (mutated only through billing/wallet services)
    personal_balance = models.DecimalField(_('personal balance'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mlm_balance = models.DecimalField(_('multi-level balance'), max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                      help_text=_('Referral commissions available for withdrawal'))
    credits = models.PositiveIntegerField(_('credits'), default=0, help_text=_('Credits used to unlock contacts and generate proposals'))

    # REFERRAL & TEAM
    referral_code = models.CharField(_('referral code'), max_length=12, unique=True, blank=True, null=True)
    referred_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='referrals',
                                    verbose_name=_('referred by'), help_text=_('User who receives commission on this user\'s payments'))
    upline = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='downline',
                               verbose_name=_('upline'), help_text=_('Team leader in the multi-level structure'))
    mlm_enabled = models.BooleanField(_('multi-level enabled'), default=False)
    commission_rate = models.PositiveSmallIntegerField(_('commission rate (%)'), default=_default_commission_rate)
    recurrence_rate = models.DecimalField(_('recurrence rate (%)'), max_digits=5, decimal_places=2, default=Decimal('0.00'))

    # PERMISSION FLAGS
    can_view_lead_phone = models.BooleanField(_('can view lead phone'), default=False)
    can_view_crm = models.BooleanField(_('can view CRM'), default=False)
    can_view_career_plan = models.BooleanField(_('can view career plan'), default=True)
    assignment_limit = models.PositiveSmallIntegerField(_('assignment limit'), default=_default_assignment_limit,
                                                        help_text=_('Maximum number of open leads assigned at once'))

    # BILLING
    plan = models.CharField(_('plan'), max_length=20, choices=PLAN_CHOICES, default=PLAN_FREE)
    subscription_id = models.CharField(_('subscription ID'), max_length=100, blank=True)
    asaas_customer_id = models.CharField(_('payment gateway customer ID'), max_length=100, blank=True)

    is_active = models.BooleanField(_('active'), default=True, help_text=_('Unselect this instead of deleting accounts.'))
    is_staff = models.BooleanField(_('staff status'), default=False, help_text=_('Designates whether the user can log into admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['company', 'role']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name} ({self.email})"
        return self.email

    def save(self, *args, **kwargs):
        if not self.referral_code:
            self.referral_code = self.generate_referral_code()
        if self.document == '':
            self.document = None
        super().save(*args, **kwargs)

    @classmethod
    def generate_referral_code(cls):
        while True:
            code = secrets.token_hex(4).upper()
            if not cls.objects.filter(referral_code=code).exists():
                return code

    # HELPER METHODS
    def get_full_name(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        elif self.first_name:
            return self.first_name
        return self.email

    def get_short_name(self):
        return self.first_name if self.first_name else self.email

    # ROLE CHECKS
    def is_admin(self):
        return self.role in self.ADMIN_ROLES or self.is_superuser

    def is_seller(self):
        return self.role == self.ROLE_SELLER

    def unlocks_for_free(self):
        return self.role in self.FREE_UNLOCK_ROLES or self.is_superuser

    def get_balance(self, withdrawal_type):
        """Return the balance a withdrawal of the given type draws from."""
        if withdrawal_type == 'mlm':
            return self.mlm_balance
        return self.personal_balance

    # TEAM
    def get_downline(self):
        """
        Whole downline team, breadth-first over the upline links

        Returns:
            list[User]: direct recruits first, then their recruits, etc.
        """
        team = []
        visited = {self.pk}
        queue = deque([self.pk])

        while queue:
            leader_id = queue.popleft()
            for member in User.objects.filter(upline_id=leader_id).order_by('date_joined'):
                # Guard against loops created by bad data
                if member.pk in visited:
                    continue
                visited.add(member.pk)
                team.append(member)
                queue.append(member.pk)

        return team
