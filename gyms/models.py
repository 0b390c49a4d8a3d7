from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from datetime import timedelta
import uuid

phone_regex = RegexValidator(regex=r'^\+?1?\d{9,15}$', message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed.")


class Gym(models.Model):
    """A tenant: every member, membership and payment belongs to exactly one gym."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(validators=[phone_regex], max_length=17, blank=True)
    address = models.TextField(blank=True)
    logo = models.ImageField(upload_to='gyms/logos/', blank=True, null=True)

    # Paid SaaS subscription of the gym itself (see billing.RenewalRequest)
    subscription_end_date = models.DateField(blank=True, null=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def extend_subscription(self, days, today=None):
        today = today or timezone.localdate()
        base = self.subscription_end_date if self.subscription_end_date and self.subscription_end_date > today else today
        self.subscription_end_date = base + timedelta(days=days)
        self.save(update_fields=['subscription_end_date', 'updated_at'])
        return self.subscription_end_date

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['name']


class User(AbstractUser):
    """Base user model with common fields"""
    ROLE_CHOICES = [
        ('superadmin', 'Superadmin'),
        ('admin', 'Admin'),
        ('staff', 'Staff'),
        ('trainer', 'Trainer'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    phone = models.CharField(validators=[phone_regex], max_length=17, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    gym = models.ForeignKey(Gym, on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'role']

    @property
    def is_superadmin(self):
        return self.role == 'superadmin' or self.is_superuser

    def __str__(self):
        return f"{self.email} - {self.role}"


class AutoRenewalConfig(models.Model):
    """Per-gym settings for the scheduled monthly renewal batch."""
    gym = models.OneToOneField(Gym, on_delete=models.CASCADE, related_name='auto_renewal_config')
    enabled = models.BooleanField(default=True)
    day_of_month = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(28)],
        help_text="First day of the month on which the batch may run",
    )
    notify_only = models.BooleanField(
        default=False,
        help_text="Only remind members of expired auto-renewal memberships, do not renew them",
    )
    last_run = models.DateField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    @classmethod
    def for_gym(cls, gym):
        config, _ = cls.objects.get_or_create(gym=gym)
        return config

    def __str__(self):
        mode = 'notify only' if self.notify_only else 'renew'
        return f"{self.gym.name}: day {self.day_of_month} ({mode}, {'on' if self.enabled else 'off'})"
