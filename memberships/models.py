from django.conf import settings
from django.db import models
from django.utils import timezone
from dateutil.relativedelta import relativedelta
from datetime import timedelta
from decimal import Decimal
import math
import uuid

from .exceptions import MembershipNotRenewable


def add_months(start_date, months):
    """Calendar month arithmetic; the day is clamped to the end of shorter months."""
    return start_date + relativedelta(months=months)


def approximate_debt(cost, days_expired):
    """Cost of every started billing period since expiry."""
    periods = math.ceil(max(days_expired, 0) / settings.DEBT_PERIOD_DAYS)
    return (cost or Decimal('0')) * periods


class Membership(models.Model):
    """A member's subscription to one activity for a fixed date range."""

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        EXPIRED = 'expired', 'Expired'
        CANCELLED = 'cancelled', 'Cancelled'
        RENEWED = 'renewed', 'Renewed'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        PARTIAL = 'partial', 'Partial'

    class PriceSource(models.TextChoices):
        ACTIVITY = 'activity', 'Activity tier'
        PLAN = 'plan', 'Membership plan'
        PREVIOUS = 'previous', 'Previous price'
        MANUAL = 'manual', 'Set on assignment'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='memberships')

    member = models.ForeignKey('members.Member', on_delete=models.CASCADE, related_name='memberships')
    member_name = models.CharField(max_length=255, blank=True)
    activity = models.ForeignKey('activities.Activity', on_delete=models.PROTECT, related_name='memberships')
    activity_name = models.CharField(max_length=255, blank=True)
    plan = models.ForeignKey(
        'activities.MembershipPlan', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='memberships'
    )

    cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_source = models.CharField(max_length=10, choices=PriceSource.choices, default=PriceSource.MANUAL)
    start_date = models.DateField(default=timezone.localdate)
    end_date = models.DateField(blank=True, null=True)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    auto_renewal = models.BooleanField(default=False)

    max_attendances = models.PositiveIntegerField(default=0, help_text="0 = unlimited")
    current_attendances = models.PositiveIntegerField(default=0)

    # Renewal lineage: previous <- this -> renewed_to
    previous_membership = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    renewed_to = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    renewed_automatically = models.BooleanField(default=False)
    renewal_date = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def days_expired(self, today=None):
        today = today or timezone.localdate()
        if not self.end_date:
            return 0
        return max(0, (today - self.end_date).days)

    def days_until_expiration(self, today=None):
        today = today or timezone.localdate()
        if not self.end_date:
            return None
        return (self.end_date - today).days

    def is_expired(self, today=None):
        today = today or timezone.localdate()
        return bool(self.end_date and self.end_date < today)

    def total_debt(self, today=None):
        return approximate_debt(self.cost, self.days_expired(today))

    def ensure_renewable(self):
        if self.status == self.Status.RENEWED or self.renewed_to_id:
            raise MembershipNotRenewable("Membership has already been renewed")
        if self.status == self.Status.CANCELLED:
            raise MembershipNotRenewable("Cancelled memberships cannot be renewed")

    def mark_renewed(self, new_membership):
        self.status = self.Status.RENEWED
        self.renewed_to = new_membership
        self.save(update_fields=['status', 'renewed_to', 'updated_at'])

    def cancel(self):
        if self.status not in [self.Status.ACTIVE, self.Status.EXPIRED]:
            raise ValueError("Only active or expired memberships can be cancelled")
        self.status = self.Status.CANCELLED
        self.save(update_fields=['status', 'updated_at'])

    def save(self, *args, **kwargs):
        # Denormalized names for listings and reports
        if not self.member_name and self.member_id:
            self.member_name = self.member.full_name
        if not self.activity_name and self.activity_id:
            self.activity_name = self.activity.name

        # Calculate end_date only on first save
        if not self.end_date and self.start_date:
            if self.plan_id:
                self.end_date = self.start_date + timedelta(days=self.plan.duration_days)
            else:
                self.end_date = add_months(self.start_date, 1)

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.member_name} - {self.activity_name} ({self.status})"

    class Meta:
        ordering = ['-start_date', '-created_at']
        indexes = [
            models.Index(fields=['gym', 'status', 'end_date'], name='membership_gym_status_end_idx'),
            models.Index(fields=['gym', 'auto_renewal'], name='membership_gym_auto_idx'),
        ]


class PendingPayment(models.Model):
    """Money owed for a renewal, tracked apart from the membership's payment_status."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'

    TYPE_MEMBERSHIP_RENEWAL = 'membership_renewal'
    TYPE_CHOICES = [
        (TYPE_MEMBERSHIP_RENEWAL, 'Membership renewal'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='pending_payments')
    membership = models.ForeignKey(Membership, on_delete=models.CASCADE, related_name='pending_payments')
    member = models.ForeignKey('members.Member', on_delete=models.CASCADE, related_name='pending_payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, default=TYPE_MEMBERSHIP_RENEWAL)
    due_date = models.DateField()
    paid_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.membership.member_name}: {self.amount} due {self.due_date} ({self.status})"

    class Meta:
        ordering = ['due_date', 'created_at']


class RenewalLog(models.Model):
    """Audit trail of single renewals, bulk passes and monthly runs."""

    class Action(models.TextChoices):
        RENEWAL = 'renewal', 'Renewal'
        BATCH_RENEWAL = 'batch_renewal', 'Batch renewal'
        MONTHLY_PROCESS = 'monthly_process', 'Monthly process'

    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='renewal_logs')
    action = models.CharField(max_length=20, choices=Action.choices)
    success = models.BooleanField(default=True)

    membership = models.ForeignKey(
        Membership, on_delete=models.SET_NULL, null=True, blank=True, related_name='renewal_logs'
    )
    new_membership = models.ForeignKey(
        Membership, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    member_name = models.CharField(max_length=255, blank=True)
    activity_name = models.CharField(max_length=255, blank=True)
    old_end_date = models.DateField(blank=True, null=True)
    new_end_date = models.DateField(blank=True, null=True)
    old_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    new_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    price_source = models.CharField(max_length=10, choices=Membership.PriceSource.choices, blank=True)
    months = models.PositiveSmallIntegerField(blank=True, null=True)
    automatic = models.BooleanField(default=False)
    error = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        outcome = 'ok' if self.success else 'failed'
        return f"{self.get_action_display()} {outcome} on {self.created_at:%Y-%m-%d %H:%M}"

    class Meta:
        ordering = ['-created_at']


class MonthlyRenewalRun(models.Model):
    """Marks the monthly renewal batch as claimed for a gym; at most one per month."""
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='monthly_renewal_runs')
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    notify_only = models.BooleanField(default=False)

    renewed_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    notified_count = models.PositiveIntegerField(default=0)

    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    def complete(self, renewed=0, failed=0, notified=0):
        self.renewed_count = renewed
        self.failed_count = failed
        self.notified_count = notified
        self.completed_at = timezone.now()
        self.save(update_fields=['renewed_count', 'failed_count', 'notified_count', 'completed_at'])

    def __str__(self):
        return f"{self.gym.name} {self.year}-{self.month:02d}"

    class Meta:
        ordering = ['-year', '-month']
        constraints = [
            models.UniqueConstraint(fields=['gym', 'year', 'month'], name='unique_monthly_renewal_run'),
        ]
