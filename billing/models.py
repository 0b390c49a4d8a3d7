from django.conf import settings
from django.db import models, transaction
from django.utils import timezone
import uuid


class SubscriptionPlan(models.Model):
    """Plans a gym can buy to keep using the system"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    duration_days = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.duration_days} days)"

    class Meta:
        ordering = ['price']


class RenewalRequest(models.Model):
    """A gym's request to renew its subscription, backed by a proof of payment"""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    class PaymentMethod(models.TextChoices):
        TRANSFER = 'transfer', 'Bank transfer'
        DEPOSIT = 'deposit', 'Deposit'
        OTHER = 'other', 'Other'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='renewal_requests')

    plan = models.ForeignKey(SubscriptionPlan, on_delete=models.SET_NULL, null=True, related_name='renewal_requests')
    plan_name = models.CharField(max_length=255, blank=True)
    plan_duration = models.PositiveIntegerField(default=30)
    plan_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    payment_proof = models.FileField(upload_to='billing/payment_proofs/')
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, default=PaymentMethod.TRANSFER)
    payment_reference = models.CharField(max_length=100, blank=True)
    payment_date = models.DateField(default=timezone.localdate)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='renewal_requests'
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    reviewed_at = models.DateTimeField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def _ensure_pending(self):
        if self.status != self.Status.PENDING:
            raise ValueError("Only pending requests can be reviewed")

    @transaction.atomic
    def approve(self, reviewer, today=None):
        """Approve the request and extend the gym's subscription by the plan duration."""
        self._ensure_pending()
        self.status = self.Status.APPROVED
        self.reviewed_by = reviewer
        self.reviewed_at = timezone.now()
        self.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'updated_at'])
        return self.gym.extend_subscription(self.plan_duration, today=today)

    def reject(self, reviewer, reason):
        self._ensure_pending()
        if not reason:
            raise ValueError("A rejection reason is required")
        self.status = self.Status.REJECTED
        self.reviewed_by = reviewer
        self.reviewed_at = timezone.now()
        self.rejection_reason = reason
        self.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'rejection_reason', 'updated_at'])

    def save(self, *args, **kwargs):
        # Keep what was bought even if the plan changes later
        if self.plan_id and not self.plan_name:
            self.plan_name = self.plan.name
            self.plan_duration = self.plan.duration_days
            self.plan_price = self.plan.price
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.gym.name} - {self.plan_name} ({self.status})"

    class Meta:
        ordering = ['-created_at']
