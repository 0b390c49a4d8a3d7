from django.db import models
import uuid


class Activity(models.Model):
    """Something a member can subscribe to (gym floor, crossfit, swimming...)"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='activities')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def current_price(self):
        """Cost of the first membership tier, or None when the activity has no priced tier."""
        tier = self.tiers.order_by('position', 'id').first()
        return tier.cost if tier else None

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'Activities'


class MembershipTier(models.Model):
    """Price options of an activity; the first one by position is the current price."""
    activity = models.ForeignKey(Activity, on_delete=models.CASCADE, related_name='tiers')
    name = models.CharField(max_length=100)
    cost = models.DecimalField(max_digits=10, decimal_places=2)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['activity', 'position', 'id']

    def __str__(self):
        return f"{self.activity.name} - {self.name} ({self.cost})"


class MembershipPlan(models.Model):
    """Membership definition sold for an activity"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym = models.ForeignKey('gyms.Gym', on_delete=models.CASCADE, related_name='membership_plans')
    activity = models.ForeignKey(Activity, on_delete=models.CASCADE, related_name='plans')
    name = models.CharField(max_length=255)
    cost = models.DecimalField(max_digits=10, decimal_places=2)
    duration_days = models.IntegerField(default=30)
    max_attendances = models.PositiveIntegerField(default=0, help_text="0 = unlimited")
    description = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.activity.name})"

    class Meta:
        ordering = ['activity', 'cost']
