# memberships/serializers.py
from django.conf import settings
from django.utils import timezone
from rest_framework import serializers
from activities.models import Activity, MembershipPlan
from members.models import Member
from .models import Membership, PendingPayment, RenewalLog, add_months
import datetime


class DateFromDateTimeField(serializers.DateField):
    """Custom field that handles both date and datetime inputs"""
    def to_internal_value(self, value):
        if isinstance(value, datetime.datetime):
            value = value.date()
        elif isinstance(value, str) and 'T' in value:
            # Handle ISO datetime string
            value = value.split('T')[0]
        return super().to_internal_value(value)


class MembershipSerializer(serializers.ModelSerializer):
    start_date = DateFromDateTimeField(read_only=True)
    end_date = DateFromDateTimeField(read_only=True)
    days_until_expiration = serializers.SerializerMethodField()

    class Meta:
        model = Membership
        fields = [
            'id', 'member', 'member_name', 'activity', 'activity_name', 'plan',
            'cost', 'price_source', 'start_date', 'end_date', 'status', 'payment_status',
            'auto_renewal', 'max_attendances', 'current_attendances',
            'previous_membership', 'renewed_to', 'renewed_automatically', 'renewal_date',
            'days_until_expiration', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_days_until_expiration(self, obj):
        return obj.days_until_expiration()


class ExpiredMembershipSerializer(serializers.Serializer):
    """One row of the expiration scan"""
    membership = MembershipSerializer(read_only=True)
    days_expired = serializers.IntegerField(read_only=True)
    total_debt = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class AssignMembershipSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    activity_id = serializers.UUIDField()
    plan_id = serializers.UUIDField(required=False, allow_null=True)
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    start_date = DateFromDateTimeField(required=False)
    months = serializers.IntegerField(required=False, min_value=1)
    auto_renewal = serializers.BooleanField(default=False)
    max_attendances = serializers.IntegerField(required=False, min_value=0)

    def _gym(self):
        return self.context['gym']

    def validate_member_id(self, value):
        if not Member.objects.filter(id=value, gym=self._gym()).exists():
            raise serializers.ValidationError("Member with this ID does not exist.")
        return value

    def validate_activity_id(self, value):
        if not Activity.objects.filter(id=value, gym=self._gym(), is_active=True).exists():
            raise serializers.ValidationError("Activity not found")
        return value

    def validate(self, attrs):
        plan_id = attrs.get('plan_id')
        if plan_id:
            plan = MembershipPlan.objects.filter(id=plan_id, activity_id=attrs['activity_id']).first()
            if plan is None:
                raise serializers.ValidationError({'plan_id': "Plan not found for this activity"})
            attrs['plan'] = plan

        if Membership.objects.filter(
            member_id=attrs['member_id'],
            activity_id=attrs['activity_id'],
            status=Membership.Status.ACTIVE,
        ).exists():
            raise serializers.ValidationError("Member already has an active membership for this activity")

        if not attrs.get('start_date'):
            attrs['start_date'] = timezone.localdate()
        return attrs

    def create(self, validated_data):
        gym = self._gym()
        activity = Activity.objects.get(id=validated_data['activity_id'])
        plan = validated_data.get('plan')

        cost = validated_data.get('cost')
        if cost is None:
            cost = plan.cost if plan else (activity.current_price() or 0)

        max_attendances = validated_data.get('max_attendances')
        if max_attendances is None:
            max_attendances = plan.max_attendances if plan else 0

        start_date = validated_data['start_date']
        months = validated_data.get('months')
        end_date = add_months(start_date, months) if months else None

        return Membership.objects.create(
            gym=gym,
            member=Member.objects.get(id=validated_data['member_id']),
            activity=activity,
            plan=plan,
            cost=cost,
            price_source=Membership.PriceSource.MANUAL,
            start_date=start_date,
            end_date=end_date,
            auto_renewal=validated_data['auto_renewal'],
            max_attendances=max_attendances,
        )


class MembershipUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Membership
        fields = ['auto_renewal', 'max_attendances', 'payment_status']


class RenewSerializer(serializers.Serializer):
    months = serializers.IntegerField(default=1, min_value=1)

    def validate_months(self, value):
        if value > settings.MAX_RENEWAL_MONTHS:
            raise serializers.ValidationError(
                f"Renewals can last at most {settings.MAX_RENEWAL_MONTHS} months"
            )
        return value


class BulkRenewSerializer(RenewSerializer):
    membership_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class PendingPaymentSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source='membership.member_name', read_only=True)
    activity_name = serializers.CharField(source='membership.activity_name', read_only=True)

    class Meta:
        model = PendingPayment
        fields = [
            'id', 'membership', 'member', 'member_name', 'activity_name',
            'amount', 'status', 'type', 'due_date', 'paid_at', 'created_at',
        ]
        read_only_fields = fields


class RenewalLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = RenewalLog
        fields = [
            'id', 'action', 'success', 'membership', 'new_membership',
            'member_name', 'activity_name', 'old_end_date', 'new_end_date',
            'old_price', 'new_price', 'price_source', 'months', 'automatic',
            'error', 'details', 'created_at',
        ]
        read_only_fields = fields
