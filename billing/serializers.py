from rest_framework import serializers
from .models import SubscriptionPlan, RenewalRequest


class SubscriptionPlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = SubscriptionPlan
        fields = ['id', 'name', 'duration_days', 'price', 'description', 'is_active', 'created_at']


class RenewalRequestSerializer(serializers.ModelSerializer):
    gym_name = serializers.CharField(source='gym.name', read_only=True)
    requested_by_email = serializers.EmailField(source='requested_by.email', read_only=True)

    class Meta:
        model = RenewalRequest
        fields = [
            'id', 'gym', 'gym_name', 'plan', 'plan_name', 'plan_duration', 'plan_price',
            'payment_proof', 'payment_method', 'payment_reference', 'payment_date',
            'status', 'requested_by', 'requested_by_email', 'reviewed_by', 'reviewed_at',
            'rejection_reason', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = (
            'gym', 'plan_name', 'plan_duration', 'plan_price', 'status',
            'requested_by', 'reviewed_by', 'reviewed_at', 'rejection_reason',
            'created_at', 'updated_at',
        )

    def validate_plan(self, value):
        if value is None or not value.is_active:
            raise serializers.ValidationError("Plan not found")
        return value


class RejectRenewalRequestSerializer(serializers.Serializer):
    reason = serializers.CharField()
