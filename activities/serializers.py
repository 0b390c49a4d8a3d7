from django.db import transaction
from rest_framework import serializers
from .models import Activity, MembershipTier, MembershipPlan


class MembershipTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = MembershipTier
        fields = ['id', 'name', 'cost', 'position']


class ActivitySerializer(serializers.ModelSerializer):
    tiers = MembershipTierSerializer(many=True, required=False)
    current_price = serializers.SerializerMethodField()

    class Meta:
        model = Activity
        fields = [
            'id', 'name', 'description', 'is_active', 'created_at',
            'tiers', 'current_price'
        ]

    def get_current_price(self, obj):
        return obj.current_price()

    @transaction.atomic
    def create(self, validated_data):
        tiers = validated_data.pop('tiers', [])
        activity = Activity.objects.create(**validated_data)
        for tier in tiers:
            MembershipTier.objects.create(activity=activity, **tier)
        return activity

    @transaction.atomic
    def update(self, instance, validated_data):
        tiers = validated_data.pop('tiers', None)
        instance = super().update(instance, validated_data)
        # A submitted tier list replaces the existing one
        if tiers is not None:
            instance.tiers.all().delete()
            for tier in tiers:
                MembershipTier.objects.create(activity=instance, **tier)
        return instance


class MembershipPlanSerializer(serializers.ModelSerializer):
    activity_name = serializers.CharField(source='activity.name', read_only=True)

    class Meta:
        model = MembershipPlan
        fields = [
            'id', 'activity', 'activity_name', 'name', 'cost', 'duration_days',
            'max_attendances', 'description', 'is_active', 'created_at'
        ]

    def validate_activity(self, value):
        request = self.context.get('request')
        gym = getattr(getattr(request, 'user', None), 'gym', None)
        if gym is not None and value.gym_id != gym.id:
            raise serializers.ValidationError("Activity not found")
        return value
