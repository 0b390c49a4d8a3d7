from rest_framework import serializers
from .models import Member


class MemberSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Member
        fields = [
            'id',
            'first_name',
            'last_name',
            'full_name',
            'email',
            'phone',
            'status',
            'total_debt',
            'created_at',
            'updated_at',
        ]
        read_only_fields = (
            'total_debt',
            'created_at',
            'updated_at',
        )
