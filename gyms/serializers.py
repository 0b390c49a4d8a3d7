from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User, Gym, AutoRenewalConfig


class GymSerializer(serializers.ModelSerializer):
    class Meta:
        model = Gym
        fields = [
            'id', 'name', 'email', 'phone', 'address', 'logo',
            'subscription_end_date', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'subscription_end_date', 'created_at', 'updated_at']


class UserSerializer(serializers.ModelSerializer):
    gym = GymSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role', 'gym', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']


class AutoRenewalConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = AutoRenewalConfig
        fields = ['enabled', 'day_of_month', 'notify_only', 'last_run', 'updated_at']
        read_only_fields = ['last_run', 'updated_at']


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate(self, data):
        email = data.get('email')
        password = data.get('password')

        if email and password:
            user = authenticate(username=email, password=password)
            if user:
                if user.is_active:
                    data['user'] = user
                else:
                    raise serializers.ValidationError("User account is disabled.")
            else:
                raise serializers.ValidationError("Invalid email or password.")
        else:
            raise serializers.ValidationError("Must include email and password.")

        return data


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    confirm_password = serializers.CharField(write_only=True)
    gym_name = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'confirm_password', 'first_name', 'last_name', 'phone', 'role', 'gym_name']

    def validate_role(self, value):
        if value == 'superadmin':
            raise serializers.ValidationError("Superadmin accounts cannot be self-registered.")
        return value

    def validate(self, data):
        if data['password'] != data['confirm_password']:
            raise serializers.ValidationError("Passwords don't match.")
        return data

    def create(self, validated_data):
        validated_data.pop('confirm_password')
        gym_name = validated_data.pop('gym_name', None)
        if gym_name:
            validated_data['gym'] = Gym.objects.create(name=gym_name, email=validated_data.get('email', ''))
        user = User.objects.create_user(**validated_data)
        return user
