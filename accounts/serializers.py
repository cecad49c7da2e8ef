"""
Serializers for account registration, login and profile data.
"""
from rest_framework import serializers

from .models import Customer, StoreAdmin, Courier


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True, trim_whitespace=False)
    full_name = serializers.CharField(max_length=200)

    def validate_email(self, value):
        return value.strip().lower()


class CourierRegisterSerializer(RegisterSerializer):
    phone = serializers.CharField(max_length=20)
    vehicle = serializers.CharField(max_length=100, required=False, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            'id', 'email', 'full_name', 'phone',
            'address', 'city', 'state', 'pin', 'country',
        ]
        read_only_fields = ['id', 'email']


class StoreAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreAdmin
        fields = [
            'id', 'email', 'full_name', 'phone', 'role',
            'address', 'city', 'state', 'pin', 'country',
        ]
        read_only_fields = ['id', 'email', 'role']


class CourierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Courier
        fields = ['id', 'email', 'full_name', 'phone', 'vehicle']
        read_only_fields = ['id', 'email']
