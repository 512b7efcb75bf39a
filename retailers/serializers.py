from rest_framework import serializers

from accounts.models import User

from .models import Retailer


class RetailerSerializer(serializers.ModelSerializer):
    """Serializer for retailer CRUD"""
    assigned_to_name = serializers.CharField(source='assigned_to.name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)

    class Meta:
        model = Retailer
        fields = [
            'id', 'name', 'address1', 'address2',
            'assigned_to', 'assigned_to_name', 'day_assigned',
            'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Retailer name is required")
        return value

    def validate_assigned_to(self, value):
        if value is not None and value.role != User.ROLE_STAFF:
            raise serializers.ValidationError("Retailers can only be assigned to staff members")
        return value


class AssignStaffSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField()

    def validate_staff_id(self, value):
        try:
            staff = User.objects.get(pk=value, role=User.ROLE_STAFF)
        except User.DoesNotExist:
            raise serializers.ValidationError("Staff member not found")
        return staff
