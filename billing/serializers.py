from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from accounts.models import User
from utils.days import DAY_CHOICES, normalize_day

from .models import Bill, Collection
from .reconciliation import compute_status


class CollectionSerializer(serializers.ModelSerializer):
    """Read-only representation of a recorded collection"""
    bill_number = serializers.CharField(source='bill.bill_number', read_only=True)
    retailer_name = serializers.CharField(source='bill.retailer_name', read_only=True)
    collected_by_name = serializers.CharField(source='collected_by.name', read_only=True)

    class Meta:
        model = Collection
        fields = [
            'id', 'bill', 'bill_number', 'retailer_name',
            'amount_collected', 'payment_mode', 'payment_details',
            'collected_by', 'collected_by_name', 'remarks',
            'collected_on', 'due_after', 'created_at'
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    collections = CollectionSerializer(many=True, read_only=True)
    collected_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_overdue = serializers.SerializerMethodField()
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)

    class Meta:
        model = Bill
        fields = [
            'id', 'bill_number', 'retailer_name',
            'amount', 'due_amount', 'prior_paid', 'collected_amount',
            'collection_day', 'bill_date', 'due_date', 'status', 'is_overdue',
            'assigned_to', 'assigned_to_name', 'assigned_date',
            'payment_date', 'payment_method', 'history',
            'collections', 'created_by', 'created_by_name',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return obj.is_overdue()


class BillListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views"""

    class Meta:
        model = Bill
        fields = [
            'id', 'bill_number', 'retailer_name', 'amount', 'due_amount',
            'collection_day', 'bill_date', 'due_date', 'status',
            'assigned_to', 'assigned_to_name', 'assigned_date', 'payment_date'
        ]


class BillCreateSerializer(serializers.ModelSerializer):
    """
    Create a bill.

    due_amount is optional and defaults to the full amount; a smaller due
    amount means part of the bill was already paid before it was entered.
    """
    due_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'),
        required=False, allow_null=True
    )
    collection_day = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = Bill
        fields = [
            'bill_number', 'retailer_name', 'amount', 'due_amount',
            'collection_day', 'bill_date', 'due_date', 'assigned_to'
        ]
        extra_kwargs = {
            'bill_number': {'validators': []},
            'due_date':    {'required': False},
        }

    def validate_bill_number(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Bill number is required")
        return value

    def validate_retailer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Retailer name is required")
        return value

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value

    def validate_collection_day(self, value):
        if value and not normalize_day(value):
            raise serializers.ValidationError(
                f"Invalid day. Use one of: {', '.join(d for d, _ in DAY_CHOICES)}"
            )
        return normalize_day(value)

    def validate_assigned_to(self, value):
        if value is not None and value.role != User.ROLE_STAFF:
            raise serializers.ValidationError("Bills can only be assigned to staff members")
        return value

    def validate(self, data):
        amount = data.get('amount')
        due = data.get('due_amount')
        if due is not None and amount is not None and due > amount:
            raise serializers.ValidationError({'due_amount': "Due amount cannot exceed bill amount"})

        bill_date = data.get('bill_date')
        due_date = data.get('due_date')
        if bill_date and due_date and due_date < bill_date:
            raise serializers.ValidationError({'due_date': "Due date cannot be before bill date"})
        return data

    def create(self, validated_data):
        amount = validated_data['amount']
        due = validated_data.pop('due_amount', None)
        if due is None:
            due = amount
        assigned_to = validated_data.pop('assigned_to', None)
        validated_data.setdefault('due_date', validated_data['bill_date'])

        bill = Bill(
            **validated_data,
            due_amount=due,
            prior_paid=amount - due,
            status=compute_status(amount, due),
        )
        bill.log(f"Bill created for {amount}")
        if assigned_to:
            bill.assign_to(assigned_to)
        bill.save()
        return bill


class BillUpdateSerializer(serializers.ModelSerializer):
    """
    Update the descriptive fields of a bill.

    Financial state (due amount, status, payment date) only changes through
    collections; the amount itself may be corrected while nothing has been
    collected yet.
    """
    collection_day = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = Bill
        fields = [
            'bill_number', 'retailer_name', 'amount',
            'collection_day', 'bill_date', 'due_date'
        ]
        extra_kwargs = {'bill_number': {'validators': []}}

    def validate_bill_number(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Bill number is required")
        return value

    def validate_collection_day(self, value):
        if value and not normalize_day(value):
            raise serializers.ValidationError(
                f"Invalid day. Use one of: {', '.join(d for d, _ in DAY_CHOICES)}"
            )
        return normalize_day(value)

    def validate_amount(self, value):
        instance = self.instance
        if instance is None or value == instance.amount:
            return value
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        if instance.collections.exists():
            raise serializers.ValidationError(
                "Amount cannot be changed once collections have been recorded"
            )
        if value < instance.prior_paid:
            raise serializers.ValidationError("Amount cannot be less than the amount already paid")
        return value


class AssignBillSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField()

    def validate_staff_id(self, value):
        try:
            staff = User.objects.get(pk=value, role=User.ROLE_STAFF, is_active=True)
        except User.DoesNotExist:
            raise serializers.ValidationError("Staff member not found")
        return staff


class PaymentDetailsSerializer(serializers.Serializer):
    upiId = serializers.CharField(required=False, allow_blank=True, max_length=100)
    upiTransactionId = serializers.CharField(required=False, allow_blank=True, max_length=100)
    bankName = serializers.CharField(required=False, allow_blank=True, max_length=100)
    chequeNumber = serializers.CharField(required=False, allow_blank=True, max_length=50)
    bankTransactionId = serializers.CharField(required=False, allow_blank=True, max_length=100)


class CollectionCreateSerializer(serializers.Serializer):
    """
    Request body for recording a collection.

        {
            "bill":            "uuid",
            "amountCollected": 400,
            "paymentMode":     "upi",
            "paymentDetails":  {"upiId": "shop@upi", "upiTransactionId": "T123"},
            "remarks":         "Tuesday round"
        }
    """
    bill = serializers.UUIDField()
    amountCollected = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.01')
    )
    paymentMode = serializers.ChoiceField(choices=Collection.PAYMENT_MODE_CHOICES)
    paymentDetails = PaymentDetailsSerializer(required=False, allow_null=True)
    remarks = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')

    def validate_amountCollected(self, value):
        limit = Decimal(str(getattr(settings, 'MAX_COLLECTION_AMOUNT', '1000000')))
        if value > limit:
            raise serializers.ValidationError(f"Amount cannot exceed {limit}")
        return value

    def validate(self, data):
        mode = data['paymentMode']
        details = data.get('paymentDetails') or {}
        missing = [
            key for key in Collection.REQUIRED_DETAILS[mode]
            if not (details.get(key) or '').strip()
        ]
        if missing:
            raise serializers.ValidationError({
                'paymentDetails': [f"{key} is required for {mode} payments" for key in missing]
            })
        return data


class MarkPaidSerializer(serializers.Serializer):
    remarks = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')
