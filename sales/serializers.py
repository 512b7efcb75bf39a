from collections import Counter
from decimal import Decimal

from django.db import transaction
from loguru import logger
from rest_framework import serializers

from inventory.models import Product
from retailers.models import Retailer

from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    total_scheme = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'code', 'name', 'price', 'weight',
            'scheme', 'other_scheme', 'total_scheme', 'quantity',
            'net_price', 'total_litres', 'total_sale', 'remarks'
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    short_id = serializers.CharField(read_only=True)
    retailer_address = serializers.CharField(source='retailer.address1', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'short_id', 'retailer', 'retailer_name', 'retailer_address',
            'items', 'total_order_value', 'total_litres', 'status',
            'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    """One requested order line"""
    product = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    other_scheme = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0')
    )
    remarks = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')


class OrderCreateSerializer(serializers.Serializer):
    """
    Book an order.

    Products are locked while their stock is checked and decremented, so
    two orders for the same product can never oversell it. Either every
    line is booked or none is.
    """
    retailer = serializers.UUIDField()
    items = OrderItemInputSerializer(many=True)

    def validate_retailer(self, value):
        try:
            return Retailer.objects.get(pk=value)
        except Retailer.DoesNotExist:
            raise serializers.ValidationError("Retailer not found")

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def create(self, validated_data):
        retailer = validated_data['retailer']
        items_data = validated_data['items']
        created_by = validated_data['created_by']

        requested = Counter()
        for item in items_data:
            requested[item['product']] += item['quantity']

        with transaction.atomic():
            # Lock in primary key order so concurrent orders cannot deadlock
            products = {
                p.pk: p for p in
                Product.objects.select_for_update().filter(pk__in=requested).order_by('pk')
            }

            missing = [str(pk) for pk in requested if pk not in products]
            if missing:
                raise serializers.ValidationError({'items': [f"Product {pk} not found" for pk in missing]})

            shortages = [
                f"Insufficient stock for product {products[pk].name}. Available: {products[pk].stock}"
                for pk, quantity in requested.items()
                if products[pk].stock < quantity
            ]
            if shortages:
                raise serializers.ValidationError({'items': shortages})

            order = Order.objects.create(
                retailer=retailer,
                retailer_name=retailer.name,
                created_by=created_by,
                created_by_name=created_by.name,
            )

            total_value = Decimal('0')
            total_litres = Decimal('0')
            for item in items_data:
                product = products[item['product']]
                line = OrderItem(
                    order=order,
                    product=product,
                    code=product.code,
                    name=product.name,
                    price=product.price,
                    weight=product.weight,
                    scheme=product.scheme,
                    other_scheme=item['other_scheme'],
                    quantity=item['quantity'],
                    remarks=item.get('remarks', ''),
                )
                line.save()
                total_value += line.total_sale
                total_litres += line.total_litres

            for pk, quantity in requested.items():
                product = products[pk]
                product.stock -= quantity
                product.save(update_fields=['stock', 'updated_at'])

            order.total_order_value = total_value
            order.total_litres = total_litres
            order.save(update_fields=['total_order_value', 'total_litres', 'updated_at'])

        logger.info(
            f"Order {order.short_id} booked for {retailer.name} by {created_by.email}: "
            f"{len(items_data)} lines, {total_value}"
        )
        return order

    def to_representation(self, instance):
        return OrderSerializer(instance).data


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
