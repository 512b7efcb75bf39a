from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for product CRUD"""

    class Meta:
        model = Product
        fields = [
            'id', 'code', 'name', 'company', 'mrp', 'price', 'weight',
            'scheme', 'stock', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            # duplicates are reported as 409 by the view
            'code': {'validators': []},
        }

    def validate_code(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Product code is required")
        return value

    def validate(self, attrs):
        # MRP defaults to the selling price when not supplied
        if not attrs.get('mrp') and 'price' in attrs and self.instance is None:
            attrs['mrp'] = attrs['price']
        return attrs


class StockUpdateSerializer(serializers.Serializer):
    stock = serializers.IntegerField(min_value=0)
