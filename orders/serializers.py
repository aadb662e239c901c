from rest_framework import serializers
from .models import Order, OrderItem


class EnsureOrderSerializer(serializers.Serializer):
    """
    Body of the client's ensure call after the Checkout redirect.
    """

    sessionId = serializers.CharField(max_length=255)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "source_item_id", "name", "quantity", "unit_price", "line_total"]


class OrderDetailSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items (for reading).
    """

    items = serializers.SerializerMethodField()
    subtotal_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "stripe_session_id",
            "status",
            "customer_name",
            "customer_first_name",
            "customer_last_name",
            "customer_phone",
            "customer_email",
            "comments",
            "tax_amount",
            "tip_amount",
            "tip_percent",
            "total_amount",
            "subtotal_amount",
            "created_at",
            "items",
        ]

    def get_items(self, obj):
        """Return order items as a list of dictionaries."""
        return OrderItemSerializer(obj.items.all(), many=True).data
