from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    """Inline admin for OrderItems within Order admin."""

    model = OrderItem
    extra = 0
    fields = ("source_item_id", "name", "quantity", "unit_price", "line_total")
    readonly_fields = ("source_item_id", "name", "quantity", "unit_price", "line_total")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin interface for Order model."""

    list_display = (
        "order_number",
        "customer_name",
        "customer_phone",
        "status",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("stripe_session_id", "customer_name", "customer_phone", "customer_email")
    readonly_fields = ("stripe_session_id", "order_number", "subtotal_amount", "created_at")
    inlines = [OrderItemInline]

    fieldsets = (
        (
            "Order Information",
            {
                "fields": ("order_number", "stripe_session_id", "status", "created_at"),
            },
        ),
        (
            "Customer Information",
            {
                "fields": (
                    "customer_name",
                    "customer_first_name",
                    "customer_last_name",
                    "customer_phone",
                    "customer_email",
                    "comments",
                ),
            },
        ),
        (
            "Amounts",
            {
                "fields": ("total_amount", "tax_amount", "tip_amount", "tip_percent", "subtotal_amount"),
            },
        ),
    )


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    """Admin interface for OrderItem model."""

    list_display = ("order", "source_item_id", "name", "quantity", "unit_price", "line_total")
    list_filter = ("order__created_at",)
    search_fields = ("source_item_id", "name", "order__stripe_session_id")
    readonly_fields = ("line_total",)
