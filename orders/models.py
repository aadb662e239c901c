from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils import timezone

CENTS = Decimal("0.01")


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    COMPLETED = "completed", "Completed"


class Order(models.Model):
    """
    A paid checkout session recorded as an order.

    ``stripe_session_id`` is the idempotency key: at most one row per
    Checkout session. ``order_number`` is a display value allocated
    best-effort and may be null on databases without that column.
    """

    stripe_session_id = models.CharField(
        max_length=255, unique=True, db_index=True, help_text="Stripe Checkout session ID"
    )
    order_number = models.PositiveIntegerField(
        null=True, blank=True, db_index=True, help_text="Human-facing sequential number"
    )
    customer_name = models.CharField(max_length=255)
    customer_first_name = models.CharField(max_length=255, null=True, blank=True)
    customer_last_name = models.CharField(max_length=255, null=True, blank=True)
    customer_phone = models.CharField(
        max_length=32, db_index=True, help_text="Digits only, at least 10"
    )
    customer_email = models.EmailField(null=True, blank=True)
    comments = models.TextField(null=True, blank=True)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    tip_percent = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"

    def __str__(self):
        label = f"#{self.order_number}" if self.order_number else f"id={self.pk}"
        return f"Order {label} - {self.customer_name}"

    @property
    def subtotal_amount(self):
        """Total less tax and tip, rounded to cents."""
        if self.total_amount is None:
            return None
        subtotal = (
            Decimal(self.total_amount)
            - Decimal(self.tax_amount or 0)
            - Decimal(self.tip_amount or 0)
        )
        return subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)


class OrderItem(models.Model):
    """
    A purchased line within an order. Addons are stored as their own rows.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    source_item_id = models.CharField(max_length=255, db_index=True)
    name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"

    def __str__(self):
        return f"{self.quantity}x {self.name} ({self.source_item_id})"

    @property
    def line_total(self):
        """Calculate total price for this line item."""
        if self.quantity is not None and self.unit_price is not None:
            return self.quantity * self.unit_price
        return None
