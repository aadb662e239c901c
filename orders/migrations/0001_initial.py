from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stripe_session_id", models.CharField(db_index=True, help_text="Stripe Checkout session ID", max_length=255, unique=True)),
                ("order_number", models.PositiveIntegerField(blank=True, db_index=True, help_text="Human-facing sequential number", null=True)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_first_name", models.CharField(blank=True, max_length=255, null=True)),
                ("customer_last_name", models.CharField(blank=True, max_length=255, null=True)),
                ("customer_phone", models.CharField(db_index=True, help_text="Digits only, at least 10", max_length=32)),
                ("customer_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("comments", models.TextField(blank=True, null=True)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("tip_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("tip_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("preparing", "Preparing"), ("ready", "Ready"), ("completed", "Completed")], db_index=True, default="pending", max_length=20)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("source_item_id", models.CharField(db_index=True, max_length=255)),
                ("name", models.CharField(max_length=255)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Item",
                "verbose_name_plural": "Order Items",
            },
        ),
    ]
