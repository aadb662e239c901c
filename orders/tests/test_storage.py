from decimal import Decimal
from unittest import mock

from django.db import OperationalError, ProgrammingError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from orders.exceptions import ConflictError, StorageError
from orders.models import Order
from orders.storage import (
    OrderStore,
    insert_with_fallback,
    is_missing_column_error,
    storage_errors,
)


def order_row(session_id="cs_test_1", **extra):
    row = {
        "stripe_session_id": session_id,
        "customer_name": "Jo Lee",
        "customer_phone": "5551112222",
        "customer_email": None,
        "total_amount": Decimal("21.50"),
        "tax_amount": Decimal("1.50"),
        "status": "pending",
        "created_at": timezone.now(),
    }
    row.update(extra)
    return row


class MissingColumnHeuristicTests(SimpleTestCase):
    def test_recognised_messages(self):
        messages = [
            'column "order_number" of relation "orders_order" does not exist',
            "Could not find the 'tip_percent' column of 'orders' in the schema cache",
            "no such column: orders_order.order_number",
            "table orders_order has no column named comments",
            "(1054, \"Unknown column 'tip_amount' in 'field list'\")",
        ]
        for message in messages:
            with self.subTest(message=message):
                self.assertTrue(is_missing_column_error(message))

    def test_other_errors_are_not_schema_errors(self):
        self.assertFalse(is_missing_column_error(None))
        self.assertFalse(is_missing_column_error(""))
        self.assertFalse(
            is_missing_column_error('duplicate key value violates unique constraint "orders_order_stripe_session_id_key"')
        )
        self.assertFalse(is_missing_column_error('relation "orders_order" does not exist'))

    def test_storage_errors_classifies(self):
        with self.assertRaises(StorageError) as ctx:
            with storage_errors():
                raise OperationalError("no such column: orders_order.order_number")
        self.assertTrue(ctx.exception.missing_column)

        with self.assertRaises(StorageError) as ctx:
            with storage_errors():
                raise ProgrammingError("syntax error at or near")
        self.assertFalse(ctx.exception.missing_column)


class InsertWithFallbackTests(SimpleTestCase):
    def test_full_shape_used_when_it_succeeds(self):
        insert = mock.Mock(return_value="order")

        self.assertEqual(insert_with_fallback(insert, {"a": 1, "b": 2}, {"a": 1}), "order")
        insert.assert_called_once_with({"a": 1, "b": 2})

    def test_retries_once_with_minimal_shape(self):
        insert = mock.Mock(
            side_effect=[StorageError("column \"comments\" does not exist", missing_column=True), "order"]
        )

        self.assertEqual(insert_with_fallback(insert, {"a": 1, "b": 2}, {"a": 1}), "order")
        self.assertEqual(insert.call_args_list, [mock.call({"a": 1, "b": 2}), mock.call({"a": 1})])

    def test_other_errors_propagate(self):
        insert = mock.Mock(side_effect=ConflictError("duplicate key"))

        with self.assertRaises(ConflictError):
            insert_with_fallback(insert, {"a": 1}, {"a": 1})
        insert.assert_called_once()

    def test_minimal_failure_propagates(self):
        insert = mock.Mock(
            side_effect=[
                StorageError("no such column: comments", missing_column=True),
                StorageError("no such column: status", missing_column=True),
            ]
        )

        with self.assertRaises(StorageError):
            insert_with_fallback(insert, {"a": 1}, {"a": 1})
        self.assertEqual(insert.call_count, 2)


class OrderStoreTests(TestCase):
    def setUp(self):
        self.store = OrderStore()

    def test_insert_order_writes_only_given_columns(self):
        order = self.store.insert_order(order_row())

        stored = Order.objects.get(pk=order.pk)
        self.assertEqual(stored.stripe_session_id, "cs_test_1")
        self.assertEqual(stored.total_amount, Decimal("21.50"))
        self.assertIsNone(stored.order_number)
        self.assertIsNone(stored.customer_first_name)
        self.assertEqual(order.customer_name, "Jo Lee")

    def test_duplicate_session_is_conflict(self):
        self.store.insert_order(order_row())

        with self.assertRaises(ConflictError):
            self.store.insert_order(order_row())

        # The failed insert rolled back to its savepoint; reads still work
        self.assertEqual(Order.objects.count(), 1)
        self.assertIsNotNone(self.store.find_by_session("cs_test_1"))

    def test_max_order_number(self):
        self.assertIsNone(self.store.max_order_number())
        self.store.insert_order(order_row("cs_a", order_number=1000))
        self.store.insert_order(order_row("cs_b", order_number=1007))

        self.assertEqual(self.store.max_order_number(), 1007)

    def test_update_status_counts_rows(self):
        order = self.store.insert_order(order_row())

        self.assertEqual(self.store.update_status(order.pk, "ready"), 1)
        self.assertEqual(self.store.update_status(order.pk + 100, "ready"), 0)
        self.assertEqual(Order.objects.get(pk=order.pk).status, "ready")
