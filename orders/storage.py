"""
Order persistence and the schema compatibility layer.

Writes go out in two shapes. The full shape carries every optional column;
the minimal shape only the columns every deployed schema has. When the
database rejects the full shape because a column is unknown, the insert is
retried once with the minimal shape, so code can ship ahead of a migration.
"""
import logging
from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError, connection, transaction
from django.db.models import Max, prefetch_related_objects

from .exceptions import ConflictError, StorageError
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

MISSING_COLUMN_PHRASES = (
    "could not find",
    "schema cache",
    "no such column",
    "has no column named",
    "unknown column",
)


def is_missing_column_error(message) -> bool:
    """True when a database error message says a column is unknown."""
    if not message:
        return False
    normalized = str(message).lower()
    if "column" in normalized and "does not exist" in normalized:
        return True
    return any(phrase in normalized for phrase in MISSING_COLUMN_PHRASES)


@contextmanager
def storage_errors():
    """Re-raise Django database errors as classified StorageErrors."""
    try:
        yield
    except IntegrityError as e:
        raise ConflictError(str(e)) from e
    except DatabaseError as e:
        message = str(e)
        raise StorageError(message, missing_column=is_missing_column_error(message)) from e


def insert_with_fallback(insert, full_values: dict, minimal_values: dict):
    """
    Insert with the full field set, retrying once with the minimal set if the
    database reports an unknown column. Other errors propagate unchanged.
    """
    try:
        return insert(full_values)
    except StorageError as e:
        if not e.missing_column:
            raise
        logger.warning(f"Order insert retrying without optional columns: {e}")
        return insert(minimal_values)


class OrderStore:
    """
    CRUD over Order and OrderItem.

    Every method raises StorageError (ConflictError for uniqueness
    violations) instead of Django's database exceptions. Reads work against
    an orders table that lacks the optional columns: the columns it does not
    have come back as their model defaults.
    """

    def _read(self, queryset):
        # Savepoint so a rejected SELECT leaves the connection usable
        try:
            with storage_errors(), transaction.atomic():
                return list(queryset.prefetch_related("items"))
        except StorageError as e:
            if not e.missing_column:
                raise
            logger.warning(f"Order read retrying with the table's own columns: {e}")
        with storage_errors():
            return self._read_present_columns(queryset)

    def _present_fields(self):
        table = Order._meta.db_table
        with connection.cursor() as cursor:
            columns = {
                column.name for column in connection.introspection.get_table_description(cursor, table)
            }
        return [f.attname for f in Order._meta.concrete_fields if f.column in columns]

    def _read_present_columns(self, queryset):
        orders = []
        for row in queryset.values(*self._present_fields()):
            order = Order(**row)
            order._state.adding = False
            order._state.db = connection.alias
            orders.append(order)
        prefetch_related_objects(orders, "items")
        return orders

    def find_by_session(self, session_id):
        orders = self._read(Order.objects.filter(stripe_session_id=session_id)[:1])
        return orders[0] if orders else None

    def find_by_id(self, order_id):
        orders = self._read(Order.objects.filter(pk=order_id)[:1])
        return orders[0] if orders else None

    def max_order_number(self):
        with storage_errors(), transaction.atomic():
            return Order.objects.aggregate(current=Max("order_number"))["current"]

    def insert_order(self, values: dict) -> Order:
        """
        Insert one order row writing only the columns named in ``values``.

        The row is written with a plain INSERT so columns left out of the
        minimal shape are never mentioned to the database.
        """
        opts = Order._meta
        fields = [opts.get_field(name) for name in values]
        quote = connection.ops.quote_name
        sql = "INSERT INTO {table} ({columns}) VALUES ({placeholders})".format(
            table=quote(opts.db_table),
            columns=", ".join(quote(f.column) for f in fields),
            placeholders=", ".join(["%s"] * len(fields)),
        )
        params = [f.get_db_prep_save(values[f.name], connection=connection) for f in fields]

        with storage_errors(), transaction.atomic():
            with connection.cursor() as cursor:
                cursor.execute(sql, params)
            pk = (
                Order.objects.filter(stripe_session_id=values["stripe_session_id"])
                .values_list("pk", flat=True)
                .get()
            )

        order = Order(pk=pk, **values)
        order._state.adding = False
        order._state.db = connection.alias
        return order

    def insert_items(self, order, item_drafts):
        rows = [
            OrderItem(
                order_id=order.pk,
                source_item_id=draft.source_item_id,
                name=draft.name,
                quantity=draft.quantity,
                unit_price=draft.unit_price,
            )
            for draft in item_drafts
        ]
        if not rows:
            return []
        with storage_errors(), transaction.atomic():
            return OrderItem.objects.bulk_create(rows)

    def update_status(self, order_id, status) -> int:
        with storage_errors():
            return Order.objects.filter(pk=order_id).update(status=status)

    def search_by_phone(self, digits, since):
        """Exact digits match first; substring match for older formatted rows."""
        recent = Order.objects.filter(created_at__gte=since)
        orders = self._read(recent.filter(customer_phone=digits))
        if not orders:
            orders = self._read(recent.filter(customer_phone__icontains=digits))
        return orders
