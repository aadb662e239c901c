"""
Order materialization and lookups.

``ensure_order`` is shared by the Stripe webhook and the client's ensure
call. Both may run at the same moment for one session; the UNIQUE constraint
on ``stripe_session_id`` lets exactly one insert win and the other re-reads
the winner's row. Nothing here holds a lock across requests.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .exceptions import InvalidInput, NotFound, SessionNotPaid, StorageError
from .extraction import normalize_phone
from .models import Order, OrderStatus
from .numbering import allocate_order_number
from .publishers import publish_order_created
from .storage import OrderStore, insert_with_fallback

logger = logging.getLogger(__name__)

PHONE_LOOKUP_WINDOW = timedelta(days=30)

# Columns every deployed orders table has.
MINIMAL_ORDER_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_email",
    "total_amount",
    "tax_amount",
    "status",
    "stripe_session_id",
    "created_at",
)


@dataclass
class EnsureResult:
    order: Optional[Order]
    created: bool
    paid: bool = True


def order_values(draft, order_number=None):
    """Full and minimal column sets for inserting ``draft``."""
    full = {
        "stripe_session_id": draft.external_session_id,
        "customer_name": draft.customer_name,
        "customer_first_name": draft.customer_first_name,
        "customer_last_name": draft.customer_last_name,
        "customer_phone": draft.customer_phone_digits,
        "customer_email": draft.customer_email,
        "comments": draft.comments,
        "tip_percent": draft.tip_percent,
        "tip_amount": draft.tip_amount,
        "tax_amount": draft.tax_amount,
        "total_amount": draft.total_amount,
        "status": OrderStatus.PENDING.value,
        "created_at": timezone.now(),
    }
    if order_number is not None:
        full["order_number"] = order_number
    minimal = {name: value for name, value in full.items() if name in MINIMAL_ORDER_FIELDS}
    if order_number is not None:
        minimal["order_number"] = order_number
    return full, minimal


def _notify_created(order):
    if not getattr(settings, "PUBSUB_ENABLED", False):
        return
    try:
        publish_order_created(order)
    except Exception as e:
        # The order is already saved; the event is best-effort
        logger.error(f"Failed to publish order.created event: {e}", exc_info=True)


def ensure_order(session_id, load_draft, store=None) -> EnsureResult:
    """
    Make sure an order exists for a Checkout session, creating it at most once.

    Args:
        session_id: Stripe Checkout session id (the idempotency key)
        load_draft: zero-argument callable returning the session's OrderDraft;
            may raise SessionNotPaid, InvalidDraft or UpstreamFailure
        store: OrderStore to use (a fresh one by default)

    Returns:
        EnsureResult. ``created`` is True only for the call that inserted the
        row. An unpaid session yields ``EnsureResult(None, False, paid=False)``
        and writes nothing.

    Raises:
        InvalidInput: empty session id, or the session cannot be drafted
        UpstreamFailure: Stripe or the database failed; nothing was created
    """
    if not session_id:
        raise InvalidInput("sessionId is required")
    store = store or OrderStore()

    existing = store.find_by_session(session_id)
    if existing is not None:
        logger.info(f"Order already exists for session: {session_id}")
        return EnsureResult(existing, created=False)

    try:
        draft = load_draft()
    except SessionNotPaid as e:
        logger.warning(f"Ignoring unpaid session {session_id}: {e.payment_status}")
        return EnsureResult(None, created=False, paid=False)

    order_number = allocate_order_number(store)
    full, minimal = order_values(draft, order_number)

    try:
        order = insert_with_fallback(store.insert_order, full, minimal)
    except StorageError as e:
        # Lost the race to a concurrent creator?
        winner = store.find_by_session(session_id)
        if winner is not None:
            logger.info(f"Order for session {session_id} created concurrently; returning it")
            return EnsureResult(winner, created=False)
        logger.error(f"Error inserting order for session {session_id}: {e}")
        raise

    try:
        store.insert_items(order, draft.line_items)
    except StorageError as e:
        # Keep the order; missing items can be backfilled
        logger.error(
            f"Error inserting order items for order {order.pk} (session {session_id}): {e}",
            exc_info=True,
        )

    try:
        complete = store.find_by_id(order.pk)
    except StorageError as e:
        logger.warning(f"Could not re-read order {order.pk}: {e}")
        complete = None

    result = complete or order
    logger.info(f"Order created: {result.pk} (number {result.order_number}) for session {session_id}")
    _notify_created(result)
    return EnsureResult(result, created=True)


def _parse_order_id(order_id):
    try:
        return int(order_id)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid order id: {order_id!r}")


def get_order(order_id, store=None):
    store = store or OrderStore()
    order = store.find_by_id(_parse_order_id(order_id))
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    return order


def find_by_session(session_id, store=None):
    if not session_id:
        raise InvalidInput("sessionId is required")
    store = store or OrderStore()
    return store.find_by_session(session_id)


def lookup_orders(phone=None, order_id=None, store=None):
    """
    Orders by id, or by phone within the last 30 days; newest first.

    An order id takes precedence over a phone number.
    """
    store = store or OrderStore()
    if order_id:
        order = store.find_by_id(_parse_order_id(order_id))
        return [order] if order is not None else []
    if phone:
        digits = normalize_phone(phone)
        if not digits:
            raise InvalidInput("Phone number must contain digits")
        since = timezone.now() - PHONE_LOOKUP_WINDOW
        return store.search_by_phone(digits, since)
    raise InvalidInput("Phone number or Order ID is required")


def update_status(order_id, status, store=None):
    """Move an order to another status; the value must be a known status."""
    if status not in OrderStatus.values:
        raise InvalidInput(
            f"Invalid status. Must be one of: {', '.join(OrderStatus.values)}"
        )
    store = store or OrderStore()
    pk = _parse_order_id(order_id)
    if not store.update_status(pk, status):
        raise NotFound(f"Order {order_id} not found")
    logger.info(f"Order {pk} status set to {status}")
    return store.find_by_id(pk)
