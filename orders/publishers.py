"""
Google Pub/Sub publisher for order events.
"""
import json
import logging
from google.cloud import pubsub_v1
from django.conf import settings
from .pubsub_utils import ensure_topic_exists

logger = logging.getLogger(__name__)


def order_created_event(order):
    """Payload of the order.created event for a newly recorded order."""
    return {
        "event": "order.created",
        "order_id": order.pk,
        "order_number": order.order_number,
        "session_id": order.stripe_session_id,
        "customer_name": order.customer_name,
        "total": str(order.total_amount),
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def publish_order_created(order):
    """
    Publish an order.created event to Google Pub/Sub.

    Args:
        order: Order instance to publish

    Raises:
        Exception: If publishing fails
    """
    event_data = order_created_event(order)

    logger.info(f"Publishing order.created event for order: {order.pk}")

    publisher = pubsub_v1.PublisherClient()
    topic_path = ensure_topic_exists(publisher)

    message_data = json.dumps(event_data).encode("utf-8")
    future = publisher.publish(topic_path, message_data)

    # Wait for publish confirmation
    message_id = future.result(timeout=settings.PUBSUB_PUBLISH_TIMEOUT)

    logger.info(
        f"Published order.created event to Pub/Sub. Message ID: {message_id}, Order: {order.pk}"
    )

    return message_id
