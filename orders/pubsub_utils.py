"""
Google Pub/Sub utilities for the order.created topic.
"""
import logging
from google.cloud import pubsub_v1
from google.api_core.exceptions import AlreadyExists
from django.conf import settings

logger = logging.getLogger(__name__)


def get_topic_path(publisher):
    """Get the full path of the order.created topic."""
    return publisher.topic_path(settings.PUBSUB_PROJECT_ID, settings.PUBSUB_TOPIC_ORDER_CREATED)


def ensure_topic_exists(publisher):
    """
    Ensure the Pub/Sub topic exists, create if it doesn't.

    Returns:
        str: Topic path
    """
    topic_path = get_topic_path(publisher)

    try:
        publisher.create_topic(request={"name": topic_path})
        logger.info(f"Created Pub/Sub topic: {topic_path}")
    except AlreadyExists:
        logger.debug(f"Pub/Sub topic already exists: {topic_path}")

    return topic_path
