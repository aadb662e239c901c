import json
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings
from django.utils import timezone

from orders.models import Order
from orders.publishers import order_created_event, publish_order_created


@override_settings(PUBSUB_PROJECT_ID="test-project", PUBSUB_TOPIC_ORDER_CREATED="order-created")
class PublishOrderCreatedTests(TestCase):
    def setUp(self):
        self.order = Order.objects.create(
            stripe_session_id="cs_test_1",
            order_number=1000,
            customer_name="Jo Lee",
            customer_phone="5551112222",
            total_amount=Decimal("21.50"),
            created_at=timezone.now(),
        )

    def test_event_payload(self):
        event = order_created_event(self.order)

        self.assertEqual(event["event"], "order.created")
        self.assertEqual(event["order_id"], self.order.pk)
        self.assertEqual(event["order_number"], 1000)
        self.assertEqual(event["session_id"], "cs_test_1")
        self.assertEqual(event["total"], "21.50")

    @mock.patch("orders.publishers.pubsub_v1.PublisherClient")
    def test_publishes_to_topic(self, publisher_cls):
        publisher = publisher_cls.return_value
        publisher.topic_path.return_value = "projects/test-project/topics/order-created"
        publisher.publish.return_value.result.return_value = "msg-1"

        self.assertEqual(publish_order_created(self.order), "msg-1")

        publisher.topic_path.assert_called_once_with("test-project", "order-created")
        topic, data = publisher.publish.call_args.args
        self.assertEqual(topic, "projects/test-project/topics/order-created")
        self.assertEqual(json.loads(data)["session_id"], "cs_test_1")
