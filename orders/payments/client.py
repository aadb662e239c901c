import logging

import stripe
from django.conf import settings

from orders.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


def to_plain_dict(obj) -> dict:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


class StripeClient:
    """Thin wrapper over the Stripe SDK calls the order flow depends on."""

    def __init__(self, api_key: str = None, webhook_secret: str = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.api_version = settings.STRIPE_API_VERSION

        if not self.api_key:
            raise ValueError('Stripe secret key is required')

    def _request(self, call, *args, **kwargs):
        try:
            return call(*args, api_key=self.api_key, stripe_version=self.api_version, **kwargs)
        except stripe.StripeError as e:
            logger.error(f'Error requesting Stripe API: {e}')
            raise UpstreamFailure(f'Error requesting Stripe API: {e}') from e

    def retrieve_session(self, session_id: str) -> dict: # Get a Checkout session by ID
        return to_plain_dict(self._request(stripe.checkout.Session.retrieve, session_id))

    def list_line_items(self, session_id: str, limit: int = 100) -> list:
        """Purchased line items of a Checkout session (first page, max 100)."""
        resp = self._request(stripe.checkout.Session.list_line_items, session_id, limit=limit)
        return [to_plain_dict(item) for item in resp.data]

    def construct_event(self, payload: bytes, signature: str):
        """Verify a webhook signature and parse the event.

        Raises ValueError for a malformed payload and
        stripe.SignatureVerificationError for a bad signature.
        """
        if not self.webhook_secret:
            raise ValueError('Stripe webhook secret is required')
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
