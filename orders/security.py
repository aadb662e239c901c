"""
Webhook security utilities: Stripe signature verification.
"""
import logging

import stripe

logger = logging.getLogger(__name__)


def verify_stripe_event(request_body, signature_header, client):
    """
    Verify the Stripe-Signature header and parse the webhook event.

    Args:
        request_body: Raw request body (bytes), exactly as received
        signature_header: Value of the Stripe-Signature header
        client: StripeClient holding the endpoint's signing secret

    Returns:
        stripe.Event if the signature is valid, None otherwise

    Example header:
        Stripe-Signature: t=1492774577,v1=5257a869e7ecebeda32affa62cdca3fa51cad7e77a0e56ff536d0ce8e108d8bd
    """
    if not signature_header:
        logger.warning("No Stripe-Signature header provided")
        return None

    try:
        return client.construct_event(request_body, signature_header)
    except ValueError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        return None
    except stripe.SignatureVerificationError as e:
        logger.warning(
            f"Invalid webhook signature: {e}. Got: {signature_header[:16]}..."
        )
        return None
