import logging
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from django.conf import settings

from .exceptions import InvalidInput, NotFound, UpstreamFailure
from .extraction import SessionExtractor, draft_from_session
from .payments.client import StripeClient, to_plain_dict
from .security import verify_stripe_event
from .serializers import EnsureOrderSerializer, OrderDetailSerializer, StatusUpdateSerializer
from . import services

logger = logging.getLogger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
NO_STORE = {"Cache-Control": "no-store, max-age=0"}


def get_stripe_client():
    return StripeClient()


def _order_data(order):
    return OrderDetailSerializer(order).data if order is not None else None


@api_view(["POST"])
def stripe_webhook(request):
    """
    Stripe webhook endpoint. Records the order of a completed Checkout session.

    Security:
        - Verifies the Stripe-Signature header against STRIPE_WEBHOOK_SECRET
          before the payload is looked at

    Handled events:
        - checkout.session.completed: ensure the session's order exists
        - anything else: acknowledged, no action

    Returns:
        200 OK: {"received": true, ...}  # includes order_id/created when an order is recorded
        400 Bad Request: missing/invalid signature, or session without customer name/phone
        500 Internal Server Error: Stripe or the database failed; Stripe redelivers
    """
    if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe webhook not configured: STRIPE_SECRET_KEY or STRIPE_WEBHOOK_SECRET missing")
        return Response(
            {"error": "Webhook not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    signature = request.headers.get("Stripe-Signature")
    if not signature:
        logger.warning(f"Webhook without signature from IP: {request.META.get('REMOTE_ADDR')}")
        return Response({"error": "Missing signature"}, status=status.HTTP_400_BAD_REQUEST)

    client = get_stripe_client()
    event = verify_stripe_event(request.body, signature, client)
    if event is None:
        logger.warning(f"Webhook signature verification failed from IP: {request.META.get('REMOTE_ADDR')}")
        return Response({"error": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

    event_type = event["type"]
    if event_type != SESSION_COMPLETED:
        logger.debug(f"Ignoring Stripe event {event_type}")
        return Response({"received": True}, status=status.HTTP_200_OK)

    session = to_plain_dict(event["data"]["object"])
    session_id = session.get("id")

    try:
        result = services.ensure_order(
            session_id, lambda: draft_from_session(session, client.list_line_items)
        )
    except InvalidInput as e:
        logger.error(f"Cannot record order for session {session_id}: {e}")
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except UpstreamFailure as e:
        logger.error(f"Error processing webhook for session {session_id}: {e}", exc_info=True)
        return Response(
            {"error": "Failed to process order"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    except Exception as e:
        logger.error(f"Error processing webhook: {e}", exc_info=True)
        return Response(
            {"error": "Failed to process order"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if not result.paid:
        return Response({"received": True}, status=status.HTTP_200_OK)

    return Response(
        {"received": True, "order_id": result.order.pk, "created": result.created},
        status=status.HTTP_200_OK,
    )


@api_view(["POST"])
def ensure_order(request):
    """
    Ensure the order for a Checkout session exists; called by the client after
    the success redirect, possibly while the webhook is still in flight.

    Expected payload:
    {
        "sessionId": "cs_test_a1b2c3"
    }

    Returns:
        201 Created: {"order": {...}, "created": true}
        200 OK: {"order": {...}, "created": false}  # already recorded
        200 OK: {"order": null, "created": false, "paid": false}  # not paid yet
        400 Bad Request: {"error": "..."}
        502 Bad Gateway: Stripe or the database failed
        500 Internal Server Error: unexpected failure
    """
    serializer = EnsureOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"error": "sessionId is required", "errors": serializer.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )
    session_id = serializer.validated_data["sessionId"]

    try:
        extractor = SessionExtractor(get_stripe_client())
    except ValueError as e:
        logger.error(f"Stripe is not configured: {e}")
        return Response(
            {"error": "Stripe is not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    try:
        result = services.ensure_order(
            session_id, lambda: extractor.draft_for_session(session_id)
        )
    except InvalidInput as e:
        logger.warning(f"Cannot ensure order for session {session_id}: {e}")
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except UpstreamFailure as e:
        logger.error(f"Error ensuring order for session {session_id}: {e}", exc_info=True)
        return Response({"error": "Failed to ensure order"}, status=status.HTTP_502_BAD_GATEWAY)
    except Exception as e:
        logger.error(f"Error ensuring order: {e}", exc_info=True)
        return Response(
            {"error": "Failed to ensure order"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if not result.paid:
        return Response(
            {"order": None, "created": False, "paid": False},
            status=status.HTTP_200_OK,
            headers=NO_STORE,
        )

    return Response(
        {"order": _order_data(result.order), "created": result.created},
        status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        headers=NO_STORE,
    )


@api_view(["GET"])
def order_by_session(request):
    """GET ?sessionId= -> {"order": {...} | null}"""
    try:
        order = services.find_by_session(request.query_params.get("sessionId"))
    except InvalidInput as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except UpstreamFailure as e:
        logger.error(f"Error fetching order by session: {e}", exc_info=True)
        return Response(
            {"error": "Failed to fetch order by session"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return Response({"order": _order_data(order)}, headers=NO_STORE)


@api_view(["GET"])
def lookup_orders(request):
    """
    Order tracking lookup.

    Query params (one required):
        - phone: any formatting; matched on digits, last 30 days only
        - orderId: exact order id
    """
    try:
        orders = services.lookup_orders(
            phone=request.query_params.get("phone"),
            order_id=request.query_params.get("orderId"),
        )
    except InvalidInput as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except UpstreamFailure as e:
        logger.error(f"Error looking up orders: {e}", exc_info=True)
        return Response(
            {"error": "Failed to lookup orders"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return Response(
        {"orders": OrderDetailSerializer(orders, many=True).data}, headers=NO_STORE
    )


@api_view(["GET", "PATCH"])
def order_detail(request, order_id):
    """Read an order, or PATCH {"status": ...} to move it along."""
    try:
        if request.method == "PATCH":
            serializer = StatusUpdateSerializer(data=request.data)
            if not serializer.is_valid():
                return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
            order = services.update_status(order_id, serializer.validated_data["status"])
        else:
            order = services.get_order(order_id)
    except InvalidInput as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except NotFound:
        return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
    except UpstreamFailure as e:
        logger.error(f"Error updating order {order_id}: {e}", exc_info=True)
        return Response(
            {"error": "Failed to update order"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return Response({"order": _order_data(order)}, headers=NO_STORE)
