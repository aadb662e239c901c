"""
Builds an OrderDraft from a Stripe Checkout session.

Customer fields come from session metadata, falling back to Stripe's
``customer_details``. Items come from the JSON cart stored in
``metadata["items"]`` and, when that is missing or unusable, from the
session's line items. Tax and tip are carried as amounts, never as items.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, List, Optional

from .exceptions import InvalidDraft, SessionNotPaid

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
PAID_STATUSES = ("paid", "no_payment_required")
EXCLUDED_ITEM_NAMES = ("sales tax", "tip")
MIN_PHONE_DIGITS = 10
MAX_COMMENT_LENGTH = 400


@dataclass
class OrderItemDraft:
    source_item_id: str
    name: str
    quantity: int
    unit_price: Decimal


@dataclass
class OrderDraft:
    external_session_id: str
    customer_name: str
    customer_phone_digits: str
    total_amount: Decimal
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    comments: Optional[str] = None
    tax_amount: Decimal = Decimal("0.00")
    tip_amount: Decimal = Decimal("0.00")
    tip_percent: Decimal = Decimal("0.00")
    line_items: List[OrderItemDraft] = field(default_factory=list)

    @property
    def subtotal_amount(self) -> Decimal:
        return (self.total_amount - self.tax_amount - self.tip_amount).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )


def normalize_phone(value) -> str:
    """Strip everything but digits: "(555) 123-4567" -> "5551234567"."""
    return re.sub(r"\D", "", str(value or ""))


def _text(value) -> str:
    return str(value or "").strip()


def _money(value) -> Decimal:
    """Parse a non-negative decimal amount; anything unparseable is 0."""
    if value is None or value == "":
        return Decimal("0.00")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _from_minor_units(value) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return Decimal("0.00")
    return (Decimal(str(value)) / 100).quantize(CENTS, rounding=ROUND_HALF_UP)


def _quantity(value) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return 1
    return quantity if quantity > 0 else 1


def _is_excluded(name: str) -> bool:
    return name.strip().lower() in EXCLUDED_ITEM_NAMES


def _split_name(customer_name: str):
    parts = customer_name.split()
    first = parts[0] if parts else customer_name
    last = " ".join(parts[1:]) or None
    return first, last


def items_from_cart(raw) -> List[OrderItemDraft]:
    """
    Parse the cart JSON stored in session metadata.

    Returns an empty list when the value is absent or not a JSON list, so the
    caller can fall back to Stripe's line items.
    """
    if not raw:
        return []
    try:
        cart = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unparseable cart metadata on session; using line items")
        return []
    if not isinstance(cart, list):
        return []

    drafts = []
    for item in cart:
        if not isinstance(item, dict):
            continue
        name = _text(item.get("name")) or "Item"
        if _is_excluded(name):
            continue
        item_id = _text(item.get("id"))
        quantity = _quantity(item.get("quantity"))

        options = [str(o) for o in item.get("selectedOptions") or []]
        if options:
            name = f"{name} ({', '.join(options)})"
        drafts.append(OrderItemDraft(item_id, name, quantity, _money(item.get("price"))))

        for addon in item.get("selectedAddons") or []:
            if not isinstance(addon, dict):
                continue
            addon_name = _text(addon.get("name"))
            drafts.append(
                OrderItemDraft(
                    source_item_id=f"{item_id}-addon-{addon_name}",
                    name=f"+ {addon_name}",
                    quantity=quantity,
                    unit_price=_money(addon.get("price")),
                )
            )
    return drafts


def items_from_line_items(line_items) -> List[OrderItemDraft]:
    """Rebuild items from Stripe line items, dropping tax and tip lines."""
    drafts = []
    for li in line_items:
        name = _text(li.get("description"))
        if _is_excluded(name):
            continue
        price = li.get("price") or {}
        drafts.append(
            OrderItemDraft(
                source_item_id=_text(li.get("id")),
                name=name or "Item",
                quantity=_quantity(li.get("quantity")),
                unit_price=_from_minor_units(price.get("unit_amount")),
            )
        )
    return drafts


def draft_from_session(session, list_line_items: Callable[[str], list]) -> OrderDraft:
    """
    Build an OrderDraft from a resolved Checkout session.

    Raises:
        SessionNotPaid: payment_status is neither "paid" nor "no_payment_required"
        InvalidDraft: no customer name, or no phone with at least 10 digits
    """
    session_id = session.get("id")
    payment_status = session.get("payment_status")
    if payment_status and payment_status not in PAID_STATUSES:
        raise SessionNotPaid(session_id, payment_status)

    meta = session.get("metadata") or {}
    details = session.get("customer_details") or {}

    customer_name = _text(meta.get("customer_name") or details.get("name"))
    phone_digits = normalize_phone(meta.get("customer_phone") or details.get("phone"))
    if not customer_name or not phone_digits:
        raise InvalidDraft(f"Missing customer_name/customer_phone on session {session_id}")
    if len(phone_digits) < MIN_PHONE_DIGITS:
        raise InvalidDraft(f"Invalid customer_phone on session {session_id}")

    derived_first, derived_last = _split_name(customer_name)
    comments = _text(meta.get("comments"))[:MAX_COMMENT_LENGTH]

    line_items = items_from_cart(meta.get("items"))
    if not line_items:
        line_items = items_from_line_items(list_line_items(session_id))

    return OrderDraft(
        external_session_id=session_id,
        customer_name=customer_name,
        customer_first_name=_text(meta.get("customer_first_name")) or derived_first,
        customer_last_name=_text(meta.get("customer_last_name")) or derived_last,
        customer_phone_digits=phone_digits,
        customer_email=_text(meta.get("customer_email") or details.get("email")) or None,
        comments=comments or None,
        tax_amount=_money(meta.get("tax")),
        tip_amount=_money(meta.get("tip_amount")),
        tip_percent=_money(meta.get("tip_percent")),
        total_amount=_from_minor_units(session.get("amount_total")),
        line_items=line_items,
    )


class SessionExtractor:
    """Resolves a session by id through the payment client and drafts it."""

    def __init__(self, client):
        self.client = client

    def draft_for_session(self, session_id: str) -> OrderDraft:
        session = self.client.retrieve_session(session_id)
        return draft_from_session(session, self.client.list_line_items)
