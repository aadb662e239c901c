"""
Sequential, human-facing order numbers.

Read-max-then-add-one, with no lock or sequence behind it: two orders
created at the same moment can share or skip a number. The number is a
display value; uniqueness of an order rests on its Stripe session id.
"""
import logging

from .exceptions import StorageError

logger = logging.getLogger(__name__)

ORDER_NUMBER_BASELINE = 1000


def allocate_order_number(store):
    """
    Next order number, or None when numbering is unavailable.

    None means the database has no ``order_number`` column (or the read
    failed); the order is then stored without a number.
    """
    try:
        current = store.max_order_number()
    except StorageError as e:
        if e.missing_column:
            logger.info("order_number column not present; creating order without a number")
        else:
            logger.error(f"Error getting last order number: {e}")
        return None

    if not current:
        return ORDER_NUMBER_BASELINE
    return current + 1
