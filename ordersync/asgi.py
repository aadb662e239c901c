"""
ASGI entrypoint for the ordersync service.

Tracing is configured before the Django application is built so the
instrumentors wrap the first request.
"""

import logging
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ordersync.settings")

logger = logging.getLogger(__name__)

try:
    from ordersync.otel import setup_otel

    setup_otel()
except ImportError as e:
    logger.warning(f"OpenTelemetry packages unavailable, tracing disabled: {e}")

application = get_asgi_application()
