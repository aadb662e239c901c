from django.urls import path
from . import views

app_name = "orders"

urlpatterns = [
    path("webhooks/stripe/", views.stripe_webhook, name="stripe_webhook"),
    path("api/orders/ensure/", views.ensure_order, name="ensure_order"),
    path("api/orders/by-session/", views.order_by_session, name="order_by_session"),
    path("api/orders/lookup/", views.lookup_orders, name="lookup_orders"),
    path("api/orders/<int:order_id>/", views.order_detail, name="order_detail"),
]
