"""
URL configuration for the lifecycle API.

Mounted at /api/v1/lifecycle/ by config.urls.
"""

from django.urls import path

from lifecycle.views import (
    OrderCreateView,
    PaymentRejectView,
    PaymentValidateView,
    RemittanceCreateView,
    TransitionView,
)

app_name = "lifecycle"

urlpatterns = [
    path("orders/", OrderCreateView.as_view(), name="order-create"),
    path("remittances/", RemittanceCreateView.as_view(), name="remittance-create"),
    path(
        "<str:entity_type>/<uuid:entity_id>/transition/",
        TransitionView.as_view(),
        name="transition",
    ),
    path(
        "<str:entity_type>/<uuid:entity_id>/payment/validate/",
        PaymentValidateView.as_view(),
        name="payment-validate",
    ),
    path(
        "<str:entity_type>/<uuid:entity_id>/payment/reject/",
        PaymentRejectView.as_view(),
        name="payment-reject",
    ),
]
