"""
URL configuration for payment account administration.

Mounted at /api/v1/allocation/ by config.urls.
"""

from django.urls import path

from allocation.views import (
    PaymentAccountDetailView,
    PaymentAccountDisableView,
    PaymentAccountListView,
    PaymentAccountResetView,
    PaymentAccountStatsView,
    PaymentAccountTransactionsView,
)

app_name = "allocation"

urlpatterns = [
    path("accounts/", PaymentAccountListView.as_view(), name="account-list"),
    path("accounts/<uuid:account_id>/", PaymentAccountDetailView.as_view(), name="account-detail"),
    path("accounts/<uuid:account_id>/disable/", PaymentAccountDisableView.as_view(), name="account-disable"),
    path("accounts/<uuid:account_id>/reset/", PaymentAccountResetView.as_view(), name="account-reset"),
    path("accounts/<uuid:account_id>/stats/", PaymentAccountStatsView.as_view(), name="account-stats"),
    path(
        "accounts/<uuid:account_id>/transactions/",
        PaymentAccountTransactionsView.as_view(),
        name="account-transactions",
    ),
]
