"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints
        token/                     - Obtain JWT pair
        token/refresh/             - Refresh access token
        me/                        - Current user
    /api/v1/lifecycle/             - Orders and remittances
        orders/                    - Create order
        remittances/               - Create remittance
        {type}/{id}/transition/    - Status transition
        {type}/{id}/payment/validate/ - Validate payment
        {type}/{id}/payment/reject/   - Reject payment
    /api/v1/allocation/            - Payment accounts (operators)
        accounts/                  - Create account
        accounts/{id}/             - Update account
        accounts/{id}/disable/     - Disable account
        accounts/{id}/reset/       - Manual counter reset
        accounts/{id}/stats/       - Transaction totals
    /api/v1/audit/                 - Audit history (operators)
        {table}/{id}/              - Entity history
        actors/{user_id}/          - Entries by actor
    /api/v1/tiers/                 - User tiers
        {user_id}/recompute/       - Recompute tier
        {user_id}/assign/          - Manual assignment
        {user_id}/history/         - Tier history

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("lifecycle/", include("lifecycle.urls")),
    path("allocation/", include("allocation.urls")),
    path("audit/", include("audit.urls")),
    path("tiers/", include("tiers.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Payments Operations Admin"
admin.site.site_title = "Payments Operations"
admin.site.index_title = "Accounts, orders and remittances"
