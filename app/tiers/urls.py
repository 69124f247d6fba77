"""
URL configuration for the tiers API.

Mounted at /api/v1/tiers/ by config.urls.
"""

from django.urls import path

from tiers.views import TierAssignView, TierHistoryView, TierRecomputeView, TierStatsView

app_name = "tiers"

urlpatterns = [
    path("stats/", TierStatsView.as_view(), name="stats"),
    path("<int:user_id>/recompute/", TierRecomputeView.as_view(), name="recompute"),
    path("<int:user_id>/assign/", TierAssignView.as_view(), name="assign"),
    path("<int:user_id>/history/", TierHistoryView.as_view(), name="history"),
]
