"""
URL configuration for the audit API.

Mounted at /api/v1/audit/ by config.urls.
"""

from django.urls import path

from audit.views import ActorAuditHistoryView, EntityAuditHistoryView

app_name = "audit"

urlpatterns = [
    path("actors/<int:user_id>/", ActorAuditHistoryView.as_view(), name="actor-history"),
    path("<str:entity_table>/<str:entity_id>/", EntityAuditHistoryView.as_view(), name="entity-history"),
]
