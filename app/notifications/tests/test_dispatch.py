"""
Tests for post-commit notification dispatch.
"""

import pytest
from django.db import DatabaseError, transaction
from kombu.exceptions import OperationalError

from notifications.dispatch import dispatch, dispatch_on_commit
from notifications.models import DeliveryStatus, NotificationDelivery, NotificationEvent


@pytest.mark.django_db
class TestDispatch:
    def test_records_and_enqueues(self, user, mocker):
        delay = mocker.patch("notifications.dispatch.deliver_notification.delay")

        delivery = dispatch(
            NotificationEvent.STATUS_CHANGED,
            "orders",
            "abc",
            user.pk,
            {"status": "shipped"},
        )

        assert delivery.status == DeliveryStatus.PENDING
        assert delivery.recipient == user
        assert delivery.payload == {"status": "shipped"}
        delay.assert_called_once_with(str(delivery.id))

    def test_broker_outage_leaves_row_pending(self, user, mocker):
        mocker.patch(
            "notifications.dispatch.deliver_notification.delay",
            side_effect=OperationalError("connection refused"),
        )

        delivery = dispatch(NotificationEvent.ENTITY_CREATED, "orders", "abc", user.pk, {})

        assert NotificationDelivery.objects.get(pk=delivery.pk).status == DeliveryStatus.PENDING

    def test_database_error_is_logged_not_raised(self, user, mocker):
        mocker.patch.object(NotificationDelivery.objects, "create", side_effect=DatabaseError("gone"))
        delay = mocker.patch("notifications.dispatch.deliver_notification.delay")

        assert dispatch(NotificationEvent.ENTITY_CREATED, "orders", "abc", user.pk, {}) is None
        delay.assert_not_called()


@pytest.mark.django_db
class TestDispatchOnCommit:
    def test_waits_for_commit(self, user, mocker, django_capture_on_commit_callbacks):
        delay = mocker.patch("notifications.dispatch.deliver_notification.delay")

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with transaction.atomic():
                dispatch_on_commit(NotificationEvent.PAYMENT_VALIDATED, "orders", 7, user)
                assert not NotificationDelivery.objects.exists()

        assert len(callbacks) == 1
        delivery = NotificationDelivery.objects.get()
        assert delivery.entity_id == "7"
        assert delivery.payload == {}
        delay.assert_called_once_with(str(delivery.id))

    def test_nothing_sent_on_rollback(self, user, mocker, django_capture_on_commit_callbacks):
        delay = mocker.patch("notifications.dispatch.deliver_notification.delay")

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    dispatch_on_commit(NotificationEvent.PAYMENT_VALIDATED, "orders", 7, user)
                    raise RuntimeError("rolled back")

        assert callbacks == []
        assert not NotificationDelivery.objects.exists()
        delay.assert_not_called()
