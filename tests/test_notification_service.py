"""Tests for push fan-out and expired subscription cleanup."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from pywebpush import WebPushException

from fornada.config import Settings
from fornada.services.notification_service import (
    DeliveryStatus,
    NotificationPayload,
    NotificationService,
    WebPushTransport,
)
from fornada.services.subscription_directory import SubscriptionDirectory


def make_subscription(sub_id: int) -> SimpleNamespace:
    endpoint = f"https://push.example.com/{sub_id}"
    return SimpleNamespace(
        id=sub_id,
        endpoint=endpoint,
        subscription_info={"endpoint": endpoint, "keys": {"p256dh": "p", "auth": "a"}},
    )


@pytest.fixture
def payload():
    return NotificationPayload(
        title="Fornada saindo agora em Padaria!",
        body="Pão quentinho",
        icon="/icon.png",
        url="/estabelecimentos/1",
    )


class TestNotificationPayload:
    """Tests for NotificationPayload serialization."""

    def test_omits_reservation_url_when_absent(self, payload):
        data = json.loads(payload.to_json())
        assert data == {
            "title": "Fornada saindo agora em Padaria!",
            "body": "Pão quentinho",
            "icon": "/icon.png",
            "url": "/estabelecimentos/1",
            "tag": "fornada",
        }

    def test_includes_reservation_url(self, payload):
        payload.reservation_url = "/estabelecimentos/1?reservar=a"
        assert json.loads(payload.to_json())["reservation_url"] == "/estabelecimentos/1?reservar=a"


class TestDispatch:
    """Tests for NotificationService.dispatch."""

    @pytest.mark.asyncio
    async def test_reports_expired_at_its_index(self, payload, transport_factory):
        subscriptions = [make_subscription(i) for i in range(1, 6)]
        transport = transport_factory({"https://push.example.com/3": DeliveryStatus.EXPIRED})
        service = NotificationService(transport=transport)

        report = await service.dispatch(subscriptions, payload)

        assert [r.subscription_id for r in report.results] == [1, 2, 3, 4, 5]
        assert [r.status for r in report.results] == [
            DeliveryStatus.DELIVERED,
            DeliveryStatus.DELIVERED,
            DeliveryStatus.EXPIRED,
            DeliveryStatus.DELIVERED,
            DeliveryStatus.DELIVERED,
        ]
        assert report.expired_subscription_ids == [3]
        assert report.delivered == 4
        assert len(transport.sent) == 5

    @pytest.mark.asyncio
    async def test_transport_errors_do_not_raise(self, payload, transport_factory):
        transport = transport_factory({"https://push.example.com/2": RuntimeError("timeout")})
        service = NotificationService(transport=transport)

        report = await service.dispatch([make_subscription(1), make_subscription(2)], payload)

        assert report.results[1].status == DeliveryStatus.TRANSIENT_ERROR
        assert "timeout" in report.results[1].error
        assert report.failed == 1
        assert report.expired_subscription_ids == []

    @pytest.mark.asyncio
    async def test_disabled_without_vapid_credentials(self, payload):
        service = NotificationService(settings=Settings(vapid_private_key=None))

        report = await service.dispatch([make_subscription(1)], payload)

        assert service.enabled is False
        assert report.skipped is True
        assert report.results == []

    @pytest.mark.asyncio
    async def test_no_subscriptions(self, payload, transport_factory):
        service = NotificationService(transport=transport_factory())
        report = await service.dispatch([], payload)
        assert report.results == []
        assert report.skipped is False


class TestNotify:
    """Tests for dispatch followed by expired cleanup."""

    @pytest.mark.asyncio
    async def test_deletes_expired_exactly_once(self, payload, transport_factory):
        subscriptions = [make_subscription(i) for i in range(1, 6)]
        transport = transport_factory({"https://push.example.com/3": DeliveryStatus.EXPIRED})
        service = NotificationService(transport=transport)
        directory = MagicMock()
        directory.remove_expired.return_value = 1

        report = await service.notify(directory, subscriptions, payload)

        directory.remove_expired.assert_called_once_with([3])
        assert report.pruned == 1

    @pytest.mark.asyncio
    async def test_no_cleanup_when_nothing_expired(self, payload, transport_factory):
        service = NotificationService(transport=transport_factory())
        directory = MagicMock()

        await service.notify(directory, [make_subscription(1)], payload)

        directory.remove_expired.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_raise(self, payload, transport_factory):
        transport = transport_factory({"https://push.example.com/3": DeliveryStatus.EXPIRED})
        service = NotificationService(transport=transport)
        session = MagicMock()
        session.query.side_effect = RuntimeError("database is gone")
        directory = SubscriptionDirectory(session)

        report = await service.notify(
            directory, [make_subscription(i) for i in range(1, 6)], payload
        )

        assert report.expired_subscription_ids == [3]
        assert report.pruned == 0
        session.rollback.assert_called_once()


class TestWebPushTransport:
    """Tests for mapping pywebpush outcomes to delivery statuses."""

    def _exception(self, status_code: int) -> WebPushException:
        return WebPushException("push failed", response=SimpleNamespace(status_code=status_code))

    def test_delivered(self):
        transport = WebPushTransport("private-key", "admin@example.com")
        with patch("pywebpush.webpush") as mock_webpush:
            status = transport.send({"endpoint": "https://push.example.com/1"}, "{}")

        assert status == DeliveryStatus.DELIVERED
        assert mock_webpush.call_args.kwargs["vapid_claims"] == {"sub": "mailto:admin@example.com"}

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_gone_is_expired(self, status_code):
        transport = WebPushTransport("private-key", "admin@example.com")
        with patch("pywebpush.webpush", side_effect=self._exception(status_code)):
            status = transport.send({"endpoint": "https://push.example.com/1"}, "{}")

        assert status == DeliveryStatus.EXPIRED

    def test_other_failures_raise(self):
        transport = WebPushTransport("private-key", "admin@example.com")
        with patch("pywebpush.webpush", side_effect=self._exception(500)):
            with pytest.raises(WebPushException):
                transport.send({"endpoint": "https://push.example.com/1"}, "{}")
