"""Tests for the fornada notification sweep."""

import json
import random
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from fornada.config import Settings
from fornada.models import (
    Establishment,
    EstablishmentSubscription,
    NotificationMessage,
    PushSubscription,
)
from fornada.services.fornada_schedule import FornadaEvent, NotificationWindow
from fornada.services.fornada_sweep import FornadaSweep, build_fornada_payload, choose_message
from fornada.services.notification_service import DeliveryStatus, NotificationService
from fornada.services.subscription_directory import SubscriptionDirectory

TZ = "America/Sao_Paulo"


def at(hour: int, minute: int) -> datetime:
    return datetime(2026, 10, 19, hour, minute)


def add_establishment(db, name: str, fornadas, details=None) -> Establishment:
    establishment = Establishment(name=name, fornadas=fornadas, details=details or {})
    db.add(establishment)
    db.commit()
    return establishment


def add_follower(db, establishment: Establishment, key: str) -> PushSubscription:
    subscription = PushSubscription(
        endpoint=f"https://push.example.com/{key}", p256dh_key="p", auth_key="a"
    )
    db.add(subscription)
    db.flush()
    db.add(
        EstablishmentSubscription(
            subscription_id=subscription.id, establishment_id=establishment.id
        )
    )
    db.commit()
    return subscription


@pytest.fixture
def transport(transport_factory):
    return transport_factory()


@pytest.fixture
def sweep(session_factory, transport):
    return FornadaSweep(
        session_factory=session_factory,
        notification_service=NotificationService(transport=transport),
        timezone=TZ,
        icon="/icon.png",
        rng=random.Random(0),
    )


class TestChooseMessage:
    """Tests for choose_message."""

    def test_explicit_message_wins(self):
        assert choose_message(["a", "b"], "16:00", explicit="Hoje tem sonho!") == "Hoje tem sonho!"

    def test_random_pick_from_pool(self):
        pool = ["a", "b", "c"]
        assert choose_message(pool, "16:00", rng=random.Random(1)) in pool

    def test_empty_pool_mentions_time(self):
        assert "16:00" in choose_message([], "16:00")

    def test_empty_pool_without_time(self):
        assert choose_message([], None)


class TestBuildFornadaPayload:
    """Tests for build_fornada_payload."""

    def test_one_hour_phrasing(self):
        payload = build_fornada_payload(
            3, "Padaria", "msg", "/icon.png", window=NotificationWindow.ONE_HOUR_BEFORE
        )
        assert "1 hora" in payload.title
        assert payload.url == "/estabelecimentos/3"
        assert payload.reservation_url is None

    def test_now_phrasing_with_reservation_link(self):
        event = FornadaEvent(time="16:00", minutes=960, id="tarde")
        payload = build_fornada_payload(
            3,
            "Padaria",
            "msg",
            "/icon.png",
            window=NotificationWindow.FIVE_MINUTES_BEFORE,
            event=event,
        )
        assert "agora" in payload.title
        assert payload.reservation_url == "/estabelecimentos/3?reservar=tarde"
        assert payload.tag == "fornada-3-960"


class TestFornadaSweep:
    """Tests for FornadaSweep.run."""

    @pytest.mark.asyncio
    async def test_notifies_followers_one_hour_before(self, db, sweep, transport):
        establishment = add_establishment(db, "Padaria Central", [{"id": "a", "time": "18:00"}])
        add_follower(db, establishment, "1")
        add_follower(db, establishment, "2")
        db.add(NotificationMessage(message="Pão quentinho!"))
        db.commit()

        stats = await sweep.run(at(17, 0))

        assert stats.matches == 1
        assert stats.delivered == 2
        assert len(transport.sent) == 2
        data = json.loads(transport.sent[0][1])
        assert data["title"] == "Fornada em 1 hora em Padaria Central"
        assert data["body"] == "Pão quentinho!"
        assert data["url"] == f"/estabelecimentos/{establishment.id}"
        assert data["reservation_url"] == f"/estabelecimentos/{establishment.id}?reservar=a"

    @pytest.mark.asyncio
    async def test_notifies_five_minutes_before_with_fallback_body(self, db, sweep, transport):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        add_follower(db, establishment, "1")

        stats = await sweep.run(at(17, 55))

        assert stats.matches == 1
        data = json.loads(transport.sent[0][1])
        assert "agora" in data["title"]
        assert "18:00" in data["body"]
        assert "reservation_url" not in data

    @pytest.mark.asyncio
    async def test_no_match_outside_windows(self, db, sweep, transport):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        add_follower(db, establishment, "1")

        stats = await sweep.run(at(17, 54))

        assert stats.matches == 0
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_establishments_without_valid_events_are_ignored(self, db, sweep, transport):
        for name, fornadas in [("Sem fornada", []), ("N/A", ["N/A", ""]), ("Vazia", None)]:
            establishment = add_establishment(db, name, fornadas)
            add_follower(db, establishment, name)

        for hour in range(24):
            for minute in range(0, 60, 5):
                await sweep.run(at(hour, minute))

        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_legacy_details_time_is_used(self, db, sweep, transport):
        establishment = add_establishment(db, "OXXO", [], {"proximaFornada": "16:00"})
        add_follower(db, establishment, "1")

        stats = await sweep.run(at(15, 0))

        assert stats.delivered == 1

    @pytest.mark.asyncio
    async def test_expired_subscriptions_are_deleted(self, db, sweep, transport):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        keep = add_follower(db, establishment, "keep")
        gone = add_follower(db, establishment, "gone")
        gone_id = gone.id
        transport.statuses[gone.endpoint] = DeliveryStatus.EXPIRED

        stats = await sweep.run(at(17, 55))

        assert stats.expired == 1
        assert stats.pruned == 1
        db.expire_all()
        assert db.get(PushSubscription, gone_id) is None
        assert db.get(PushSubscription, keep.id) is not None
        assert SubscriptionDirectory(db).subscriptions_for(establishment.id) == [keep]

    @pytest.mark.asyncio
    async def test_failure_in_one_establishment_does_not_stop_the_sweep(
        self, db, sweep, transport
    ):
        first = add_establishment(db, "Primeira", ["18:00"])
        first_id = first.id
        second = add_establishment(db, "Segunda", ["18:00"])
        add_follower(db, first, "1")
        add_follower(db, second, "2")

        original = SubscriptionDirectory.subscriptions_for

        def flaky(self, establishment_id):
            if establishment_id == first_id:
                raise RuntimeError("connection reset")
            return original(self, establishment_id)

        with patch.object(SubscriptionDirectory, "subscriptions_for", flaky):
            stats = await sweep.run(at(17, 55))

        assert stats.errors == 1
        assert stats.delivered == 1
        assert transport.sent[0][0]["endpoint"] == "https://push.example.com/2"

    @pytest.mark.asyncio
    async def test_load_failure_ends_tick(self, db, sweep, transport):
        add_establishment(db, "Padaria Central", ["18:00"])

        with patch.object(FornadaSweep, "_load", side_effect=RuntimeError("db down")):
            stats = await sweep.run(at(17, 55))

        assert stats.errors == 1
        assert stats.establishments == 0
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_skips_tick_while_previous_is_running(self, sweep):
        sweep._running.acquire()
        try:
            stats = await sweep.run(at(17, 55))
        finally:
            sweep._running.release()

        assert stats.skipped is True

    @pytest.mark.asyncio
    async def test_disabled_push_still_runs(self, db, session_factory):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        add_follower(db, establishment, "1")
        service = NotificationService(settings=Settings(vapid_private_key=None))
        sweep = FornadaSweep(session_factory, service, TZ, "/icon.png")

        stats = await sweep.run(at(17, 55))

        assert stats.matches == 1
        assert stats.delivered == 0

    @pytest.mark.asyncio
    async def test_malformed_details_do_not_block_other_establishments(
        self, db, sweep, transport
    ):
        good = add_establishment(db, "Boa", ["18:00"])
        add_follower(db, good, "1")
        add_establishment(db, "Ruim", [], ["legacy", "list"])

        stats = await sweep.run(at(17, 55))

        assert stats.establishments == 2
        assert stats.errors == 0
        assert stats.delivered == 1

    @pytest.mark.asyncio
    async def test_unreadable_fornadas_are_isolated(self, db, sweep, transport):
        good = add_establishment(db, "Boa", ["18:00"])
        add_follower(db, good, "1")
        add_establishment(db, "Ruim", 5)

        stats = await sweep.run(at(17, 55))

        assert stats.establishments == 2
        assert stats.errors == 1
        assert stats.delivered == 1
        assert transport.sent[0][0]["endpoint"] == "https://push.example.com/1"

    @pytest.mark.asyncio
    async def test_skips_tick_when_shared_lock_is_held(self, db, session_factory, transport):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        add_follower(db, establishment, "1")
        lock = MagicMock()
        lock.acquire.return_value = False
        sweep = FornadaSweep(
            session_factory,
            NotificationService(transport=transport),
            TZ,
            "/icon.png",
            lock=lock,
        )

        stats = await sweep.run(at(17, 55))

        assert stats.skipped is True
        lock.acquire.assert_called_once_with(blocking=False)
        lock.release.assert_not_called()
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_lost_lock_on_release_does_not_fail_tick(self, db, session_factory, transport):
        establishment = add_establishment(db, "Padaria Central", ["18:00"])
        add_follower(db, establishment, "1")
        lock = MagicMock()
        lock.acquire.return_value = True
        lock.release.side_effect = RuntimeError("lock expired")
        sweep = FornadaSweep(
            session_factory,
            NotificationService(transport=transport),
            TZ,
            "/icon.png",
            lock=lock,
        )

        stats = await sweep.run(at(17, 55))

        assert stats.delivered == 1
        lock.release.assert_called_once()
