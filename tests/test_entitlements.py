"""Tests for recording quotas."""

from datetime import UTC, datetime

import pytest

from voice_nutrition.domain.errors import EntitlementExceededError
from voice_nutrition.services.entitlements import EntitlementService
from voice_nutrition.services.store import InMemoryKeyValueStore


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def test_free_plan_allows_ten_recordings(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store)
    for _ in range(10):
        assert service.can_perform_action("user-1")
        service.record_usage("user-1")

    usage = service.current_usage("user-1")

    assert usage.used == 10
    assert usage.limit == 10
    assert usage.remaining == 0
    assert not service.can_perform_action("user-1")
    with pytest.raises(EntitlementExceededError):
        service.require_action("user-1")


def test_pro_plan_limit(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store)
    service.record_usage("user-1")

    usage = service.set_tier("user-1", "PRO")

    assert usage.limit == 300
    assert usage.remaining == 299


def test_unknown_tier_is_rejected(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store)

    with pytest.raises(ValueError, match="Unknown subscription tier"):
        service.set_tier("user-1", "GOLD")


def test_unlimited_users_have_no_limit(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store, unlimited_user_ids={"owner"})
    for _ in range(20):
        service.record_usage("owner")

    usage = service.current_usage("owner")

    assert usage.limit is None
    assert usage.remaining is None
    assert service.can_perform_action("owner")


def test_usage_resets_each_month(store: InMemoryKeyValueStore) -> None:
    clock = _Clock(datetime(2025, 1, 31, 23, 0, tzinfo=UTC))
    service = EntitlementService(store=store, clock=clock)
    service.set_tier("user-1", "PRO")
    for _ in range(3):
        service.record_usage("user-1")

    clock.now = datetime(2025, 2, 1, 0, 30, tzinfo=UTC)
    usage = service.current_usage("user-1")

    assert usage.used == 0
    assert usage.tier == "PRO"
    assert usage.period == "2025-02"


def test_reserve_counts_and_rejects_at_limit(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store)
    for _ in range(9):
        service.record_usage("user-1")

    assert service.reserve_action("user-1").used == 10
    with pytest.raises(EntitlementExceededError):
        service.reserve_action("user-1")
    assert service.current_usage("user-1").used == 10


def test_release_gives_back_a_reservation(store: InMemoryKeyValueStore) -> None:
    service = EntitlementService(store=store)
    service.reserve_action("user-1")

    assert service.release_action("user-1").used == 0
    assert service.release_action("user-1").used == 0
