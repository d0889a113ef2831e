"""Monthly recording quotas per subscription plan."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from voice_nutrition.domain.errors import EntitlementExceededError
from voice_nutrition.services.store import KeyValueStore

SubscriptionTier = Literal["FREE", "PRO"]

USAGE_KEY_PREFIX = "usage:"

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionPlan:
    """Recording allowance for a tier; a limit of None means unlimited."""

    tier: str
    name: str
    monthly_recording_limit: int | None


@dataclass(frozen=True)
class UsageStats:
    """Recording usage in the current month."""

    tier: str
    used: int
    limit: int | None
    remaining: int | None
    period: str


SUBSCRIPTION_PLANS: dict[str, SubscriptionPlan] = {
    "FREE": SubscriptionPlan(tier="FREE", name="Free", monthly_recording_limit=10),
    "PRO": SubscriptionPlan(tier="PRO", name="Pro", monthly_recording_limit=300),
}
UNLIMITED_PLAN = SubscriptionPlan(
    tier="UNLIMITED", name="Unlimited", monthly_recording_limit=None
)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class EntitlementService:
    """Tracks recordings per user and enforces the plan's monthly limit."""

    store: KeyValueStore
    unlimited_user_ids: set[str] = field(default_factory=set)
    plans: dict[str, SubscriptionPlan] = field(
        default_factory=lambda: dict(SUBSCRIPTION_PLANS)
    )
    clock: Callable[[], datetime] = _utc_now
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def can_perform_action(self, user_id: str) -> bool:
        """Return True if the user has a recording left this month."""
        usage = self.current_usage(user_id)
        return usage.remaining is None or usage.remaining > 0

    def require_action(self, user_id: str) -> UsageStats:
        """Raise when the user has exhausted the monthly quota."""
        usage = self.current_usage(user_id)
        if usage.remaining is not None and usage.remaining <= 0:
            _logger.info(
                "User %s reached the %s limit of %s recordings",
                user_id,
                usage.tier,
                usage.limit,
            )
            raise EntitlementExceededError(
                f"Monthly limit of {usage.limit} recordings reached"
            )
        return usage

    def current_usage(self, user_id: str) -> UsageStats:
        """Return usage for the current calendar month."""
        record = self._load(user_id)
        plan = self._plan_for(user_id, str(record["tier"]))
        used = int(record["used"])
        limit = plan.monthly_recording_limit
        return UsageStats(
            tier=plan.tier,
            used=used,
            limit=limit,
            remaining=None if limit is None else max(limit - used, 0),
            period=str(record["period"]),
        )

    def record_usage(self, user_id: str) -> UsageStats:
        """Count one recording against the user's quota."""
        with self._lock:
            self._add_usage(user_id, 1)
        return self.current_usage(user_id)

    def reserve_action(self, user_id: str) -> UsageStats:
        """Check the quota and count one recording in a single step."""
        with self._lock:
            self.require_action(user_id)
            self._add_usage(user_id, 1)
        return self.current_usage(user_id)

    def release_action(self, user_id: str) -> UsageStats:
        """Give back a recording reserved for work that did not finish."""
        with self._lock:
            self._add_usage(user_id, -1)
        return self.current_usage(user_id)

    def set_tier(self, user_id: str, tier: str) -> UsageStats:
        """Move a user to another plan, keeping this month's count."""
        if tier not in self.plans:
            raise ValueError(f"Unknown subscription tier: {tier}")
        with self._lock:
            record = self._load(user_id)
            record["tier"] = tier
            self.store.set(_usage_key(user_id), record)
        _logger.info("User %s moved to %s", user_id, tier)
        return self.current_usage(user_id)

    def _add_usage(self, user_id: str, delta: int) -> None:
        record = self._load(user_id)
        record["used"] = max(int(record["used"]) + delta, 0)
        self.store.set(_usage_key(user_id), record)
        _logger.info("Usage for %s is now %s", user_id, record["used"])

    def _plan_for(self, user_id: str, tier: str) -> SubscriptionPlan:
        if user_id in self.unlimited_user_ids:
            return UNLIMITED_PLAN
        return self.plans.get(tier, self.plans["FREE"])

    def _load(self, user_id: str) -> dict[str, object]:
        period = self.clock().strftime("%Y-%m")
        raw = self.store.get(_usage_key(user_id))
        if not isinstance(raw, dict):
            return {"tier": "FREE", "used": 0, "period": period}
        if raw.get("period") != period:
            _logger.info("Resetting monthly usage for %s", user_id)
            return {"tier": raw.get("tier") or "FREE", "used": 0, "period": period}
        return raw


def _usage_key(user_id: str) -> str:
    return f"{USAGE_KEY_PREFIX}{user_id}"
