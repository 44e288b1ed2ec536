"""Request-level gate evaluating tier checks against a user's entitlements."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from ..entitlements import EntitlementResolver, Tier
from .context import EntitlementContext
from .exceptions import FeatureGateError

logger = logging.getLogger(__name__)

WORKOUT_WINDOW = timedelta(days=7)


class UsageReader(Protocol):
    """Counts the items that per-tier limits apply to."""

    def count_workouts_since(self, user_id: int, since: datetime) -> int:
        ...

    def count_active_goals(self, user_id: int) -> int:
        ...


@dataclass(frozen=True)
class GateRequest:
    context: EntitlementContext
    usage: UsageReader
    now: datetime

    @property
    def user_id(self) -> int:
        return self.context.user_id


GateCheck = Callable[[GateRequest], None]


@dataclass(frozen=True)
class GateDecision:
    """Allow/deny verdict; a denial carries the error to surface."""

    context: EntitlementContext
    error: Optional[FeatureGateError] = None

    @property
    def allowed(self) -> bool:
        return self.error is None

    def raise_for_denial(self) -> EntitlementContext:
        if self.error is not None:
            raise self.error
        return self.context


def workout_creation_check(request: GateRequest) -> None:
    if request.context.resolution.workout_log_weekly_limit is None:
        return
    used = request.usage.count_workouts_since(request.user_id, request.now - WORKOUT_WINDOW)
    request.context.assert_weekly_workouts(used)


def goal_creation_check(request: GateRequest) -> None:
    if request.context.resolution.goal_limit is None:
        return
    request.context.assert_goal_capacity(request.usage.count_active_goals(request.user_id))


def gym_card_check(request: GateRequest) -> None:
    request.context.require("gym.card", message="Gym card integration is not included in your membership.")


def fitness_sync_check(request: GateRequest) -> None:
    request.context.require_tier(Tier.PREMIUM, feature="Apple Fitness sync")


def mood_insight_check(request: GateRequest) -> None:
    request.context.require_tier(Tier.PREMIUM, feature="AI mood insights")


class FeatureGate:
    """Resolves entitlements and runs a check before a gated action proceeds."""

    def __init__(
        self,
        resolver: EntitlementResolver,
        usage: UsageReader,
    ) -> None:
        self._resolver = resolver
        self._usage = usage

    def now(self) -> datetime:
        return self._resolver.now()

    def context_for(self, user_id: int) -> EntitlementContext:
        return EntitlementContext(self._resolver.resolve(user_id))

    def guard(self, user_id: int, check: GateCheck) -> GateDecision:
        context = self.context_for(user_id)
        request = GateRequest(context=context, usage=self._usage, now=self._resolver.now())
        try:
            check(request)
        except FeatureGateError as exc:
            logger.info("Gate denied user=%s tier=%s code=%s", user_id, context.tier.value, exc.code)
            return GateDecision(context=context, error=exc)
        return GateDecision(context=context)

    def enforce(self, user_id: int, check: GateCheck) -> EntitlementContext:
        """Run ``check`` and raise :class:`FeatureGateError` on denial."""

        return self.guard(user_id, check).raise_for_denial()
