"""Subscription tier classification and multipliers."""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class Tier(str, Enum):
    PRIME = "prime"
    T3 = "t3"
    T2 = "t2"
    T1 = "t1"


DEFAULT_MULTIPLIERS: dict[Tier, float] = {
    Tier.T1: 1,
    Tier.T2: 2,
    Tier.T3: 6,
    Tier.PRIME: 1,
}

# Twitch plans are "1000"/"2000"/"3000"; some payloads use "tier1".."tier3"
_PLAN_MARKERS: list[tuple[Tier, tuple[str, ...]]] = [
    (Tier.T3, ("3000", "tier3")),
    (Tier.T2, ("2000", "tier2")),
    (Tier.T1, ("1000", "tier1")),
]


class _HasMultipliers(Protocol):
    t1_mult: float | None
    t2_mult: float | None
    t3_mult: float | None
    prime_mult: float | None


def resolve_tier(plan: object = None, *, is_prime: bool = False) -> Tier:
    """Classify a subscription plan.

    Prime wins over everything, then T3, T2, T1. A missing or unknown plan
    is assumed to be T1.
    """
    raw = str(plan or "").lower()
    if is_prime or "prime" in raw:
        return Tier.PRIME
    for tier, markers in _PLAN_MARKERS:
        if any(marker in raw for marker in markers):
            return tier
    return Tier.T1


def multiplier_for(tier: Tier, config: _HasMultipliers) -> float:
    """Return the configured time multiplier for *tier*, or its default."""
    configured = {
        Tier.T1: config.t1_mult,
        Tier.T2: config.t2_mult,
        Tier.T3: config.t3_mult,
        Tier.PRIME: config.prime_mult,
    }[tier]
    return DEFAULT_MULTIPLIERS[tier] if configured is None else configured
