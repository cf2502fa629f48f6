"""Tier progression: ordered content/feature unlocking gated on facts.

Tiers unlock strictly in ``order``. The first tier whose gates all fail
stops the walk and becomes the next target; no tier beyond it is ever
reported unlocked, even if its own gates would pass on their own.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from assessment.schema import Tier
from facts.gates import FactsLike, evaluate_gate, passing_facts

logger = structlog.get_logger()


@dataclass
class UnlockedTier:
    tier: Tier
    unlocked_by: list[str] = field(default_factory=list)
    by_default: bool = False

    @property
    def id(self) -> str:
        return self.tier.id

    @property
    def name(self) -> str:
        return self.tier.name


@dataclass
class TierProgressToNext:
    missing_facts: list[str]
    satisfied_facts: list[str]
    progress_percentage: int


@dataclass
class TierProgress:
    """Result of walking the tiers against a facts snapshot.

    ``all_unlocked`` holds only earned tiers. When none is earned the
    lowest tier is still reported as ``current_tier`` with
    ``by_default=True``, but it is not added to ``all_unlocked`` and
    ``is_unlocked`` is false for it, because it remains ``next_tier``.
    Use ``reached()`` for the floor-inclusive list.
    """

    current_tier: Optional[UnlockedTier]
    next_tier: Optional[Tier] = None
    all_unlocked: list[UnlockedTier] = field(default_factory=list)
    progress_to_next: Optional[TierProgressToNext] = None

    def unlocked_ids(self) -> list[str]:
        return [t.id for t in self.all_unlocked]

    def reached(self) -> list[UnlockedTier]:
        """Earned tiers, or just the floor when none has been earned."""
        if self.all_unlocked:
            return list(self.all_unlocked)
        return [self.current_tier] if self.current_tier else []


class TierEngine:
    """Walks tiers in ascending order against a facts snapshot."""

    def __init__(self, tiers: list[Tier]):
        self.tiers = sorted(tiers, key=lambda t: t.order)

    def evaluate_progression(self, facts: FactsLike) -> TierProgress:
        unlocked: list[UnlockedTier] = []
        next_tier = None

        for tier in self.tiers:
            if not self._prerequisites_met(tier, facts):
                next_tier = tier
                break
            unlocked.append(UnlockedTier(tier, self._unlocking_facts(tier, facts)))

        current = unlocked[-1] if unlocked else None
        if current is None and self.tiers:
            # Nothing earned yet: the lowest tier stands in as the floor but
            # stays locked, so it is still the next target.
            current = UnlockedTier(self.tiers[0], [], by_default=True)

        progress = self._progress_to(next_tier, facts) if next_tier else None
        return TierProgress(
            current_tier=current,
            next_tier=next_tier,
            all_unlocked=unlocked,
            progress_to_next=progress,
        )

    def is_unlocked(self, tier_id: str, facts: FactsLike) -> bool:
        """True only if the tier is reached in order, not merely if its gates pass."""
        return tier_id in self.evaluate_progression(facts).unlocked_ids()

    def get_unlocked_content(self, facts: FactsLike) -> dict:
        """Content, features and badges from every unlocked tier, de-duplicated."""
        content: dict[str, None] = {}
        features: dict[str, None] = {}
        badges = []
        for unlocked in self.evaluate_progression(facts).reached():
            for item in unlocked.tier.unlocks.content:
                content.setdefault(item, None)
            for item in unlocked.tier.unlocks.features:
                features.setdefault(item, None)
            if unlocked.tier.badge:
                badges.append(unlocked.tier.badge.icon)
        return {"content": list(content), "features": list(features), "badges": badges}

    def get_tier(self, tier_id: str) -> Optional[Tier]:
        for tier in self.tiers:
            if tier.id == tier_id:
                return tier
        return None

    def all_tiers(self) -> list[Tier]:
        return list(self.tiers)

    @staticmethod
    def _prerequisites_met(tier: Tier, facts: FactsLike) -> bool:
        gates = tier.prerequisites.gates
        if not gates:
            return True  # always-on tier
        return any(evaluate_gate(gate, facts) for gate in gates)

    @staticmethod
    def _unlocking_facts(tier: Tier, facts: FactsLike) -> list[str]:
        for gate in tier.prerequisites.gates:
            if evaluate_gate(gate, facts):
                return passing_facts(gate, facts)
        return []

    @staticmethod
    def _progress_to(tier: Tier, facts: FactsLike) -> TierProgressToNext:
        required: dict[str, None] = {}
        for gate in tier.prerequisites.gates:
            for fact_id in gate.referenced_facts():
                required.setdefault(fact_id, None)

        satisfied = [f for f in required if facts.get(f) is not None]
        missing = [f for f in required if facts.get(f) is None]
        pct = round(len(satisfied) / len(required) * 100) if required else 0
        return TierProgressToNext(
            missing_facts=missing,
            satisfied_facts=satisfied,
            progress_percentage=pct,
        )
