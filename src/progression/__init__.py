"""Tier progression."""

from .tiers import TierEngine, TierProgress, UnlockedTier

__all__ = ["TierEngine", "TierProgress", "UnlockedTier"]
