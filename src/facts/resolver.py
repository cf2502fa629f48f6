"""Conflict resolution between a newly produced fact and the one already held."""

import structlog

from shared_types import Resolution

from .models import Conflict, Fact

logger = structlog.get_logger()


class ConflictResolver:
    """Decides which of two facts with the same id survives.

    Policy: higher confidence wins; on a confidence tie the most recently
    established fact wins; if both tie the existing fact is kept and the
    conflict is flagged for manual review.
    """

    def detect(self, new: Fact, existing: Fact) -> Conflict | None:
        """Return a Conflict when the values differ, else None."""
        if new.id != existing.id or new.value == existing.value:
            return None

        resolution = self.choose_resolution(new, existing)
        winner = self.resolve(new, existing, resolution)
        return Conflict(
            fact_ids=[new.id],
            description=(
                f"Fact {new.id} has conflicting values: "
                f"{existing.value!r} vs {new.value!r}"
            ),
            resolution=resolution,
            kept="new" if winner is new else "existing",
        )

    @staticmethod
    def choose_resolution(new: Fact, existing: Fact) -> Resolution:
        if new.confidence != existing.confidence:
            return Resolution.KEEP_HIGHEST_CONFIDENCE
        if new.established_at != existing.established_at:
            return Resolution.KEEP_NEWEST
        return Resolution.MANUAL_REVIEW

    def resolve(self, new: Fact, existing: Fact, resolution: Resolution) -> Fact:
        """Apply a resolution strategy and return the surviving fact."""
        if resolution is Resolution.KEEP_HIGHEST_CONFIDENCE:
            return new if new.confidence > existing.confidence else existing
        if resolution is Resolution.KEEP_NEWEST:
            return new if new.established_at > existing.established_at else existing
        if resolution is Resolution.MANUAL_REVIEW:
            logger.warning(
                "facts.conflict_manual_review",
                fact_id=new.id,
                existing=existing.value,
                candidate=new.value,
            )
            return existing
        raise ValueError(f"Unhandled resolution: {resolution}")
