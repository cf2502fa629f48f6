"""Facts pipeline: extract -> resolve -> new profile snapshot."""

from datetime import datetime
from typing import Any, Iterable, Optional

import structlog

from .extractor import FactsEngine
from .mappings import make_fact
from .models import ExtractionResult, FactsProfile

logger = structlog.get_logger()

DEVICE_DETECTION = "device-detection"


class FactsPipeline:
    """Turns answers and injected facts into successive profile snapshots.

    Every operation takes the current profile and returns a new one; the
    input profile is left untouched.
    """

    def __init__(self, engine: FactsEngine, inject_confidence: float = 0.95):
        self.engine = engine
        self.inject_confidence = inject_confidence

    def process_answer(
        self, answer, profile: FactsProfile
    ) -> tuple[FactsProfile, ExtractionResult]:
        result = self.engine.extract_facts_from_answer(answer, profile)
        if not result.changed:
            return profile, result

        new_profile = profile.apply(result.established, result.updated, result.invalidated)
        if result.conflicts:
            logger.info(
                "facts.conflicts_detected",
                question_id=answer.question_id,
                conflicts=[c.description for c in result.conflicts],
            )
        logger.debug(
            "facts.answer_processed",
            question_id=answer.question_id,
            established=len(result.established),
            updated=len(result.updated),
            invalidated=len(result.invalidated),
            total_facts=len(new_profile),
        )
        return new_profile, result

    def inject_fact(
        self,
        profile: FactsProfile,
        fact_id: str,
        value: Any,
        source: str = "auto-detection",
        confidence: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> FactsProfile:
        """Write a fact from an external producer, bypassing answer mappings."""
        fact = make_fact(
            fact_id,
            value,
            DEVICE_DETECTION,
            answer_value=value,
            confidence=self.inject_confidence if confidence is None else confidence,
            source=source,
            now=now,
            metadata={"source": source},
        )
        logger.debug("facts.injected", fact_id=fact_id, source=source)
        return profile.apply(updated=[fact], now=now)

    def import_legacy_data(
        self, answers: Iterable, profile: Optional[FactsProfile] = None
    ) -> FactsProfile:
        """Rebuild a profile by replaying stored answers in timestamp order."""
        profile = profile or FactsProfile()
        ordered = sorted(answers, key=lambda a: a.timestamp)
        imported = 0

        for answer in ordered:
            try:
                profile, _ = self.process_answer(answer, profile)
                imported += 1
            except Exception as e:
                logger.warning(
                    "facts.import_failed", question_id=answer.question_id, error=str(e)
                )

        logger.info(
            "facts.legacy_imported",
            answers=imported,
            total_facts=len(profile),
            categories=sorted({f.category.value for f in profile.facts.values()}),
        )
        return profile

    def remove_answer(self, profile: FactsProfile, question_id: str) -> FactsProfile:
        """Drop every fact the given question established so it can be re-asked."""
        stale = [
            fid for fid, fact in profile.facts.items()
            if fact.established_by.question_id == question_id
        ]
        if not stale:
            return profile
        logger.debug("facts.answer_removed", question_id=question_id, invalidated=stale)
        return profile.apply(invalidated=stale)
