"""Answer -> fact extraction through registered mappings."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from observability import Metrics

from .models import ExtractionResult, Fact, FactsProfile
from .resolver import ConflictResolver

logger = structlog.get_logger()

ExtractFn = Callable[[Any, FactsProfile], list[Fact]]

_UNSET = object()


@dataclass(frozen=True)
class MappingConditions:
    """When a mapping applies. Unset fields are not checked."""

    answer_value: Any = _UNSET
    option_id: Optional[str] = None
    # Other answer values that select the same option, e.g. its display text
    option_aliases: tuple[str, ...] = ()
    requires_facts: tuple[str, ...] = ()


@dataclass(frozen=True)
class AnswerFactMapping:
    question_id: str
    extract_facts: ExtractFn
    conditions: Optional[MappingConditions] = None
    invalidates: tuple[str, ...] = field(default_factory=tuple)


class FactsEngine:
    """Converts answers into facts using mappings registered per question.

    Extraction is best-effort: a mapping that raises is logged and skipped
    while every other applicable mapping still runs. The profile passed in
    is never modified; callers merge the returned result into a new one.
    """

    def __init__(self, resolver: ConflictResolver | None = None, metrics: Metrics | None = None):
        self.resolver = resolver or ConflictResolver()
        self.metrics = metrics or Metrics()
        self._mappings: dict[str, list[AnswerFactMapping]] = {}

    def register_mapping(
        self,
        question_id: str,
        extract_facts: ExtractFn,
        conditions: MappingConditions | None = None,
        invalidates: tuple[str, ...] | list[str] = (),
    ) -> AnswerFactMapping:
        mapping = AnswerFactMapping(
            question_id=question_id,
            extract_facts=extract_facts,
            conditions=conditions,
            invalidates=tuple(invalidates),
        )
        self._mappings.setdefault(question_id, []).append(mapping)
        return mapping

    def mappings_for(self, question_id: str) -> list[AnswerFactMapping]:
        return list(self._mappings.get(question_id, []))

    def registered_questions(self) -> list[str]:
        return list(self._mappings)

    def mapping_count(self) -> int:
        return sum(len(m) for m in self._mappings.values())

    def extract_facts_from_answer(self, answer, profile: FactsProfile) -> ExtractionResult:
        """Run every applicable mapping for ``answer.question_id``."""
        result = ExtractionResult()
        produced: dict[str, Fact] = {}

        for mapping in self._mappings.get(answer.question_id, []):
            if not self._mapping_applies(mapping, answer, profile):
                continue

            try:
                new_facts = list(mapping.extract_facts(answer.value, profile))
            except Exception as e:
                logger.warning(
                    "facts.extraction_failed",
                    question_id=answer.question_id,
                    error=str(e),
                )
                self.metrics.counter("facts.extraction_failed")
                continue

            for fact_id in mapping.invalidates:
                if fact_id in profile and fact_id not in result.invalidated:
                    result.invalidated.append(fact_id)

            # Later mappings win when two produce the same id in one pass
            for fact in new_facts:
                produced[fact.id] = fact

        for fact in produced.values():
            self._classify(fact, profile, result)
        result.invalidated = [f for f in result.invalidated if f not in produced]
        self.metrics.counter("facts.answers_processed")
        self.metrics.counter("facts.conflicts", len(result.conflicts))
        return result

    def _classify(self, fact: Fact, profile: FactsProfile, result: ExtractionResult) -> None:
        existing = profile.get(fact.id)
        if existing is None:
            result.established.append(fact)
            return

        conflict = self.resolver.detect(fact, existing)
        if conflict is None:
            result.updated.append(fact)
            return

        result.conflicts.append(conflict)
        if conflict.kept == "new":
            result.updated.append(fact)

    @staticmethod
    def _mapping_applies(mapping: AnswerFactMapping, answer, profile: FactsProfile) -> bool:
        cond = mapping.conditions
        if cond is None:
            return True
        if cond.answer_value is not _UNSET and answer.value != cond.answer_value:
            return False
        if cond.option_id is not None and answer.value != cond.option_id:
            if answer.value not in cond.option_aliases:
                return False
        return all(fact_id in profile for fact_id in cond.requires_facts)
