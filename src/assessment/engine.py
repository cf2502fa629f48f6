"""Assessment engine facade.

``create_engine`` wires the catalog into a facts pipeline, a tier engine
and a daily task engine. Every query takes the caller's current profile
and answers explicitly; the engine keeps no per-user state.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import structlog

from cli.config_models import AssessmentConfig
from facts.extractor import FactsEngine
from facts.gates import FactsLike
from facts.mappings import register_option_mappings
from facts.models import SCHEMA_VERSION, ExtractionResult, FactsProfile
from facts.pipeline import FactsPipeline
from observability import Metrics
from progression.tiers import TierEngine, TierProgress
from tasks.daily import Completion, DailyTaskEngine, DailyTaskResult

from . import conditions
from .conditions import RuleRegistry
from .expiration import calculate_answer_expiration, get_expiring_answers
from .schema import Answer, QuestionBank
from .scoring import ScoreResult, calculate_overall_score, question_points

logger = structlog.get_logger()

ENGINE_VERSION = "0.1.0"


@dataclass(frozen=True)
class Diagnostics:
    """Read-only snapshot of engine state for debugging and support."""

    engine_version: str
    schema_version: str
    catalog_version: int
    question_count: int
    tier_count: int
    mapping_count: int
    rules: tuple[str, ...]
    counters: Mapping[str, int]


class AssessmentEngine:
    def __init__(
        self,
        bank: QuestionBank,
        config: AssessmentConfig | None = None,
        rules: RuleRegistry | None = None,
        facts_engine: FactsEngine | None = None,
    ):
        self.bank = bank
        self.config = config or AssessmentConfig()
        self.rules = rules or RuleRegistry()
        self.metrics = Metrics()
        self.facts_engine = facts_engine or FactsEngine(metrics=self.metrics)
        self.pipeline = FactsPipeline(
            self.facts_engine, inject_confidence=self.config.facts.inject_confidence
        )
        self.tier_engine = TierEngine(bank.tiers)
        self.daily_tasks = DailyTaskEngine(
            self.tier_engine,
            pipeline=self.pipeline,
            rules=self.rules,
            config=self.config.daily_task.to_engine_config(),
        )

    @property
    def diagnostics(self) -> Diagnostics:
        return Diagnostics(
            engine_version=ENGINE_VERSION,
            schema_version=SCHEMA_VERSION,
            catalog_version=self.bank.version,
            question_count=len(self.bank.questions()),
            tier_count=len(self.bank.tiers),
            mapping_count=self.facts_engine.mapping_count(),
            rules=tuple(self.rules.names()),
            counters=dict(self.metrics.summary()["counters"]),
        )

    def empty_profile(self) -> FactsProfile:
        return FactsProfile()

    # Queries

    def get_visible_question_ids(self, facts: FactsLike) -> list[str]:
        with self.metrics.timer("engine.visible_questions"):
            return conditions.visible_ids(self.bank.questions(), facts, self.rules)

    def calculate_overall_score(
        self,
        answers: Mapping[str, Answer],
        relevant_question_ids: Optional[Iterable[str]] = None,
    ) -> ScoreResult:
        return calculate_overall_score(
            self.bank,
            answers,
            relevant_question_ids,
            minimum_confidence_sample=self.config.scoring.minimum_confidence_sample,
            points_per_level=self.config.scoring.points_per_level,
        )

    def evaluate_tier_progression(self, facts: FactsLike) -> TierProgress:
        return self.tier_engine.evaluate_progression(facts)

    def select_daily_task(
        self,
        facts: FactsLike,
        completion_history: Mapping[str, Completion] | None = None,
        answers: Mapping[str, Answer] | None = None,
        now: Optional[datetime] = None,
    ) -> DailyTaskResult:
        with self.metrics.timer("engine.daily_task"):
            return self.daily_tasks.select_daily_task(
                self.bank.questions(), facts, completion_history, answers, now
            )

    def expiring_answers(
        self, answers: Mapping[str, Answer], now: Optional[datetime] = None
    ) -> list[dict]:
        return get_expiring_answers(
            answers, within_days=self.config.expiration.expiring_within_days, now=now
        )

    # Profile transitions

    def answer(
        self,
        profile: FactsProfile,
        question_id: str,
        value: Any,
        timestamp: Optional[datetime] = None,
    ) -> tuple[FactsProfile, Answer, ExtractionResult]:
        """Record an answer: score it, stamp its expiry and extract its facts."""
        timestamp = timestamp or datetime.now()
        question = self.bank.question(question_id)
        answer = Answer(question_id=question_id, value=value, timestamp=timestamp)

        if question is None:
            logger.warning("engine.unknown_question", question_id=question_id)
        else:
            expiry = calculate_answer_expiration(
                question, value, timestamp, self.config.expiration.default_days
            )
            answer = answer.model_copy(
                update={
                    "points_earned": question_points(question, answer),
                    "expires_at": expiry.expires_at,
                    "expiration_reason": expiry.reason,
                }
            )

        with self.metrics.timer("engine.answer"):
            new_profile, result = self.pipeline.process_answer(answer, profile)
        return new_profile, answer, result

    def inject_fact(
        self,
        profile: FactsProfile,
        fact_id: str,
        value: Any,
        source: str = "auto-detection",
        confidence: Optional[float] = None,
    ) -> FactsProfile:
        return self.pipeline.inject_fact(profile, fact_id, value, source=source, confidence=confidence)

    def import_legacy_data(
        self, answers: Iterable[Answer], profile: Optional[FactsProfile] = None
    ) -> FactsProfile:
        return self.pipeline.import_legacy_data(answers, profile)

    def remove_answer(self, profile: FactsProfile, question_id: str) -> FactsProfile:
        return self.pipeline.remove_answer(profile, question_id)


def create_engine(
    bank: QuestionBank,
    config: AssessmentConfig | None = None,
    rules: RuleRegistry | None = None,
) -> AssessmentEngine:
    """Build an engine with the catalog's option-fact mappings registered."""
    engine = AssessmentEngine(bank, config=config, rules=rules)
    count = register_option_mappings(
        engine.facts_engine, bank, confidence=engine.config.facts.option_fact_confidence
    )
    logger.info(
        "engine.created",
        questions=len(bank.questions()),
        tiers=len(bank.tiers),
        mappings=count,
    )
    return engine
