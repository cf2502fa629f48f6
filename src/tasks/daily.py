"""Daily task selection: one recommended next action from the visible questions.

Candidates are ranked by ``impact + k1/difficulty + k2/minutes + tier bonus``.
The tier bonus comes from a single lookahead: the candidate's best answer
is run against a scratch copy of the profile and the tier engine is asked
whether one more tier would be earned.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping, Optional

import structlog

from assessment.conditions import RuleRegistry, evaluate
from assessment.expiration import is_answer_expired
from assessment.schema import Answer, Question, Tier
from facts.gates import FactsLike
from facts.mappings import make_fact
from facts.models import FactsProfile
from facts.pipeline import FactsPipeline
from progression.tiers import TierEngine

logger = structlog.get_logger()

MAX_IMPACT_FROM_PRIORITY = 100
HIGH_IMPACT_THRESHOLD = 70
QUICK_TASK_MINUTES = 5

TAG_IMPACT = {"critical": 30, "high-impact": 20, "quickwin": 15}

NO_TASK_REASON = "No eligible tasks available right now. Check back tomorrow."


@dataclass
class DailyTaskConfig:
    cooldown_days: int = 1
    max_estimated_minutes: int = 15
    tier_unlock_bonus: float = 50
    difficulty_weight: float = 10  # k1
    time_weight: float = 30  # k2
    alternatives: int = 3


@dataclass(frozen=True)
class Completion:
    completed_at: datetime
    is_expired: bool = False


@dataclass
class DailyTaskCandidate:
    question: Question
    impact_score: float
    difficulty_score: int
    estimated_minutes: int
    is_visible: bool = True
    is_completed: bool = False
    is_expired: bool = False
    is_on_cooldown: bool = False
    days_since_last_completion: Optional[int] = None
    tier_unlock_bonus: float = 0
    unlocked_tier: Optional[Tier] = None
    heuristic_score: float = 0

    @property
    def id(self) -> str:
        return self.question.id

    @property
    def tags(self) -> list[str]:
        return self.question.tags


@dataclass
class DailyTaskResult:
    task: Optional[DailyTaskCandidate]
    reason: str
    alternatives: list[DailyTaskCandidate] = field(default_factory=list)
    tier_progress: Optional[dict] = None
    next_available_at: Optional[datetime] = None


def estimate_effort(question: Question) -> tuple[int, int]:
    """(difficulty, minutes) from the question's tags."""
    tags = set(question.tags)
    difficulty = 1
    if "complex" in tags:
        difficulty += 2
    if "technical" in tags:
        difficulty += 1
    minutes = difficulty * 3 if "action" in tags else 2
    return difficulty, minutes


def estimate_impact(question: Question) -> float:
    impact = min(MAX_IMPACT_FROM_PRIORITY, question.priority / 10)
    for tag, bonus in TAG_IMPACT.items():
        if tag in question.tags:
            impact += bonus
    return impact


def _as_profile(facts: FactsLike) -> FactsProfile:
    if isinstance(facts, FactsProfile):
        return facts
    return FactsProfile(facts=dict(facts))


class DailyTaskEngine:
    """Picks one daily task per call. Holds no per-user state."""

    def __init__(
        self,
        tier_engine: TierEngine,
        pipeline: FactsPipeline | None = None,
        rules: RuleRegistry | None = None,
        config: DailyTaskConfig | None = None,
    ):
        self.tier_engine = tier_engine
        self.pipeline = pipeline
        self.rules = rules
        self.config = config or DailyTaskConfig()

    def select_daily_task(
        self,
        questions: list[Question],
        facts: FactsLike,
        completion_history: Mapping[str, Completion] | None = None,
        current_answers: Mapping[str, Answer] | None = None,
        now: Optional[datetime] = None,
    ) -> DailyTaskResult:
        now = now or datetime.now()
        profile = _as_profile(facts)
        candidates = self.eligible_candidates(
            questions, profile, completion_history or {}, current_answers or {}, now
        )

        if not candidates:
            logger.debug("daily_task.none_eligible", questions=len(questions))
            return DailyTaskResult(
                task=None,
                reason=NO_TASK_REASON,
                next_available_at=now + timedelta(days=1),
            )

        current = self.tier_engine.evaluate_progression(profile)
        for candidate in candidates:
            candidate.tier_unlock_bonus = self._tier_unlock_bonus(candidate, profile, current)
            candidate.heuristic_score = self.heuristic_score(candidate)

        # sorted() is stable, ties keep catalog order
        ranked = sorted(candidates, key=lambda c: c.heuristic_score, reverse=True)
        task = ranked[0]
        alternatives = ranked[1 : 1 + self.config.alternatives]

        logger.info(
            "daily_task.selected",
            question_id=task.id,
            score=round(task.heuristic_score, 2),
            candidates=len(ranked),
            tier_bonus=task.tier_unlock_bonus,
        )
        return DailyTaskResult(
            task=task,
            reason=self.reason_for(task),
            alternatives=alternatives,
            tier_progress=self._tier_progress(current),
        )

    def eligible_candidates(
        self,
        questions: list[Question],
        facts: FactsLike,
        completion_history: Mapping[str, Completion],
        current_answers: Mapping[str, Answer],
        now: datetime,
    ) -> list[DailyTaskCandidate]:
        eligible = []
        for question in questions:
            candidate = self.build_candidate(
                question, facts, completion_history, current_answers, now
            )
            if (
                candidate.is_visible
                and not candidate.is_completed
                and not candidate.is_expired
                and not candidate.is_on_cooldown
                and candidate.estimated_minutes <= self.config.max_estimated_minutes
            ):
                eligible.append(candidate)
        return eligible

    def build_candidate(
        self,
        question: Question,
        facts: FactsLike,
        completion_history: Mapping[str, Completion],
        current_answers: Mapping[str, Answer],
        now: datetime,
    ) -> DailyTaskCandidate:
        answer = current_answers.get(question.id)
        expired = answer is not None and is_answer_expired(answer, now)
        completion = completion_history.get(question.id)
        days_since = (now - completion.completed_at).days if completion else None
        difficulty, minutes = estimate_effort(question)

        return DailyTaskCandidate(
            question=question,
            impact_score=estimate_impact(question),
            difficulty_score=difficulty,
            estimated_minutes=minutes,
            is_visible=evaluate(question, facts, self.rules).visible,
            is_completed=answer is not None and not expired,
            is_expired=expired,
            is_on_cooldown=days_since is not None and days_since < self.config.cooldown_days,
            days_since_last_completion=days_since,
        )

    def heuristic_score(self, candidate: DailyTaskCandidate) -> float:
        cfg = self.config
        difficulty_part = (
            cfg.difficulty_weight / candidate.difficulty_score if candidate.difficulty_score > 0 else 0
        )
        time_part = cfg.time_weight / candidate.estimated_minutes if candidate.estimated_minutes > 0 else 0
        return candidate.impact_score + difficulty_part + time_part + candidate.tier_unlock_bonus

    def reason_for(self, task: DailyTaskCandidate) -> str:
        if task.unlocked_tier is not None:
            return f"Completing this will unlock {task.unlocked_tier.name} and open up new features."
        if "critical" in task.tags:
            return "This addresses a critical security gap. Worth prioritizing today."
        if task.estimated_minutes <= QUICK_TASK_MINUTES:
            return (
                f"Quick win: this takes about {task.estimated_minutes} minutes "
                "and makes a real difference."
            )
        if task.impact_score >= HIGH_IMPACT_THRESHOLD:
            return "High-impact security improvement for your everyday safety."
        return "A solid security step that is worth tackling today."

    def simulate_completion(self, question: Question, profile: FactsProfile) -> FactsProfile:
        """Scratch profile as if the question's best option had been chosen."""
        option = question.best_option()
        if option is None:
            return profile

        if self.pipeline is not None and self.pipeline.engine.mappings_for(question.id):
            # A fact that loses its conflict leaves the profile as it is
            answer = Answer(question_id=question.id, value=option.id)
            simulated, _ = self.pipeline.process_answer(answer, profile)
            return simulated

        if not option.facts:
            return profile
        patch = [
            make_fact(fid, value, question.id, answer_value=option.id, source="simulation")
            for fid, value in option.facts.items()
        ]
        return profile.apply(updated=patch)

    def _tier_unlock_bonus(self, candidate, profile: FactsProfile, current) -> float:
        if current.next_tier is None:
            return 0
        simulated = self.tier_engine.evaluate_progression(
            self.simulate_completion(candidate.question, profile)
        )
        if len(simulated.all_unlocked) > len(current.all_unlocked):
            candidate.unlocked_tier = simulated.all_unlocked[-1].tier
            return self.config.tier_unlock_bonus
        return 0

    @staticmethod
    def _tier_progress(progression) -> dict:
        return {
            "current_tier": progression.current_tier.name if progression.current_tier else None,
            "next_tier": progression.next_tier.name if progression.next_tier else None,
            "progress_percentage": (
                progression.progress_to_next.progress_percentage
                if progression.progress_to_next
                else 100
            ),
        }
