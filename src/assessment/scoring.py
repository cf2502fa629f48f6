"""Confidence-weighted assessment scoring."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

import structlog

from .schema import Answer, Question, QuestionBank

logger = structlog.get_logger()

# Answers needed before the displayed score stops being damped
DEFAULT_MINIMUM_CONFIDENCE_SAMPLE = 5
POINTS_PER_LEVEL = 100
LEGACY_UNSURE_CREDIT = 0.3


@dataclass
class ScoreResult:
    overall_score: float
    max_possible_score: float
    domain_scores: dict[str, int] = field(default_factory=dict)
    percentage: float = 0.0
    coverage_percentage: float = 0.0
    score_confidence: float = 0.0
    answered_relevant_questions: int = 0
    total_relevant_questions: int = 0
    level: int = 0
    quick_wins_completed: int = 0
    total_quick_wins: int = 0


def question_points(question: Question, answer: Optional[Answer]) -> float:
    """Points earned by an answer: the matched option's points, else 0.

    Legacy weighted questions (no option points) earn the full weight for
    "yes" and 30% of it for "unsure".
    """
    if answer is None:
        return 0.0
    if question.weight and all(o.points is None for o in question.options):
        if answer.value in ("yes", True):
            return float(question.weight)
        if answer.value == "unsure":
            return float(question.weight) * LEGACY_UNSURE_CREDIT
        return 0.0
    option = question.find_option(answer.value)
    if option is None or option.points is None:
        return 0.0
    return float(option.points)


def calculate_level(total_points: float, points_per_level: int = POINTS_PER_LEVEL) -> int:
    return int(total_points // points_per_level) if total_points > 0 else 0


def _relevant_questions(
    bank: QuestionBank,
    answers: Mapping[str, Answer],
    relevant_question_ids: Optional[Iterable[str]],
) -> list[Question]:
    questions = bank.questions()
    if relevant_question_ids is None and not answers:
        return questions
    wanted = set(relevant_question_ids or ()) | set(answers)
    return [q for q in questions if q.id in wanted]


def calculate_overall_score(
    bank: QuestionBank,
    answers: Mapping[str, Answer],
    relevant_question_ids: Optional[Iterable[str]] = None,
    minimum_confidence_sample: int = DEFAULT_MINIMUM_CONFIDENCE_SAMPLE,
    points_per_level: int = POINTS_PER_LEVEL,
) -> ScoreResult:
    """Score the answers over the relevant question set.

    The displayed ``percentage`` is the raw coverage damped by how many
    relevant questions have been answered, so one high-value answer early
    in the flow cannot show a misleadingly high score. ``coverage_percentage``
    keeps the undamped value.

    Args:
        bank: Question catalog.
        answers: Current answers keyed by question id.
        relevant_question_ids: Questions that apply to this user. Answered
            ids are always added. With no ids and no answers the whole
            catalog is relevant.
        minimum_confidence_sample: Answers required for full confidence
            (capped at the number of relevant questions).
    """
    relevant = _relevant_questions(bank, answers, relevant_question_ids)

    earned = 0.0
    max_possible = 0.0
    answered = 0
    quick_wins_completed = 0
    total_quick_wins = 0
    per_domain: dict[str, list[float]] = {}
    domain_by_question = {q.id: d.id for d in bank.domains for q in d.questions()}

    for question in relevant:
        answer = answers.get(question.id)
        q_max = question.max_points()
        q_earned = min(question_points(question, answer), q_max) if q_max > 0 else 0.0

        max_possible += q_max
        earned += q_earned
        if answer is not None:
            answered += 1

        if question.is_quick_win:
            total_quick_wins += 1
            if answer is not None:
                quick_wins_completed += 1

        domain_id = domain_by_question.get(question.id)
        if domain_id is not None:
            bucket = per_domain.setdefault(domain_id, [0.0, 0.0])
            bucket[0] += q_earned
            bucket[1] += q_max

    total = len(relevant)
    coverage = (earned / max_possible * 100) if max_possible > 0 else 0.0

    sample = min(total, max(1, minimum_confidence_sample))
    confidence = min(1.0, answered / sample) if total > 0 else 0.0
    percentage = coverage * confidence if answered > 0 else 0.0

    domain_scores = {
        domain_id: round(e / m * 100) if m > 0 else 0
        for domain_id, (e, m) in per_domain.items()
    }

    logger.debug(
        "scoring.calculated",
        relevant=total,
        answered=answered,
        coverage=coverage,
        confidence=confidence,
    )

    return ScoreResult(
        overall_score=earned,
        max_possible_score=max_possible,
        domain_scores=domain_scores,
        percentage=percentage,
        coverage_percentage=coverage,
        score_confidence=confidence,
        answered_relevant_questions=answered,
        total_relevant_questions=total,
        level=calculate_level(earned, points_per_level),
        quick_wins_completed=quick_wins_completed,
        total_quick_wins=total_quick_wins,
    )


def next_level_progress(
    total_points: float, points_per_level: int = POINTS_PER_LEVEL
) -> dict:
    """Current level, the next one, points still needed and percent through the band."""
    level = calculate_level(total_points, points_per_level)
    floor = level * points_per_level
    points_in_band = max(0.0, total_points - floor)
    return {
        "current_level": level,
        "next_level": level + 1,
        "points_needed": points_per_level - points_in_band,
        "progress": points_in_band / points_per_level * 100,
    }
