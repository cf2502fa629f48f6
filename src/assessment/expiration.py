"""Answer expiration: when a recorded practice goes stale and should be re-asked."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from .schema import Answer, Question

DEFAULT_EXPIRATION_DAYS = 90


@dataclass(frozen=True)
class ExpirationRule:
    expires_at: Optional[datetime]
    reason: Optional[str] = None


def calculate_answer_expiration(
    question: Question,
    value: Any,
    timestamp: Optional[datetime] = None,
    default_days: Optional[int] = DEFAULT_EXPIRATION_DAYS,
) -> ExpirationRule:
    """Expiry for an answer from the question's table, else ``default_days``.

    A table entry of ``None`` means the answer never expires (e.g. automatic
    updates turned on).
    """
    timestamp = timestamp or datetime.now()
    table = question.expiration
    option = question.find_option(value)
    key = option.id if option else value

    if isinstance(key, str) and key in table:
        days = table[key]
    elif "default" in table:
        days = table["default"]
    else:
        days = default_days

    if days is None:
        return ExpirationRule(expires_at=None)
    return ExpirationRule(
        expires_at=timestamp + timedelta(days=days),
        reason=f"Review '{question.text or question.id}' every {days} days",
    )


def is_answer_expired(answer: Answer, now: Optional[datetime] = None) -> bool:
    if answer.is_expired:
        return True
    if answer.expires_at is None:
        return False
    return (now or datetime.now()) > answer.expires_at


def get_expiring_answers(
    answers: Mapping[str, Answer], within_days: int = 7, now: Optional[datetime] = None
) -> list[dict]:
    """Answers expiring within ``within_days``, soonest first."""
    now = now or datetime.now()
    threshold = now + timedelta(days=within_days)
    expiring = [
        {
            "question_id": qid,
            "expires_at": a.expires_at,
            "reason": a.expiration_reason,
            "days_until_expiry": (a.expires_at - now).days,
        }
        for qid, a in answers.items()
        if a.expires_at and now <= a.expires_at <= threshold
    ]
    return sorted(expiring, key=lambda e: e["expires_at"])


def get_expired_answers(
    answers: Mapping[str, Answer], now: Optional[datetime] = None
) -> list[dict]:
    """Expired answers, most overdue first."""
    now = now or datetime.now()
    expired = [
        {
            "question_id": qid,
            "expired_days": (now - a.expires_at).days if a.expires_at else 0,
            "reason": a.expiration_reason,
        }
        for qid, a in answers.items()
        if is_answer_expired(a, now)
    ]
    return sorted(expired, key=lambda e: e["expired_days"], reverse=True)
