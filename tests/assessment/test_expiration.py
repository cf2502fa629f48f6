"""Tests for answer expiration tables."""

from datetime import datetime, timedelta

from assessment.expiration import (
    DEFAULT_EXPIRATION_DAYS,
    calculate_answer_expiration,
    get_expired_answers,
    get_expiring_answers,
    is_answer_expired,
)
from assessment.schema import Answer, Question

NOW = datetime(2026, 6, 1, 12, 0)


def _question(expiration=None):
    return Question(
        id="auto_updates",
        text="Automatic updates on?",
        options=[{"id": "yes", "text": "Yes"}, {"id": "no", "text": "No"}],
        expiration=expiration or {},
    )


class TestCalculateExpiration:
    def test_option_entry_wins(self):
        rule = calculate_answer_expiration(_question({"no": 7, "default": 30}), "no", NOW)
        assert rule.expires_at == NOW + timedelta(days=7)
        assert "7 days" in rule.reason

    def test_option_matched_by_text(self):
        rule = calculate_answer_expiration(_question({"no": 7}), "No", NOW)
        assert rule.expires_at == NOW + timedelta(days=7)

    def test_null_entry_never_expires(self):
        rule = calculate_answer_expiration(_question({"yes": None, "default": 30}), "yes", NOW)
        assert rule.expires_at is None
        assert rule.reason is None

    def test_table_default(self):
        rule = calculate_answer_expiration(_question({"default": 30}), "yes", NOW)
        assert rule.expires_at == NOW + timedelta(days=30)

    def test_global_default(self):
        rule = calculate_answer_expiration(_question(), "yes", NOW)
        assert rule.expires_at == NOW + timedelta(days=DEFAULT_EXPIRATION_DAYS)

    def test_global_default_disabled(self):
        assert calculate_answer_expiration(_question(), "yes", NOW, default_days=None).expires_at is None


class TestExpiredAnswers:
    def _answers(self):
        return {
            "fresh": Answer(question_id="fresh", value="yes", expires_at=NOW + timedelta(days=30)),
            "soon": Answer(question_id="soon", value="yes", expires_at=NOW + timedelta(days=3)),
            "stale": Answer(question_id="stale", value="yes", expires_at=NOW - timedelta(days=10)),
            "older": Answer(question_id="older", value="yes", expires_at=NOW - timedelta(days=40)),
            "flagged": Answer(question_id="flagged", value="yes", is_expired=True),
            "forever": Answer(question_id="forever", value="yes"),
        }

    def test_is_answer_expired(self):
        answers = self._answers()
        assert is_answer_expired(answers["stale"], NOW)
        assert is_answer_expired(answers["flagged"], NOW)
        assert not is_answer_expired(answers["fresh"], NOW)
        assert not is_answer_expired(answers["forever"], NOW)

    def test_expiring_within_window(self):
        expiring = get_expiring_answers(self._answers(), within_days=7, now=NOW)
        assert [e["question_id"] for e in expiring] == ["soon"]
        assert expiring[0]["days_until_expiry"] == 3

    def test_expired_most_overdue_first(self):
        expired = get_expired_answers(self._answers(), now=NOW)
        assert [e["question_id"] for e in expired] == ["older", "stale", "flagged"]
        assert expired[0]["expired_days"] == 40
