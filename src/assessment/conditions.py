"""Question visibility from facts.

``include`` is checked first and every key must match; the first failing
key ends evaluation with a diagnostic reason. Only then is ``exclude``
checked, where any matching key hides the question. Named rules run last.
Evaluation is pure: the same question and facts always give the same
answer, so the whole catalog can be re-filtered on every fact change.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import structlog

from facts.gates import FactsLike

from .schema import AnyValue, Exact, OneOf, Question

logger = structlog.get_logger()

RuleFn = Callable[[FactsLike], bool]


@dataclass(frozen=True)
class Visibility:
    visible: bool
    reason: Optional[str] = None


class RuleRegistry:
    """Named visibility rules referenced from ``conditions.rules``.

    A rule that is unknown or raises hides the question.
    """

    def __init__(self):
        self._rules: dict[str, RuleFn] = {}

    def register(self, name: str, fn: RuleFn) -> None:
        self._rules[name] = fn

    def names(self) -> list[str]:
        return list(self._rules)

    def check(self, name: str, facts: FactsLike) -> Visibility:
        fn = self._rules.get(name)
        if fn is None:
            logger.warning("conditions.unknown_rule", rule=name)
            return Visibility(False, f"Rule {name} is not registered")
        try:
            passed = bool(fn(facts))
        except Exception as e:
            logger.warning("conditions.rule_failed", rule=name, error=str(e))
            return Visibility(False, f"Rule {name} failed: {e}")
        if not passed:
            return Visibility(False, f"Rule {name} did not pass")
        return Visibility(True)


def _describe(expectation) -> str:
    if isinstance(expectation, AnyValue):
        return "any value"
    if isinstance(expectation, OneOf):
        return f"one of {list(expectation.values)}"
    return repr(expectation.value)


def _matches(expectation, value) -> bool:
    if isinstance(expectation, AnyValue):
        return True
    if isinstance(expectation, OneOf):
        return value in expectation.values
    if isinstance(expectation, Exact):
        return value == expectation.value
    raise TypeError(f"Unhandled expectation: {expectation!r}")


def evaluate(
    question: Question, facts: FactsLike, rules: RuleRegistry | None = None
) -> Visibility:
    """Decide whether ``question`` is visible for the given facts."""
    conditions = question.conditions
    if conditions is None:
        return Visibility(True)

    for fact_id, expected in conditions.include.items():
        fact = facts.get(fact_id)
        if fact is None:
            return Visibility(
                False,
                f"Include condition failed: {fact_id} expected {_describe(expected)}, got nothing",
            )
        if not _matches(expected, fact.value):
            return Visibility(
                False,
                f"Include condition failed: {fact_id} expected {_describe(expected)}, "
                f"got {fact.value!r}",
            )

    for fact_id, expected in conditions.exclude.items():
        fact = facts.get(fact_id)
        if fact is not None and _matches(expected, fact.value):
            return Visibility(
                False,
                f"Exclude condition matched: {fact_id} is {_describe(expected)} ({fact.value!r})",
            )

    for name in conditions.rules:
        if rules is None:
            logger.warning("conditions.no_rule_registry", rule=name, question_id=question.id)
            return Visibility(False, f"Rule {name} is not registered")
        outcome = rules.check(name, facts)
        if not outcome.visible:
            return outcome

    return Visibility(True)


def visible_ids(
    questions: Iterable[Question], facts: FactsLike, rules: RuleRegistry | None = None
) -> list[str]:
    """Ids of visible questions, in catalog order."""
    return [q.id for q in questions if evaluate(q, facts, rules).visible]
