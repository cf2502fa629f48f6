"""Fact conditions and all/any/none gates shared by tiers and question rules."""

from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import BaseModel, Field

from .models import Fact, FactsProfile

logger = structlog.get_logger()

FactsLike = FactsProfile | Mapping[str, Fact]


class FactCondition(BaseModel):
    fact: str
    # Kept as a plain string so an unknown operator fails closed at
    # evaluation time instead of rejecting the whole catalog.
    operator: str
    value: Any = None
    values: Optional[list[Any]] = None


class Gate(BaseModel):
    all: Optional[list[FactCondition]] = None
    any: Optional[list[FactCondition]] = None
    none: Optional[list[FactCondition]] = None

    def referenced_facts(self) -> list[str]:
        seen: dict[str, None] = {}
        for group in (self.all, self.any, self.none):
            for cond in group or []:
                seen.setdefault(cond.fact, None)
        return list(seen)


def lookup(facts: FactsLike, fact_id: str) -> Optional[Fact]:
    return facts.get(fact_id)


def _contains(fact: Optional[Fact], needle: Any) -> bool:
    if fact is None:
        return False
    if isinstance(fact.value, (list, tuple, set)):
        return needle in fact.value
    if isinstance(fact.value, str) and isinstance(needle, str):
        return needle in fact.value
    return False


def _not_contains(fact: Optional[Fact], needle: Any) -> bool:
    if fact is None:
        return True
    if isinstance(fact.value, (list, tuple, set)):
        return needle not in fact.value
    if isinstance(fact.value, str) and isinstance(needle, str):
        return needle not in fact.value
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(fact: Optional[Fact], other: Any, greater: bool) -> bool:
    if fact is None or not _is_number(fact.value) or not _is_number(other):
        return False
    return fact.value > other if greater else fact.value < other


_OPERATORS: dict[str, Callable[[Optional[Fact], FactCondition], bool]] = {
    "exists": lambda f, c: f is not None,
    "not_exists": lambda f, c: f is None,
    "equals": lambda f, c: f is not None and f.value == c.value,
    "not_equals": lambda f, c: f is None or f.value != c.value,
    "in": lambda f, c: f is not None and c.values is not None and f.value in c.values,
    "not_in": lambda f, c: f is None or c.values is None or f.value not in c.values,
    "contains": lambda f, c: _contains(f, c.value),
    "not_contains": lambda f, c: _not_contains(f, c.value),
    "greater_than": lambda f, c: _compare(f, c.value, greater=True),
    "less_than": lambda f, c: _compare(f, c.value, greater=False),
}

OPERATORS = frozenset(_OPERATORS)


def evaluate_condition(condition: FactCondition, facts: FactsLike) -> bool:
    """Evaluate one condition against the fact it names. Unknown operators are false."""
    op = _OPERATORS.get(condition.operator)
    if op is None:
        logger.warning(
            "gates.unknown_operator",
            operator=condition.operator,
            fact=condition.fact,
        )
        return False
    return op(lookup(facts, condition.fact), condition)


def evaluate_gate(gate: Gate, facts: FactsLike) -> bool:
    """``all`` ANDed, ``any`` ORed (absent/empty passes), ``none`` must all be false."""
    if gate.all and not all(evaluate_condition(c, facts) for c in gate.all):
        return False
    if gate.any and not any(evaluate_condition(c, facts) for c in gate.any):
        return False
    if gate.none and any(evaluate_condition(c, facts) for c in gate.none):
        return False
    return True


def passing_facts(gate: Gate, facts: FactsLike) -> list[str]:
    """Facts that satisfied a passing gate: every ``all`` fact plus passing ``any`` facts."""
    found: dict[str, None] = {}
    for cond in gate.all or []:
        found.setdefault(cond.fact, None)
    for cond in gate.any or []:
        if evaluate_condition(cond, facts):
            found.setdefault(cond.fact, None)
    return list(found)
