"""Catalog schema: questions, options, conditions, answers and tiers."""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from facts.gates import Gate
from shared_types import Phase, StatusCategory

# Catalog spellings that mean "the fact exists, any value"
WILDCARD_SENTINELS = frozenset({"*", "any"})


class Exact(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    value: Any


class OneOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["one_of"] = "one_of"
    values: tuple[Any, ...]


class AnyValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["any"] = "any"


Expectation = Annotated[Union[Exact, OneOf, AnyValue], Field(discriminator="kind")]


def parse_expectation(raw: Any) -> Union[Exact, OneOf, AnyValue]:
    """Turn a catalog value into a tagged expectation.

    ``"*"``/``"any"`` become AnyValue, lists become OneOf and everything
    else is Exact. ``{"exact": "*"}`` spells a literal star.
    """
    if isinstance(raw, (Exact, OneOf, AnyValue)):
        return raw
    if isinstance(raw, dict):
        if "kind" in raw:
            kind = raw["kind"]
            if kind == "any":
                return AnyValue()
            if kind == "one_of":
                return OneOf(values=tuple(raw.get("values", ())))
            return Exact(value=raw.get("value"))
        if set(raw) == {"exact"}:
            return Exact(value=raw["exact"])
        if set(raw) == {"one_of"}:
            return OneOf(values=tuple(raw["one_of"]))
        return Exact(value=raw)
    if isinstance(raw, str) and raw in WILDCARD_SENTINELS:
        return AnyValue()
    if isinstance(raw, (list, tuple, set)):
        return OneOf(values=tuple(raw))
    return Exact(value=raw)


class Conditions(BaseModel):
    include: dict[str, Expectation] = Field(default_factory=dict)
    exclude: dict[str, Expectation] = Field(default_factory=dict)
    # Names of rules registered on a RuleRegistry; all must pass
    rules: list[str] = Field(default_factory=list)

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def parse_expectations(cls, v):
        if v is None:
            return {}
        return {key: parse_expectation(raw) for key, raw in dict(v).items()}

    def is_empty(self) -> bool:
        return not (self.include or self.exclude or self.rules)


class AnswerOption(BaseModel):
    id: str
    text: str = ""
    points: Optional[float] = None
    facts: dict[str, Any] = Field(default_factory=dict)
    status_category: Optional[StatusCategory] = None
    feedback: Optional[str] = None
    statement: Optional[str] = None


class Question(BaseModel):
    id: str
    text: str = ""
    priority: float = 100
    tags: list[str] = Field(default_factory=list)
    options: list[AnswerOption] = Field(default_factory=list)
    conditions: Optional[Conditions] = None
    difficulty: Optional[str] = None
    effort: Optional[str] = None
    weight: Optional[float] = None  # legacy scoring weight when options carry no points
    quick_win: bool = False
    phase: Optional[Phase] = None
    description: Optional[str] = None
    # option id -> days until the answer goes stale; "default" covers the rest
    expiration: dict[str, Optional[int]] = Field(default_factory=dict)

    @property
    def is_quick_win(self) -> bool:
        return self.quick_win or "quickwin" in self.tags

    def max_points(self) -> float:
        """Highest achievable points: best option, else the legacy weight."""
        scored = [o.points for o in self.options if o.points is not None]
        if scored:
            return max(0.0, max(scored))
        return float(self.weight or 0)

    def find_option(self, value: Any) -> Optional[AnswerOption]:
        """Match an answer value to an option by exact id, then exact text."""
        for option in self.options:
            if option.id == value:
                return option
        for option in self.options:
            if option.text and option.text == value:
                return option
        return None

    def best_option(self) -> Optional[AnswerOption]:
        """Option with the most points; first one wins ties."""
        best = None
        for option in self.options:
            if best is None or (option.points or 0) > (best.points or 0):
                best = option
        return best


class Level(BaseModel):
    level: int
    questions: list[Question] = Field(default_factory=list)


class Domain(BaseModel):
    id: str
    title: str = ""
    levels: list[Level] = Field(default_factory=list)

    def questions(self) -> list[Question]:
        return [q for level in self.levels for q in level.questions]


class TierPrerequisites(BaseModel):
    gates: list[Gate] = Field(default_factory=list)


class TierUnlocks(BaseModel):
    content: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class TierBadge(BaseModel):
    icon: str = ""
    title: str = ""


class Tier(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    order: int
    prerequisites: TierPrerequisites = Field(default_factory=TierPrerequisites)
    unlocks: TierUnlocks = Field(default_factory=TierUnlocks)
    badge: Optional[TierBadge] = None

    @model_validator(mode="after")
    def default_name(self):
        if not self.name:
            self.name = self.id
        return self


class QuestionBank(BaseModel):
    version: int = 1
    domains: list[Domain] = Field(default_factory=list)
    tiers: list[Tier] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for question in self.questions():
            if question.id in seen:
                raise ValueError(f"Duplicate question id: {question.id}")
            seen.add(question.id)
        orders = [t.order for t in self.tiers]
        if len(orders) != len(set(orders)):
            raise ValueError(f"Tier orders must be unique, got {orders}")
        return self

    def questions(self) -> list[Question]:
        """Every question in catalog order (domain, level, position)."""
        return [q for domain in self.domains for q in domain.questions()]

    def question(self, question_id: str) -> Optional[Question]:
        for q in self.questions():
            if q.id == question_id:
                return q
        return None

    def domain_of(self, question_id: str) -> Optional[str]:
        for domain in self.domains:
            if any(q.id == question_id for q in domain.questions()):
                return domain.id
        return None


class Answer(BaseModel):
    question_id: str
    value: Any
    timestamp: datetime = Field(default_factory=datetime.now)
    points_earned: Optional[float] = None
    expires_at: Optional[datetime] = None
    expiration_reason: Optional[str] = None
    is_expired: bool = False
