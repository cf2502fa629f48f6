"""Question catalog, visibility, scoring and expiration."""

from .catalog import CatalogError, load_catalog, parse_catalog
from .conditions import RuleRegistry, Visibility
from .schema import Answer, Question, QuestionBank, Tier
from .scoring import ScoreResult

__all__ = [
    "Answer",
    "CatalogError",
    "Question",
    "QuestionBank",
    "RuleRegistry",
    "ScoreResult",
    "Tier",
    "Visibility",
    "load_catalog",
    "parse_catalog",
]
