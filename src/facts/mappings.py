"""Mapping builders: catalog option patches and numeric scales."""

from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

from shared_types import FactCategory

from .extractor import FactsEngine, MappingConditions
from .models import Fact, FactProvenance

logger = structlog.get_logger()

_CATEGORY_KEYWORDS = {
    FactCategory.DEVICE: ("device", "os", "browser", "platform", "hardware"),
    FactCategory.SOFTWARE: ("software", "app", "extension", "antivirus", "update"),
    FactCategory.ENVIRONMENT: ("network", "wifi", "vpn", "router", "workplace"),
    FactCategory.KNOWLEDGE: ("aware", "knows", "knowledge", "training", "phishing"),
    FactCategory.COMPLIANCE: ("compliance", "policy", "regulation"),
}


def infer_category(fact_id: str) -> FactCategory:
    """Category from a dotted namespace ('device.os') or keywords, else behavior."""
    head = fact_id.split(".", 1)[0]
    try:
        return FactCategory(head)
    except ValueError:
        pass
    tokens = set(fact_id.lower().replace(".", "_").split("_"))
    for category, keywords in _CATEGORY_KEYWORDS.items():
        if tokens & set(keywords):
            return category
    return FactCategory.BEHAVIOR


def make_fact(
    fact_id: str,
    value: Any,
    question_id: str,
    answer_value: Any = None,
    confidence: float = 0.9,
    category: Optional[FactCategory] = None,
    expires_in_days: Optional[int] = None,
    source: str = "answer",
    now: Optional[datetime] = None,
    metadata: Optional[dict] = None,
) -> Fact:
    now = now or datetime.now()
    return Fact(
        id=fact_id,
        category=category or infer_category(fact_id),
        value=value,
        established_at=now,
        established_by=FactProvenance(
            question_id=question_id,
            answer_id=answer_value if isinstance(answer_value, str) else None,
            answer_value=answer_value,
            source=source,
        ),
        confidence=confidence,
        expires_at=now + timedelta(days=expires_in_days) if expires_in_days else None,
        metadata=metadata or {},
    )


def register_option_mappings(engine: FactsEngine, bank, confidence: float = 0.9) -> int:
    """Register one mapping per option that carries a ``facts`` patch.

    An option fires for its id and for its text, matched the same way
    scoring matches answers. Returns the number of mappings registered.
    """
    count = 0
    for question in bank.questions():
        for option in question.options:
            if not option.facts:
                continue
            aliases = ()
            if option.text and question.find_option(option.text) is option:
                aliases = (option.text,)
            engine.register_mapping(
                question.id,
                _patch_extractor(question.id, option.id, dict(option.facts), confidence),
                conditions=MappingConditions(option_id=option.id, option_aliases=aliases),
            )
            count += 1
    logger.debug("facts.option_mappings_registered", count=count)
    return count


def _patch_extractor(question_id: str, option_id: str, patch: dict, confidence: float):
    def extract(answer_value, _profile):
        return [
            make_fact(fid, value, question_id, answer_value=option_id, confidence=confidence)
            for fid, value in patch.items()
        ]

    return extract


def register_scale_mapping(
    engine: FactsEngine,
    question_id: str,
    fact_id: str,
    levels: dict[int, str],
    confidence: float = 0.85,
    expires_in_days: Optional[int] = None,
) -> None:
    """Map a numeric scale answer (e.g. 1-5) onto a named level fact."""

    def extract(answer_value, _profile):
        level = levels.get(int(answer_value), "unknown")
        return [
            make_fact(
                fact_id,
                level,
                question_id,
                answer_value=answer_value,
                confidence=confidence,
                expires_in_days=expires_in_days,
                metadata={"numeric_score": answer_value},
            )
        ]

    engine.register_mapping(question_id, extract)
