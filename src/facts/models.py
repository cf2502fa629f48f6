"""Data models for the facts system: facts, profiles, extraction results."""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from shared_types import FactCategory, Resolution

SCHEMA_VERSION = "1.0.0"


@dataclass(frozen=True)
class FactProvenance:
    """Which answer (or producer) established a fact."""

    question_id: str
    answer_id: Optional[str] = None
    answer_value: Any = None
    source: str = "answer"


@dataclass(frozen=True)
class Fact:
    id: str
    category: FactCategory
    value: Any
    established_by: FactProvenance
    confidence: float = 0.8
    established_at: datetime = field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None
    name: str = ""
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "confidence", max(0.0, min(1.0, float(self.confidence))))
        if not self.name:
            object.__setattr__(self, "name", humanize_fact_id(self.id))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now()) > self.expires_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "value": self.value,
            "confidence": self.confidence,
            "established_at": self.established_at.isoformat(),
            "established_by": {
                "question_id": self.established_by.question_id,
                "answer_id": self.established_by.answer_id,
                "answer_value": self.established_by.answer_value,
                "source": self.established_by.source,
            },
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Fact":
        by = data.get("established_by") or {}
        expires = data.get("expires_at")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=FactCategory(data.get("category", FactCategory.BEHAVIOR)),
            value=data.get("value"),
            confidence=data.get("confidence", 0.8),
            established_at=datetime.fromisoformat(data["established_at"])
            if data.get("established_at")
            else datetime.now(),
            established_by=FactProvenance(
                question_id=by.get("question_id", ""),
                answer_id=by.get("answer_id"),
                answer_value=by.get("answer_value"),
                source=by.get("source", "answer"),
            ),
            expires_at=datetime.fromisoformat(expires) if expires else None,
            metadata=data.get("metadata") or {},
        )


def humanize_fact_id(fact_id: str) -> str:
    """'device.os_primary' -> 'Device Os Primary'."""
    return re.sub(r"[._]+", " ", fact_id).strip().title()


@dataclass(frozen=True)
class FactQuery:
    category: Optional[FactCategory] = None
    ids: Optional[list[str]] = None
    name_pattern: Optional[str] = None
    min_confidence: Optional[float] = None
    only_valid: bool = False


@dataclass(frozen=True)
class FactsProfile:
    """Immutable snapshot of every fact currently held about the user.

    Never patched in place: ``apply`` returns a new profile with the next
    revision number.
    """

    facts: Mapping[str, Fact] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=datetime.now)
    version: str = SCHEMA_VERSION
    revision: int = 0

    def __post_init__(self):
        object.__setattr__(self, "facts", MappingProxyType(dict(self.facts)))

    def __contains__(self, fact_id: str) -> bool:
        return fact_id in self.facts

    def __len__(self) -> int:
        return len(self.facts)

    def get(self, fact_id: str) -> Optional[Fact]:
        return self.facts.get(fact_id)

    def has(self, fact_id: str) -> bool:
        return fact_id in self.facts

    def value_of(self, fact_id: str, default: Any = None) -> Any:
        fact = self.facts.get(fact_id)
        return fact.value if fact else default

    def has_value(self, fact_id: str, value: Any) -> bool:
        fact = self.facts.get(fact_id)
        return fact is not None and fact.value == value

    def apply(
        self,
        established: list[Fact] = (),
        updated: list[Fact] = (),
        invalidated: list[str] = (),
        now: Optional[datetime] = None,
    ) -> "FactsProfile":
        """Return a new profile with the given changes merged in."""
        merged = dict(self.facts)
        for fact in established:
            merged[fact.id] = fact
        for fact in updated:
            merged[fact.id] = fact
        for fact_id in invalidated:
            merged.pop(fact_id, None)
        return replace(
            self,
            facts=merged,
            last_updated=now or datetime.now(),
            revision=self.revision + 1,
        )

    def query(self, query: FactQuery, now: Optional[datetime] = None) -> list[Fact]:
        pattern = re.compile(query.name_pattern) if query.name_pattern else None
        results = []
        for fact in self.facts.values():
            if query.category and fact.category != query.category:
                continue
            if query.ids is not None and fact.id not in query.ids:
                continue
            if pattern and not pattern.search(fact.name):
                continue
            if query.min_confidence is not None and fact.confidence < query.min_confidence:
                continue
            if query.only_valid and fact.is_expired(now):
                continue
            results.append(fact)
        return results

    def to_dict(self) -> dict:
        """JSON-safe export for the caller to persist."""
        return {
            "version": self.version,
            "revision": self.revision,
            "last_updated": self.last_updated.isoformat(),
            "facts": {fid: f.to_dict() for fid, f in self.facts.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FactsProfile":
        facts = {fid: Fact.from_dict(raw) for fid, raw in (data.get("facts") or {}).items()}
        last = data.get("last_updated")
        return cls(
            facts=facts,
            last_updated=datetime.fromisoformat(last) if last else datetime.now(),
            version=data.get("version", SCHEMA_VERSION),
            revision=data.get("revision", 0),
        )


@dataclass(frozen=True)
class Conflict:
    """A produced fact disagreed with one already in the profile."""

    fact_ids: list[str]
    description: str
    resolution: Resolution
    kept: str = "existing"  # existing | new


@dataclass
class ExtractionResult:
    established: list[Fact] = field(default_factory=list)
    updated: list[Fact] = field(default_factory=list)
    invalidated: list[str] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.established or self.updated or self.invalidated)
