"""Derived facts: immutable profile snapshots built from answers."""

from .extractor import FactsEngine, MappingConditions
from .models import ExtractionResult, Fact, FactProvenance, FactsProfile
from .pipeline import FactsPipeline
from .resolver import ConflictResolver

__all__ = [
    "ConflictResolver",
    "ExtractionResult",
    "Fact",
    "FactProvenance",
    "FactsEngine",
    "FactsPipeline",
    "FactsProfile",
    "MappingConditions",
]
