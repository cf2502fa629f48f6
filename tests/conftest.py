"""Shared test fixtures for the assessment core."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assessment.catalog import parse_catalog  # noqa: E402
from facts.models import Fact, FactProvenance, FactsProfile  # noqa: E402
from shared_types import FactCategory  # noqa: E402

REPO_ROOT = Path(__file__).parent.parent


def make_fact(
    id="os",
    value="windows",
    confidence=0.8,
    established_at=None,
    category=FactCategory.DEVICE,
    question_id="q1",
):
    return Fact(
        id=id,
        category=category,
        value=value,
        established_by=FactProvenance(question_id=question_id),
        confidence=confidence,
        established_at=established_at or datetime(2026, 1, 1, 12, 0),
    )


def profile_of(**values) -> FactsProfile:
    """Profile holding one fact per keyword argument."""
    return FactsProfile(facts={k: make_fact(id=k, value=v) for k, v in values.items()})


@pytest.fixture
def catalog_data():
    """Two-domain catalog with conditions, option facts and three tiers."""
    return {
        "version": 3,
        "domains": [
            {
                "id": "device",
                "levels": [
                    {
                        "level": 0,
                        "questions": [
                            {
                                "id": "os_confirm",
                                "text": "Which OS?",
                                "priority": 900,
                                "options": [
                                    {"id": "windows", "text": "Windows", "facts": {"os": "windows"}},
                                    {"id": "mac", "text": "macOS", "facts": {"os": "mac"}},
                                ],
                            },
                            {
                                "id": "auto_updates",
                                "text": "Automatic updates on?",
                                "priority": 800,
                                "tags": ["critical", "quickwin"],
                                "options": [
                                    {"id": "yes", "points": 20, "facts": {"auto_updates": True}},
                                    {"id": "no", "points": 0, "facts": {"auto_updates": False}},
                                ],
                                "expiration": {"yes": None, "default": 30},
                            },
                            {
                                "id": "defender",
                                "text": "Defender enabled?",
                                "priority": 600,
                                "conditions": {"include": {"os": "windows"}},
                                "options": [
                                    {"id": "yes", "points": 15},
                                    {"id": "no", "points": 0},
                                ],
                            },
                        ],
                    }
                ],
            },
            {
                "id": "accounts",
                "levels": [
                    {
                        "level": 0,
                        "questions": [
                            {
                                "id": "password_manager",
                                "text": "Password manager?",
                                "priority": 700,
                                "tags": ["high-impact", "action"],
                                "options": [
                                    {"id": "yes", "points": 20, "facts": {"password_manager": True}},
                                    {"id": "no", "points": 0},
                                ],
                            },
                        ],
                    }
                ],
            },
        ],
        "tiers": [
            {"id": "basics", "order": 1, "unlocks": {"content": ["intro"]}},
            {
                "id": "hardened",
                "name": "Hardened",
                "order": 2,
                "prerequisites": {
                    "gates": [
                        {
                            "all": [
                                {"fact": "auto_updates", "operator": "equals", "value": True},
                                {"fact": "password_manager", "operator": "equals", "value": True},
                            ]
                        }
                    ]
                },
                "unlocks": {"content": ["guides"], "features": ["weekly-review"]},
            },
            {
                "id": "guardian",
                "order": 3,
                "prerequisites": {
                    "gates": [{"all": [{"fact": "mfa", "operator": "exists"}]}]
                },
            },
        ],
    }


@pytest.fixture
def bank(catalog_data):
    return parse_catalog(catalog_data)


@pytest.fixture
def example_catalog_path():
    return REPO_ROOT / "catalog.example.yaml"
