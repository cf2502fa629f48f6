"""Catalog loading: YAML or JSON question banks with tier definitions."""

import json
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from .schema import QuestionBank

logger = structlog.get_logger()


class CatalogError(ValueError):
    """Catalog file is unreadable or fails validation."""


def parse_catalog(data: dict) -> QuestionBank:
    """Validate a raw catalog dict into a QuestionBank."""
    try:
        bank = QuestionBank.model_validate(data or {})
    except ValidationError as e:
        raise CatalogError(f"Catalog validation failed: {e}") from e

    tiers = sorted(bank.tiers, key=lambda t: t.order)
    for tier in tiers[1:]:
        if not tier.prerequisites.gates:
            # Treated as always-on; usually a missing prerequisites block
            logger.warning("catalog.tier_without_gates", tier_id=tier.id, order=tier.order)

    logger.debug(
        "catalog.loaded",
        version=bank.version,
        domains=len(bank.domains),
        questions=len(bank.questions()),
        tiers=len(bank.tiers),
    )
    return bank


def load_catalog(path: str | Path) -> QuestionBank:
    """Load a catalog from a .yaml/.yml or .json file."""
    path = Path(path).expanduser()
    if not path.exists():
        raise CatalogError(f"Catalog not found: {path}")

    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise CatalogError(f"Invalid catalog file {path}: {e}") from e

    return parse_catalog(data)
