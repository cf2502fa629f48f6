"""Shared CLI utilities: loading the catalog, answers and profiles from files."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console

from assessment.catalog import CatalogError, load_catalog
from assessment.engine import AssessmentEngine, create_engine
from assessment.schema import Answer
from facts.models import FactsProfile

from .config_models import AssessmentConfig

console = Console()
logger = structlog.get_logger()


def get_engine(config: AssessmentConfig, catalog: Optional[Path]) -> AssessmentEngine:
    """Build an engine from --catalog or the configured catalog path."""
    path = catalog or config.paths.catalog
    if path is None:
        console.print("[red]No catalog given.[/] Pass --catalog or set paths.catalog in config.yaml.")
        sys.exit(1)
    try:
        bank = load_catalog(path)
    except CatalogError as e:
        console.print(f"[red]Catalog error:[/] {e}")
        sys.exit(1)
    engine = create_engine(bank, config=config)

    ctx = click.get_current_context(silent=True)
    if ctx is not None:
        ctx.call_on_close(engine.metrics.log_summary)
    return engine


def read_answers(path: Optional[Path]) -> list[dict]:
    """Read stored answers from JSON.

    Accepts a list of ``{question_id, value, timestamp?}`` records or a
    mapping of question id to either a bare value or such a record.
    """
    if path is None:
        return []
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        records = []
        for question_id, raw in data.items():
            if isinstance(raw, dict) and "value" in raw:
                records.append({**raw, "question_id": question_id})
            else:
                records.append({"question_id": question_id, "value": raw})
        return records
    if isinstance(data, list):
        return data
    raise click.UsageError(f"Answers file must hold a JSON object or list: {path}")


def read_profile(path: Optional[Path]) -> FactsProfile:
    if path is None or not path.exists():
        return FactsProfile()
    with open(path) as f:
        return FactsProfile.from_dict(json.load(f))


def replay_answers(
    engine: AssessmentEngine,
    records: list[dict],
    profile: Optional[FactsProfile] = None,
) -> tuple[FactsProfile, dict[str, Answer]]:
    """Feed stored answers through the engine in timestamp order.

    Returns the resulting profile and the scored answers keyed by question id.
    """
    profile = profile or engine.empty_profile()
    answers: dict[str, Answer] = {}

    def _ts(record: dict) -> datetime:
        raw = record.get("timestamp")
        return datetime.fromisoformat(raw) if raw else datetime.min

    for record in sorted(records, key=_ts):
        timestamp = _ts(record)
        profile, answer, _ = engine.answer(
            profile,
            record["question_id"],
            record.get("value"),
            timestamp=None if timestamp == datetime.min else timestamp,
        )
        answers[answer.question_id] = answer

    logger.debug("cli.answers_replayed", answers=len(answers), facts=len(profile))
    return profile, answers
