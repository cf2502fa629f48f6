"""CLI commands for the cyberfit assessment core."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.table import Table

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.config import load_config_model
from cli.logging_config import setup_logging
from cli.utils import get_engine, read_answers, read_profile, replay_answers

console = Console()

catalog_option = click.option(
    "--catalog", type=click.Path(exists=True, path_type=Path), help="Catalog YAML/JSON file"
)
answers_option = click.option(
    "--answers", type=click.Path(exists=True, path_type=Path), help="Stored answers JSON file"
)
profile_option = click.option(
    "--profile",
    "profile_path",
    type=click.Path(path_type=Path),
    help="Facts profile JSON to start from (e.g. detected device facts)",
)


def _state(ctx: click.Context, catalog, answers, profile_path):
    engine = get_engine(ctx.obj["config"], catalog)
    profile, scored = replay_answers(engine, read_answers(answers), read_profile(profile_path))
    return engine, profile, scored


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config YAML")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, config_path: Optional[Path]):
    """cyberfit - security self-assessment reasoning core."""
    try:
        config = load_config_model(config_path)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
    level = "DEBUG" if verbose else config.logging.level
    setup_logging(json_mode=json_logs or config.logging.json_mode, level=level,
                  log_file=config.paths.log_file)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command("visible")
@catalog_option
@answers_option
@profile_option
@click.option("--why", is_flag=True, help="Also list hidden questions with the reason")
@click.pass_context
def visible(ctx, catalog, answers, profile_path, why):
    """List the questions visible for the current facts."""
    from assessment.conditions import evaluate

    engine, profile, scored = _state(ctx, catalog, answers, profile_path)
    visible_ids = set(engine.get_visible_question_ids(profile))

    table = Table(title="Questions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Question")
    table.add_column("Status", width=10)
    if why:
        table.add_column("Reason", style="dim")

    for question in engine.bank.questions():
        shown = question.id in visible_ids
        if not shown and not why:
            continue
        status = "answered" if question.id in scored else ("visible" if shown else "hidden")
        row = [question.id, question.text[:70], status]
        if why:
            row.append(evaluate(question, profile, engine.rules).reason or "")
        table.add_row(*row)

    console.print(table)
    console.print(f"[dim]{len(visible_ids)} of {len(engine.bank.questions())} visible[/]")


@cli.command("score")
@catalog_option
@answers_option
@profile_option
@click.pass_context
def score(ctx, catalog, answers, profile_path):
    """Show the confidence-adjusted score over the visible questions."""
    engine, profile, scored = _state(ctx, catalog, answers, profile_path)
    result = engine.calculate_overall_score(scored, engine.get_visible_question_ids(profile))

    console.print(f"[bold]Score:[/] {result.percentage:.1f}%")
    console.print(
        f"Coverage {result.coverage_percentage:.1f}% at confidence "
        f"{result.score_confidence:.2f} "
        f"({result.answered_relevant_questions}/{result.total_relevant_questions} answered)"
    )
    console.print(
        f"Points {result.overall_score:g}/{result.max_possible_score:g}, level {result.level}"
    )
    if result.total_quick_wins:
        console.print(f"Quick wins {result.quick_wins_completed}/{result.total_quick_wins}")

    if result.domain_scores:
        table = Table(title="Domains")
        table.add_column("Domain", style="cyan")
        table.add_column("Score", justify="right")
        for domain_id, pct in result.domain_scores.items():
            table.add_row(domain_id, f"{pct}%")
        console.print(table)

    expiring = engine.expiring_answers(scored)
    for item in expiring:
        console.print(
            f"[yellow]{item['question_id']}[/] expires in {item['days_until_expiry']} days"
        )


@cli.command("tiers")
@catalog_option
@answers_option
@profile_option
@click.pass_context
def tiers(ctx, catalog, answers, profile_path):
    """Show unlocked tiers and what the next one needs."""
    engine, profile, _ = _state(ctx, catalog, answers, profile_path)
    progress = engine.evaluate_tier_progression(profile)
    unlocked = set(progress.unlocked_ids())

    table = Table(title="Tiers")
    table.add_column("Order", justify="right")
    table.add_column("Tier", style="cyan")
    table.add_column("Status")
    for tier in engine.tier_engine.all_tiers():
        if tier.id in unlocked:
            status = "[green]unlocked[/]"
        elif progress.next_tier and tier.id == progress.next_tier.id:
            status = "[yellow]next[/]"
        else:
            status = "[dim]locked[/]"
        table.add_row(str(tier.order), tier.name, status)
    console.print(table)

    if progress.progress_to_next:
        p = progress.progress_to_next
        console.print(f"Progress to {progress.next_tier.name}: {p.progress_percentage}%")
        if p.missing_facts:
            console.print(f"Missing facts: {', '.join(p.missing_facts)}")


@cli.command("daily")
@catalog_option
@answers_option
@profile_option
@click.pass_context
def daily(ctx, catalog, answers, profile_path):
    """Pick today's recommended task."""
    engine, profile, scored = _state(ctx, catalog, answers, profile_path)
    result = engine.select_daily_task(profile, answers=scored, now=datetime.now())

    if result.task is None:
        console.print(f"[yellow]{result.reason}[/]")
        return

    console.print(f"[bold green]{result.task.question.text or result.task.id}[/]")
    console.print(result.reason)
    console.print(
        f"[dim]~{result.task.estimated_minutes} min, score {result.task.heuristic_score:.1f}[/]"
    )
    for alt in result.alternatives:
        console.print(f"  - {alt.question.text or alt.id} [dim]({alt.heuristic_score:.1f})[/]")
    if result.tier_progress and result.tier_progress.get("next_tier"):
        tp = result.tier_progress
        console.print(
            f"[dim]Tier {tp['current_tier']} -> {tp['next_tier']} "
            f"({tp['progress_percentage']}%)[/]"
        )


@cli.command("replay")
@catalog_option
@answers_option
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Write profile JSON here")
@click.pass_context
def replay(ctx, catalog, answers, output):
    """Rebuild a facts profile from stored answers."""
    from assessment.schema import Answer

    engine = get_engine(ctx.obj["config"], catalog)
    records = [Answer.model_validate(r) for r in read_answers(answers)]
    profile = engine.import_legacy_data(records)
    payload = json.dumps(profile.to_dict(), indent=2, default=str)

    if output:
        output.write_text(payload)
        console.print(f"[green]Wrote {len(profile)} facts to {output}[/]")
    else:
        click.echo(payload)


@cli.command("facts")
@catalog_option
@answers_option
@profile_option
@click.option("--inject", multiple=True, help="Inject a detected fact as id=value")
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Write profile JSON here")
@click.pass_context
def facts(ctx, catalog, answers, profile_path, inject, output):
    """Show the facts derived from answers and injected detections."""
    engine, profile, _ = _state(ctx, catalog, answers, profile_path)

    for item in inject:
        if "=" not in item:
            raise click.BadParameter(f"Expected id=value, got {item!r}", param_hint="--inject")
        fact_id, raw = item.split("=", 1)
        profile = engine.inject_fact(profile, fact_id.strip(), yaml.safe_load(raw))

    if not len(profile):
        console.print("No facts.")
    else:
        table = Table(title="Facts")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Category", width=12)
        table.add_column("Value")
        table.add_column("Conf", width=5)
        table.add_column("Source")
        for fact in sorted(profile.facts.values(), key=lambda f: f.id):
            table.add_row(
                fact.id,
                fact.category.value,
                repr(fact.value),
                f"{fact.confidence:.2f}",
                fact.established_by.question_id,
            )
        console.print(table)

    if output:
        output.write_text(json.dumps(profile.to_dict(), indent=2, default=str))
        console.print(f"[green]Wrote profile to {output}[/]")


if __name__ == "__main__":
    cli()
