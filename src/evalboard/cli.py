"""Typer CLI entrypoint for the evaluation dashboard."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

import typer

from .config import load_yaml
from .container import EvalboardContainer, create_container
from .core import category_breakdown, total_maximum
from .dashboard import Dashboard
from .errors import EvalboardError, NotFoundError, StoreError, ValidationError
from .logging import configure_logging

app = typer.Typer(help="Interview evaluation dashboard CLI.", no_args_is_help=True)
rubric_app = typer.Typer(help="Inspect or replace the scoring rubric.", no_args_is_help=True)
app.add_typer(rubric_app, name="rubric")


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn dashboard errors into a one-line message and a non-zero exit."""
    try:
        yield
    except ValidationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        for detail in exc.errors:
            if detail != str(exc):
                typer.echo(f"  - {detail}", err=True)
        raise typer.Exit(code=2) from exc
    except NotFoundError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=3) from exc
    except StoreError as exc:
        typer.echo(f"Store error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    store: Optional[Path] = typer.Option(None, dir_okay=False, help="JSON store path (overrides config)."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    log_format: str = typer.Option("json", help="Log line format: json or console."),
) -> None:
    """Load configuration and wire the dashboard."""
    if log_format not in ("json", "console"):
        raise typer.BadParameter("expected json or console", param_hint="--log-format")
    configure_logging(log_level, json_output=log_format == "json")
    with reporting_errors():
        settings: dict[str, Any] = load_yaml(config) if config else {}
        if store is not None:
            settings["store"] = {**settings.get("store", {}), "backend": "json", "path": str(store)}
        ctx.obj = create_container(settings=settings)


def _container(ctx: typer.Context) -> EvalboardContainer:
    return ctx.obj


def _require_login(container: EvalboardContainer) -> None:
    if container.config.get("auth.required") and not container.auth_session().is_authenticated():
        typer.echo("Error: login required (run `evalboard login`).", err=True)
        raise typer.Exit(code=2)


def _loaded_dashboard(container: EvalboardContainer) -> Dashboard:
    dashboard = container.dashboard()
    dashboard.refresh()
    return dashboard


def _parse_pairs(values: List[str] | None, option: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for raw in values or []:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected KEY=VALUE, got {raw!r}", param_hint=option)
        pairs[key.strip()] = value
    return pairs


@app.command()
def login(
    ctx: typer.Context,
    username: str = typer.Option(..., prompt=True, help="Account name."),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password."),
) -> None:
    """Check the configured credentials and mark this device as logged in."""
    container = _container(ctx)
    with reporting_errors():
        user = container.credentials().check(username, password)
        container.auth_session().login(user)
    typer.echo(f"Logged in as {user}.")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Clear the login flag."""
    _container(ctx).auth_session().logout()
    typer.echo("Logged out.")


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the evaluator identity used for saved evaluations."""
    container = _container(ctx)
    with reporting_errors():
        evaluator = container.identity().resolve()
    user = container.auth_session().current_user()
    typer.echo(f"Evaluator: {evaluator}")
    typer.echo(f"Login: {user or '-'}")


@app.command()
def rank(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, dir_okay=False, resolve_path=True, help="Write the leaderboard as JSON."),
) -> None:
    """Print the live leaderboard."""
    container = _container(ctx)
    with reporting_errors():
        dashboard = _loaded_dashboard(container)
        leaderboard = dashboard.leaderboard
        if not leaderboard.entries:
            typer.echo("No candidates yet.")
        for entry in leaderboard.entries:
            marker = " (trimmed)" if entry.aggregate.trimmed else ""
            typer.echo(
                f"{entry.rank:>3}. {entry.candidate.name or '-'}  "
                f"{entry.aggregate.display_score}/{leaderboard.total_maximum} "
                f"({entry.percentage}%)  n={entry.aggregate.evaluation_count}{marker}  "
                f"[{entry.candidate.id}]"
            )
        if output is not None:
            dashboard.export(output)
            typer.echo(f"Leaderboard saved to {output}.")


@app.command()
def show(ctx: typer.Context, candidate_id: str = typer.Argument(..., help="Candidate id.")) -> None:
    """Show a candidate's info and every evaluation."""
    container = _container(ctx)
    with reporting_errors():
        dashboard = _loaded_dashboard(container)
        entry = dashboard.leaderboard.find(candidate_id)
        candidate = dashboard.find_candidate(candidate_id)
    rubric = dashboard.rubric
    typer.echo(f"{candidate.name} [{candidate.id}]")
    for key, value in candidate.info.model_dump().items():
        if value:
            typer.echo(f"  {key}: {value}")
    if entry is not None:
        typer.echo(
            f"Score: {entry.aggregate.display_score}/{total_maximum(rubric)} "
            f"({entry.percentage}%) from {entry.aggregate.evaluation_count} evaluation(s)"
            + (", highest and lowest dropped" if entry.aggregate.trimmed else "")
        )
    for evaluation in candidate.evaluations:
        typer.echo(f"- {evaluation.evaluator_id}: {evaluation.total} [{evaluation.id}]")
        for item in category_breakdown(evaluation.scores, rubric):
            typer.echo(f"    {item.label}: {item.awarded}/{item.maximum}")
        if evaluation.tags:
            rendered = ", ".join(
                f"{'+' if tag.polarity == 'positive' else '-'}{tag.text}" for tag in evaluation.tags
            )
            typer.echo(f"    tags: {rendered}")
        if evaluation.note:
            typer.echo(f"    note: {evaluation.note}")


@app.command("add-candidate")
def add_candidate(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Candidate display name."),
    info: Optional[List[str]] = typer.Option(None, help="Info field as KEY=VALUE; repeatable."),
) -> None:
    """Register a candidate without scoring it."""
    container = _container(ctx)
    _require_login(container)
    fields = _parse_pairs(info, "--info")
    with reporting_errors():
        candidate = _loaded_dashboard(container).create_candidate(name, fields)
    typer.echo(f"Created candidate {candidate.id} ({candidate.name}).")


@app.command("update-candidate")
def update_candidate(
    ctx: typer.Context,
    candidate_id: str = typer.Argument(..., help="Candidate id."),
    name: Optional[str] = typer.Option(None, help="New display name."),
    info: Optional[List[str]] = typer.Option(None, help="Info field as KEY=VALUE; repeatable."),
) -> None:
    """Edit a stored candidate's name or info fields."""
    container = _container(ctx)
    _require_login(container)
    fields = _parse_pairs(info, "--info")
    with reporting_errors():
        dashboard = _loaded_dashboard(container)
        current = dashboard.find_candidate(candidate_id)
        merged = {**current.info.model_dump(), **fields} if fields else None
        if name is not None and not name.strip():
            raise ValidationError("Candidate name must not be blank")
        candidate = dashboard.update_candidate(candidate_id, name=name, info=merged)
    typer.echo(f"Updated candidate {candidate.id} ({candidate.name}).")


@app.command("import-resume")
def import_resume(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Uploaded resume file."),
) -> None:
    """Create a candidate from an uploaded resume."""
    container = _container(ctx)
    _require_login(container)
    with reporting_errors():
        candidate = _loaded_dashboard(container).import_resume(path)
    typer.echo(f"Imported candidate {candidate.id} ({candidate.name}).")


@app.command("delete-candidate")
def delete_candidate(ctx: typer.Context, candidate_id: str = typer.Argument(..., help="Candidate id.")) -> None:
    """Delete a candidate and all of its evaluations."""
    container = _container(ctx)
    _require_login(container)
    with reporting_errors():
        _loaded_dashboard(container).delete_candidate(candidate_id)
    typer.echo(f"Deleted candidate {candidate_id}.")


@app.command()
def score(
    ctx: typer.Context,
    candidate_id: Optional[str] = typer.Argument(None, help="Candidate id; omit together with --new."),
    new: Optional[str] = typer.Option(None, "--new", help="Score a new candidate with this name."),
    info: Optional[List[str]] = typer.Option(None, help="Info for --new as KEY=VALUE; repeatable."),
    scores: Optional[List[str]] = typer.Option(None, "--score", help="Item score as KEY=VALUE; repeatable."),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Toggle a positive tag; repeatable."),
    negative_tags: Optional[List[str]] = typer.Option(None, "--neg-tag", help="Toggle a negative tag; repeatable."),
    note: Optional[str] = typer.Option(None, help="Free-text note."),
    evaluator: Optional[str] = typer.Option(None, help="Evaluator id (defaults to this device's identity)."),
) -> None:
    """Record or update this evaluator's scores for a candidate."""
    container = _container(ctx)
    _require_login(container)
    if (candidate_id is None) == (new is None):
        raise typer.BadParameter("pass either CANDIDATE_ID or --new NAME")
    values = _parse_pairs(scores, "--score")

    with reporting_errors():
        dashboard = _loaded_dashboard(container)
        evaluator_id = evaluator or container.identity().resolve()
        session = container.session(evaluator_id=evaluator_id)
        if new is not None:
            session.start_new_candidate_draft(name=new, info=_parse_pairs(info, "--info"))
        else:
            session.select_candidate(candidate_id)

        for key, raw in values.items():
            try:
                number = float(raw)
            except ValueError as exc:
                raise typer.BadParameter(f"score for {key!r} must be a number", param_hint="--score") from exc
            if session.set_score(key, number) is None:
                typer.echo(f"Warning: {key!r} is not a rubric field; ignored.", err=True)
        for text in tags or []:
            session.toggle_tag(text, "positive")
        for text in negative_tags or []:
            session.toggle_tag(text, "negative")
        if note is not None:
            session.set_note(note)

        evaluation = session.save()

    entry = dashboard.leaderboard.find(evaluation.candidate_id)
    typer.echo(
        f"Saved {evaluation.total}/{total_maximum(dashboard.rubric)} "
        f"for {session.candidate.name} [{evaluation.candidate_id}] as {evaluation.evaluator_id}."
    )
    if entry is not None:
        typer.echo(f"Rank {entry.rank} with {entry.aggregate.display_score}.")


@app.command("delete-evaluation")
def delete_evaluation(ctx: typer.Context, evaluation_id: str = typer.Argument(..., help="Evaluation id.")) -> None:
    """Delete a single evaluation, keeping the candidate."""
    container = _container(ctx)
    _require_login(container)
    with reporting_errors():
        _loaded_dashboard(container).delete_evaluation(evaluation_id)
    typer.echo(f"Deleted evaluation {evaluation_id}.")


@app.command("reassign-evaluation")
def reassign_evaluation(
    ctx: typer.Context,
    evaluation_id: str = typer.Argument(..., help="Evaluation id."),
    evaluator_id: str = typer.Argument(..., help="Corrected evaluator id."),
) -> None:
    """Correct the evaluator recorded on an evaluation."""
    container = _container(ctx)
    _require_login(container)
    with reporting_errors():
        updated = _loaded_dashboard(container).reassign_evaluation(evaluation_id, evaluator_id)
    if updated is None:
        typer.echo("Nothing to change.")
    else:
        typer.echo(f"Evaluation {updated.id} now belongs to {updated.evaluator_id}.")


@rubric_app.command("show")
def rubric_show(ctx: typer.Context) -> None:
    """Print the active rubric."""
    container = _container(ctx)
    with reporting_errors():
        rubric = container.rubric_model().current
    for category in rubric.categories:
        subtotal = sum(item.max_score for item in category.items)
        typer.echo(f"{category.label} ({subtotal})")
        for item in category.items:
            typer.echo(f"  {item.key:<16} {item.label:<20} /{item.max_score}")
    typer.echo(f"Total: {total_maximum(rubric)}")


@rubric_app.command("replace")
def rubric_replace(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="YAML or JSON rubric file."),
) -> None:
    """Validate and activate a new rubric."""
    container = _container(ctx)
    _require_login(container)
    with reporting_errors():
        change = container.rubric_model().replace(load_yaml(path))
        if not change.ok:
            raise change.error
    typer.echo(f"Rubric replaced; total maximum is {total_maximum(change.rubric)}.")


def main() -> None:
    try:
        app()
    except EvalboardError as exc:  # pragma: no cover - last resort for errors outside commands
        typer.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
