"""mranchor CLI — Typer application with fetch, prompt, resolve, and init commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from mranchor import __version__

app = typer.Typer(
    name="mranchor",
    help="Anchor AI review feedback to GitLab merge request diff lines.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)


def _configure_logging(verbose: bool, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=debug, rich_tracebacks=True)],
        force=True,
    )


def _load(config: Optional[str]):
    """Load config and file patterns from the working directory, exit 2 on failure."""
    from mranchor.config.loader import ConfigError, build_patterns, load_config

    root = Path.cwd()
    try:
        cfg = load_config(root, config)
        patterns = build_patterns(cfg, root)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    return cfg, patterns


def _read_bundle(bundle: Path, contents: Optional[Path]):
    from mranchor.bundle import BundleError, load_bundle

    try:
        return load_bundle(bundle, contents)
    except BundleError as exc:
        console.print(f"[bold red]Bundle error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _token(token: Optional[str]) -> str:
    value = token or os.environ.get("GITLAB_TOKEN", "")
    if not value:
        console.print("[bold red]Error:[/bold red] a GitLab token is required (--token or GITLAB_TOKEN)")
        raise typer.Exit(code=2)
    return value


# ── fetch ─────────────────────────────────────────────────────────────────────


@app.command()
def fetch(
    mr_url: str = typer.Argument(..., help="Merge request URL"),
    output: Path = typer.Option(Path("review-bundle.json"), "--output", "-o", help="Bundle file to write"),
    token: Optional[str] = typer.Option(None, "--token", help="GitLab access token (default: $GITLAB_TOKEN)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .mranchor.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output"),
) -> None:
    """Fetch a merge request's diffs, discussions, and file content into a bundle."""
    from mranchor.bundle import write_bundle
    from mranchor.gitlab.adapter import GitLabAdapter, GitLabError

    _configure_logging(verbose, debug)
    cfg, _ = _load(config)
    access_token = _token(token)

    try:
        with GitLabAdapter(
            cfg.gitlab.url, access_token,
            timeout=cfg.gitlab.timeout, max_workers=cfg.gitlab.max_workers,
        ) as gl:
            bundle = gl.fetch_bundle(mr_url)
    except GitLabError as exc:
        console.print(f"[bold red]GitLab error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    write_bundle(bundle, output)
    console.print(
        f"[green]✓[/green] Wrote {output} "
        f"({len(bundle.diffs)} files, {len(bundle.contents)} with content)"
    )


# ── prompt ────────────────────────────────────────────────────────────────────


@app.command()
def prompt(
    bundle: Path = typer.Argument(..., help="Bundle written by `mranchor fetch`"),
    contents: Optional[Path] = typer.Option(None, "--contents", help="Checkout of the head commit for file content"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the prompt to a file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .mranchor.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output"),
) -> None:
    """Build the review prompt: full file content plus diff for every file."""
    from mranchor.output import terminal
    from mranchor.review.prompt import prepare_review

    _configure_logging(verbose, debug)
    cfg, patterns = _load(config)
    data = _read_bundle(bundle, contents)

    prepared = prepare_review(data.diffs, data.contents, cfg, patterns=patterns)

    if verbose or debug:
        terminal.render_prepared(prepared, console=console)

    if output:
        Path(output).write_text(prepared.prompt, encoding="utf-8")
        console.print(f"[green]✓[/green] Prompt written to {output}")
    else:
        print(prepared.prompt)


# ── resolve ───────────────────────────────────────────────────────────────────


@app.command()
def resolve(
    bundle: Path = typer.Argument(..., help="Bundle written by `mranchor fetch`"),
    response: Path = typer.Argument(..., help="File holding the model's reply"),
    contents: Optional[Path] = typer.Option(None, "--contents", help="Checkout of the head commit for file content"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the JSON report to a file"),
    post: bool = typer.Option(False, "--post", help="Post pending comments to the merge request"),
    token: Optional[str] = typer.Option(None, "--token", help="GitLab access token (default: $GITLAB_TOKEN)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .mranchor.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output"),
) -> None:
    """Anchor model feedback to diff lines and merge it with existing discussions."""
    from mranchor.output import json_report, terminal
    from mranchor.review.discussions import discussions_to_feedback, parse_ai_response
    from mranchor.review.prompt import prepare_review
    from mranchor.review.reconciler import reconcile
    from mranchor.review.resolver import resolve_feedback

    _configure_logging(verbose, debug)
    cfg, patterns = _load(config)

    # --- CLI overrides ---
    if format:
        if format not in ("terminal", "json"):
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format  # type: ignore[assignment]

    data = _read_bundle(bundle, contents)
    try:
        reply = response.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]Error:[/bold red] cannot read {response}: {exc}")
        raise typer.Exit(code=2) from exc

    # --- Resolve against the representation that is rendered ---
    prepared = prepare_review(data.diffs, data.contents, cfg, patterns=patterns)
    ai_feedback = resolve_feedback(
        parse_ai_response(reply),
        prepared.rendered_diffs,
        data.shas,
        tolerance=cfg.resolver.tolerance,
    )
    existing = discussions_to_feedback(data.discussions, data.shas)
    view = reconcile(ai_feedback, existing, prepared.rendered_diffs)

    # --- Output ---
    if cfg.output.format == "terminal":
        terminal.render(view, show_summary=cfg.output.show_summary, console=console)
    else:
        print(json_report.render(view))

    if output:
        Path(output).write_text(json_report.render(view), encoding="utf-8")
        if verbose:
            console.print(f"[dim]Report written to {output}[/dim]")

    if post:
        _post_pending(view, data, cfg, _token(token))


def _post_pending(view, data, cfg, access_token: str) -> None:
    """Post every pending comment, in navigation order, as a discussion."""
    from mranchor.gitlab.adapter import GitLabAdapter, GitLabError

    if data.project_id is None or data.mr_iid is None:
        console.print("[bold red]Error:[/bold red] bundle has no merge request id; cannot post")
        raise typer.Exit(code=2)

    failed = 0
    with GitLabAdapter(
        cfg.gitlab.url, access_token,
        timeout=cfg.gitlab.timeout, max_workers=cfg.gitlab.max_workers,
    ) as gl:
        for feedback_id in view.navigation:
            item = view.get(feedback_id)
            if item is None:
                continue
            try:
                gl.post_discussion(data.project_id, data.mr_iid, item)
            except GitLabError as exc:
                failed += 1
                console.print(f"[red]✗[/red] {item.id}: {exc}")
            else:
                console.print(f"[green]✓[/green] Posted {item.id}")

    if failed:
        raise typer.Exit(code=1)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .mranchor.toml in the current directory."""
    from mranchor.config.defaults import DEFAULT_TOML
    from mranchor.config.loader import CONFIG_FILENAME

    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"mranchor {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """mranchor — Anchor AI review feedback to GitLab merge request diffs."""
