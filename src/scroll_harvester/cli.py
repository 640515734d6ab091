"""Typer CLI for scroll-harvester."""

from __future__ import annotations

from dataclasses import replace
import json

import typer

from . import __version__
from .browser.session import PlaywrightBrowserSession
from .collectors.controller import ConvergenceController
from .collectors.llm_proposer import LiteLLMActionProposer
from .config import (
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
    validate_runtime_config,
)
from .diagnostics.events import JsonlEventLogger
from .errors import BrowserError, ConfigError, DiagnosticsError
from .logging import configure_logging

app = typer.Typer(help="Collect result links from scrolling, virtualized result pages.")

config_app = typer.Typer(help="Config commands.")
app.add_typer(config_app, name="config")


@config_app.command("init")
def config_init(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    try:
        written_path = init_default_config(path, force=force)
    except ConfigError as exc:
        typer.secho(f"Config init failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    typer.echo(f"Wrote default config to {written_path}")


@config_app.command("show")
def config_show(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render resolved config as JSON."),
) -> None:
    resolved_path = resolve_config_path(path)
    try:
        config = load_runtime_config(path)
    except ConfigError as exc:
        typer.secho(f"Config show failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    if as_json:
        payload = {"path": str(resolved_path), "config": config_to_dict(config)}
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"Resolved config path: {resolved_path}")
    typer.echo(f"Browser: {config.browser.engine} (headless={config.browser.headless})")
    typer.echo(f"Human-like motion: {config.motion.human_like}")
    typer.echo(
        f"Max steps: {config.collection.max_steps} "
        f"(no-progress retries: {config.collection.max_no_progress_retries})"
    )
    typer.echo(f"Item selectors: {', '.join(config.selectors.items)}")


@app.command("collect")
def collect(
    url: str = typer.Argument(..., help="Results page URL to collect from."),
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    headless: bool | None = typer.Option(
        None, "--headless/--headful", help="Override browser.headless from config."
    ),
    max_steps: int | None = typer.Option(
        None, "--max-steps", min=1, help="Override collection.max_steps for conventional lists."
    ),
    events: str | None = typer.Option(None, "--events", help="Append JSONL step events to this file."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    try:
        config = _load_collect_config(path, max_steps=max_steps)
    except ConfigError as exc:
        typer.secho(f"Collect failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    configure_logging(debug or config.app.debug)
    proposer = LiteLLMActionProposer(config.fallback) if config.fallback.enabled else None
    try:
        event_logger = JsonlEventLogger(events) if events else None
        with PlaywrightBrowserSession(config, headless=headless) as session:
            page = session.open_page(url)
            controller = ConvergenceController(config, proposer=proposer, event_logger=event_logger)
            result = controller.collect(page)
    except (BrowserError, DiagnosticsError) as exc:
        typer.secho(f"Collect failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    if as_json:
        typer.echo(json.dumps(result.as_dict(), indent=2, sort_keys=True))
        return

    for identifier in result.identifiers:
        typer.echo(identifier)
    completion = result.completion
    expected = completion.expected if completion.expected is not None else "unknown"
    typer.echo(
        f"{completion.terminal_state.value}: {completion.collected} collected "
        f"(expected {expected}) in {result.stats.steps_taken} steps",
        err=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show scroll-harvester version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _load_collect_config(path: str | None, *, max_steps: int | None) -> RuntimeConfig:
    if path is None and not resolve_config_path().exists():
        config = default_config()
    else:
        config = load_runtime_config(path)
    if max_steps is not None:
        config = replace(config, collection=replace(config.collection, max_steps=max_steps))
    return validate_runtime_config(config)
