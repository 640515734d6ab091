"""CLI behavior for config and collect commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from scroll_harvester import __version__
from scroll_harvester.collectors.base import CollectionResult, CollectionStats
from scroll_harvester.config import RuntimeConfig
from scroll_harvester.errors import BrowserError
from scroll_harvester.models import CompletionDescriptor, LayoutKind, LayoutMode, TerminalState

pytest.importorskip("typer")

from typer.testing import CliRunner

from scroll_harvester.cli import app

runner = CliRunner()

RESULT = CollectionResult(
    identifiers=("https://conf.example.org/content/1", "https://conf.example.org/content/2"),
    completion=CompletionDescriptor(TerminalState.EARLY_STOP, collected=2, expected=2),
    stats=CollectionStats(
        steps_taken=3,
        max_steps=15,
        max_no_progress_retries=5,
        no_progress_streak=0,
        layout=LayoutMode(LayoutKind.VIRTUALIZED, expected_total=2, framework="ngx-virtual-scroller"),
        insertions=(2,),
    ),
)


class FakePage:
    url = "https://conf.example.org/search?q=robots"


class FakeSession:
    instances: list[FakeSession] = []

    def __init__(self, config: RuntimeConfig, *, headless: bool | None = None) -> None:
        self.config = config
        self.headless = headless
        self.opened: list[str] = []
        self.closed = False
        FakeSession.instances.append(self)

    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.closed = True
        return False

    def open_page(self, url: str) -> FakePage:
        self.opened.append(url)
        return FakePage()


class FailingSession(FakeSession):
    def open_page(self, url: str) -> FakePage:
        raise BrowserError(f"Failed to load '{url}': net::ERR_CONNECTION_REFUSED")


class FakeController:
    instances: list[FakeController] = []

    def __init__(self, config: RuntimeConfig, **kwargs: Any) -> None:
        self.config = config
        self.kwargs = kwargs
        FakeController.instances.append(self)

    def collect(self, page: Any) -> CollectionResult:
        return RESULT


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SCROLL_HARVESTER_CONFIG", str(tmp_path / "missing" / "config.toml"))
    FakeSession.instances.clear()
    FakeController.instances.clear()


def test_cli_help_lists_commands_and_options() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "collect" in result.output
    assert "config" in result.output

    collect_help = runner.invoke(app, ["collect", "--help"])
    assert collect_help.exit_code == 0
    for option in ("--headless", "--headful", "--max-steps", "--events", "--json", "--debug"):
        assert option in collect_help.output


def test_cli_version_flag_prints_package_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_init_and_show_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"

    init_result = runner.invoke(app, ["config", "init", "--path", str(config_path)])
    assert init_result.exit_code == 0
    assert config_path.exists()

    show_result = runner.invoke(app, ["config", "show", "--path", str(config_path), "--json"])
    assert show_result.exit_code == 0
    payload = json.loads(show_result.stdout)
    assert payload["path"] == str(config_path)
    assert payload["config"]["collection"]["early_stop_fraction"] == 0.8


def test_config_init_refuses_to_overwrite_without_force(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    assert runner.invoke(app, ["config", "init", "--path", str(config_path)]).exit_code == 0

    second = runner.invoke(app, ["config", "init", "--path", str(config_path)])
    assert second.exit_code == 2
    assert "Config init failed" in second.output

    forced = runner.invoke(app, ["config", "init", "--path", str(config_path), "--force"])
    assert forced.exit_code == 0


def test_config_show_reports_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "show", "--path", str(tmp_path / "nope.toml")])
    assert result.exit_code == 2
    assert "config init" in result.output


def test_collect_prints_identifiers_and_summary(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("scroll_harvester.cli.PlaywrightBrowserSession", FakeSession)
    monkeypatch.setattr("scroll_harvester.cli.ConvergenceController", FakeController)

    result = runner.invoke(
        app,
        ["collect", "https://conf.example.org/search?q=robots", "--headful", "--max-steps", "9"],
    )

    assert result.exit_code == 0
    assert "https://conf.example.org/content/1" in result.output
    assert "https://conf.example.org/content/2" in result.output
    assert "early_stop: 2 collected (expected 2) in 3 steps" in result.output
    session = FakeSession.instances[0]
    assert session.headless is False
    assert session.opened == ["https://conf.example.org/search?q=robots"]
    assert session.closed
    controller = FakeController.instances[0]
    assert controller.config.collection.max_steps == 9
    assert controller.kwargs["proposer"] is None
    assert controller.kwargs["event_logger"] is None


def test_collect_json_output_and_event_log(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("scroll_harvester.cli.PlaywrightBrowserSession", FakeSession)
    monkeypatch.setattr("scroll_harvester.cli.ConvergenceController", FakeController)
    events_path = tmp_path / "run" / "events.jsonl"

    result = runner.invoke(
        app,
        ["collect", "https://conf.example.org/search?q=robots", "--json", "--events", str(events_path)],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["completion"]["terminal_state"] == "early_stop"
    assert payload["completion"]["completion_ratio"] == 1.0
    assert payload["stats"]["layout"]["framework"] == "ngx-virtual-scroller"
    assert FakeController.instances[0].kwargs["event_logger"].path == events_path


def test_collect_reports_browser_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("scroll_harvester.cli.PlaywrightBrowserSession", FailingSession)

    result = runner.invoke(app, ["collect", "http://localhost:9/"])

    assert result.exit_code == 2
    assert "ERR_CONNECTION_REFUSED" in result.output
    assert FailingSession.instances[0].closed


def test_collect_rejects_invalid_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[collection]\nearly_stop_fraction = 1.5\n", encoding="utf-8")

    result = runner.invoke(app, ["collect", "https://conf.example.org/", "--path", str(config_path)])

    assert result.exit_code == 2
    assert "early_stop_fraction" in result.output
