"""Configuration contracts, TOML loading and session-start validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
import os
from pathlib import Path
import tomllib
from typing import Any

from platformdirs import user_config_dir

from .errors import ConfigError
from .extract.selectors import (
    DEFAULT_ITEM_SELECTORS,
    DEFAULT_LINK_PATTERNS,
    DEFAULT_LOAD_MORE_SELECTORS,
    DEFAULT_TAB_LABEL_SELECTORS,
    ITEM_CONTAINER_KEY,
    LINK_PATTERN_KEY,
    LOAD_MORE_KEY,
    TAB_LABEL_KEY,
    resolve_selector_pack,
)

logger = logging.getLogger(__name__)

VALID_BROWSER_ENGINES = {"chromium", "firefox", "webkit"}
DEFAULT_CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "SCROLL_HARVESTER_CONFIG"

DEFAULT_CONFIG_TEMPLATE = """[app]
debug = false

[browser]
engine = "chromium"
headless = true
navigation_timeout_ms = 60000
action_timeout_ms = 10000
viewport_width = 1920
viewport_height = 1080
locale = "en-US"
# Empty keeps the engine's own user agent.
user_agent = ""
mask_webdriver = true

[motion]
human_like = true
steps_min = 3
steps_max = 6
duration_min_ms = 400
duration_max_ms = 1800
step_delay_min_ms = 800
step_delay_max_ms = 1800
backscroll_chance = 0.3

[collection]
enabled = true
max_steps = 15
max_no_progress_retries = 3
settle_delay_ms = 2000
virtualized_settle_delay_ms = 3000
virtualized_max_no_progress_retries = 5
virtualized_step_floor = 25
items_per_step_estimate = 5
early_stop_fraction = 0.8
detect_load_more = true

[fallback]
# Ask an LLM (via litellm) for one page action when a step finds nothing new.
enabled = false
model = "gpt-4o-mini"
temperature = 0.0
max_tokens = 256
excerpt_chars = 2000

[selectors]
items = ["content-card.search-item", "content-card", ".search-result-item", ".result-item", ".paper-item", "article"]
link_patterns = ["/content/", "/program/"]
"""


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False


@dataclass(frozen=True)
class BrowserConfig:
    engine: str = "chromium"
    headless: bool = True
    navigation_timeout_ms: int = 60_000
    action_timeout_ms: int = 10_000
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "en-US"
    user_agent: str | None = None
    mask_webdriver: bool = True


@dataclass(frozen=True)
class MotionConfig:
    human_like: bool = True
    steps_min: int = 3
    steps_max: int = 6
    duration_min_ms: int = 400
    duration_max_ms: int = 1800
    step_delay_min_ms: int = 800
    step_delay_max_ms: int = 1800
    backscroll_chance: float = 0.3
    backscroll_pause_min_ms: int = 300
    backscroll_pause_max_ms: int = 900
    travel_fraction_min: float = 0.35
    travel_fraction_max: float = 0.75
    near_bottom_ratio: float = 0.95


@dataclass(frozen=True)
class CollectionConfig:
    enabled: bool = True
    virtualization_detection: bool = True
    max_steps: int = 15
    max_no_progress_retries: int = 3
    settle_delay_ms: int = 2000
    virtualized_settle_delay_ms: int = 3000
    virtualized_max_no_progress_retries: int = 5
    virtualized_step_floor: int = 25
    items_per_step_estimate: int = 5
    early_stop_fraction: float = 0.8
    detect_load_more: bool = True


@dataclass(frozen=True)
class FallbackConfig:
    enabled: bool = False
    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    max_tokens: int = 256
    excerpt_chars: int = 2000


@dataclass(frozen=True)
class SelectorsConfig:
    items: tuple[str, ...] = DEFAULT_ITEM_SELECTORS
    link_patterns: tuple[str, ...] = DEFAULT_LINK_PATTERNS
    load_more: tuple[str, ...] = DEFAULT_LOAD_MORE_SELECTORS
    tab_labels: tuple[str, ...] = DEFAULT_TAB_LABEL_SELECTORS


@dataclass(frozen=True)
class RuntimeConfig:
    app: AppConfig = field(default_factory=AppConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    selectors: SelectorsConfig = field(default_factory=SelectorsConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)


def default_config() -> RuntimeConfig:
    return RuntimeConfig()


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()

    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    config_dir = Path(user_config_dir("scroll-harvester", appauthor=False))
    return config_dir / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    if path.exists() and path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; expected a TOML file path (for example '{path / DEFAULT_CONFIG_FILENAME}')."
        )
    if path.exists() and not force:
        raise ConfigError(
            f"Config file already exists at '{path}'. Re-run with --force to overwrite."
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not write config file at '{path}': {exc}.") from exc
    return path


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found at '{path}'. Run `harvest config init --path \"{path}\"` to generate defaults."
        )
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path ending in '{DEFAULT_CONFIG_FILENAME}'."
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file '{path}': {exc}.") from exc

    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with `harvest config init --force`."
        ) from exc
    return validate_runtime_config(_parse_runtime_config(raw))


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    return asdict(config)


def validate_runtime_config(config: RuntimeConfig) -> RuntimeConfig:
    """Reject negative values, inverted ranges and out-of-range fractions."""
    validate_motion_config(config.motion)
    validate_collection_config(config.collection)
    validate_selectors_config(config.selectors)
    validate_fallback_config(config.fallback)
    return config


def validate_motion_config(motion: MotionConfig) -> MotionConfig:
    _check_range("motion.steps", motion.steps_min, motion.steps_max, minimum=1)
    _check_range("motion.duration", motion.duration_min_ms, motion.duration_max_ms, minimum=0)
    _check_range("motion.step_delay", motion.step_delay_min_ms, motion.step_delay_max_ms, minimum=0)
    _check_range(
        "motion.backscroll_pause",
        motion.backscroll_pause_min_ms,
        motion.backscroll_pause_max_ms,
        minimum=0,
    )
    _check_probability("motion.backscroll_chance", motion.backscroll_chance)
    _check_fraction("motion.travel_fraction_min", motion.travel_fraction_min)
    _check_fraction("motion.travel_fraction_max", motion.travel_fraction_max)
    if motion.travel_fraction_min > motion.travel_fraction_max:
        raise ConfigError(
            "Invalid range 'motion.travel_fraction': travel_fraction_min must be <= travel_fraction_max."
        )
    _check_fraction("motion.near_bottom_ratio", motion.near_bottom_ratio)
    return motion


def validate_collection_config(collection: CollectionConfig) -> CollectionConfig:
    _check_minimum("collection.max_steps", collection.max_steps, 1)
    _check_minimum("collection.max_no_progress_retries", collection.max_no_progress_retries, 1)
    _check_minimum(
        "collection.virtualized_max_no_progress_retries",
        collection.virtualized_max_no_progress_retries,
        1,
    )
    _check_minimum("collection.settle_delay_ms", collection.settle_delay_ms, 0)
    _check_minimum("collection.virtualized_settle_delay_ms", collection.virtualized_settle_delay_ms, 0)
    _check_minimum("collection.virtualized_step_floor", collection.virtualized_step_floor, 1)
    _check_minimum("collection.items_per_step_estimate", collection.items_per_step_estimate, 1)
    _check_fraction("collection.early_stop_fraction", collection.early_stop_fraction)
    return collection


def validate_selectors_config(selectors: SelectorsConfig) -> SelectorsConfig:
    for name in ("items", "link_patterns"):
        values = getattr(selectors, name)
        if not values or any(not isinstance(value, str) or not value.strip() for value in values):
            raise ConfigError(f"Invalid value for 'selectors.{name}': expected non-empty list of strings.")
    return selectors


def validate_fallback_config(fallback: FallbackConfig) -> FallbackConfig:
    if not fallback.model.strip():
        raise ConfigError("Invalid value for 'fallback.model': expected non-empty string.")
    if isinstance(fallback.temperature, bool) or not 0 <= fallback.temperature <= 2:
        raise ConfigError("Invalid value for 'fallback.temperature': expected number between 0 and 2.")
    _check_minimum("fallback.max_tokens", fallback.max_tokens, 1)
    _check_minimum("fallback.excerpt_chars", fallback.excerpt_chars, 1)
    return fallback


def _check_minimum(key: str, value: int, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigError(f"Invalid value for '{key}': expected integer >= {minimum}.")


def _check_range(key: str, low: int, high: int, *, minimum: int) -> None:
    _check_minimum(f"{key}_min", low, minimum)
    _check_minimum(f"{key}_max", high, minimum)
    if low > high:
        raise ConfigError(f"Invalid range '{key}': minimum {low} is greater than maximum {high}.")


def _check_probability(key: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float) or not 0 <= value <= 1:
        raise ConfigError(f"Invalid value for '{key}': expected number between 0 and 1.")


def _check_fraction(key: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float) or not 0 < value <= 1:
        raise ConfigError(f"Invalid value for '{key}': expected number in (0, 1].")


def _parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    app_raw = _expect_table(data, "app")
    browser_raw = _expect_table(data, "browser")
    motion_raw = _expect_table(data, "motion")
    collection_raw = _expect_table(data, "collection")
    selectors_raw = _expect_table(data, "selectors")
    fallback_raw = _expect_table(data, "fallback")

    app_config = AppConfig(debug=_expect_bool(app_raw, "app.debug", default=False))

    browser_defaults = BrowserConfig()
    browser_config = BrowserConfig(
        engine=_expect_choice(
            browser_raw,
            "browser.engine",
            default=browser_defaults.engine,
            valid_values=VALID_BROWSER_ENGINES,
        ),
        headless=_expect_bool(browser_raw, "browser.headless", default=browser_defaults.headless),
        navigation_timeout_ms=_expect_int(
            browser_raw, "browser.navigation_timeout_ms", browser_defaults.navigation_timeout_ms
        ),
        action_timeout_ms=_expect_int(
            browser_raw, "browser.action_timeout_ms", browser_defaults.action_timeout_ms
        ),
        viewport_width=_expect_int(browser_raw, "browser.viewport_width", browser_defaults.viewport_width),
        viewport_height=_expect_int(
            browser_raw, "browser.viewport_height", browser_defaults.viewport_height
        ),
        locale=_expect_non_empty_string(browser_raw, "browser.locale", browser_defaults.locale),
        user_agent=_expect_optional_string(browser_raw, "browser.user_agent"),
        mask_webdriver=_expect_bool(
            browser_raw, "browser.mask_webdriver", default=browser_defaults.mask_webdriver
        ),
    )
    for key in ("navigation_timeout_ms", "action_timeout_ms", "viewport_width", "viewport_height"):
        _check_minimum(f"browser.{key}", getattr(browser_config, key), 1)

    motion_defaults = MotionConfig()
    motion_config = MotionConfig(
        human_like=_expect_bool(motion_raw, "motion.human_like", default=motion_defaults.human_like),
        **{
            name: _expect_int(motion_raw, f"motion.{name}", getattr(motion_defaults, name))
            for name in (
                "steps_min",
                "steps_max",
                "duration_min_ms",
                "duration_max_ms",
                "step_delay_min_ms",
                "step_delay_max_ms",
                "backscroll_pause_min_ms",
                "backscroll_pause_max_ms",
            )
        },
        **{
            name: _expect_number(motion_raw, f"motion.{name}", getattr(motion_defaults, name))
            for name in (
                "backscroll_chance",
                "travel_fraction_min",
                "travel_fraction_max",
                "near_bottom_ratio",
            )
        },
    )

    collection_defaults = CollectionConfig()
    collection_config = CollectionConfig(
        **{
            name: _expect_bool(collection_raw, f"collection.{name}", default=getattr(collection_defaults, name))
            for name in ("enabled", "virtualization_detection", "detect_load_more")
        },
        **{
            name: _expect_int(collection_raw, f"collection.{name}", getattr(collection_defaults, name))
            for name in (
                "max_steps",
                "max_no_progress_retries",
                "settle_delay_ms",
                "virtualized_settle_delay_ms",
                "virtualized_max_no_progress_retries",
                "virtualized_step_floor",
                "items_per_step_estimate",
            )
        },
        early_stop_fraction=_expect_number(
            collection_raw, "collection.early_stop_fraction", collection_defaults.early_stop_fraction
        ),
    )

    resolution = resolve_selector_pack(selectors_raw)
    for warning in resolution.warnings:
        logger.warning("Config selectors: %s", warning)
    selectors_config = SelectorsConfig(
        items=resolution.selectors[ITEM_CONTAINER_KEY],
        link_patterns=resolution.selectors[LINK_PATTERN_KEY],
        load_more=resolution.selectors[LOAD_MORE_KEY],
        tab_labels=resolution.selectors[TAB_LABEL_KEY],
    )

    fallback_defaults = FallbackConfig()
    fallback_config = FallbackConfig(
        enabled=_expect_bool(fallback_raw, "fallback.enabled", default=fallback_defaults.enabled),
        model=_expect_non_empty_string(fallback_raw, "fallback.model", fallback_defaults.model),
        temperature=_expect_number(fallback_raw, "fallback.temperature", fallback_defaults.temperature),
        max_tokens=_expect_int(fallback_raw, "fallback.max_tokens", fallback_defaults.max_tokens),
        excerpt_chars=_expect_int(fallback_raw, "fallback.excerpt_chars", fallback_defaults.excerpt_chars),
    )

    return RuntimeConfig(
        app=app_config,
        browser=browser_config,
        motion=motion_config,
        collection=collection_config,
        selectors=selectors_config,
        fallback=fallback_config,
    )


def _expect_table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid [{key}] table: expected table, got {type(value).__name__}.")
    return value


def _expect_non_empty_string(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key.split(".")[-1], default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid value for '{key}': expected non-empty string.")
    return value


def _expect_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key.split(".")[-1], default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Invalid value for '{key}': expected integer.")
    return value


def _expect_number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key.split(".")[-1], default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigError(f"Invalid value for '{key}': expected number.")
    return float(value)


def _expect_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key.split(".")[-1], default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid value for '{key}': expected boolean true/false.")
    return value


def _expect_choice(
    data: dict[str, Any],
    key: str,
    default: str,
    valid_values: set[str],
) -> str:
    value = data.get(key.split(".")[-1], default)
    if not isinstance(value, str) or value not in valid_values:
        choices = ", ".join(sorted(valid_values))
        raise ConfigError(f"Invalid value for '{key}': expected one of [{choices}].")
    return value


def _expect_optional_string(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key.split(".")[-1])
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"Invalid value for '{key}': expected string.")
    return value.strip() or None
