"""scroll_harvester: incremental collection of identifiers from scrolling result lists."""

from .collectors import CollectionResult, CollectionStats, ConvergenceController, DeduplicatingAccumulator
from .config import (
    AppConfig,
    BrowserConfig,
    CollectionConfig,
    FallbackConfig,
    MotionConfig,
    RuntimeConfig,
    SelectorsConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .models import CompletionDescriptor, LayoutKind, LayoutMode, MotionStep, TerminalState

__all__ = [
    "AppConfig",
    "BrowserConfig",
    "CollectionConfig",
    "CollectionResult",
    "CollectionStats",
    "CompletionDescriptor",
    "ConvergenceController",
    "DeduplicatingAccumulator",
    "FallbackConfig",
    "LayoutKind",
    "LayoutMode",
    "MotionConfig",
    "MotionStep",
    "RuntimeConfig",
    "SelectorsConfig",
    "TerminalState",
    "config_to_dict",
    "default_config",
    "init_default_config",
    "load_runtime_config",
    "resolve_config_path",
]

__version__ = "0.1.0"
