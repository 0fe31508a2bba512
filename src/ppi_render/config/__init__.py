"""Configuration management for the PPI renderer."""

from .models import (
    RenderConfig,
    BatchConfig,
    PipelineConfig,
    load_config,
    load_settings,
    save_settings,
    settings_path,
)

__all__ = [
    "RenderConfig",
    "BatchConfig",
    "PipelineConfig",
    "load_config",
    "load_settings",
    "save_settings",
    "settings_path",
]
