"""Pydantic configuration models for the PPI renderer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Optional

import click
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError
from ..visualization.colormaps import Colormap

logger = logging.getLogger(__name__)

APP_NAME = "ppi-render"
SETTINGS_FILENAME = "settings.yaml"


class RenderConfig(BaseModel):
    """Per-image rendering options."""

    model_config = ConfigDict(frozen=True)

    pulses_per_rev: int = Field(default=720, gt=0)
    gap_deg: float = Field(default=1.0, ge=0.0)
    size: int = Field(default=1024, gt=0)
    cmap: str = "viridis"
    alpha_mode: Literal["scaled", "binary"] = "scaled"

    @field_validator("cmap")
    @classmethod
    def _known_colormap(cls, value: str) -> str:
        return Colormap.from_name(value).value

    @property
    def colormap(self) -> Colormap:
        return Colormap(self.cmap)


class BatchConfig(BaseModel):
    """Batch scheduling options."""

    model_config = ConfigDict(frozen=True)

    # 0 means 90% of the host's cores
    worker_count: int = Field(default=0, ge=0)


class PipelineConfig(BaseModel):
    """Main configuration combining all sub-configs."""

    model_config = ConfigDict(frozen=True)

    render: RenderConfig = Field(default_factory=RenderConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "PipelineConfig":
        """Load configuration from a YAML file."""
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            yaml.dump(self.model_dump(), fh, default_flow_style=False)

    def with_overrides(self, **overrides: Any) -> "PipelineConfig":
        """
        Return a copy with render/batch fields replaced.

        Parameters
        ----------
        **overrides
            Field names of ``RenderConfig`` or ``BatchConfig``. ``None`` values
            are ignored so unset CLI options keep the loaded value.

        Returns
        -------
        PipelineConfig
            New validated configuration.
        """
        render = self.render.model_dump()
        batch = self.batch.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            if key in render:
                render[key] = value
            elif key in batch:
                batch[key] = value
            else:
                raise ConfigurationError(f"Unknown option: {key}")
        return _validated(render=render, batch=batch)


def _validated(**data: Any) -> PipelineConfig:
    try:
        return PipelineConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def settings_path(app_dir: Optional[Path] = None) -> Path:
    """Return the path of the persisted user settings file."""
    if app_dir is None:
        app_dir = Path(click.get_app_dir(APP_NAME))
    return app_dir / SETTINGS_FILENAME


def load_settings(path: Optional[Path] = None) -> Optional[PipelineConfig]:
    """
    Load previously saved settings.

    Parameters
    ----------
    path : Path, optional
        Settings file. Defaults to the per-user application directory.

    Returns
    -------
    PipelineConfig or None
        Saved configuration, or None if nothing has been saved yet.
    """
    if path is None:
        path = settings_path()
    if not path.is_file():
        return None
    logger.debug("Loading saved settings from %s", path)
    return load_config(path)


def save_settings(config: PipelineConfig, path: Optional[Path] = None) -> Path:
    """Persist configuration as the user's default settings."""
    if path is None:
        path = settings_path()
    config.to_yaml(path)
    logger.info("Saved settings to %s", path)
    return path


def load_config(path: Optional[Path] = None, **overrides: Any) -> PipelineConfig:
    """
    Build the effective configuration.

    Parameters
    ----------
    path : Path, optional
        YAML file to start from. Defaults are used when omitted.
    **overrides
        Individual option overrides (see ``PipelineConfig.with_overrides``).

    Returns
    -------
    PipelineConfig
        Validated configuration.

    Raises
    ------
    ConfigurationError
        If the file is unreadable or any value is invalid.
    """
    if path is None:
        config = PipelineConfig()
    else:
        try:
            config = PipelineConfig.from_yaml(path)
        except ValidationError as exc:
            raise ConfigurationError(f"{path}: {_describe(exc)}") from exc
        except (OSError, TypeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc

    if overrides:
        config = config.with_overrides(**overrides)
    return config
