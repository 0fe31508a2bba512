"""Exception types raised by the rendering pipeline."""

from __future__ import annotations


class RenderError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(RenderError, ValueError):
    """Invalid options detected before any file is processed."""


class MalformedSweep(RenderError, ValueError):
    """Input sweep cannot be rendered (empty, ragged, inconsistent or out of range)."""


class IOFailure(RenderError, OSError):
    """Input could not be read or output could not be written."""
