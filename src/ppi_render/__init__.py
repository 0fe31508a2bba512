"""Radar PPI sweep to PNG rendering pipeline."""

__version__ = "0.1.0"
