"""Image writers and output naming."""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from ..errors import IOFailure


def default_output_name(range_setting: int, gain_code: int, stem: str) -> str:
    """Return ``<range>_<gain>_<stem>.png``."""
    return f"{range_setting}_{gain_code}_{stem}.png"


def write_png(path: Path, buffer) -> Path:
    """
    Write an RGBA pixel buffer to a PNG file.

    Parameters
    ----------
    path : Path
        Output file path. Parent directories are created.
    buffer : PixelBuffer
        Rendered image.

    Returns
    -------
    Path
        The written path.
    """
    # (H, W, 4) uint8 is read as RGBA
    image = Image.fromarray(buffer.pixels)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG")
    except OSError as exc:
        raise IOFailure(f"Cannot write {path}: {exc}") from exc
    return path
