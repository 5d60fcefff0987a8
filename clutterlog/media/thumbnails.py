import shutil
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .. import config
from ..exceptions import (
    ImageProcessingError,
    ExternalToolNotFoundError,
    ExternalToolExitError,
    ExternalToolSpawnError,
)


def center_square_box(width: int, height: int) -> Tuple[int, int, int, int]:
    """Crop box (left, upper, right, lower) of the centered square with edge min(w, h)."""
    edge = min(width, height)
    left = (width - edge) // 2
    top = (height - edge) // 2
    return left, top, left + edge, top + edge


def render_image_thumbnail(source: Path, dest: Path, extension: str, size: int = config.THUMB_SIZE):
    """
    Writes a size x size thumbnail of the centered square crop of `source`.

    EXIF orientation is applied before cropping. WebP sources stay WebP;
    everything else is encoded as JPEG.
    """
    try:
        with Image.open(source) as im:
            im = ImageOps.exif_transpose(im)
            thumb = im.crop(center_square_box(*im.size)).resize(
                (size, size), Image.Resampling.LANCZOS
            )
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(source, e) from e

    if extension == "webp":
        fmt = "WEBP"
    else:
        fmt = "JPEG"
        if thumb.mode != "RGB":
            thumb = thumb.convert("RGB")

    try:
        thumb.save(dest, format=fmt)
    except (OSError, ValueError) as e:
        raise ImageProcessingError(dest, e) from e


@dataclass
class ToolResult:
    returncode: int
    stderr: str


class FfmpegRunner:
    """
    The one thing the build needs from ffmpeg: turn a gif/video into a
    centered 350x350, at most 2 second, looping, silent animated WebP.

    run() waits for the process to exit; there is no timeout.
    """

    def __init__(self, binary: str = config.FFMPEG_BIN):
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def command(self, source: Path, dest: Path) -> list[str]:
        return [
            self.binary,
            "-i", str(source),
            "-t", str(config.FFMPEG_MAX_SECONDS),
            "-vf", config.FFMPEG_FILTER,
            "-c:v", "libwebp_anim",
            "-loop", "0",
            "-an",
            "-y",
            str(dest),
        ]

    def run(self, source: Path, dest: Path) -> ToolResult:
        proc = subprocess.run(
            self.command(source, dest),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
        return ToolResult(proc.returncode, proc.stderr.decode("utf-8", errors="replace"))


def render_animated_thumbnail(source: Path, dest: Path, runner: FfmpegRunner):
    if not runner.is_available():
        raise ExternalToolNotFoundError(runner.binary, "not found on PATH")

    logging.debug(f"Running {runner.binary} for {source.name}")
    try:
        result = runner.run(source, dest)
    except FileNotFoundError as e:
        raise ExternalToolNotFoundError(runner.binary, str(e)) from e
    except OSError as e:
        raise ExternalToolSpawnError(source, e) from e

    if result.returncode != 0:
        raise ExternalToolExitError(source, result.returncode, result.stderr)
