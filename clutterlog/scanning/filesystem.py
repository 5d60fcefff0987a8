import os
import logging
from pathlib import Path
from typing import List

from .. import config


def extension_of(path: Path) -> str:
    """Lowercased extension without the leading dot ('' when there is none)."""
    return path.suffix[1:].lower()


def is_supported(path: Path) -> bool:
    return extension_of(path) in config.SUPPORTED_EXTS


def list_directory(directory: Path) -> List[Path]:
    """
    Lists the direct entries of `directory` using os.scandir.

    Entries are sorted case-insensitively by name so the listing order (and
    with it the gallery and feed order) is stable across platforms.
    A missing directory yields an empty list; any other failure propagates.
    Names that are not valid UTF-8 are skipped with a warning.
    """
    if not directory.exists():
        logging.debug(f"Media directory {directory} does not exist.")
        return []

    entries = []
    with os.scandir(directory) as it:
        for entry in it:
            try:
                entry.name.encode("utf-8")
            except UnicodeEncodeError:
                logging.warning(f"Skipping {entry.path!r}: name is not valid UTF-8")
                continue
            entries.append(entry)

    entries.sort(key=lambda e: (e.name.lower(), e.name))
    return [Path(e.path) for e in entries]


def list_media_files(directory: Path) -> List[Path]:
    """Regular files in `directory` with a supported media extension, in listing order."""
    return [p for p in list_directory(directory) if p.is_file() and is_supported(p)]
