"""
Persistent capture-date catalog.

The catalog lives at <site>/.clutterlog/metamedia.toml as an array of
[[media]] tables, each holding a file name and the capture date resolved
the first time that file was seen.
"""
import logging
import tomllib
from pathlib import Path
from typing import List, Optional

import tomli_w

from .. import config
from ..exceptions import CatalogIOError, CatalogParseError, CatalogSerializeError
from ..models import CatalogEntry, ReconcileReport
from ..scanning.filesystem import list_media_files
from .dates import CaptureDateResolver


class MediaCatalog:
    def __init__(self, path: Path, entries: Optional[List[CatalogEntry]] = None,
                 resolver: Optional[CaptureDateResolver] = None):
        self.path = path
        self.entries: List[CatalogEntry] = list(entries or [])
        self.resolver = resolver or CaptureDateResolver()

    @classmethod
    def open(cls, site_path: Path, resolver: Optional[CaptureDateResolver] = None) -> "MediaCatalog":
        """
        Loads the catalog for a site, or creates its directory and starts empty.
        """
        dir_path = site_path / config.CATALOG_DIR
        file_path = dir_path / config.CATALOG_FILE

        if not file_path.exists():
            try:
                dir_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CatalogIOError(dir_path, e) from e
            return cls(file_path, resolver=resolver)

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise CatalogIOError(file_path, e) from e

        try:
            data = tomllib.loads(content)
            entries = [
                CatalogEntry(name=str(item["name"]), datetime=str(item["datetime"]))
                for item in data.get("media", [])
            ]
        except (tomllib.TOMLDecodeError, KeyError, TypeError) as e:
            raise CatalogParseError(file_path, e) from e

        logging.debug(f"Loaded {len(entries)} catalog entries from {file_path}")
        return cls(file_path, entries, resolver=resolver)

    def reconcile(self, media_path: Path) -> ReconcileReport:
        """
        Synchronizes the catalog with the files in `media_path`.

        New files get a resolved capture date; entries for vanished files are
        dropped. Existing entries are never rewritten. The catalog is saved
        afterwards in listing order.
        """
        if not media_path.exists():
            removed = len(self.entries)
            self.entries.clear()
            self.save()
            return ReconcileReport(added=0, removed=removed)

        try:
            current_files = [p.name for p in list_media_files(media_path)]
        except OSError as e:
            raise CatalogIOError(media_path, e) from e

        known = {e.name: e for e in self.entries}
        current = set(current_files)

        added = 0
        ordered: List[CatalogEntry] = []
        for filename in current_files:
            entry = known.get(filename)
            if entry is None:
                entry = CatalogEntry(
                    name=filename,
                    datetime=self.resolver.resolve(media_path / filename),
                )
                logging.debug(f"Cataloged {filename} ({entry.datetime})")
                added += 1
            ordered.append(entry)

        removed = sum(1 for e in self.entries if e.name not in current)

        self.entries = ordered
        self.save()

        report = ReconcileReport(added=added, removed=removed)
        logging.info(f"Media catalog updated: {report}")
        return report

    def lookup(self, filename: str) -> Optional[str]:
        for entry in self.entries:
            if entry.name == filename:
                return entry.datetime
        return None

    def save(self):
        payload = {"media": [{"name": e.name, "datetime": e.datetime} for e in self.entries]}
        try:
            content = tomli_w.dumps(payload)
        except (TypeError, ValueError) as e:
            raise CatalogSerializeError(e) from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise CatalogIOError(self.path, e) from e

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, filename: str) -> bool:
        return self.lookup(filename) is not None
