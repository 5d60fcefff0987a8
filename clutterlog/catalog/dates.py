import logging
from pathlib import Path
from datetime import datetime, UTC
from typing import Optional, List, Any

import exifread
from pymediainfo import MediaInfo

from .. import config
from ..scanning.filesystem import extension_of


class CaptureDateResolver:
    """
    Resolves the capture date recorded in the catalog the first time a file
    is seen.

    Candidates:
      - Embedded timestamp: EXIF via 'exifread' for stills, the General
        track via 'pymediainfo' for video containers.
      - Filesystem creation time (only where the platform reports it).
      - Filesystem modification time.

    The earliest obtainable candidate wins. With nothing obtainable the
    epoch sentinel is returned.
    """

    def resolve(self, path: Path) -> str:
        candidates: List[datetime] = []

        embedded = self.get_embedded_datetime(path)
        if embedded is not None:
            candidates.append(embedded)

        candidates.extend(self.get_filesystem_datetimes(path))

        if not candidates:
            return config.EPOCH_SENTINEL
        return format_datetime(min(candidates))

    def get_embedded_datetime(self, path: Path) -> Optional[datetime]:
        ext = extension_of(path)
        if ext in config.EXIF_EXTS:
            return self.get_image_datetime(path)
        if ext in config.VIDEO_EXTS:
            return self.get_video_datetime(path)
        return None

    def get_image_datetime(self, path: Path) -> Optional[datetime]:
        try:
            with path.open('rb') as f:
                # details=False skips makernotes and thumbnails
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.debug(f"ExifRead failed for {path}: {e}")
            return None
        return self._parse_exif_date(tags)

    def get_video_datetime(self, path: Path) -> Optional[datetime]:
        try:
            mi = MediaInfo.parse(str(path))
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")
            return None

        for track in mi.tracks:
            if track.track_type != "General":
                continue
            for field in config.VIDEO_DATE_FIELDS:
                val = getattr(track, field, None)
                if val:
                    dt = self._parse_flexible_date(str(val))
                    if dt and dt.year >= config.MIN_EMBEDDED_YEAR:
                        return dt
        return None

    def get_filesystem_datetimes(self, path: Path) -> List[datetime]:
        try:
            st = path.stat()
        except OSError as e:
            logging.debug(f"Cannot stat {path}: {e}")
            return []

        stamps = []
        # st_birthtime is missing on most Linux builds
        birth = getattr(st, "st_birthtime", None)
        if birth is not None:
            stamps.append(datetime.fromtimestamp(birth, tz=UTC))
        stamps.append(datetime.fromtimestamp(st.st_mtime, tz=UTC))
        return stamps

    def _parse_exif_date(self, tags: Any) -> Optional[datetime]:
        """First tag in DATE_TAGS order that parses wins; later tags are not compared."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    # EXIF format is "YYYY:MM:DD HH:MM:SS"
                    dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                    return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S").replace(tzinfo=UTC)
                except ValueError:
                    continue
        return None

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles the date shapes MediaInfo emits ("UTC 2020-01-01 12:00:00",
        "2020-01-01 12:00:00 UTC", ISO strings). Naive values are taken as UTC.
        """
        if not dt_str:
            return None

        clean = dt_str.replace("UTC", "").strip()

        parsed = None
        try:
            parsed = datetime.fromisoformat(clean)
        except ValueError:
            try:
                clean_exif = clean.replace(":", "-", 2)
                if "." in clean_exif:
                    clean_exif = clean_exif.split(".")[0]
                parsed = datetime.strptime(clean_exif, "%Y-%m-%d %H:%M:%S")
            except ValueError:
                return None

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)


def format_datetime(dt: datetime) -> str:
    """UTC, second resolution, YYYY-MM-DDTHH:MM:SS."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.replace(microsecond=0).strftime(config.DATETIME_FORMAT)


def resolve_capture_datetime(path: Path) -> str:
    return CaptureDateResolver().resolve(path)
