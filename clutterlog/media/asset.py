import os
import shutil
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..exceptions import BuildIOError
from ..models import MediaKind, GenerationResult
from ..scanning.filesystem import extension_of
from .markup import escape_js, escape_html, escape_html_attr, escape_xml, mime_type, to_rfc2822
from .thumbnails import FfmpegRunner, render_image_thumbnail, render_animated_thumbnail


def read_caption(path: Path) -> Tuple[str, str]:
    """
    Reads the sidecar <stem>.txt next to a media file.

    Two or more lines: first line is the title, the rest the description.
    One line: the stem is the title and the line the description.
    No sidecar (or an empty one): stem and "".
    """
    stem = path.stem
    txt_path = path.with_suffix(".txt")
    if not txt_path.is_file():
        return stem, ""

    try:
        content = txt_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logging.warning(f"Could not read caption {txt_path}: {e}")
        return stem, ""

    lines = content.splitlines()
    if len(lines) >= 2:
        return lines[0].strip(), "\n".join(lines[1:]).strip()
    if len(lines) == 1:
        return stem, lines[0].strip()
    return stem, ""


def file_mtime_datetime(path: Path) -> str:
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return config.EPOCH_SENTINEL
    return datetime.fromtimestamp(mtime, tz=UTC).strftime(config.DATETIME_FORMAT)


@dataclass
class MediaAsset:
    """
    One gallery item: a source file plus everything needed to publish it.
    Rebuilt on every build, never persisted.
    """
    filename: str
    title: str
    description: str
    datetime: str
    extension: str
    kind: MediaKind
    source_path: Path

    @classmethod
    def from_path(cls, path: Path, datetime: Optional[str] = None) -> Optional["MediaAsset"]:
        """Returns None for anything that isn't a regular file with a supported extension."""
        if not path.is_file():
            return None

        extension = extension_of(path)
        if extension not in config.SUPPORTED_EXTS:
            return None

        kind = MediaKind.ANIMATED if extension in config.ANIMATED_EXTS else MediaKind.STATIC_IMAGE
        title, description = read_caption(path)

        return cls(
            filename=path.name,
            title=title,
            description=description,
            datetime=datetime if datetime is not None else file_mtime_datetime(path),
            extension=extension,
            kind=kind,
            source_path=path,
        )

    @property
    def is_animated(self) -> bool:
        return self.kind is MediaKind.ANIMATED

    @property
    def thumb_filename(self) -> str:
        stem = Path(self.filename).stem
        ext = config.ANIMATED_THUMB_EXT if self.is_animated else self.extension
        return f"{stem}{config.THUMB_SUFFIX}.{ext}"

    # --- Staleness ---

    def is_up_to_date(self, dest_media: Path) -> bool:
        """
        Stat-only freshness check. The outputs are reused when:
          - the copy exists with the source's size and an mtime no older than the source
          - the thumbnail exists with an mtime no older than the source
        Copies are made with copy2, so an untouched source keeps matching its copy.
        """
        try:
            src = self.source_path.stat()
            dest = (dest_media / self.filename).stat()
            thumb = (dest_media / self.thumb_filename).stat()
        except OSError:
            return False

        if dest.st_size != src.st_size:
            return False
        if dest.st_mtime_ns < src.st_mtime_ns:
            return False
        return thumb.st_mtime_ns >= src.st_mtime_ns

    def read_existing_sizes(self, dest_media: Path) -> GenerationResult:
        return GenerationResult(
            media_size=_file_size(dest_media / self.filename),
            thumb_size=_file_size(dest_media / self.thumb_filename),
        )

    # --- Regeneration ---

    def copy_and_generate_thumb(self, dest_media: Path, runner: Optional[FfmpegRunner] = None) -> GenerationResult:
        dest_file = dest_media / self.filename
        try:
            shutil.copy2(self.source_path, dest_file)
        except OSError as e:
            raise BuildIOError(dest_file, e) from e

        # The thumbnail only appears under its real name once it is complete,
        # so a failed render never looks up to date on the next build.
        thumb_path = dest_media / self.thumb_filename
        partial_path = dest_media / f".partial-{self.thumb_filename}"
        try:
            thumb_path.unlink(missing_ok=True)
            if self.is_animated:
                render_animated_thumbnail(self.source_path, partial_path, runner or FfmpegRunner())
            else:
                render_image_thumbnail(self.source_path, partial_path, self.extension)
            os.replace(partial_path, thumb_path)
        except OSError as e:
            raise BuildIOError(thumb_path, e) from e
        finally:
            partial_path.unlink(missing_ok=True)

        return self.read_existing_sizes(dest_media)

    # --- Rendering ---

    def image_url(self, base_url: str, media_dir: str = config.MEDIA_DIR) -> str:
        return f"{base_url.rstrip('/')}/{media_dir}/{self.filename}"

    def thumb_url(self, base_url: str, media_dir: str = config.MEDIA_DIR) -> str:
        return f"{base_url.rstrip('/')}/{media_dir}/{self.thumb_filename}"

    def to_json_entry(self, base_url: str, media_dir: str = config.MEDIA_DIR) -> str:
        fields = [
            ("image_url", self.image_url(base_url, media_dir)),
            ("thumb_url", self.thumb_url(base_url, media_dir)),
            ("title", self.title),
            ("description", self.description),
            ("datetime", self.datetime),
        ]
        body = ", ".join(f'"{key}": "{escape_js(value)}"' for key, value in fields)
        return f"            {{ {body} }}"

    def to_rss_item(self, base_url: str, media_dir: str = config.MEDIA_DIR) -> str:
        base_url = base_url.rstrip('/')
        image_url = self.image_url(base_url, media_dir)
        item_link = f"{base_url}/#media={self.filename}"

        if self.extension in config.VIDEO_EXTS:
            media_html = f'<video src="{image_url}" controls></video>'
        else:
            media_html = f'<img src="{image_url}" alt="{escape_html_attr(self.title)}"/>'

        html_content = (
            f"<![CDATA[<h2>{escape_html(self.title)}</h2>"
            f"{media_html}<p>{escape_html(self.description)}</p>]]>"
        )

        return "\n".join([
            "        <item>",
            f"            <title>{escape_xml(self.title)}</title>",
            f"            <link>{escape_xml(item_link)}</link>",
            f"            <guid>{escape_xml(image_url)}</guid>",
            f"            <pubDate>{to_rfc2822(self.datetime)}</pubDate>",
            f'            <enclosure url="{escape_xml(image_url)}" type="{mime_type(self.extension)}" length="0"/>',
            f"            <description>{html_content}</description>",
            "        </item>",
        ])


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as e:
        raise BuildIOError(path, e) from e
