from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class CatalogEntry:
    """
    One cataloged media file and its resolved capture date.
    Entries are only ever added or removed, never rewritten.
    """
    name: str
    datetime: str           # YYYY-MM-DDTHH:MM:SS, UTC


@dataclass(frozen=True)
class ReconcileReport:
    added: int
    removed: int

    def __str__(self) -> str:
        return f"{self.added} added, {self.removed} removed"


class MediaKind(Enum):
    STATIC_IMAGE = "static-image"
    ANIMATED = "animated"       # gif/webm/mp4, thumbnailed by ffmpeg


@dataclass
class GenerationResult:
    """Byte sizes of the copied media file and its thumbnail."""
    media_size: int
    thumb_size: int


@dataclass
class AssetOutcome:
    """
    Result of processing one listed file, tagged with its listing index so
    results from the worker pool can be put back in order.
    """
    index: int
    result: GenerationResult
    json_entry: str
    rss_item: str
    skipped: bool


@dataclass(frozen=True)
class BuildReport:
    items_processed: int            # every classified asset, fresh or regenerated
    items_skipped: int              # reused because up to date
    total_media_size: int
    total_thumbs_size: int
    processing_time: float          # seconds
    catalog: Optional[ReconcileReport] = None

    @property
    def items_regenerated(self) -> int:
        return self.items_processed - self.items_skipped
