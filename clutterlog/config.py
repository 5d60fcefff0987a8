"""
Configuration constants for the gallery builder.
"""

# --- File Type Definitions ---
SUPPORTED_EXTS = {'png', 'jpg', 'jpeg', 'webp', 'gif', 'webm', 'mp4'}
ANIMATED_EXTS = {'gif', 'webm', 'mp4'}
VIDEO_EXTS = {'webm', 'mp4'}

# Formats where exifread can find an embedded capture date
EXIF_EXTS = {'jpg', 'jpeg', 'webp', 'tiff', 'tif', 'png'}

# Extension to MIME type, used for feed enclosures
EXT_TO_MIME = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'gif': 'image/gif',
    'webm': 'video/webm',
    'mp4': 'video/mp4',
}
DEFAULT_MIME = 'application/octet-stream'

# --- Site Layout ---
SITE_TOML = "site.toml"
CATALOG_DIR = ".clutterlog"
CATALOG_FILE = "metamedia.toml"
LOG_FILE = "build.log"

BUILD_DIR = "build"
MEDIA_DIR = "media"
PUBLIC_DIR = "public"
INDEX_FILE = "index.html"
FEED_FILE = "feed.xml"

# Defaults written into a fresh site.toml
DEFAULT_DESCRIPTION = "An uncurated timeline of unfinished projects"
DEFAULT_AUTHOR = "author-name"
DEFAULT_URL = "https://localhost:8088/"

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# MediaInfo General track fields, checked in order
VIDEO_DATE_FIELDS = [
    'recorded_date',
    'encoded_date',
    'tagged_date',
]

# Container dates before this year are unset fields (MP4 stores zero as 1904-01-01)
MIN_EMBEDDED_YEAR = 1970

DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
EPOCH_SENTINEL = "1970-01-01T00:00:00"

# --- Thumbnails ---
THUMB_SIZE = 350
THUMB_SUFFIX = "_thumb"
ANIMATED_THUMB_EXT = "webp"

FFMPEG_BIN = "ffmpeg"
FFMPEG_MAX_SECONDS = 2
FFMPEG_FILTER = (
    "crop=min(iw\\,ih):min(iw\\,ih):(iw-min(iw\\,ih))/2:(ih-min(iw\\,ih))/2,"
    f"scale={THUMB_SIZE}:{THUMB_SIZE}"
)
