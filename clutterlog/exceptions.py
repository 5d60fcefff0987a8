"""
Custom exception hierarchy for the gallery builder.

Every error a build can end with is one of these, so callers only need to
catch ClutterlogError to report a failed build.
"""
from pathlib import Path


class ClutterlogError(Exception):
    """Base exception for all clutterlog errors."""
    pass


class InvalidPathError(ClutterlogError):
    """Raised when a site path does not exist or cannot be resolved."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"'{path}' is not a valid path")


class NotASiteError(ClutterlogError):
    """Raised when a directory has no site.toml."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"'{path}' is not a clutterlog site (missing site.toml)")


class SiteConfigError(ClutterlogError):
    """Raised when site.toml cannot be read or parsed."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to load site config '{path}': {cause}")


# --- Catalog ---

class CatalogError(ClutterlogError):
    """Base class for media catalog failures."""
    pass


class CatalogIOError(CatalogError):
    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"media catalog I/O error '{path}': {cause}")


class CatalogParseError(CatalogError):
    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to parse '{path}': {cause}")


class CatalogSerializeError(CatalogError):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"failed to serialize media catalog: {cause}")


# --- Build ---

class BuildIOError(ClutterlogError):
    """Raised when a file copy, read or write fails during a build."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"I/O error on '{path}': {cause}")


class ImageProcessingError(ClutterlogError):
    """Raised when Pillow cannot decode or encode an image."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to process image '{path}': {cause}")


class ExternalToolError(ClutterlogError):
    """Base class for ffmpeg failures."""
    pass


class ExternalToolNotFoundError(ExternalToolError):
    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        message = f"looks like `{tool}` is not installed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ExternalToolExitError(ExternalToolError):
    def __init__(self, path: Path, returncode: int, stderr: str):
        self.path = path
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"failed to render animated thumbnail for '{path}': "
            f"exited with {returncode}: {stderr.strip()}"
        )


class ExternalToolSpawnError(ExternalToolError):
    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to start thumbnail tool for '{path}': {cause}")
