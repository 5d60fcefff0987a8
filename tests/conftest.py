import pytest
from pathlib import Path
from PIL import Image

from clutterlog.site import SiteConfig
from clutterlog.media.thumbnails import FfmpegRunner, ToolResult


def make_image(path: Path, size=(40, 30), color="red", **save_kwargs) -> Path:
    with Image.new("RGB", size, color=color) as im:
        im.save(path, **save_kwargs)
    return path


class FakeFfmpeg(FfmpegRunner):
    """Stands in for ffmpeg: writes a small file instead of running a process."""

    def __init__(self, returncode: int = 0, stderr: str = "", partial: bytes = b""):
        super().__init__()
        self.returncode = returncode
        self.stderr = stderr
        self.partial = partial
        self.calls = []

    def is_available(self) -> bool:
        return True

    def run(self, source: Path, dest: Path) -> ToolResult:
        self.calls.append((source, dest))
        if self.returncode == 0:
            dest.write_bytes(b"RIFF-fake-webp")
        elif self.partial:
            # A process killed mid-encode leaves a truncated output behind
            dest.write_bytes(self.partial)
        return ToolResult(self.returncode, self.stderr)


@pytest.fixture
def site_root(tmp_path):
    """A site directory with site.toml and an empty media/ folder."""
    root = tmp_path / "site"
    (root / "media").mkdir(parents=True)
    site = SiteConfig(
        title="Test Site",
        description="Things & stuff",
        author="someone",
        url="https://example.com/gallery/",
    )
    (root / "site.toml").write_text(site.to_toml(), encoding="utf-8")
    return root


@pytest.fixture
def media_dir(site_root):
    return site_root / "media"


@pytest.fixture
def fake_ffmpeg():
    return FakeFfmpeg()
