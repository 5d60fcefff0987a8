"""
Site configuration (site.toml), new-site scaffolding and the bundled templates.
"""
import logging
import tomllib
from dataclasses import dataclass, asdict
from pathlib import Path

import tomli_w

from . import config
from .exceptions import BuildIOError, InvalidPathError, NotASiteError, SiteConfigError

TEMPLATE_DIR = Path(__file__).parent / "templates"


def read_template(name: str) -> str:
    return (TEMPLATE_DIR / name).read_text(encoding="utf-8")


@dataclass
class SiteConfig:
    title: str
    description: str = config.DEFAULT_DESCRIPTION
    author: str = config.DEFAULT_AUTHOR
    url: str = config.DEFAULT_URL

    @classmethod
    def from_file(cls, site_path: Path) -> "SiteConfig":
        file_path = site_path / config.SITE_TOML
        try:
            with file_path.open("rb") as f:
                data = tomllib.load(f)
            return cls(
                title=str(data["title"]),
                description=str(data["description"]),
                author=str(data["author"]),
                url=str(data["url"]),
            )
        except (OSError, tomllib.TOMLDecodeError, KeyError) as e:
            raise SiteConfigError(file_path, e) from e

    @property
    def base_url(self) -> str:
        return self.url.rstrip('/')

    def to_toml(self) -> str:
        return tomli_w.dumps(asdict(self))


def load_site(path: Path) -> SiteConfig:
    """Loads an existing site, failing if `path` isn't a site directory."""
    if not (path / config.SITE_TOML).exists():
        try:
            resolved = path.resolve(strict=True)
        except OSError as e:
            raise InvalidPathError(path) from e
        raise NotASiteError(resolved)
    return SiteConfig.from_file(path)


def new_site(path: Path) -> SiteConfig:
    """
    Creates (or refreshes) a site at `path`.

    An existing site.toml is kept. The deploy workflow is always rewritten.
    """
    if (path / config.SITE_TOML).exists():
        site = SiteConfig.from_file(path)
    else:
        site = SiteConfig(title=path.resolve().name or "untitled")
        _write(path / config.MEDIA_DIR, None)
        _write(path / config.SITE_TOML, site.to_toml())
        logging.info(f"Wrote {path / config.SITE_TOML}")

    _write(path / ".github" / "workflows" / "deploy.yml", read_template("github_action.yaml"))
    return site


def _write(path: Path, content):
    """Writes `content` to `path`, or just creates the directory when content is None."""
    try:
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise BuildIOError(path, e) from e
