import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import config
from .core import SiteBuilder
from .exceptions import ClutterlogError
from .reporting import format_report
from .site import load_site, new_site


def setup_logging(site_root: Optional[Path], verbose: bool):
    """Sets up logging to the console and, for an existing site, to .clutterlog/build.log."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if site_root is not None and (site_root / config.SITE_TOML).exists():
        log_dir = site_root / config.CATALOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / config.LOG_FILE, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(prog="clutterlog", description="Build a media gallery and RSS feed from a folder of photos and clips")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    p_new = sub.add_parser("new", help="Create a new clutterlog site")
    p_new.add_argument("site_name", type=Path, help="Directory of the site to create")

    p_build = sub.add_parser("build", help="Build the site")
    p_build.add_argument("path", type=Path, nargs="?", default=Path("."), help="Site directory (default: current directory)")
    p_build.add_argument("-j", "--jobs", type=int, default=None, help="Parallel workers (default: CPU count)")
    p_build.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "new":
        setup_logging(None, args.verbose)
        try:
            site = new_site(args.site_name)
        except ClutterlogError as e:
            logging.error(f"Error creating site: {e}")
            return 1
        print(f"Created new site '{site.title}' at '{args.site_name}'")
        return 0

    site_root = args.path
    setup_logging(site_root, args.verbose)

    try:
        site = load_site(site_root)
        builder = SiteBuilder(
            site_root,
            site=site,
            max_workers=args.jobs,
            show_progress=not args.no_progress,
        )
        report = builder.build()
    except KeyboardInterrupt:
        logging.warning("Build cancelled by user.")
        return 1
    except ClutterlogError as e:
        logging.error(f"Error building site: {e}")
        return 1

    print(f"Site '{site.title}' built successfully\n")
    print(format_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
