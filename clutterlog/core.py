import os
import time
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from . import config
from .catalog.store import MediaCatalog
from .exceptions import BuildIOError
from .media.asset import MediaAsset
from .media.markup import escape_html_attr, render_template
from .media.thumbnails import FfmpegRunner
from .models import AssetOutcome, BuildReport, GenerationResult
from .scanning.filesystem import list_directory
from .site import SiteConfig, load_site, read_template


class SiteBuilder:
    def __init__(self,
                 site_path: Path,
                 site: Optional[SiteConfig] = None,
                 runner: Optional[FfmpegRunner] = None,
                 max_workers: Optional[int] = None,
                 show_progress: bool = False):
        self.path = site_path
        self.site = site or load_site(site_path)
        self.runner = runner or FfmpegRunner()
        self.max_workers = max_workers or os.cpu_count() or 1
        self.show_progress = show_progress

    @property
    def build_path(self) -> Path:
        return self.path / config.BUILD_DIR

    @property
    def source_media_path(self) -> Path:
        return self.path / config.MEDIA_DIR

    def build(self, catalog: Optional[MediaCatalog] = None) -> BuildReport:
        """
        Builds the gallery page, the feed and the media directory.
        1. Prepare output directories
        2. Reconcile the media catalog
        3. Copy media + thumbnails (parallel, skipping up-to-date items)
        4. Render index.html and feed.xml
        5. Write static assets

        Any error aborts the build; whatever was already written stays on disk.
        """
        start = time.perf_counter()

        # --- Step 1: Output Directories ---
        build_path = self.build_path
        build_media_path = build_path / config.MEDIA_DIR
        public_path = build_path / config.PUBLIC_DIR
        for directory in (build_path, build_media_path, public_path):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BuildIOError(directory, e) from e

        # --- Step 2: Catalog ---
        if catalog is None:
            catalog = MediaCatalog.open(self.path)
        catalog_report = catalog.reconcile(self.source_media_path)

        # --- Step 3: Media ---
        logging.info(f"Processing media from {self.source_media_path}...")
        data_json, rss_items, results, items_skipped = self._scan_and_copy_media(
            self.source_media_path, build_media_path, catalog
        )

        # --- Step 4: Page & Feed ---
        site = self.site
        rendered = render_template(self._template("index.html"), {
            "title": escape_html_attr(site.title),
            "description": escape_html_attr(site.description),
            "author": escape_html_attr(site.author),
            "clutterlog_data": data_json,
        })
        self._write(build_path / config.INDEX_FILE, rendered)

        items_str = "\n".join(rss_items) + "\n" if rss_items else ""
        feed = render_template(self._template("rss.xml"), {
            "title": escape_html_attr(site.title),
            "url": escape_html_attr(f"{site.base_url}/"),
            "description": escape_html_attr(site.description),
            "items": items_str,
        })
        self._write(build_path / config.FEED_FILE, feed)

        # --- Step 5: Static Assets ---
        self._write(public_path / "style.css", self._template("public/style.css"))
        self._write(public_path / "clutterlog.js", self._template("public/clutterlog.js"))

        report = BuildReport(
            items_processed=len(results),
            items_skipped=items_skipped,
            total_media_size=sum(r.media_size for r in results),
            total_thumbs_size=sum(r.thumb_size for r in results),
            processing_time=time.perf_counter() - start,
            catalog=catalog_report,
        )
        logging.info(f"Build complete. {report.items_processed} items ({report.items_skipped} up to date).")
        return report

    def _scan_and_copy_media(self,
                             source_path: Path,
                             dest_path: Path,
                             catalog: MediaCatalog) -> Tuple[str, List[str], List[GenerationResult], int]:
        """
        Processes every listed file on a thread pool. Each unit carries its
        listing index; outputs are sorted back into listing order.
        The first error (by listing index) is raised once all units finish.
        """
        try:
            paths = list_directory(source_path)
        except OSError as e:
            raise BuildIOError(source_path, e) from e

        # Catalog lookups happen here so workers never touch the catalog
        items = [(i, p, catalog.lookup(p.name)) for i, p in enumerate(paths)]
        base_url = self.site.base_url

        outcomes: List[AssetOutcome] = []
        errors: List[Tuple[int, Exception]] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self._process_item, index, path, dt, dest_path, base_url): index
                for index, path, dt in items
            }

            for future in tqdm(as_completed(future_to_index), total=len(future_to_index),
                               desc="Processing media", disable=not self.show_progress):
                index = future_to_index[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    logging.error(f"Failed to process {paths[index]}: {e}")
                    errors.append((index, e))
                    continue
                if outcome is not None:
                    outcomes.append(outcome)

        if errors:
            errors.sort(key=lambda pair: pair[0])
            raise errors[0][1]

        outcomes.sort(key=lambda o: o.index)

        entries = [o.json_entry for o in outcomes]
        if entries:
            data_json = "[\n" + ",\n".join(entries) + "\n        ]"
        else:
            data_json = "[]"

        rss_items = [o.rss_item for o in outcomes]
        results = [o.result for o in outcomes]
        items_skipped = sum(1 for o in outcomes if o.skipped)
        return data_json, rss_items, results, items_skipped

    def _process_item(self,
                      index: int,
                      path: Path,
                      datetime: Optional[str],
                      dest_path: Path,
                      base_url: str) -> Optional[AssetOutcome]:
        item = MediaAsset.from_path(path, datetime)
        if item is None:
            return None

        if item.is_up_to_date(dest_path):
            logging.debug(f"Up to date: {item.filename}")
            result = item.read_existing_sizes(dest_path)
            skipped = True
        else:
            logging.debug(f"Generating: {item.filename}")
            result = item.copy_and_generate_thumb(dest_path, self.runner)
            skipped = False

        return AssetOutcome(
            index=index,
            result=result,
            json_entry=item.to_json_entry(base_url),
            rss_item=item.to_rss_item(base_url),
            skipped=skipped,
        )

    def _template(self, name: str) -> str:
        try:
            return read_template(name)
        except OSError as e:
            raise BuildIOError(Path(name), e) from e

    def _write(self, path: Path, content: str):
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BuildIOError(path, e) from e
