import os
import sys
import json
import re
import pytest
import xml.etree.ElementTree as ET

from clutterlog.catalog.store import MediaCatalog
from clutterlog.core import SiteBuilder
from clutterlog.exceptions import ExternalToolExitError, ImageProcessingError, NotASiteError
from clutterlog.site import SiteConfig

from conftest import FakeFfmpeg, make_image

DATA_RE = re.compile(r"const CLUTTERLOG_DATA = (.*?);\s*</script>", re.S)


def page_data(site_root):
    html = (site_root / "build" / "index.html").read_text(encoding="utf-8")
    return json.loads(DATA_RE.search(html).group(1))


def test_build_without_media_dir(site_root, media_dir, fake_ffmpeg):
    media_dir.rmdir()

    report = SiteBuilder(site_root, runner=fake_ffmpeg).build()

    assert report.items_processed == 0
    assert report.items_skipped == 0
    assert page_data(site_root) == []
    assert (site_root / "build" / "media").is_dir()
    assert (site_root / "build" / "public" / "style.css").exists()
    assert (site_root / "build" / "public" / "clutterlog.js").exists()
    assert (site_root / "build" / "feed.xml").exists()


def test_build_processes_and_reports(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg", size=(64, 48))
    make_image(media_dir / "b.png", size=(20, 50))
    (media_dir / "loop.gif").write_bytes(b"GIF89a-fake")
    (media_dir / "a.txt").write_text("Alpha\nFirst photo")
    (media_dir / "ignored.doc").write_bytes(b"nope")

    report = SiteBuilder(site_root, runner=fake_ffmpeg, max_workers=3).build()

    out = site_root / "build" / "media"
    assert report.items_processed == 3
    assert report.items_skipped == 0
    assert report.items_regenerated == 3
    assert report.catalog.added == 3
    assert report.total_media_size == sum((out / n).stat().st_size for n in ["a.jpg", "b.png", "loop.gif"])
    assert report.total_thumbs_size == sum(
        (out / n).stat().st_size for n in ["a_thumb.jpg", "b_thumb.png", "loop_thumb.webp"]
    )
    assert report.processing_time >= 0
    assert not (out / "ignored.doc").exists()
    assert len(fake_ffmpeg.calls) == 1

    entries = page_data(site_root)
    assert [e["title"] for e in entries] == ["Alpha", "b", "loop"]
    assert entries[0]["description"] == "First photo"
    assert entries[0]["image_url"] == "https://example.com/gallery/media/a.jpg"
    assert entries[2]["thumb_url"] == "https://example.com/gallery/media/loop_thumb.webp"


def test_second_build_skips_everything(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg")
    make_image(media_dir / "b.png")
    (media_dir / "clip.mp4").write_bytes(b"mp4")

    first = SiteBuilder(site_root, runner=fake_ffmpeg).build()
    second = SiteBuilder(site_root, runner=fake_ffmpeg).build()

    assert (second.catalog.added, second.catalog.removed) == (0, 0)
    assert second.items_processed == 3
    assert second.items_skipped == 3
    assert second.items_regenerated == 0
    assert second.total_media_size == first.total_media_size
    assert second.total_thumbs_size == first.total_thumbs_size
    assert len(fake_ffmpeg.calls) == 1


def test_changed_source_is_regenerated(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg", size=(30, 30))
    make_image(media_dir / "b.jpg", size=(30, 30))
    builder = SiteBuilder(site_root, runner=fake_ffmpeg)
    builder.build()

    (site_root / "build" / "media" / "b_thumb.jpg").unlink()
    report = builder.build()

    assert report.items_skipped == 1
    assert report.items_regenerated == 1
    assert (site_root / "build" / "media" / "b_thumb.jpg").exists()


def test_output_follows_listing_order(site_root, media_dir, fake_ffmpeg):
    for name in ["delta.jpg", "Alpha.jpg", "charlie.png", "bravo.jpg", "echo.webp"]:
        make_image(media_dir / name, size=(12, 10))

    SiteBuilder(site_root, runner=fake_ffmpeg, max_workers=8).build()

    names = [e["image_url"].rsplit("/", 1)[1] for e in page_data(site_root)]
    assert names == ["Alpha.jpg", "bravo.jpg", "charlie.png", "delta.jpg", "echo.webp"]

    feed = (site_root / "build" / "feed.xml").read_text(encoding="utf-8")
    positions = [feed.index(f"<guid>https://example.com/gallery/media/{n}</guid>") for n in names]
    assert positions == sorted(positions)


def test_title_escaping_round_trips(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg")
    title = 'Quotes " and <tags> & ampersands \\ too'
    (media_dir / "a.txt").write_text(f"{title}\nline 1\nline 2")

    SiteBuilder(site_root, runner=fake_ffmpeg).build()

    entry = page_data(site_root)[0]
    assert entry["title"] == title
    assert entry["description"] == "line 1\nline 2"


def test_page_and_feed_substitution(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg")
    (media_dir / "clip.webm").write_bytes(b"webm")
    site = SiteConfig(title="Me & <You>", description='Say "{{author}}"', author="Ann", url="https://x.test")

    SiteBuilder(site_root, site=site, runner=fake_ffmpeg).build()

    html = (site_root / "build" / "index.html").read_text(encoding="utf-8")
    assert "<title>Me &amp; &lt;You&gt;</title>" in html
    # substituted values are not expanded again
    assert "Say &quot;{{author}}&quot;" in html
    assert "{{title}}" not in html and "{{clutterlog_data}}" not in html

    feed_path = site_root / "build" / "feed.xml"
    channel = ET.parse(feed_path).getroot().find("channel")
    assert channel.findtext("title") == "Me & <You>"
    assert channel.findtext("link") == "https://x.test/"
    items = channel.findall("item")
    assert [i.findtext("title") for i in items] == ["a", "clip"]
    assert items[1].find("enclosure").get("type") == "video/webm"
    assert "<video" in items[1].findtext("description")


def test_catalog_dates_flow_into_page(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg")
    catalog = MediaCatalog.open(site_root)
    catalog.reconcile(media_dir)
    catalog.entries.clear()
    catalog.save()

    class FixedResolver:
        def resolve(self, path):
            return "2005-05-05T05:05:05"

    catalog = MediaCatalog.open(site_root, resolver=FixedResolver())
    SiteBuilder(site_root, runner=fake_ffmpeg).build(catalog)

    assert page_data(site_root)[0]["datetime"] == "2005-05-05T05:05:05"
    assert MediaCatalog.open(site_root).lookup("a.jpg") == "2005-05-05T05:05:05"


def test_failing_asset_aborts_build(site_root, media_dir):
    make_image(media_dir / "a.jpg")
    (media_dir / "b.gif").write_bytes(b"gif")
    runner = FakeFfmpeg(returncode=1, stderr="Invalid data found when processing input")

    with pytest.raises(ExternalToolExitError) as exc:
        SiteBuilder(site_root, runner=runner).build()

    assert "Invalid data" in str(exc.value)
    assert not (site_root / "build" / "index.html").exists()
    assert not (site_root / "build" / "feed.xml").exists()


def test_first_error_in_listing_order_is_reported(site_root, media_dir, fake_ffmpeg):
    (media_dir / "a_broken.jpg").write_bytes(b"not an image")
    (media_dir / "z_broken.png").write_bytes(b"not an image either")

    with pytest.raises(ImageProcessingError) as exc:
        SiteBuilder(site_root, runner=fake_ffmpeg, max_workers=4).build()

    assert "a_broken.jpg" in str(exc.value)


def test_builder_requires_a_site(tmp_path):
    (tmp_path / "plain").mkdir()
    with pytest.raises(NotASiteError):
        SiteBuilder(tmp_path / "plain")


def test_failed_animated_thumbnail_is_regenerated_next_build(site_root, media_dir):
    (media_dir / "loop.gif").write_bytes(b"GIF89a-fake")
    out = site_root / "build" / "media"

    crashed = FakeFfmpeg(returncode=1, stderr="killed", partial=b"RIFF-trunc")
    with pytest.raises(ExternalToolExitError):
        SiteBuilder(site_root, runner=crashed).build()

    assert not (out / "loop_thumb.webp").exists()
    assert [p.name for p in out.iterdir()] == ["loop.gif"]

    runner = FakeFfmpeg()
    report = SiteBuilder(site_root, runner=runner).build()

    assert len(runner.calls) == 1
    assert report.items_skipped == 0
    assert (out / "loop_thumb.webp").read_bytes() == b"RIFF-fake-webp"


def test_failed_regeneration_drops_old_thumbnail(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "a.jpg")
    SiteBuilder(site_root, runner=fake_ffmpeg).build()
    out = site_root / "build" / "media"
    assert (out / "a_thumb.jpg").exists()

    (media_dir / "a.jpg").write_bytes(b"no longer an image")
    with pytest.raises(ImageProcessingError):
        SiteBuilder(site_root, runner=fake_ffmpeg).build()

    assert not (out / "a_thumb.jpg").exists()
    assert not any(p.name.startswith(".partial-") for p in out.iterdir())


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts arbitrary bytes in names")
def test_non_utf8_filename_is_skipped(site_root, media_dir, fake_ffmpeg):
    make_image(media_dir / "ok.jpg")
    with open(os.fsencode(media_dir) + b"/caf\xe9.jpg", "wb") as f:
        f.write(b"latin-1 name")

    report = SiteBuilder(site_root, runner=fake_ffmpeg).build()

    assert report.items_processed == 1
    assert [e["image_url"].rsplit("/", 1)[1] for e in page_data(site_root)] == ["ok.jpg"]
    assert [e.name for e in MediaCatalog.open(site_root).entries] == ["ok.jpg"]
