"""
Escaping and formatting helpers shared by the page and feed renderers.
"""
import re
from datetime import datetime, UTC
from email.utils import format_datetime
from typing import Dict

from .. import config

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def escape_js(s: str) -> str:
    """Escapes a value for a double-quoted JS string literal."""
    return (s.replace('\\', '\\\\')
             .replace('"', '\\"')
             .replace('\n', '\\n')
             .replace('\r', '\\r'))


def escape_html(s: str) -> str:
    return s.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def escape_html_attr(s: str) -> str:
    return escape_html(s).replace('"', '&quot;')


def escape_xml(s: str) -> str:
    return escape_html_attr(s).replace("'", '&apos;')


def mime_type(extension: str) -> str:
    return config.EXT_TO_MIME.get(extension, config.DEFAULT_MIME)


def to_rfc2822(value: str) -> str:
    """
    "2020-01-01T10:00:00" -> "Wed, 01 Jan 2020 10:00:00 +0000".
    Values that don't parse are returned untouched.
    """
    try:
        dt = datetime.strptime(value, config.DATETIME_FORMAT)
    except ValueError:
        return value
    return format_datetime(dt.replace(tzinfo=UTC))


def render_template(template: str, values: Dict[str, str]) -> str:
    """
    Replaces {{name}} placeholders in a single pass.
    Substituted values are never rescanned; unknown names are left as-is.
    """
    return PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)
