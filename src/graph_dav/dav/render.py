"""Rendering of drive items as WebDAV multistatus XML and HTML listings."""

from __future__ import annotations

import html
from collections.abc import Iterable
from datetime import datetime, timezone
from email.utils import format_datetime
from urllib.parse import quote
from xml.sax.saxutils import escape

from graph_dav.dav.resolver import split_path
from graph_dav.graph.models import DriveItem

XML_CONTENT_TYPE = "application/xml; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"

STATUS_OK = "HTTP/1.1 200 OK"

_LISTING_STYLE = (
    "body { font-family: sans-serif; padding: 20px; } "
    "a { display: block; padding: 5px; text-decoration: none; } "
    "a:hover { background: #eee; }"
)


def format_rfc1123(value: datetime) -> str:
    """Format a timestamp for ``getlastmodified``, e.g. ``Wed, 01 May 2024 10:00:00 GMT``."""
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def format_iso8601(value: datetime) -> str:
    """Format a timestamp for ``creationdate``, e.g. ``2024-05-01T10:00:00Z``."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def href_for(segments: list[str], is_folder: bool) -> str:
    """Build an absolute, percent-encoded href; collections end with ``/``."""
    if not segments:
        return "/"
    href = "/" + "/".join(quote(segment, safe="") for segment in segments)
    return f"{href}/" if is_folder else href


def child_href(parent_path: str, item: DriveItem) -> str:
    """Href of ``item`` as a direct child of ``parent_path``."""
    return href_for([*split_path(parent_path), item.name], item.is_folder)


def render_listing(path: str, items: Iterable[DriveItem]) -> str:
    """Render an HTML index page for a folder.

    Args:
        path: Decoded request path of the folder.
        items: Direct children of the folder.

    Returns:
        Complete HTML document with one link per child, plus a link to the
        parent folder unless ``path`` is the root.
    """
    title = html.escape(f"Index of {href_for(split_path(path), True)}")
    lines: list[str] = [
        "<!DOCTYPE html>",
        "<html>",
        "  <head>",
        f"    <title>{title}</title>",
        f"    <style>{_LISTING_STYLE}</style>",
        "  </head>",
        "  <body>",
        f"    <h1>{title}</h1>",
    ]
    if split_path(path):
        parent_href = html.escape(href_for(split_path(path)[:-1], True))
        lines.append(f'    <a href="{parent_href}">..</a>')
    for item in items:
        label = f"{item.name}/" if item.is_folder else item.name
        href = child_href(path, item)
        lines.append(f'    <a href="{html.escape(href)}">{html.escape(label)}</a>')
    lines.extend(["  </body>", "</html>", ""])
    return "\n".join(lines)


def _response_lines(href: str, item: DriveItem) -> list[str]:
    resourcetype = "<D:collection/>" if item.is_folder else ""
    return [
        "  <D:response>",
        f"    <D:href>{escape(href)}</D:href>",
        "    <D:propstat>",
        "      <D:prop>",
        f"        <D:displayname>{escape(item.name)}</D:displayname>",
        f"        <D:resourcetype>{resourcetype}</D:resourcetype>",
        f"        <D:getcontentlength>{item.size}</D:getcontentlength>",
        f"        <D:getlastmodified>{format_rfc1123(item.modified_at)}</D:getlastmodified>",
        f"        <D:creationdate>{format_iso8601(item.created_at)}</D:creationdate>",
        f"        <D:getcontenttype>{escape(item.content_type)}</D:getcontenttype>",
        "      </D:prop>",
        f"      <D:status>{STATUS_OK}</D:status>",
        "    </D:propstat>",
        "  </D:response>",
    ]


def render_multistatus(entries: Iterable[tuple[str, DriveItem]]) -> str:
    """Render a PROPFIND multistatus document.

    Args:
        entries: ``(href, item)`` pairs, the requested resource first.

    Returns:
        XML document with one ``<D:response>`` per entry.
    """
    lines: list[str] = ['<?xml version="1.0" encoding="utf-8"?>', '<D:multistatus xmlns:D="DAV:">']
    for href, item in entries:
        lines.extend(_response_lines(href, item))
    lines.extend(["</D:multistatus>", ""])
    return "\n".join(lines)


def render_proppatch(href: str) -> str:
    """Render a PROPPATCH acknowledgement for ``href``."""
    return "\n".join(
        [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<D:multistatus xmlns:D="DAV:">',
            "  <D:response>",
            f"    <D:href>{escape(href)}</D:href>",
            "    <D:propstat>",
            "      <D:prop/>",
            f"      <D:status>{STATUS_OK}</D:status>",
            "    </D:propstat>",
            "  </D:response>",
            "</D:multistatus>",
            "",
        ]
    )
