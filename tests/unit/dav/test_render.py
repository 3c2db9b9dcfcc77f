"""Unit tests for dav/render.py — multistatus XML and HTML listings."""

from datetime import datetime, timedelta, timezone
from xml.etree import ElementTree

from graph_dav.dav.render import (
    child_href,
    format_iso8601,
    format_rfc1123,
    href_for,
    render_listing,
    render_multistatus,
    render_proppatch,
)
from graph_dav.graph.models import FOLDER_CONTENT_TYPE, DriveItem, ItemKind

DAV = "{DAV:}"
CREATED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
MODIFIED = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


def _file(name: str = "a.txt", size: int = 10, content_type: str = "text/plain") -> DriveItem:
    return DriveItem("f-1", name, ItemKind.FILE, size, CREATED, MODIFIED, content_type)


def _folder(name: str = "docs") -> DriveItem:
    return DriveItem("d-1", name, ItemKind.FOLDER, 0, CREATED, MODIFIED, FOLDER_CONTENT_TYPE)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_rfc1123(self) -> None:
        assert format_rfc1123(MODIFIED) == "Wed, 01 May 2024 10:00:00 GMT"

    def test_rfc1123_converts_to_utc(self) -> None:
        local = MODIFIED.astimezone(timezone(timedelta(hours=2)))
        assert format_rfc1123(local) == "Wed, 01 May 2024 10:00:00 GMT"

    def test_iso8601(self) -> None:
        assert format_iso8601(CREATED) == "2024-01-02T03:04:05Z"


class TestHrefs:
    def test_root(self) -> None:
        assert href_for([], True) == "/"

    def test_folder_gets_trailing_slash(self) -> None:
        assert href_for(["docs"], True) == "/docs/"

    def test_segments_are_percent_encoded(self) -> None:
        assert href_for(["my docs", "a&b.txt"], False) == "/my%20docs/a%26b.txt"

    def test_child_href_does_not_double_separators(self) -> None:
        assert child_href("/docs/", _file()) == "/docs/a.txt"
        assert child_href("/docs", _file()) == "/docs/a.txt"
        assert child_href("/", _folder("sub")) == "/sub/"


# ---------------------------------------------------------------------------
# render_multistatus tests
# ---------------------------------------------------------------------------


class TestRenderMultistatus:
    def test_one_response_per_entry(self) -> None:
        xml = render_multistatus([("/docs/", _folder()), ("/docs/a.txt", _file())])

        root = ElementTree.fromstring(xml)
        responses = root.findall(f"{DAV}response")
        assert root.tag == f"{DAV}multistatus"
        assert len(responses) == 2
        assert xml.count("<D:response>") == 2

    def test_collection_marker_only_for_folders(self) -> None:
        xml = render_multistatus([("/docs/", _folder()), ("/docs/a.txt", _file())])

        folder, file = ElementTree.fromstring(xml).findall(f"{DAV}response")
        assert folder.find(f".//{DAV}resourcetype/{DAV}collection") is not None
        assert file.find(f".//{DAV}resourcetype/{DAV}collection") is None

    def test_properties(self) -> None:
        xml = render_multistatus([("/docs/a.txt", _file(size=10))])

        prop = ElementTree.fromstring(xml).find(f".//{DAV}prop")
        assert prop is not None
        assert prop.findtext(f"{DAV}getcontentlength") == "10"
        assert prop.findtext(f"{DAV}getlastmodified") == "Wed, 01 May 2024 10:00:00 GMT"
        assert prop.findtext(f"{DAV}creationdate") == "2024-01-02T03:04:05Z"
        assert prop.findtext(f"{DAV}getcontenttype") == "text/plain"
        assert prop.findtext(f"{DAV}displayname") == "a.txt"

    def test_escapes_names(self) -> None:
        xml = render_multistatus([("/a%26b.txt", _file(name="a&b.txt"))])

        prop = ElementTree.fromstring(xml).find(f".//{DAV}prop")
        assert prop is not None
        assert prop.findtext(f"{DAV}displayname") == "a&b.txt"

    def test_empty_entries_still_valid(self) -> None:
        root = ElementTree.fromstring(render_multistatus([]))
        assert root.findall(f"{DAV}response") == []


class TestRenderProppatch:
    def test_acknowledges_href(self) -> None:
        root = ElementTree.fromstring(render_proppatch("/docs/a.txt"))

        assert root.findtext(f"{DAV}response/{DAV}href") == "/docs/a.txt"
        assert root.findtext(f".//{DAV}status") == "HTTP/1.1 200 OK"


# ---------------------------------------------------------------------------
# render_listing tests
# ---------------------------------------------------------------------------


class TestRenderListing:
    def test_links_for_children(self) -> None:
        page = render_listing("/docs/", [_file(), _folder("sub")])

        assert '<a href="/docs/a.txt">a.txt</a>' in page
        assert '<a href="/docs/sub/">sub/</a>' in page

    def test_parent_link_except_at_root(self) -> None:
        assert '<a href="/">..</a>' in render_listing("/docs/", [])
        assert '<a href="/a/">..</a>' in render_listing("/a/b", [])
        assert ">..</a>" not in render_listing("/", [])

    def test_names_are_html_escaped(self) -> None:
        page = render_listing("/", [_file(name="<b>.txt")])

        assert "<b>.txt" not in page
        assert "&lt;b&gt;.txt" in page
