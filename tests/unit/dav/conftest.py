"""In-memory drive used by the resolver and handler tests."""

from __future__ import annotations

import itertools
import mimetypes
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from graph_dav.graph.client import GraphApiError
from graph_dav.graph.models import FOLDER_CONTENT_TYPE, DriveItem, ItemKind

CREATED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
MODIFIED = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class FakeDriveStore:
    """Implements the DriveStore surface over dicts and records every call."""

    def __init__(self, root_id: str = "root") -> None:
        self.root_id = root_id
        self.items: dict[str, DriveItem] = {
            root_id: DriveItem(
                root_id, "root", ItemKind.FOLDER, 0, CREATED, MODIFIED, FOLDER_CONTENT_TYPE
            )
        }
        self.parents: dict[str, str] = {}
        self.contents: dict[str, bytes] = {}
        self.calls: list[tuple[str, ...]] = []
        self._ids = itertools.count(1)

    # -- test setup helpers ------------------------------------------------

    def add_folder(self, parent_id: str, name: str) -> str:
        return self._insert(parent_id, name, ItemKind.FOLDER, b"", FOLDER_CONTENT_TYPE)

    def add_file(
        self, parent_id: str, name: str, content: bytes, content_type: str = "text/plain"
    ) -> str:
        return self._insert(parent_id, name, ItemKind.FILE, content, content_type)

    def children_named(self, parent_id: str, name: str) -> list[DriveItem]:
        return [
            item
            for item_id, item in self.items.items()
            if self.parents.get(item_id) == parent_id and item.name == name
        ]

    def calls_to(self, operation: str) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[0] == operation]

    def _insert(
        self, parent_id: str, name: str, kind: ItemKind, content: bytes, content_type: str
    ) -> str:
        item_id = f"id-{next(self._ids)}"
        size = len(content) if kind is ItemKind.FILE else 0
        self.items[item_id] = DriveItem(
            item_id, name, kind, size, CREATED, MODIFIED, content_type
        )
        self.parents[item_id] = parent_id
        if kind is ItemKind.FILE:
            self.contents[item_id] = content
        return item_id

    def _direct_children(self, parent_id: str) -> list[DriveItem]:
        return [
            replace(item)
            for item_id, item in self.items.items()
            if self.parents.get(item_id) == parent_id
        ]

    # -- DriveStore surface ------------------------------------------------

    def list_children(self, parent_id: str, recursive: bool = False) -> list[DriveItem]:
        self.calls.append(("list_children", parent_id))
        result: list[DriveItem] = []
        for child in self._direct_children(parent_id):
            result.append(child)
            if recursive and child.is_folder:
                result.extend(self.list_children(child.id, recursive=True))
        return result

    def get_metadata(self, item_id: str) -> DriveItem | None:
        self.calls.append(("get_metadata", item_id))
        item = self.items.get(item_id)
        return replace(item) if item is not None else None

    def get_content(self, item_id: str) -> bytes:
        self.calls.append(("get_content", item_id))
        return self.contents[item_id]

    def create_object(
        self,
        parent_id: str,
        name: str,
        kind: ItemKind,
        content: bytes | None = None,
        content_type: str | None = None,
    ) -> DriveItem:
        self.calls.append(("create_object", parent_id, name, kind.value))
        existing = self.children_named(parent_id, name)
        if kind is ItemKind.FOLDER:
            if existing:
                raise GraphApiError(409, "An item with the same name already exists")
            return self.items[self.add_folder(parent_id, name)]
        for item in existing:
            self.items.pop(item.id)
            self.parents.pop(item.id)
            self.contents.pop(item.id, None)
        # The drive ignores the upload Content-Type and infers it from the name.
        inferred = mimetypes.guess_type(name)[0] or "application/octet-stream"
        new_id = self.add_file(parent_id, name, content or b"", inferred)
        return self.items[new_id]

    def create_folder(self, parent_id: str, name: str) -> DriveItem:
        return self.create_object(parent_id, name, ItemKind.FOLDER)

    def upload_file(
        self, parent_id: str, name: str, content: bytes, content_type: str
    ) -> DriveItem:
        return self.create_object(parent_id, name, ItemKind.FILE, content, content_type)

    def delete_object(self, item_id: str) -> None:
        self.calls.append(("delete_object", item_id))
        pending = [item_id]
        while pending:
            current = pending.pop()
            if self.items.pop(current, None) is None:
                continue
            self.parents.pop(current, None)
            self.contents.pop(current, None)
            pending.extend(cid for cid, pid in self.parents.items() if pid == current)


@pytest.fixture
def store() -> FakeDriveStore:
    return FakeDriveStore()
