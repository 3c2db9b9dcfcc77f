"""Drive store — the four primitive item operations over Microsoft Graph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote, urlencode

from graph_dav.graph.client import GraphApiError, GraphClient, graph_client_from_config
from graph_dav.graph.models import (
    CONFLICT_BEHAVIOR,
    DEFAULT_CONTENT_TYPE,
    FIELD_FOLDER,
    FIELD_NAME,
    ITEM_SELECT,
    ODATA_NEXT_LINK,
    ODATA_VALUE,
    DriveItem,
    ItemKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from graph_dav.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200


class DriveStore:
    """ID-addressed access to one user's drive.

    The drive offers no path lookup: callers hand in item IDs and get
    DriveItem records back. Not-found is reported as ``None`` (metadata)
    or ignored (delete); every other non-2xx response propagates as
    GraphApiError.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        drive_user: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialise the store.

        Args:
            graph_client: Authenticated GraphClient instance.
            drive_user: UPN or object ID of the drive owner.
            page_size: Number of children requested per listing page.
        """
        self._graph = graph_client
        self._drive = f"/users/{quote(drive_user, safe='@')}/drive"
        self._page_size = page_size

    def _item_path(self, item_id: str) -> str:
        return f"{self._drive}/items/{quote(item_id, safe='!')}"

    def _list_one_level(self, parent_id: str) -> list[DriveItem]:
        """List the direct children of ``parent_id``, following every nextLink."""
        query = urlencode({"$select": ITEM_SELECT, "$top": self._page_size}, safe="$,")
        next_path: str | None = f"{self._item_path(parent_id)}/children?{query}"

        items: list[DriveItem] = []
        while next_path is not None:
            response = self._graph.get(next_path)
            items.extend(DriveItem.from_graph(raw) for raw in response.get(ODATA_VALUE, []))
            next_path = response.get(ODATA_NEXT_LINK)
        return items

    def list_children(self, parent_id: str, recursive: bool = False) -> list[DriveItem]:
        """Return the children of a folder.

        With ``recursive`` the result is every descendant in depth-first
        pre-order: each folder is followed immediately by its own contents.
        The parent's own record is never included. Nested listings are
        issued sequentially.

        Args:
            parent_id: Drive item ID of the folder.
            recursive: Whether to descend into sub-folders.

        Returns:
            Flat list of DriveItem records.
        """
        children = self._list_one_level(parent_id)
        if not recursive:
            return children

        result: list[DriveItem] = []
        stack: list[Iterator[DriveItem]] = [iter(children)]
        while stack:
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
                continue
            result.append(item)
            if item.is_folder:
                stack.append(iter(self._list_one_level(item.id)))
        return result

    def get_metadata(self, item_id: str) -> DriveItem | None:
        """Fetch one item's attributes.

        Returns:
            The DriveItem, or None if the drive reports 404 for the ID.
        """
        query = urlencode({"$select": ITEM_SELECT}, safe="$,")
        try:
            raw = self._graph.get(f"{self._item_path(item_id)}?{query}")
        except GraphApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return DriveItem.from_graph(raw)

    def get_content(self, item_id: str) -> bytes:
        """Download the raw bytes of a file item. Not valid for folders."""
        return self._graph.get_content(f"{self._item_path(item_id)}/content")

    def create_object(
        self,
        parent_id: str,
        name: str,
        kind: ItemKind,
        content: bytes | None = None,
        content_type: str | None = None,
    ) -> DriveItem:
        """Create a folder or upload a file under ``parent_id``.

        Folders fail with 409 when the name is already taken. Files replace
        an existing same-named file, so a re-upload never produces duplicate
        siblings.

        Args:
            parent_id: Drive item ID of the destination folder.
            name: Name of the new item.
            kind: ItemKind.FOLDER or ItemKind.FILE.
            content: File bytes; ignored for folders.
            content_type: MIME type of ``content``.

        Returns:
            DriveItem for the created item.

        Raises:
            GraphApiError: If the drive rejects the request.
        """
        if kind is ItemKind.FOLDER:
            raw = self._graph.post_json(
                f"{self._item_path(parent_id)}/children",
                {FIELD_NAME: name, FIELD_FOLDER: {}, CONFLICT_BEHAVIOR: "fail"},
            )
        else:
            raw = self._graph.put_content(
                f"{self._item_path(parent_id)}:/{quote(name, safe='')}:/content"
                f"?{CONFLICT_BEHAVIOR}=replace",
                content or b"",
                content_type=content_type or DEFAULT_CONTENT_TYPE,
            )
        item = DriveItem.from_graph(raw)
        logger.info(
            "[create_object] created item; parent_id:%s;name:%s;kind:%s;item_id:%s",
            parent_id,
            name,
            kind.value,
            item.id,
        )
        return item

    def create_folder(self, parent_id: str, name: str) -> DriveItem:
        return self.create_object(parent_id, name, ItemKind.FOLDER)

    def upload_file(
        self, parent_id: str, name: str, content: bytes, content_type: str
    ) -> DriveItem:
        return self.create_object(
            parent_id, name, ItemKind.FILE, content=content, content_type=content_type
        )

    def delete_object(self, item_id: str) -> None:
        """Delete an item. A missing item is treated as already deleted."""
        try:
            self._graph.delete(self._item_path(item_id))
        except GraphApiError as exc:
            if exc.status_code != 404:
                raise
            logger.info("[delete_object] item already gone; item_id:%s", item_id)
            return
        logger.info("[delete_object] deleted item; item_id:%s", item_id)


def drive_store_from_config(config: AppConfig) -> DriveStore:
    """Construct a DriveStore from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DriveStore instance.
    """
    return DriveStore(
        graph_client=graph_client_from_config(config),
        drive_user=config.drive_user,
        page_size=config.page_size,
    )
