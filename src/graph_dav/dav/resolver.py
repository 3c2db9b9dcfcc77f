"""Path resolution — walks slash-delimited paths through the drive's ID graph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graph_dav.graph.store import DriveStore

logger = logging.getLogger(__name__)


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty segments; ``"//"`` yields ``[]``."""
    return [segment for segment in path.split("/") if segment]


class PathResolver:
    """Resolves paths to drive item IDs one segment at a time.

    The drive has no path index, so every segment costs a full listing of
    the current folder. Listings are memoised for the lifetime of the
    resolver, which is meant to live for a single request.

    When several siblings share a name, the first one the drive lists wins.
    """

    def __init__(self, store: DriveStore, root_id: str) -> None:
        """Initialise the resolver.

        Args:
            store: DriveStore used for child listings and folder creation.
            root_id: Drive item ID that the empty path denotes.
        """
        self._store = store
        self._root_id = root_id
        self._children: dict[str, dict[str, str]] = {}

    @property
    def root_id(self) -> str:
        return self._root_id

    def _child_ids(self, parent_id: str) -> dict[str, str]:
        """Map child name to ID for ``parent_id``, listing it on first use."""
        names = self._children.get(parent_id)
        if names is None:
            names = {}
            for child in self._store.list_children(parent_id):
                names.setdefault(child.name, child.id)
            self._children[parent_id] = names
        return names

    def resolve(self, path: str, root_id: str | None = None) -> str | None:
        """Return the item ID that ``path`` names, or None.

        Walking stops at the first segment with no matching child. A path
        with no segments (``""``, ``"/"``, ``"//"``) also yields None:
        callers that mean "the root" must use ``root_id`` directly.

        Args:
            path: Slash-delimited, already URL-decoded path.
            root_id: Starting folder; defaults to the configured root.

        Returns:
            Drive item ID of the target, or None if it does not exist.
        """
        segments = split_path(path)
        if not segments:
            return None

        current = root_id or self._root_id
        for segment in segments:
            child_id = self._child_ids(current).get(segment)
            if child_id is None:
                logger.info("[resolve] segment not found; path:%s;segment:%s", path, segment)
                return None
            current = child_id
        return current

    def ensure_folders(self, segments: list[str]) -> str:
        """Resolve a folder chain, creating whatever is missing ("mkdir -p").

        Existing folders are reused. From the first missing segment on,
        every remaining segment is created without further listings since a
        freshly created folder has no children. Folders created before a
        failure are left in place.

        Args:
            segments: Folder names from the root downwards.

        Returns:
            Drive item ID of the last folder (the root for no segments).
        """
        current = self._root_id
        creating = False
        for segment in segments:
            child_id = None if creating else self._child_ids(current).get(segment)
            if child_id is None:
                creating = True
                child_id = self._store.create_folder(current, segment).id
                self._children.setdefault(current, {})[segment] = child_id
                self._children[child_id] = {}
            current = child_id
        return current
