"""Data models for Microsoft Graph drive items."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_MIME_TYPE = "mimeType"
FIELD_SIZE = "size"
FIELD_CREATED = "createdDateTime"
FIELD_MODIFIED = "lastModifiedDateTime"

# Fields requested with $select on every item fetch
ITEM_SELECT = ",".join(
    [FIELD_ID, FIELD_NAME, FIELD_SIZE, FIELD_FILE, FIELD_FOLDER, FIELD_CREATED, FIELD_MODIFIED]
)

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"

CONFLICT_BEHAVIOR = "@microsoft.graph.conflictBehavior"

FOLDER_CONTENT_TYPE = "httpd/unix-directory"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ItemKind(str, Enum):
    """Kind of a drive item."""

    FILE = "file"
    FOLDER = "folder"


def parse_timestamp(value: str | None) -> datetime:
    """Parse a Graph UTC timestamp such as ``2024-05-01T10:00:00.1234567Z``.

    Graph may return up to seven fractional digits, which ``fromisoformat``
    does not accept on every interpreter, so the fraction is cut to six.
    Missing values map to the Unix epoch.
    """
    if not value:
        return EPOCH
    text = value.rstrip("Z")
    if "." in text:
        head, fraction = text.split(".", 1)
        text = f"{head}.{fraction[:6].ljust(6, '0')}"
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


@dataclass
class DriveItem:
    """A single file or folder as reported by the drive.

    Items are fetched per request and never cached across requests.
    ``size`` is zero for folders.
    """

    id: str
    name: str
    kind: ItemKind
    size: int
    created_at: datetime
    modified_at: datetime
    content_type: str

    @property
    def is_folder(self) -> bool:
        return self.kind is ItemKind.FOLDER

    @classmethod
    def from_graph(cls, raw: dict[str, Any]) -> DriveItem:
        """Map a raw Graph driveItem dict to a DriveItem."""
        if FIELD_FOLDER in raw:
            kind = ItemKind.FOLDER
            size = 0
            content_type = FOLDER_CONTENT_TYPE
        else:
            kind = ItemKind.FILE
            size = int(raw.get(FIELD_SIZE) or 0)
            content_type = (raw.get(FIELD_FILE) or {}).get(FIELD_MIME_TYPE) or DEFAULT_CONTENT_TYPE
        return cls(
            id=raw.get(FIELD_ID, ""),
            name=raw.get(FIELD_NAME, ""),
            kind=kind,
            size=size,
            created_at=parse_timestamp(raw.get(FIELD_CREATED)),
            modified_at=parse_timestamp(raw.get(FIELD_MODIFIED)),
            content_type=content_type,
        )
