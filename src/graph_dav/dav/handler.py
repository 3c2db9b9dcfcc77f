"""WebDAV verb dispatch over the drive store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

import azure.functions as func

from graph_dav.dav.auth import is_authorized
from graph_dav.dav.render import (
    HTML_CONTENT_TYPE,
    XML_CONTENT_TYPE,
    child_href,
    format_rfc1123,
    href_for,
    render_listing,
    render_multistatus,
    render_proppatch,
)
from graph_dav.dav.resolver import PathResolver, split_path
from graph_dav.graph.client import GraphApiError
from graph_dav.graph.models import DEFAULT_CONTENT_TYPE
from graph_dav.graph.store import drive_store_from_config

if TYPE_CHECKING:
    from graph_dav.config import AppConfig
    from graph_dav.graph.store import DriveStore

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD", "PUT", "DELETE", "MKCOL", "PROPFIND", "PROPPATCH", "OPTIONS")
ALLOW_HEADER = ", ".join(ALLOWED_METHODS)
AUTH_CHALLENGE = 'Basic realm="webdav"'

Route = Callable[[func.HttpRequest, str, PathResolver], func.HttpResponse]


def request_path(req: func.HttpRequest) -> str:
    """Return the URL-decoded path of the request, trailing separator kept."""
    return unquote(urlparse(req.url).path) or "/"


def _text(body: str, status_code: int, headers: dict[str, str] | None = None) -> func.HttpResponse:
    return func.HttpResponse(body, status_code=status_code, headers=headers)


def _empty(status_code: int, headers: dict[str, str] | None = None) -> func.HttpResponse:
    return func.HttpResponse(status_code=status_code, headers=headers)


def _not_found() -> func.HttpResponse:
    return _text("Not Found", 404)


def _not_allowed() -> func.HttpResponse:
    return _text("Method Not Allowed", 405, headers={"Allow": ALLOW_HEADER})


class DavHandler:
    """Translates WebDAV requests into drive store calls.

    Stateless across requests: each request gets its own PathResolver, and
    the only shared state is the token cache inside the store's client.
    """

    def __init__(self, store: DriveStore, root_id: str, username: str, password: str) -> None:
        """Initialise the handler.

        Args:
            store: DriveStore the requests are served from.
            root_id: Drive item ID exposed as ``/``.
            username: Basic-auth username clients must present.
            password: Basic-auth password clients must present.
        """
        self._store = store
        self._root_id = root_id
        self._username = username
        self._password = password
        self._routes: dict[str, Route] = {
            "GET": self.get,
            "HEAD": self.head,
            "PUT": self.put,
            "DELETE": self.delete,
            "MKCOL": self.mkcol,
            "PROPFIND": self.propfind,
            "PROPPATCH": self.proppatch,
            "OPTIONS": self.options,
        }

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        """Authenticate, dispatch by method and map failures to 500."""
        method = req.method.upper()
        path = request_path(req)

        if method != "OPTIONS" and not is_authorized(
            req.headers.get("Authorization"), self._username, self._password
        ):
            logger.warning("[handle] unauthorized request; method:%s;path:%s", method, path)
            return _text("Unauthorized", 401, headers={"WWW-Authenticate": AUTH_CHALLENGE})

        route = self._routes.get(method)
        if route is None:
            logger.warning("[handle] unsupported method; method:%s;path:%s", method, path)
            return _not_allowed()

        logger.info("[handle] dispatching request; method:%s;path:%s", method, path)
        try:
            return route(req, path, PathResolver(self._store, self._root_id))
        except Exception:
            logger.error("[handle] request failed; method:%s;path:%s", method, path, exc_info=True)
            return _text("Internal Server Error", 500)

    # ------------------------------------------------------------------
    # Verb handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _locate(path: str, resolver: PathResolver) -> str | None:
        """Resolve ``path``; the root is answered without walking."""
        if not split_path(path):
            return resolver.root_id
        return resolver.resolve(path)

    def _listing(self, path: str, folder_id: str) -> func.HttpResponse:
        children = self._store.list_children(folder_id)
        logger.info("[_listing] listed folder; path:%s;child_count:%d", path, len(children))
        return func.HttpResponse(
            render_listing(path, children),
            status_code=200,
            headers={"Content-Type": HTML_CONTENT_TYPE},
            mimetype="text/html",
        )

    def get(self, req: func.HttpRequest, path: str, resolver: PathResolver) -> func.HttpResponse:
        """Serve a folder listing for folders, file content otherwise.

        A directory URL (trailing separator) that names a file is 404.
        """
        item_id = self._locate(path, resolver)
        item = self._store.get_metadata(item_id) if item_id is not None else None
        if item is None:
            return _not_found()
        if item.is_folder:
            return self._listing(path, item.id)
        if path.endswith("/"):
            return _not_found()

        content = self._store.get_content(item.id)
        return func.HttpResponse(
            content,
            status_code=200,
            headers={
                "Content-Type": item.content_type,
                "Last-Modified": format_rfc1123(item.modified_at),
            },
            mimetype=item.content_type,
        )

    def head(self, req: func.HttpRequest, path: str, resolver: PathResolver) -> func.HttpResponse:
        """Probe for existence using metadata only."""
        item_id = self._locate(path, resolver)
        item = self._store.get_metadata(item_id) if item_id is not None else None
        if item is None:
            return _empty(404)
        return _empty(
            200,
            headers={
                "Content-Type": item.content_type,
                "Last-Modified": format_rfc1123(item.modified_at),
            },
        )

    def put(self, req: func.HttpRequest, path: str, resolver: PathResolver) -> func.HttpResponse:
        """Upload the body, creating any missing parent folders first."""
        segments = split_path(path)
        if not segments:
            return _not_allowed()

        parent_id = resolver.ensure_folders(segments[:-1])
        content_type = req.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
        body = req.get_body()
        self._store.upload_file(parent_id, segments[-1], body, content_type)
        logger.info("[put] stored file; path:%s;size:%d", path, len(body))
        return _empty(201)

    def delete(self, req: func.HttpRequest, path: str, resolver: PathResolver) -> func.HttpResponse:
        """Delete the target; a missing target still succeeds."""
        if not split_path(path):
            return _not_allowed()

        item_id = resolver.resolve(path)
        if item_id is None:
            logger.info("[delete] nothing to delete; path:%s", path)
        else:
            self._store.delete_object(item_id)
        return _empty(204)

    def mkcol(self, req: func.HttpRequest, path: str, resolver: PathResolver) -> func.HttpResponse:
        """Create a folder and any missing ancestors."""
        segments = split_path(path)
        if not segments:
            return _not_allowed()

        parent_id = resolver.ensure_folders(segments[:-1])
        try:
            self._store.create_folder(parent_id, segments[-1])
        except GraphApiError as exc:
            if exc.status_code != 409:
                raise
            logger.info("[mkcol] name already taken; path:%s", path)
            return _not_allowed()
        return _empty(201)

    def propfind(
        self, req: func.HttpRequest, path: str, resolver: PathResolver
    ) -> func.HttpResponse:
        """Describe the target and, unless ``Depth: 0``, its direct children.

        Any depth other than ``0`` (including ``infinity``) expands exactly
        one level.
        """
        depth = (req.headers.get("Depth") or "infinity").strip()
        item_id = self._locate(path, resolver)
        item = self._store.get_metadata(item_id) if item_id is not None else None
        if item is None:
            return _not_found()

        entries = [(href_for(split_path(path), item.is_folder), item)]
        if item.is_folder and depth != "0":
            entries.extend(
                (child_href(path, child), child) for child in self._store.list_children(item.id)
            )
        return func.HttpResponse(
            render_multistatus(entries),
            status_code=207,
            headers={"Content-Type": XML_CONTENT_TYPE},
            mimetype="application/xml",
        )

    def proppatch(
        self, req: func.HttpRequest, path: str, resolver: PathResolver
    ) -> func.HttpResponse:
        """Acknowledge without applying: the drive has no dead properties."""
        return func.HttpResponse(
            render_proppatch(href_for(split_path(path), path.endswith("/"))),
            status_code=207,
            headers={"Content-Type": XML_CONTENT_TYPE},
            mimetype="application/xml",
        )

    def options(
        self, req: func.HttpRequest, path: str, resolver: PathResolver
    ) -> func.HttpResponse:
        return _empty(204, headers={"Allow": ALLOW_HEADER, "DAV": "1", "MS-Author-Via": "DAV"})


def dav_handler_from_config(config: AppConfig) -> DavHandler:
    """Construct a DavHandler from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DavHandler instance.
    """
    return DavHandler(
        store=drive_store_from_config(config),
        root_id=config.root_item_id,
        username=config.dav_username,
        password=config.dav_password,
    )
