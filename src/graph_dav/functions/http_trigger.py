"""HTTP trigger blueprint — health check and the catch-all WebDAV endpoint."""

import functools
import json
import logging

import azure.functions as func

from graph_dav import __version__
from graph_dav.config import AppConfig, load_config
from graph_dav.dav.handler import DavHandler, dav_handler_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


@functools.lru_cache(maxsize=1)
def _dav_handler(config: AppConfig) -> DavHandler:
    """Build the handler once per configuration and reuse it across invocations."""
    return dav_handler_from_config(config)


@bp.route(route="_health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint.

    Returns service status and version without touching the drive.
    """
    logger.info("[health_check] health check requested")

    try:
        body = json.dumps({"status": "ok", "version": __version__})
        return func.HttpResponse(body, status_code=200, mimetype="application/json")

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        error_body = json.dumps({"status": "error", "message": "Internal server error"})
        return func.HttpResponse(error_body, status_code=500, mimetype="application/json")


@bp.route(route="{*path}", auth_level=func.AuthLevel.ANONYMOUS)
def webdav(req: func.HttpRequest) -> func.HttpResponse:
    """WebDAV endpoint — every method on every path.

    No ``methods`` filter is declared so that extension verbs such as
    PROPFIND and MKCOL reach the handler, which answers unknown ones with 405.
    Authentication is Basic auth checked by the handler, not a function key.
    """
    try:
        handler = _dav_handler(load_config())
    except Exception:
        logger.error("[webdav] failed to build handler", exc_info=True)
        return func.HttpResponse("Internal Server Error", status_code=500)

    return handler.handle(req)
