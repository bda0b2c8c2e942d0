"""
Static file responder for the main port.

Request paths whose last segment has no extension are client-side routes:
they get the fallback document (status 200 for "/", 301 otherwise, with
the full document as body either way). With live reload on, route
responses get the reload client snippet appended.
"""

import os
import asyncio
from pathlib import Path
from typing import NamedTuple, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .config import ServerConfig
from .console import log_reloading, log_status
from .mime import MimeTable, content_type_for, load_mime_table

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

RELOAD_SCRIPT = """
  <script>
    const source = new EventSource('https://'+location.hostname+':{reload_port}');
    source.onmessage = e => location.reload(true);
  </script>
"""


def reload_script(reload_port: int) -> str:
    return RELOAD_SCRIPT.replace("{reload_port}", str(reload_port))


def is_route_request(path: str) -> bool:
    """True when the final path segment has no extension."""
    return "." not in path.split("/")[-1]


class Resolved(NamedTuple):
    status: int
    resource: str
    is_route: bool


def resolve(path: str, fallback_file: str) -> Resolved:
    """Map a decoded request path to (status, resource, is_route)."""
    is_route = is_route_request(path)
    if is_route:
        status = 200 if path == "/" else 301
        return Resolved(status, f"/{fallback_file}", True)
    return Resolved(200, path, False)


def locate(root: Path, resource: str) -> Optional[Path]:
    """Filesystem path for ``resource`` under ``root``, or None if it escapes the root."""
    if "\x00" in resource:
        return None
    candidate = Path(os.path.normpath(root / resource.lstrip("/")))
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _read_bytes(path: Path) -> bytes:
    with open(path, "rb") as fp:
        return fp.read()


def create_static_app(config: ServerConfig, mime_table: Optional[MimeTable] = None) -> FastAPI:
    root = Path(config.root_dir).resolve()
    table = mime_table if mime_table is not None else load_mime_table()
    snippet = reload_script(config.reload_port).encode("utf-8")

    app = FastAPI(title="servor", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "HEAD"],
        allow_headers=["*"],
    )

    def send_error(resource: str, status: int) -> Response:
        log_status(status, resource)
        return Response(status_code=status, headers=CORS_HEADERS)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def serve_file(request: Request):
        path = request.scope["path"] or "/"
        status, resource, is_route = resolve(path, config.fallback_file)
        if is_route:
            log_reloading()

        file_path = locate(root, resource)
        if file_path is None or not file_path.exists():
            return send_error(resource, 404)

        try:
            body = await asyncio.to_thread(_read_bytes, file_path)
        except OSError:
            return send_error(resource, 500)

        if is_route and config.reload_enabled:
            body += snippet

        log_status(status, resource)
        return Response(
            content=body,
            status_code=status,
            headers={**CORS_HEADERS, "Content-Type": content_type_for(table, resource)},
        )

    return app
