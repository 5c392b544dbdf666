"""
Opal Development Server
=======================

ASGI application that serves an Opal project during development:

    GET /            -> generated index page
    GET /index.html  -> generated index page
    GET /index.js    -> entry file compiled on every request
    anything else    -> proxied to ``upstream`` when configured,
                        otherwise a static file under the project root

Example:
    server = DevServer(root=Path.cwd(), entry="src/index.opal")
    server.run(host="127.0.0.1", port=8080)
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, Optional, Union
from urllib.parse import unquote

import httpx
import uvicorn

from opal.core.bundler import Bundler
from opal.core.response import (
    FileResponse,
    HTMLResponse,
    JavaScriptResponse,
    PlainTextResponse,
    Response,
)
from opal.utils.logger import get_logger

logger = get_logger("opal.server")

Receive = Callable[[], Coroutine[Any, Any, Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Coroutine[Any, Any, None]]

SCRIPT_PATH = "/index.js"

# Request headers not forwarded to the upstream server
HOP_BY_HOP_HEADERS = {"host", "connection", "keep-alive", "transfer-encoding", "upgrade"}


def generate_index(script_src: str = SCRIPT_PATH, title: str = "Opal") -> str:
    """Generate the HTML page that mounts the compiled module."""
    return f"""<!DOCTYPE html>
<html lang="en">
	<head>
		<meta charset="UTF-8">
		<meta name="viewport" content="width=device-width, initial-scale=1.0">
		<title>{title}</title>
	</head>
	<body>
		<div id="root"></div>
		<script src="{script_src}"></script>
	</body>
</html>
"""


class DevServer:
    """
    Development server ASGI application.

    Args:
        root: Project root for static files and display paths
        entry: Entry ``.opal`` file, relative to the root
        upstream: Base URL of a bundler server to proxy other requests to
        bundler: Bundler to compile with (default: ``Bundler(root)``)
        transport: httpx transport for upstream requests
    """

    def __init__(
        self,
        root: Union[str, Path, None] = None,
        entry: Union[str, Path] = "src/index.opal",
        upstream: Optional[str] = None,
        bundler: Optional[Bundler] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.root = Path(root) if root is not None else Path.cwd()
        self.entry = entry
        self.upstream = upstream.rstrip("/") if upstream else None
        self.bundler = bundler or Bundler(self.root)
        self.transport = transport

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        """ASGI application interface."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "http":
            started = time.perf_counter()
            response = await self.handle(scope, receive)
            await response.send(send)
            logger.info(
                f"{scope['method']} {scope['path']}",
                status=response.status_code,
                ms=round((time.perf_counter() - started) * 1000, 2),
            )
        else:
            raise ValueError(f"Unknown scope type: {scope['type']}")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def handle(self, scope: Dict[str, Any], receive: Receive) -> Response:
        """Route one HTTP request."""
        path = scope["path"]

        if path in ("/", "/index.html"):
            return HTMLResponse(generate_index())

        if path == SCRIPT_PATH:
            return await self._compile_entry()

        if self.upstream:
            return await self._proxy(scope, receive)

        return self._static(path)

    async def _compile_entry(self) -> Response:
        result = await self.bundler.load(self.entry)
        if result.errors:
            body = "\n\n".join(str(message) for message in result.errors)
            return PlainTextResponse(body, status_code=500)
        return JavaScriptResponse(result.contents)

    def _static(self, path: str) -> Response:
        root = self.root.resolve()
        target = (root / unquote(path).lstrip("/")).resolve()

        try:
            target.relative_to(root)
        except ValueError:
            return Response.error(404)

        if not target.is_file():
            return Response.error(404)

        return FileResponse(target)

    async def _read_body(self, receive: Receive) -> bytes:
        body = b""
        while True:
            message = await receive()
            body += message.get("body", b"")
            if not message.get("more_body", False):
                return body

    async def _proxy(self, scope: Dict[str, Any], receive: Receive) -> Response:
        """Forward a request to the upstream server."""
        url = self.upstream + scope["path"]
        if scope.get("query_string"):
            url += "?" + scope["query_string"].decode("latin-1")

        headers = {
            key.decode("latin-1"): value.decode("latin-1")
            for key, value in scope.get("headers", [])
            if key.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
        }
        body = await self._read_body(receive)

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                upstream = await client.request(
                    scope["method"],
                    url,
                    headers=headers,
                    content=body,
                )
        except httpx.HTTPError as e:
            logger.error("Upstream request failed", url=url, exception=e)
            return Response.error(502)

        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type", "application/octet-stream"),
        )

    def run(self, host: str = "127.0.0.1", port: int = 8080) -> None:
        """Serve with uvicorn until interrupted."""
        logger.info("Server running", url=f"http://{host}:{port}", entry=str(self.entry))

        config = uvicorn.Config(self, host=host, port=port, log_level="warning")
        uvicorn.Server(config).run()
