"""
Opal Response Objects
=====================

Minimal HTTP responses for the development server. Every class implements
the ASGI send interface.
"""

from __future__ import annotations

import mimetypes
from http import HTTPStatus
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, List, Optional, Union

import aiofiles

Send = Callable[[Dict[str, Any]], Coroutine[Any, Any, None]]

# Standard HTTP status messages
HTTP_STATUS_PHRASES = {s.value: s.phrase for s in HTTPStatus}


class Response:
    """
    Base HTTP Response class.

    Example:
        return Response("Hello, World!")
        return Response("Not Found", status_code=404)
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        media_type: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.headers: Dict[str, str] = headers or {}

        if media_type:
            self.media_type = media_type

        self.body = self._render_content(content)

        if "content-type" not in {k.lower() for k in self.headers}:
            content_type = self.media_type
            textual = content_type.startswith("text/") or "javascript" in content_type
            if self.charset and textual and "charset=" not in content_type:
                content_type += f"; charset={self.charset}"
            self.headers["Content-Type"] = content_type

        if "content-length" not in {k.lower() for k in self.headers}:
            self.headers["Content-Length"] = str(len(self.body))

    def _render_content(self, content: Any) -> bytes:
        """Convert content to bytes."""
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.charset)
        return str(content).encode(self.charset)

    def _get_headers(self) -> List[tuple]:
        """Get headers as list of tuples for ASGI."""
        return [(k.lower().encode(), v.encode()) for k, v in self.headers.items()]

    async def send(self, send: Send) -> None:
        """Send response via ASGI interface."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._get_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
        })

    @classmethod
    def error(cls, status_code: int, message: Optional[str] = None) -> "Response":
        """Create a plain-text error response."""
        return cls(
            content=message or HTTP_STATUS_PHRASES.get(status_code, "Error"),
            status_code=status_code,
            media_type="text/plain",
        )


class HTMLResponse(Response):
    """HTML content response."""

    media_type = "text/html"


class JavaScriptResponse(Response):
    """JavaScript module response."""

    media_type = "application/javascript"


class PlainTextResponse(Response):
    """Plain text response."""

    media_type = "text/plain"


class FileResponse(Response):
    """
    Static file response.

    Streams the file in chunks with aiofiles.
    """

    chunk_size = 64 * 1024

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

        if not self.path.is_file():
            raise FileNotFoundError(f"File not found: {self.path}")

        media_type, _ = mimetypes.guess_type(str(self.path))
        media_type = media_type or "application/octet-stream"

        headers = {"Content-Length": str(self.path.stat().st_size)}

        super().__init__(content=None, status_code=200, headers=headers, media_type=media_type)

    async def send(self, send: Send) -> None:
        """Stream file content."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._get_headers(),
        })

        async with aiofiles.open(self.path, "rb") as f:
            while True:
                chunk = await f.read(self.chunk_size)
                if not chunk:
                    break
                await send({
                    "type": "http.response.body",
                    "body": chunk,
                    "more_body": True,
                })

        await send({
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        })
