"""ASGI middleware that documents the host application's traffic.

Wraps any ASGI application. Request and response bodies are buffered as
they stream through, and once the final response chunk has been sent the
exchange is handed to the AutoDoc recorder in the background. The viewer
and the OpenAPI document are served under ``docs_path``.
"""

import json
import logging
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, Optional
from urllib.parse import parse_qs

from .bodies import parse_body, parse_multipart
from .core import AutoDoc
from .models import DocRequest, DocResponse
from .openapi import InvalidDocumentError

log = logging.getLogger(__name__)

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


def _decode_headers(raw: list) -> dict:
    headers: dict = {}
    for name, value in raw:
        key = name.decode("latin-1").lower()
        text = value.decode("latin-1")
        if key == "set-cookie":
            headers.setdefault(key, []).append(text)
        elif key in headers:
            headers[key] = f"{headers[key]}, {text}"
        else:
            headers[key] = text
    return headers


def _query(query_string: bytes) -> dict:
    query: dict = {}
    for key, values in parse_qs(query_string.decode("latin-1"), keep_blank_values=True).items():
        query[key] = values[0] if len(values) == 1 else values
    return query


class AutoDocMiddleware:
    """Records 2xx exchanges of the wrapped app and serves its documentation."""

    def __init__(
        self,
        app: ASGIApp,
        autodoc: Optional[AutoDoc] = None,
        docs_path: Optional[str] = None,
    ) -> None:
        self.app = app
        self.autodoc = autodoc or AutoDoc()
        self.docs_path = (docs_path or self.autodoc.settings.docs_path).rstrip("/") or "/docs"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path == self.docs_path or path.startswith(self.docs_path + "/"):
            await self._serve_docs(scope, send)
            return

        request_chunks: list[bytes] = []
        response_chunks: list[bytes] = []
        response_start: dict[str, Any] = {}

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_start.update(message)
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                self._capture(scope, b"".join(request_chunks), response_start, b"".join(response_chunks))

        await self.app(scope, receive_wrapper, send_wrapper)

    def _capture(self, scope: Scope, request_body: bytes, start: dict, response_body: bytes) -> None:
        status = start.get("status", 200)
        if not 200 <= status < 300:
            return
        try:
            request_headers = _decode_headers(scope.get("headers", []))
            content_type = request_headers.get("content-type", "")
            files = {}
            if "multipart/form-data" in content_type.lower() and request_body:
                body, files = parse_multipart(content_type, request_body)
            else:
                body = parse_body(content_type.lower(), request_body)

            response_headers = _decode_headers(start.get("headers", []))
            request = DocRequest(
                method=scope.get("method", "GET"),
                path=scope.get("path", "/"),
                headers=request_headers,
                query=_query(scope.get("query_string", b"")),
                body=body,
                params=dict(scope.get("path_params") or {}),
                files=files,
            )
            response = DocResponse(
                status_code=status,
                headers=response_headers,
                body=parse_body(response_headers.get("content-type", "").lower(), response_body),
            )
        except Exception:
            log.exception(f"Failed to capture {scope.get('method')} {scope.get('path')}")
            return
        self.autodoc.submit(request, response)

    async def _serve_docs(self, scope: Scope, send: Send) -> None:
        path = scope["path"]
        if path.endswith("/openapi.json") or path.endswith("/swagger.json"):
            try:
                document = self.autodoc.get_document()
            except InvalidDocumentError as e:
                log.error(f"Invalid OpenAPI document generated: {e}")
                payload = {"error": "Invalid OpenAPI specification generated", "message": str(e)}
                await self._respond(send, 500, "application/json", json.dumps(payload).encode())
                return
            await self._respond(send, 200, "application/json", json.dumps(document).encode(),
                                extra=[(b"access-control-allow-origin", b"*")])
            return

        markup = self.autodoc.get_viewer_markup(f"{self.docs_path}/openapi.json")
        await self._respond(send, 200, "text/html; charset=utf-8", markup.encode("utf-8"))

    async def _respond(
        self,
        send: Send,
        status: int,
        content_type: str,
        body: bytes,
        extra: Optional[list] = None,
    ) -> None:
        headers = [
            (b"content-type", content_type.encode("latin-1")),
            (b"content-length", str(len(body)).encode("latin-1")),
        ]
        headers.extend(extra or [])
        await send({"type": "http.response.start", "status": status, "headers": headers})
        await send({"type": "http.response.body", "body": body})
