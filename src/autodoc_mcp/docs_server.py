# ABOUTME: HTTP server for browsing the generated API documentation
# ABOUTME: Serves the viewer page and the OpenAPI document of an AutoDoc engine

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from threading import Thread
from typing import Optional

from .core import AutoDoc
from .openapi import InvalidDocumentError

log = logging.getLogger(__name__)

SPEC_PATHS = ("/openapi.json", "/swagger.json", "/docs/openapi.json", "/docs/swagger.json")


class DocsRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the documentation viewer."""

    def log_message(self, format, *args):
        log.debug(f"{self.address_string()} {format % args}")

    def do_GET(self):
        path = self.path.split("?", 1)[0]
        if path in SPEC_PATHS:
            self._serve_document()
        elif path in ("/", "/index.html", "/docs", "/docs/"):
            self._serve_viewer()
        else:
            self.send_error(404, "Not Found")

    def _send(self, status: int, content_type: str, content: bytes):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(content)

    def _serve_viewer(self):
        autodoc: AutoDoc = self.server.autodoc
        content = autodoc.get_viewer_markup("/openapi.json").encode("utf-8")
        self._send(200, "text/html; charset=utf-8", content)

    def _serve_document(self):
        autodoc: AutoDoc = self.server.autodoc
        try:
            document = autodoc.get_document()
        except InvalidDocumentError as e:
            log.error(f"Invalid OpenAPI document generated: {e}")
            payload = {"error": "Invalid OpenAPI specification generated", "message": str(e)}
            self._send(500, "application/json", json.dumps(payload).encode("utf-8"))
            return
        self._send(200, "application/json", json.dumps(document, indent=2).encode("utf-8"))


class DocsServer:
    """Background HTTP server for an AutoDoc engine's documentation."""

    def __init__(
        self,
        autodoc: AutoDoc,
        port: int = 8082,
        host: str = "0.0.0.0",
    ):
        self.autodoc = autodoc
        self.port = port
        self.host = host
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the docs server."""
        if self.is_running:
            return

        self._server = ThreadingHTTPServer((self.host, self.port), DocsRequestHandler)
        self._server.autodoc = self.autodoc

        self._thread = Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        log.info(f"Docs server listening on {self.host}:{self.port}")

    def stop(self):
        """Stop the docs server."""
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None

        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None
