# ABOUTME: Mitmproxy addon that feeds intercepted traffic to the AutoDoc engine
# ABOUTME: Snapshots completed flows and decodes them into exchanges in the background

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from mitmproxy import http

from .bodies import parse_body, parse_multipart
from .core import AutoDoc
from .models import DocRequest, DocResponse
from .paths import split_query

log = logging.getLogger(__name__)

# Domains that generate noise traffic (auth flows, static assets, telemetry)
NOISE_DOMAINS = [
    "googleapis.com",
    "google.com",
    "gstatic.com",
    "googleusercontent.com",
    "youtube.com",
    "doubleclick.net",
    "googlesyndication.com",
    "googleadservices.com",
    "google-analytics.com",
]


def is_noise_domain(host: str) -> bool:
    """True if the host belongs to a telemetry, auth or static-asset domain."""
    host = host.lower()
    return any(host == noise or host.endswith("." + noise) for noise in NOISE_DOMAINS)


def _headers(headers) -> dict:
    """Flatten mitmproxy headers, joining repeated fields except Set-Cookie."""
    result: dict = {}
    for name in headers.keys():
        values = headers.get_all(name)
        lower = name.lower()
        if lower == "set-cookie":
            result[lower] = list(values)
        else:
            result[lower] = ", ".join(values)
    return result


@dataclass
class FlowSnapshot:
    """Raw fields copied out of a flow, decoded later off the proxy loop."""
    method: str
    raw_path: str
    request_headers: dict
    request_content: Optional[bytes]
    status_code: int
    reason: Optional[str]
    response_headers: dict
    response_content: Optional[bytes]

    def to_request(self) -> DocRequest:
        content_type = self.request_headers.get("content-type", "").lower()
        path, query = split_query(self.raw_path)

        files = {}
        if "multipart/form-data" in content_type and self.request_content:
            body, files = parse_multipart(self.request_headers["content-type"], self.request_content)
        else:
            body = parse_body(content_type, self.request_content)

        return DocRequest(
            method=self.method,
            path=path,
            headers=self.request_headers,
            query=query,
            body=body,
            files=files,
        )

    def to_response(self) -> DocResponse:
        content_type = self.response_headers.get("content-type", "").lower()
        return DocResponse(
            status_code=self.status_code,
            status_message=self.reason or None,
            headers=self.response_headers,
            body=parse_body(content_type, self.response_content),
        )

    def to_exchange(self) -> tuple[DocRequest, DocResponse]:
        return self.to_request(), self.to_response()


def snapshot_flow(flow: http.HTTPFlow) -> FlowSnapshot:
    """Copy what recording needs from a completed flow without decoding bodies."""
    req, resp = flow.request, flow.response
    return FlowSnapshot(
        method=req.method,
        raw_path=req.path,
        request_headers=_headers(req.headers),
        request_content=req.content,
        status_code=resp.status_code,
        reason=resp.reason,
        response_headers=_headers(resp.headers),
        response_content=resp.content,
    )


def request_from_flow(flow: http.HTTPFlow) -> DocRequest:
    """Build a DocRequest from the request half of a flow."""
    return snapshot_flow(flow).to_request()


def response_from_flow(flow: http.HTTPFlow) -> DocResponse:
    """Build a DocResponse from the response half of a flow."""
    return snapshot_flow(flow).to_response()


class AutoDocAddon:
    """Mitmproxy addon that documents intercepted API traffic."""

    def __init__(
        self,
        autodoc: AutoDoc,
        domain_filter: Optional[str] = None,
        exclude_noise: bool = True,
    ):
        self.autodoc = autodoc
        self.domain_filter = domain_filter.lower() if domain_filter else None
        self.exclude_noise = exclude_noise

    def _wanted(self, flow: http.HTTPFlow) -> bool:
        host = urlparse(flow.request.pretty_url).netloc.lower()
        if self.domain_filter and self.domain_filter not in host:
            return False
        if self.exclude_noise and is_noise_domain(host.split(":", 1)[0]):
            return False
        return True

    def response(self, flow: http.HTTPFlow) -> None:
        """Called when a response is received."""
        if flow.response is None:
            return
        if not 200 <= flow.response.status_code < 300:
            return
        if not self._wanted(flow):
            return

        try:
            snapshot = snapshot_flow(flow)
        except Exception:
            log.exception(f"Failed to capture {flow.request.method} {flow.request.pretty_url}")
            return
        # Bodies are decoded by the recorder, off the proxy event loop
        self.autodoc.submit_deferred(snapshot.to_exchange, f"{snapshot.method} {snapshot.raw_path}")
