# ABOUTME: Authentication scheme classification from request headers
# ABOUTME: Also separates custom request headers from standard ones

from typing import Any, Optional

from .models import AuthInfo

# Checked in order, first present header wins
API_KEY_HEADERS = [
    "x-api-key",
    "api-key",
    "x-auth-token",
    "x-access-token",
    "x-client-id",
    "x-app-key",
    "x-secret-key",
]

_CUSTOM_AUTH_PREFIXES = ("x-auth-", "x-token-", "x-jwt-")

STANDARD_HEADERS = {
    "host", "user-agent", "accept", "accept-encoding", "accept-language",
    "cache-control", "connection", "content-length", "content-type",
    "cookie", "origin", "referer", "upgrade-insecure-requests", "postman-token",
    "if-none-match", "if-modified-since", "pragma", "expires",
    "last-modified", "etag", "server", "date", "vary", "authorization",
    "te", "keep-alive", "transfer-encoding", "proxy-connection",
}

_IGNORED_PREFIXES = ("sec-", "cf-", "x-forwarded-", "x-real-ip")


def _header(headers: dict, name: str) -> Optional[str]:
    value = headers.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return str(value) if value else None


def classify_auth(headers: dict) -> Optional[AuthInfo]:
    """
    Infer the authentication scheme of a request.

    A Bearer or Basic Authorization header takes priority. An API-key header
    is used when Authorization is absent or carries some other scheme. When
    neither applies, an x-auth-/x-token-/x-jwt- header marks a custom scheme.

    Args:
        headers: Request headers with lower-case names

    Returns:
        AuthInfo, or None when the request carries no credentials
    """
    auth: Optional[AuthInfo] = None

    authorization = _header(headers, "authorization")
    if authorization:
        if authorization.startswith("Bearer "):
            auth = AuthInfo(kind="bearer")
        elif authorization.startswith("Basic "):
            auth = AuthInfo(kind="basic")
        else:
            auth = AuthInfo(
                kind="custom",
                header_name="Authorization",
                scheme=authorization.split(" ", 1)[0],
            )

    if auth is None or auth.kind == "custom":
        for name in API_KEY_HEADERS:
            if _header(headers, name):
                auth = AuthInfo(kind="apiKey", header_name=name)
                break

    if auth is None:
        for name in sorted(headers):
            if name.startswith(_CUSTOM_AUTH_PREFIXES) and _header(headers, name):
                auth = AuthInfo(kind="custom", header_name=name)
                break

    if auth is not None and _header(headers, "cookie"):
        auth.cookies = True

    return auth


def extract_custom_headers(headers: dict) -> dict[str, Any]:
    """Keep only the non-standard request headers worth documenting."""
    custom = {}
    for name, value in headers.items():
        lower = name.lower()
        if lower in STANDARD_HEADERS or lower in API_KEY_HEADERS:
            continue
        if lower.startswith(_IGNORED_PREFIXES) or value is None:
            continue
        custom[lower] = value
    return custom


def sanitize_name(name: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return "".join(c if c.isascii() and c.isalnum() else "_" for c in name)
