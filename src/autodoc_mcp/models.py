# ABOUTME: Data records for observed exchanges and accumulated route knowledge
# ABOUTME: Dataclasses with dict round-tripping for JSON persistence

import dataclasses
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fold_headers(headers: Optional[dict]) -> dict[str, Any]:
    """Lower-case header names so lookups are case-insensitive."""
    if not headers:
        return {}
    return {str(k).lower(): v for k, v in dict(headers).items()}


def _known_fields(cls, data: dict) -> dict:
    names = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class UploadedFile:
    """A file part of a multipart request."""
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None


@dataclass
class DocRequest:
    """A completed request as delivered by a traffic source."""
    method: str
    path: str
    headers: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)
    body: Any = None
    params: dict = field(default_factory=dict)
    files: dict[str, Union[UploadedFile, list[UploadedFile]]] = field(default_factory=dict)

    def __post_init__(self):
        self.headers = _fold_headers(self.headers)
        self.query = dict(self.query or {})
        self.params = dict(self.params or {})
        self.files = dict(self.files or {})

    @property
    def content_type(self) -> str:
        return str(self.headers.get("content-type") or "")


@dataclass
class DocResponse:
    """The response paired with a DocRequest."""
    status_code: int
    headers: dict = field(default_factory=dict)
    body: Any = None
    status_message: Optional[str] = None

    def __post_init__(self):
        self.headers = _fold_headers(self.headers)

    @property
    def content_type(self) -> str:
        return str(self.headers.get("content-type") or "")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class AuthInfo:
    """Authentication scheme inferred from request headers."""
    kind: str  # bearer | basic | apiKey | custom
    header_name: Optional[str] = None
    scheme: Optional[str] = None
    cookies: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "AuthInfo":
        return cls(**_known_fields(cls, data))


@dataclass
class RequestBodyInfo:
    """Shape of a captured request body."""
    kind: str  # json | formData | urlencoded | custom
    signature: str
    schema: Optional[dict] = None
    example: Any = None
    custom_kind: Optional[str] = None
    fields: Optional[dict] = None
    encoding: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RequestBodyInfo":
        return cls(**_known_fields(cls, data))


@dataclass
class ResponseBody:
    """Shape of a captured response body."""
    kind: str  # json | text | binary | custom
    signature: str
    schema: Optional[dict] = None
    example: Any = None
    custom_kind: Optional[str] = None
    content_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ResponseBody":
        return cls(**_known_fields(cls, data))


@dataclass
class ResponseInfo:
    status_code: int
    status_message: Optional[str] = None
    headers: dict = field(default_factory=dict)
    cookies: list[str] = field(default_factory=list)
    redirects: list[str] = field(default_factory=list)
    body: Optional[ResponseBody] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ResponseInfo":
        values = _known_fields(cls, data)
        if values.get("body"):
            values["body"] = ResponseBody.from_dict(values["body"])
        else:
            values["body"] = None
        return cls(**values)


@dataclass
class RouteSpec:
    """Everything known about one (method, templated path) pair."""
    method: str
    path: str
    original_path: str
    response: ResponseInfo
    path_params: dict[str, Any] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    request_body: Optional[RequestBodyInfo] = None
    auth: Optional[AuthInfo] = None
    custom_headers: dict[str, Any] = field(default_factory=dict)
    first_seen: str = field(default_factory=utc_now)
    last_updated: str = field(default_factory=utc_now)
    last_accessed: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return route_key(self.method, self.path)

    @property
    def key_string(self) -> str:
        return f"{self.method.lower()}:{self.path}"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RouteSpec":
        """Rebuild a RouteSpec from its persisted form. Raises KeyError/TypeError on bad input."""
        values = _known_fields(cls, data)
        values["method"] = data["method"].upper()
        values["path"] = data["path"]
        values["response"] = ResponseInfo.from_dict(data["response"])
        if values.get("request_body"):
            values["request_body"] = RequestBodyInfo.from_dict(values["request_body"])
        if values.get("auth"):
            values["auth"] = AuthInfo.from_dict(values["auth"])
        values.setdefault("original_path", data["path"])
        return cls(**values)


def route_key(method: str, templated_path: str) -> tuple[str, str]:
    return (method.upper(), templated_path)
