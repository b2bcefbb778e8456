# ABOUTME: OpenAPI 3.0 document assembly from accumulated route specs
# ABOUTME: Builds paths, parameters, bodies, responses, security schemes and tags

from typing import Any, Iterable, Optional

from .auth import sanitize_name
from .config import DEFAULT_DESCRIPTION, ApiMeta
from .models import AuthInfo, RequestBodyInfo, ResponseInfo, RouteSpec
from .paths import path_tag, template_names
from .schema import infer_json_schema, to_json_value

OPENAPI_VERSION = "3.0.0"

# Methods whose operations may carry a request body
BODY_METHODS = ("post", "put", "patch")

_STATUS_DESCRIPTIONS = {
    "200": "Success",
    "201": "Created",
    "202": "Accepted",
    "204": "No Content",
    "206": "Partial Content",
}


class InvalidDocumentError(ValueError):
    """The assembled document is missing required OpenAPI fields."""


def status_description(status_code: str) -> str:
    return _STATUS_DESCRIPTIONS.get(status_code, "Response")


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _parameters(route: RouteSpec) -> list[dict]:
    params = []

    names = template_names(route.path)
    for name, value in route.path_params.items():
        if name not in names:
            continue
        params.append({
            "name": name,
            "in": "path",
            "required": True,
            "schema": {"type": "string"},
            "description": f"Path parameter: {name}",
            "example": value,
        })

    for name, value in route.query_params.items():
        params.append({
            "name": name,
            "in": "query",
            "required": False,
            "schema": infer_json_schema(value),
            "description": f"Query parameter: {name}",
            "example": value,
        })

    for name, value in route.custom_headers.items():
        params.append({
            "name": name,
            "in": "header",
            "required": False,
            "schema": {"type": "string"},
            "description": f"Custom header: {name}",
            "example": _first(value),
        })

    return params


def _request_body(body: RequestBodyInfo) -> Optional[dict]:
    schema = body.schema or {"type": "object"}

    if body.kind == "json":
        content = {"application/json": {"schema": schema, "example": body.example}}
    elif body.kind == "formData":
        media: dict[str, Any] = {"schema": schema}
        if body.encoding:
            media["encoding"] = body.encoding
        content = {"multipart/form-data": media}
    elif body.kind == "urlencoded":
        content = {"application/x-www-form-urlencoded": {"schema": schema, "example": body.example}}
    else:
        return None

    return {"required": True, "content": content}


def _response(response: ResponseInfo) -> tuple[str, dict]:
    status = str(response.status_code or 200)
    result: dict[str, Any] = {
        "description": response.status_message or status_description(status),
    }

    if response.headers:
        result["headers"] = {
            name: {
                "schema": {"type": "string"},
                "description": f"Response header: {name}",
                "example": _first(value),
            }
            for name, value in response.headers.items()
        }

    body = response.body
    if body is not None:
        if body.kind == "json":
            result["content"] = {
                "application/json": {
                    "schema": body.schema or {"type": "object"},
                    "example": body.example,
                },
            }
        elif body.kind == "binary":
            result["content"] = {
                body.content_type or "application/octet-stream": {
                    "schema": {"type": "string", "format": "binary"},
                },
            }
        else:
            result["content"] = {
                body.content_type or "text/plain": {
                    "schema": {"type": "string"},
                    "example": body.example,
                },
            }

    return status, result


def _security_scheme(auth: AuthInfo) -> Optional[tuple[str, dict]]:
    """Name and definition of the security scheme for an auth kind."""
    if auth.kind == "bearer":
        return "BearerAuth", {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT Bearer token authentication",
        }
    if auth.kind == "basic":
        return "BasicAuth", {
            "type": "http",
            "scheme": "basic",
            "description": "Basic HTTP authentication",
        }
    if auth.kind == "apiKey" and auth.header_name:
        return f"ApiKey_{sanitize_name(auth.header_name)}", {
            "type": "apiKey",
            "in": "header",
            "name": auth.header_name,
            "description": f"API Key authentication via {auth.header_name} header",
        }
    return None


def _empty_paths() -> dict:
    return {
        "/": {
            "get": {
                "summary": "No routes documented yet",
                "description": "Make API calls to auto-generate documentation",
                "parameters": [],
                "responses": {"200": {"description": "Success"}},
                "tags": ["default"],
            },
        },
    }


def generate_openapi_spec(
    routes: Iterable[RouteSpec],
    meta: Optional[ApiMeta] = None,
) -> dict:
    """
    Generate an OpenAPI 3.0 document from a snapshot of route specs.

    Args:
        routes: Route specs to document, typically RouteSpecRegistry.all()
        meta: Title, version and description for the info block

    Returns:
        OpenAPI 3.0 document as a dictionary
    """
    meta = meta or ApiMeta()
    description = DEFAULT_DESCRIPTION
    if meta.description:
        description = f"{description}\n{meta.description}"

    security_schemes: dict[str, dict] = {}
    spec: dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": meta.title,
            "version": meta.version,
            "description": description,
        },
        "servers": [{"url": "/", "description": "Current server"}],
        "paths": {},
        "components": {
            "securitySchemes": security_schemes,
            "schemas": {},
        },
    }

    # Group by path, then by method
    grouped: dict[str, dict[str, RouteSpec]] = {}
    for route in routes:
        path = route.path if route.path.startswith('/') else f"/{route.path}"
        grouped.setdefault(path, {})[route.method.lower()] = route

    if not grouped:
        spec["paths"] = _empty_paths()
        spec["tags"] = [{"name": "default"}]
        return spec

    tags: set[str] = set()
    for path in sorted(grouped):
        operations = {}
        for method in sorted(grouped[path]):
            route = grouped[path][method]
            tag = path_tag(path)
            tags.add(tag)

            operation: dict[str, Any] = {
                "summary": f"{method.upper()} {path}",
                "description": f"Auto-generated documentation for {method.upper()} {path}",
                "parameters": _parameters(route),
                "responses": {},
                "tags": [tag],
            }

            if method in BODY_METHODS and route.request_body is not None:
                request_body = _request_body(route.request_body)
                if request_body is not None:
                    operation["requestBody"] = request_body

            if route.auth is not None:
                scheme = _security_scheme(route.auth)
                if scheme is not None:
                    name, definition = scheme
                    # First definition wins, later routes reuse it by name
                    security_schemes.setdefault(name, definition)
                    operation["security"] = [{name: []}]

            if route.response is not None:
                status, response = _response(route.response)
                operation["responses"][status] = response
            else:
                operation["responses"]["200"] = {"description": "Default response"}

            operations[method] = operation
        spec["paths"][path] = operations

    spec["tags"] = [{"name": tag} for tag in sorted(tags)]
    return to_json_value(spec)


def validate_document(document: dict) -> dict:
    """
    Check the top-level invariants of an assembled document.

    Raises:
        InvalidDocumentError: if openapi, info (title/version) or paths are missing
    """
    if not isinstance(document, dict):
        raise InvalidDocumentError("OpenAPI document must be a mapping")
    if not document.get("openapi"):
        raise InvalidDocumentError("OpenAPI document is missing the 'openapi' version")
    info = document.get("info")
    if not isinstance(info, dict) or not info.get("title") or not info.get("version"):
        raise InvalidDocumentError("OpenAPI document is missing info.title or info.version")
    if not document.get("paths"):
        raise InvalidDocumentError("OpenAPI document has no paths")
    return document
