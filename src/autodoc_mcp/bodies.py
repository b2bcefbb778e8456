# ABOUTME: Request and response body analysis by content type
# ABOUTME: Produces body descriptors with schema, example and shape signature

import json
from email.parser import BytesParser
from email.policy import HTTP
from typing import Any, Optional, Union
from urllib.parse import parse_qs

from .models import (
    DocRequest,
    DocResponse,
    RequestBodyInfo,
    ResponseBody,
    ResponseInfo,
    UploadedFile,
)
from .schema import (
    BINARY_PLACEHOLDER,
    infer_json_schema,
    infer_sample,
    schema_signature,
    to_json_value,
)

_STANDARD_RESPONSE_HEADERS = {
    "content-length", "date", "connection", "keep-alive",
    "transfer-encoding", "server", "x-powered-by", "set-cookie",
}

_BINARY_RESPONSE_TYPES = ("application/octet-stream", "application/pdf", "image/", "audio/", "video/")


def decode_text(content: Optional[bytes]) -> Optional[str]:
    """Decode bytes as UTF-8, or return None for binary content."""
    if content is None:
        return None
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return None


def parse_body(content_type: str, content: Optional[bytes]) -> Any:
    """
    Turn a raw body into a value the analyzers understand.

    JSON is decoded, url-encoded forms become a dict, anything else textual
    stays a string. Binary content becomes a placeholder.
    """
    if not content:
        return None

    text = decode_text(content)
    if text is None:
        return BINARY_PLACEHOLDER

    if "json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    if "application/x-www-form-urlencoded" in content_type:
        form = parse_qs(text, keep_blank_values=True)
        return {k: v[0] if len(v) == 1 else v for k, v in form.items()}
    return text


def parse_multipart(
    content_type: str,
    content: bytes,
) -> tuple[dict[str, Any], dict[str, Union[UploadedFile, list[UploadedFile]]]]:
    """
    Split a multipart/form-data body into plain fields and uploaded files.

    Returns:
        (fields, files) where files maps field names to UploadedFile, or to a
        list when the same field carried several files
    """
    header = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1")
    message = BytesParser(policy=HTTP).parsebytes(header + content)

    fields: dict[str, Any] = {}
    files: dict[str, Union[UploadedFile, list[UploadedFile]]] = {}
    if not message.is_multipart():
        return fields, files

    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is None:
            fields[name] = decode_text(payload) or BINARY_PLACEHOLDER
            continue

        upload = UploadedFile(
            filename=filename,
            content_type=part.get_content_type(),
            size=len(payload),
        )
        existing = files.get(name)
        if existing is None:
            files[name] = upload
        elif isinstance(existing, list):
            existing.append(upload)
        else:
            files[name] = [existing, upload]

    return fields, files


def _form_fields(body: Any, files: dict) -> dict[str, dict]:
    fields: dict[str, dict] = {}

    if isinstance(body, dict):
        for key, value in body.items():
            schema = infer_json_schema(value)
            fields[key] = {
                "type": schema["type"],
                "required": True,
                "description": f"Form field: {key}",
                "example": to_json_value(value),
            }
            if "items" in schema:
                fields[key]["items"] = schema["items"]

    for key, upload in files.items():
        if isinstance(upload, list):
            fields[key] = {
                "type": "array",
                "items": {"type": "string", "format": "binary"},
                "required": True,
                "description": f"Multiple file upload field: {key}",
                "maxItems": len(upload),
            }
            continue
        field_spec = {
            "type": "string",
            "format": "binary",
            "required": True,
            "description": f"File upload field: {key}",
        }
        if upload.content_type:
            field_spec["contentMediaType"] = upload.content_type
        if upload.size:
            field_spec["x-max-size"] = upload.size
        if upload.filename:
            field_spec["x-original-name"] = upload.filename
        fields[key] = field_spec

    return fields


def multipart_schema(fields: dict[str, dict]) -> dict:
    """Build an object schema for multipart fields, file parts as binary strings."""
    properties = {}
    required = []

    for name, spec in fields.items():
        if spec.get("format") == "binary":
            prop = {"type": "string", "format": "binary", "description": spec["description"]}
            if spec.get("contentMediaType"):
                prop["contentMediaType"] = spec["contentMediaType"]
        elif spec.get("type") == "array" and spec.get("items", {}).get("format") == "binary":
            prop = {
                "type": "array",
                "items": {"type": "string", "format": "binary"},
                "description": spec["description"],
                "maxItems": spec["maxItems"],
            }
        else:
            prop = {"type": spec.get("type", "string"), "description": spec["description"]}
            if spec.get("items"):
                prop["items"] = spec["items"]
            if spec.get("example") is not None:
                prop["example"] = spec["example"]
        properties[name] = prop
        if spec.get("required"):
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def multipart_encoding(fields: dict[str, dict]) -> Optional[dict]:
    encoding = {}
    for name, spec in fields.items():
        is_file = spec.get("format") == "binary" or spec.get("items", {}).get("format") == "binary"
        if is_file:
            encoding[name] = {"contentType": spec.get("contentMediaType") or "application/octet-stream"}
    return encoding or None


def _files_example(files: dict) -> dict:
    example = {}
    for key, upload in files.items():
        uploads = upload if isinstance(upload, list) else [upload]
        example[key] = [f"[File: {u.filename or 'uploaded_file'}]" for u in uploads]
    return example


def analyze_request_body(request: DocRequest) -> Optional[RequestBodyInfo]:
    """
    Describe the request body according to its content type.

    Unknown content types still produce a body descriptor, of kind custom,
    whose signature is the content type itself.
    """
    content_type = request.content_type.lower()
    body = request.body

    if "multipart/form-data" in content_type:
        if body is None and not request.files:
            return None
        fields = _form_fields(body, request.files)
        example = dict(body) if isinstance(body, dict) else {}
        example.update(_files_example(request.files))
        signature_source = dict(body) if isinstance(body, dict) else {}
        signature_source["files"] = sorted(request.files)
        return RequestBodyInfo(
            kind="formData",
            schema=multipart_schema(fields),
            example=to_json_value(example),
            signature=schema_signature(signature_source),
            fields=fields,
            encoding=multipart_encoding(fields),
        )

    if body is None or body == "" or body == b"":
        return None

    if "application/json" in content_type or (not content_type and isinstance(body, (dict, list))):
        return RequestBodyInfo(
            kind="json",
            schema=infer_json_schema(body),
            example=infer_sample(body),
            signature=schema_signature(body),
        )
    if "application/x-www-form-urlencoded" in content_type:
        return RequestBodyInfo(
            kind="urlencoded",
            schema=infer_json_schema(body),
            example=infer_sample(body),
            signature=schema_signature(body),
        )
    if "application/xml" in content_type or "text/xml" in content_type:
        return RequestBodyInfo(
            kind="custom",
            custom_kind="xml",
            schema={"type": "string", "format": "xml"},
            example=to_json_value(body),
            signature="xml",
        )
    if "text/plain" in content_type:
        return RequestBodyInfo(
            kind="custom",
            custom_kind="text",
            schema={"type": "string"},
            example=to_json_value(body),
            signature="text",
        )
    if "application/octet-stream" in content_type:
        return RequestBodyInfo(
            kind="custom",
            custom_kind="binary",
            schema={"type": "string", "format": "binary"},
            example=BINARY_PLACEHOLDER,
            signature="binary",
        )

    return RequestBodyInfo(
        kind="custom",
        custom_kind=content_type or "unknown",
        schema={"type": "string"},
        example=to_json_value(body),
        signature=content_type or "unknown",
    )


def analyze_response_body(content_type: str, body: Any) -> Optional[ResponseBody]:
    """Describe a response body according to its content type."""
    if body is None:
        return None
    content_type = content_type.lower()
    media_type = content_type.split(";", 1)[0].strip() or None

    if "json" in content_type or isinstance(body, (dict, list)):
        # Strings are already-decoded JSON values, only raw bytes still need parsing
        if isinstance(body, (bytes, bytearray)):
            try:
                body = json.loads(body)
            except ValueError:
                return ResponseBody(kind="text", example=to_json_value(body), signature="text",
                                    content_type=media_type)
        return ResponseBody(
            kind="json",
            schema=infer_json_schema(body),
            example=infer_sample(body),
            signature=schema_signature(body),
            content_type="application/json",
        )
    if "application/xml" in content_type or "text/xml" in content_type:
        return ResponseBody(kind="custom", custom_kind="xml", example=to_json_value(body),
                            signature="xml", content_type=media_type)
    if content_type.startswith(_BINARY_RESPONSE_TYPES):
        return ResponseBody(kind="binary", custom_kind=content_type.split("/", 1)[1].split(";")[0],
                            example=BINARY_PLACEHOLDER, signature="binary", content_type=media_type)
    if content_type.startswith("text/") or not content_type:
        return ResponseBody(kind="text", example=to_json_value(body), signature="text",
                            content_type=media_type or "text/plain")

    return ResponseBody(
        kind="custom",
        custom_kind=content_type,
        example=to_json_value(body),
        signature=content_type,
        content_type=media_type,
    )


def analyze_response(response: DocResponse) -> ResponseInfo:
    """Capture status, notable headers, cookies and body shape of a response."""
    headers = {}
    for name, value in response.headers.items():
        if name not in _STANDARD_RESPONSE_HEADERS:
            headers[name] = value

    cookies = response.headers.get("set-cookie") or []
    if not isinstance(cookies, list):
        cookies = [cookies]

    redirects = []
    if 300 <= response.status_code < 400 and response.headers.get("location"):
        redirects.append(response.headers["location"])

    return ResponseInfo(
        status_code=response.status_code,
        status_message=response.status_message or None,
        headers=to_json_value(headers),
        cookies=[str(c) for c in cookies],
        redirects=redirects,
        body=analyze_response_body(response.content_type, response.body),
    )
