# ABOUTME: Tests for request/response body analysis
# ABOUTME: Validates content-type dispatch, multipart parsing and custom fallbacks

from autodoc_mcp.bodies import (
    analyze_request_body,
    analyze_response,
    analyze_response_body,
    parse_body,
    parse_multipart,
)
from autodoc_mcp.models import DocRequest, DocResponse, UploadedFile
from autodoc_mcp.schema import BINARY_PLACEHOLDER

BOUNDARY = "XyZboundary"


def make_multipart() -> bytes:
    return (
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="title"\r\n'
        "\r\n"
        "Holiday\r\n"
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="photo"; filename="beach.png"\r\n'
        "Content-Type: image/png\r\n"
        "\r\n"
        "PNGDATA\r\n"
        f"--{BOUNDARY}--\r\n"
    ).encode()


class TestParseBody:
    def test_json(self):
        assert parse_body("application/json", b'{"a": 1}') == {"a": 1}

    def test_invalid_json_stays_text(self):
        assert parse_body("application/json", b"{oops") == "{oops"

    def test_urlencoded(self):
        assert parse_body("application/x-www-form-urlencoded", b"a=1&b=2&b=3") == {"a": "1", "b": ["2", "3"]}

    def test_binary(self):
        assert parse_body("application/octet-stream", b"\xff\xfe\x00") == BINARY_PLACEHOLDER

    def test_empty(self):
        assert parse_body("application/json", b"") is None
        assert parse_body("application/json", None) is None


class TestParseMultipart:
    def test_fields_and_files(self):
        fields, files = parse_multipart(f"multipart/form-data; boundary={BOUNDARY}", make_multipart())
        assert fields == {"title": "Holiday"}
        assert isinstance(files["photo"], UploadedFile)
        assert files["photo"].filename == "beach.png"
        assert files["photo"].content_type == "image/png"
        assert files["photo"].size == len(b"PNGDATA")


class TestAnalyzeRequestBody:
    def test_json_body(self):
        request = DocRequest(
            method="POST", path="/orders",
            headers={"Content-Type": "application/json"},
            body={"id": 1, "total": 9.99},
        )
        info = analyze_request_body(request)
        assert info.kind == "json"
        assert info.schema["properties"]["total"]["type"] == "number"
        assert info.signature == "id:number|total:number"

    def test_no_body(self):
        request = DocRequest(method="GET", path="/orders")
        assert analyze_request_body(request) is None

    def test_dict_without_content_type_is_json(self):
        request = DocRequest(method="POST", path="/orders", body={"a": 1})
        assert analyze_request_body(request).kind == "json"

    def test_urlencoded(self):
        request = DocRequest(
            method="POST", path="/login",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body={"user": "alice", "password": "x"},
        )
        info = analyze_request_body(request)
        assert info.kind == "urlencoded"
        assert info.schema["required"] == ["user", "password"]

    def test_multipart(self):
        request = DocRequest(
            method="POST", path="/photos",
            headers={"content-type": f"multipart/form-data; boundary={BOUNDARY}"},
            body={"title": "Holiday"},
            files={"photo": UploadedFile(filename="beach.png", content_type="image/png", size=7)},
        )
        info = analyze_request_body(request)
        assert info.kind == "formData"
        assert info.schema["properties"]["photo"]["format"] == "binary"
        assert info.schema["properties"]["title"]["type"] == "string"
        assert info.encoding == {"photo": {"contentType": "image/png"}}
        assert info.example["photo"] == ["[File: beach.png]"]

    def test_multipart_scalar_field_types(self):
        request = DocRequest(
            method="POST", path="/photos",
            headers={"content-type": "multipart/form-data"},
            body={"count": 3, "public": True, "tags": ["a", "b"]},
        )
        properties = analyze_request_body(request).schema["properties"]
        assert properties["count"]["type"] == "integer"
        assert properties["public"]["type"] == "boolean"
        assert properties["tags"]["type"] == "array"
        assert properties["tags"]["items"] == {"type": "string"}

    def test_multipart_multiple_files(self):
        request = DocRequest(
            method="POST", path="/photos",
            headers={"content-type": "multipart/form-data"},
            files={"photos": [UploadedFile(filename="a.png"), UploadedFile(filename="b.png")]},
        )
        info = analyze_request_body(request)
        prop = info.schema["properties"]["photos"]
        assert prop["type"] == "array"
        assert prop["maxItems"] == 2

    def test_xml(self):
        request = DocRequest(
            method="POST", path="/feed",
            headers={"content-type": "application/xml"},
            body="<a/>",
        )
        info = analyze_request_body(request)
        assert info.kind == "custom"
        assert info.custom_kind == "xml"
        assert info.signature == "xml"

    def test_unknown_content_type(self):
        request = DocRequest(
            method="POST", path="/events",
            headers={"content-type": "application/vnd.acme+cbor"},
            body="....",
        )
        info = analyze_request_body(request)
        assert info.kind == "custom"
        assert info.signature == "application/vnd.acme+cbor"


class TestAnalyzeResponse:
    def test_json_response(self):
        body = analyze_response_body("application/json", {"id": 1})
        assert body.kind == "json"
        assert body.signature == "id:number"

    def test_raw_json_bytes_are_parsed(self):
        body = analyze_response_body("application/json; charset=utf-8", b'{"id": 1}')
        assert body.kind == "json"
        assert body.schema["properties"]["id"]["type"] == "integer"

    def test_decoded_json_string_not_decoded_again(self):
        numeric = analyze_response_body("application/json", parse_body("application/json", b'"123"'))
        assert numeric.kind == "json"
        assert numeric.schema == {"type": "string"}

        word = analyze_response_body("application/json", parse_body("application/json", b'"hello"'))
        assert word.kind == "json"
        assert word.example == "hello"

    def test_text(self):
        body = analyze_response_body("text/html", "<p>hi</p>")
        assert body.kind == "text"
        assert body.content_type == "text/html"

    def test_binary(self):
        body = analyze_response_body("application/pdf", BINARY_PLACEHOLDER)
        assert body.kind == "binary"
        assert body.custom_kind == "pdf"

    def test_custom(self):
        body = analyze_response_body("application/vnd.acme", "x")
        assert body.kind == "custom"
        assert body.signature == "application/vnd.acme"

    def test_none(self):
        assert analyze_response_body("application/json", None) is None

    def test_headers_cookies_and_status(self):
        response = DocResponse(
            status_code=201,
            status_message="Created",
            headers={
                "Content-Type": "application/json",
                "Content-Length": "10",
                "X-Rate-Limit": "100",
                "Set-Cookie": "session=abc",
            },
            body={"id": 1},
        )
        info = analyze_response(response)
        assert info.status_code == 201
        assert info.status_message == "Created"
        assert "content-length" not in info.headers
        assert info.headers["x-rate-limit"] == "100"
        assert info.cookies == ["session=abc"]
        assert info.body.kind == "json"
