# ABOUTME: Tests for authentication scheme classification
# ABOUTME: Validates Authorization/API-key precedence and custom header extraction

from autodoc_mcp.auth import classify_auth, extract_custom_headers, sanitize_name


class TestClassifyAuth:
    def test_no_credentials(self):
        assert classify_auth({"accept": "application/json"}) is None

    def test_bearer(self):
        auth = classify_auth({"authorization": "Bearer abc.def.ghi"})
        assert auth.kind == "bearer"
        assert auth.header_name is None

    def test_basic(self):
        auth = classify_auth({"authorization": "Basic dXNlcjpwYXNz"})
        assert auth.kind == "basic"

    def test_custom_scheme(self):
        auth = classify_auth({"authorization": "Token abc123"})
        assert auth.kind == "custom"
        assert auth.scheme == "Token"
        assert auth.header_name == "Authorization"

    def test_api_key(self):
        auth = classify_auth({"x-api-key": "abc"})
        assert auth.kind == "apiKey"
        assert auth.header_name == "x-api-key"

    def test_first_api_key_header_wins(self):
        auth = classify_auth({"x-client-id": "c", "api-key": "k"})
        assert auth.header_name == "api-key"

    def test_bearer_beats_api_key(self):
        auth = classify_auth({"authorization": "Bearer t", "x-api-key": "abc"})
        assert auth.kind == "bearer"

    def test_api_key_beats_custom_authorization(self):
        auth = classify_auth({"authorization": "Token t", "x-api-key": "abc"})
        assert auth.kind == "apiKey"
        assert auth.header_name == "x-api-key"

    def test_prefixed_custom_header(self):
        auth = classify_auth({"x-jwt-assertion": "eyJ..."})
        assert auth.kind == "custom"
        assert auth.header_name == "x-jwt-assertion"

    def test_cookie_flag(self):
        auth = classify_auth({"authorization": "Bearer t", "cookie": "session=1"})
        assert auth.cookies is True

    def test_cookie_alone_is_not_auth(self):
        assert classify_auth({"cookie": "session=1"}) is None

    def test_empty_header_ignored(self):
        assert classify_auth({"x-api-key": ""}) is None


class TestExtractCustomHeaders:
    def test_drops_standard_headers(self):
        headers = {
            "host": "example.com",
            "user-agent": "curl",
            "content-type": "application/json",
            "x-request-id": "r-1",
        }
        assert extract_custom_headers(headers) == {"x-request-id": "r-1"}

    def test_drops_proxy_and_fetch_headers(self):
        headers = {
            "sec-fetch-mode": "cors",
            "cf-ray": "abc",
            "x-forwarded-for": "1.2.3.4",
            "x-real-ip": "1.2.3.4",
            "x-tenant": "acme",
        }
        assert extract_custom_headers(headers) == {"x-tenant": "acme"}

    def test_drops_auth_headers(self):
        headers = {"authorization": "Bearer t", "x-api-key": "k", "x-tenant": "acme"}
        assert extract_custom_headers(headers) == {"x-tenant": "acme"}


class TestSanitizeName:
    def test_replaces_non_alphanumerics(self):
        assert sanitize_name("x-api-key") == "x_api_key"
        assert sanitize_name("get:/users/{id}") == "get__users__id_"
