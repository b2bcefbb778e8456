# ABOUTME: Tests for path templating and parameter extraction
# ABOUTME: Validates ID detection, idempotence and query splitting

import pytest
from autodoc_mcp.paths import extract_params, normalize_path, path_tag, split_query, template_names


class TestNormalizePath:
    def test_numeric_id(self):
        assert normalize_path("/users/42") == "/users/{id}"

    def test_object_id(self):
        assert normalize_path("/orders/507f1f77bcf86cd799439011/items") == "/orders/{id}/items"

    def test_uuid(self):
        result = normalize_path("/files/550e8400-e29b-41d4-a716-446655440000")
        assert result == "/files/{id}"

    def test_uppercase_uuid(self):
        result = normalize_path("/files/550E8400-E29B-41D4-A716-446655440000")
        assert result == "/files/{id}"

    def test_multiple_ids(self):
        assert normalize_path("/users/123/posts/456") == "/users/{id}/posts/{id}"

    def test_strips_query_string(self):
        assert normalize_path("/users/42?expand=true&page=2") == "/users/{id}"

    def test_preserves_static_segments(self):
        assert normalize_path("/api/v1/photos") == "/api/v1/photos"

    def test_mixed_segment_not_id(self):
        assert normalize_path("/items/abc123") == "/items/abc123"

    def test_short_hex_not_id(self):
        assert normalize_path("/colors/deadbeef") == "/colors/deadbeef"

    def test_root(self):
        assert normalize_path("/") == "/"

    @pytest.mark.parametrize("path", [
        "/users/42",
        "/users/42/posts/7?x=1",
        "/a/507f1f77bcf86cd799439011",
        "/files/550e8400-e29b-41d4-a716-446655440000/versions/3",
        "/api/v2/search",
        "/",
        "",
    ])
    def test_idempotent(self, path):
        once = normalize_path(path)
        assert normalize_path(once) == once


class TestExtractParams:
    def test_binds_value(self):
        assert extract_params("/users/42", "/users/{id}") == {"id": "42"}

    def test_repeated_name_keeps_last(self):
        params = extract_params("/users/42/posts/7", "/users/{id}/posts/{id}")
        assert params == {"id": "7"}

    def test_truncated_concrete_path(self):
        params = extract_params("/users", "/users/{id}")
        assert params == {}

    def test_ignores_query_string(self):
        assert extract_params("/users/42?x=1", "/users/{id}") == {"id": "42"}

    def test_no_template_segments(self):
        assert extract_params("/health", "/health") == {}


class TestSplitQuery:
    def test_single_values(self):
        path, query = split_query("/photos?page=1&limit=20")
        assert path == "/photos"
        assert query == {"page": "1", "limit": "20"}

    def test_repeated_key_becomes_list(self):
        _, query = split_query("/photos?tag=a&tag=b")
        assert query == {"tag": ["a", "b"]}

    def test_no_query(self):
        assert split_query("/photos") == ("/photos", {})

    def test_blank_value_kept(self):
        _, query = split_query("/search?q=")
        assert query == {"q": ""}


class TestPathTag:
    def test_first_static_segment(self):
        assert path_tag("/users/{id}/posts") == "users"

    def test_leading_parameter_skipped(self):
        assert path_tag("/{id}/details") == "details"

    def test_default(self):
        assert path_tag("/") == "default"
        assert path_tag("/{id}") == "default"


class TestTemplateNames:
    def test_collects_variables(self):
        assert template_names("/users/{id}/posts/{slug}") == {"id", "slug"}

    def test_static_path(self):
        assert template_names("/health") == set()
