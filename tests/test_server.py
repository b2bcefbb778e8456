# ABOUTME: Tests for the MCP tools that expose documented routes
# ABOUTME: Validates route listing, lookup, clearing and document generation

import json

import pytest
from autodoc_mcp import server
from autodoc_mcp.config import Settings
from autodoc_mcp.core import AutoDoc
from autodoc_mcp.models import DocRequest, DocResponse


@pytest.fixture
def autodoc(tmp_path, monkeypatch):
    engine = AutoDoc(settings=Settings(docs_dir=tmp_path / "docs"))
    monkeypatch.setattr(server, "_autodoc", engine)
    engine.record(
        DocRequest(method="GET", path="/users/42", headers={"authorization": "Bearer t"}),
        DocResponse(status_code=200, headers={"content-type": "application/json"}, body={"id": 42}),
    )
    yield engine
    engine.close()


class TestTools:
    def test_get_proxy_status(self, autodoc):
        status = json.loads(server.get_proxy_status())
        assert status["running"] is False
        assert status["documented_routes"] == 1
        assert status["docs_dir"] == str(autodoc.store.docs_dir)

    def test_list_routes(self, autodoc):
        routes = json.loads(server.list_routes())
        assert routes == [{
            "method": "GET",
            "path": "/users/{id}",
            "example": "/users/42",
            "status": 200,
            "response": "json",
            "auth": "bearer",
            "last_updated": routes[0]["last_updated"],
            "last_accessed": routes[0]["last_accessed"],
        }]

    def test_get_route(self, autodoc):
        route = json.loads(server.get_route("get", "/users/{id}"))
        assert route["path_params"] == {"id": "42"}
        assert route["auth"]["kind"] == "bearer"

    def test_get_route_not_found(self, autodoc):
        result = json.loads(server.get_route("GET", "/missing"))
        assert "not found" in result["error"]

    def test_generate_openapi(self, autodoc):
        document = json.loads(server.generate_openapi(title="Frames"))
        assert document["info"]["title"] == "Frames"
        assert "/users/{id}" in document["paths"]
        assert "BearerAuth" in document["components"]["securitySchemes"]

    def test_clear_routes(self, autodoc):
        assert server.clear_routes() == "Cleared 1 documented routes"
        assert len(autodoc.registry) == 0
        assert len(autodoc.store) == 1

    def test_clear_routes_deletes_files(self, autodoc):
        result = server.clear_routes(delete_files=True)
        assert result == "Cleared 1 documented routes and deleted persisted specs"
        assert len(autodoc.store) == 0

    def test_stop_proxy_when_not_running(self, autodoc):
        assert server.stop_proxy() == "Proxy is not running"

    def test_stop_docs_server_when_not_running(self, autodoc):
        assert server.stop_docs_server() == "Docs server is not running"
