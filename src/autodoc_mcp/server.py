# ABOUTME: MCP server that documents APIs from traffic intercepted by mitmproxy
# ABOUTME: Exposes tools to run the proxy, browse learned routes and fetch the OpenAPI document

import asyncio
import json
import logging
import time
from dataclasses import asdict
from threading import Thread
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .addon import AutoDocAddon
from .core import AutoDoc
from .docs_server import DocsServer
from .openapi import InvalidDocumentError

log = logging.getLogger(__name__)

# Global state for the proxy
_autodoc: Optional[AutoDoc] = None
_proxy_thread: Optional[Thread] = None
_proxy_master = None
_proxy_loop: Optional[asyncio.AbstractEventLoop] = None
_docs_server: Optional[DocsServer] = None


def get_autodoc() -> AutoDoc:
    """Engine shared by every tool, created from AUTODOC_* settings on first use."""
    global _autodoc
    if _autodoc is None:
        _autodoc = AutoDoc()
    return _autodoc


def _run_proxy_in_thread(
    listen_host: str,
    listen_port: int,
    domain_filter: Optional[str],
    exclude_noise: bool,
):
    """Run mitmproxy in a background thread."""
    global _proxy_master, _proxy_loop

    from mitmproxy import options
    from mitmproxy.tools.dump import DumpMaster

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _proxy_loop = loop

    async def run_master():
        global _proxy_master
        opts = options.Options(listen_host=listen_host, listen_port=listen_port)
        master = DumpMaster(opts, with_termlog=False, with_dumper=False)
        master.addons.add(AutoDocAddon(
            get_autodoc(),
            domain_filter=domain_filter,
            exclude_noise=exclude_noise,
        ))
        _proxy_master = master
        await master.run()

    try:
        loop.run_until_complete(run_master())
    except Exception:
        log.exception("Proxy stopped with an error")
    finally:
        _proxy_loop = None
        _proxy_master = None


# Create the MCP server
mcp = FastMCP("autodoc")


@mcp.tool()
def start_proxy(
    port: int = 8080,
    host: str = "0.0.0.0",
    domain_filter: Optional[str] = None,
    exclude_noise: bool = True,
) -> str:
    """
    Start the mitmproxy interception proxy and document the traffic it sees.

    Args:
        port: Port to listen on (default 8080)
        host: Host to bind to (default 0.0.0.0)
        domain_filter: Only document traffic matching this domain substring
        exclude_noise: Skip Google/gstatic/telemetry traffic (default True)

    Returns:
        Status message indicating success or failure
    """
    global _proxy_thread

    if _proxy_thread is not None and _proxy_thread.is_alive():
        return f"Proxy is already running on port {port}"

    get_autodoc().ensure_loaded()

    _proxy_thread = Thread(
        target=_run_proxy_in_thread,
        args=(host, port, domain_filter, exclude_noise),
        daemon=True,
    )
    _proxy_thread.start()

    # Give it a moment to start
    time.sleep(1)

    if _proxy_thread.is_alive():
        msg = f"Proxy started on {host}:{port}"
        if domain_filter:
            msg += f" (filtering for '{domain_filter}')"
        return msg
    else:
        return "Failed to start proxy - check if port is already in use"


@mcp.tool()
def stop_proxy() -> str:
    """
    Stop the running mitmproxy proxy.

    Returns:
        Status message
    """
    global _proxy_thread

    if _proxy_thread is None or not _proxy_thread.is_alive():
        return "Proxy is not running"

    if _proxy_master and _proxy_loop:
        # Schedule shutdown on the proxy's event loop
        _proxy_loop.call_soon_threadsafe(_proxy_master.shutdown)

    # Wait for thread to finish
    _proxy_thread.join(timeout=5)

    if _proxy_thread.is_alive():
        return "Proxy is taking too long to stop - it may still be shutting down"

    _proxy_thread = None
    get_autodoc().recorder.flush(timeout=5)
    return "Proxy stopped"


@mcp.tool()
def get_proxy_status() -> str:
    """
    Get the current status of the proxy and the documented routes.

    Returns:
        JSON string with status information
    """
    autodoc = get_autodoc()
    is_running = _proxy_thread is not None and _proxy_thread.is_alive()

    return json.dumps({
        "running": is_running,
        "documented_routes": len(autodoc.registry),
        "docs_dir": str(autodoc.store.docs_dir),
        "docs_server": _docs_server is not None and _docs_server.is_running,
    })


@mcp.tool()
def generate_openapi(title: Optional[str] = None) -> str:
    """
    Get the OpenAPI 3.0 document inferred from observed traffic.

    Includes every documented route with:
    - Path parameters detected from ID-like segments
    - Query parameters and custom headers
    - Request body schemas (for POST/PUT/PATCH)
    - Response schema for the last observed status code
    - Security schemes for bearer, basic and API-key auth

    Args:
        title: Override the document title

    Returns:
        OpenAPI 3.0 specification as JSON
    """
    autodoc = get_autodoc()
    autodoc.recorder.flush(timeout=5)

    try:
        document = autodoc.get_document()
    except InvalidDocumentError as e:
        return json.dumps({"error": f"Invalid OpenAPI specification generated: {e}"})

    if title:
        document["info"]["title"] = title
    return json.dumps(document, indent=2)


@mcp.tool()
def list_routes() -> str:
    """
    List documented routes.

    Returns:
        JSON array of routes with method, templated path and timestamps
    """
    autodoc = get_autodoc()
    autodoc.ensure_loaded()

    summaries = []
    for route in autodoc.registry.all():
        body = route.response.body
        summaries.append({
            "method": route.method,
            "path": route.path,
            "example": route.original_path,
            "status": route.response.status_code,
            "response": body.kind if body else None,
            "auth": route.auth.kind if route.auth else None,
            "last_updated": route.last_updated,
            "last_accessed": route.last_accessed,
        })

    return json.dumps(summaries, indent=2)


@mcp.tool()
def get_route(method: str, path: str) -> str:
    """
    Get everything learned about one route.

    Args:
        method: HTTP method, e.g. GET
        path: Templated path, e.g. /users/{id}

    Returns:
        JSON object with the full route spec
    """
    autodoc = get_autodoc()
    autodoc.ensure_loaded()

    route = autodoc.registry.get(method, path)
    if route is None:
        return json.dumps({"error": f"Route {method.upper()} {path} not found"})

    return json.dumps(asdict(route), indent=2, default=str)


@mcp.tool()
def clear_routes(delete_files: bool = False) -> str:
    """
    Forget all documented routes.

    Args:
        delete_files: Also delete the persisted spec files (default False)

    Returns:
        Confirmation message
    """
    count = get_autodoc().reset(clear_store=delete_files)
    suffix = " and deleted persisted specs" if delete_files else ""
    return f"Cleared {count} documented routes{suffix}"


@mcp.tool()
def start_docs_server(port: int = 8082) -> str:
    """
    Start a web server with an interactive viewer for the generated docs.

    Args:
        port: Port to serve on (default 8082)

    Returns:
        Status message with URL to access
    """
    global _docs_server

    if _docs_server is not None and _docs_server.is_running:
        return f"Docs server is already running on port {_docs_server.port}"

    _docs_server = DocsServer(get_autodoc(), port=port)
    try:
        _docs_server.start()
    except OSError as e:
        _docs_server = None
        return json.dumps({"error": f"Failed to start docs server: {e}"})

    return json.dumps({
        "status": "running",
        "port": port,
        "urls": {
            "viewer": f"http://localhost:{port}/",
            "openapi": f"http://localhost:{port}/openapi.json",
        },
    })


@mcp.tool()
def stop_docs_server() -> str:
    """
    Stop the documentation web server.

    Returns:
        Status message
    """
    global _docs_server

    if _docs_server is None or not _docs_server.is_running:
        return "Docs server is not running"

    _docs_server.stop()
    _docs_server = None
    return "Docs server stopped"


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
