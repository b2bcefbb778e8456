# ABOUTME: HTML markup for the documentation viewer
# ABOUTME: Loads Swagger UI from a CDN and points it at the generated document

import html

SWAGGER_UI_VERSION = "5"

_VIEWER_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{title} - API Documentation</title>
    <link rel="stylesheet" href="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui.css">
    <style>
        body {{ margin: 0; background: #fafafa; }}
        .topbar {{ display: none; }}
    </style>
</head>
<body>
    <div id="swagger-ui"></div>
    <script src="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui-bundle.js" crossorigin></script>
    <script>
        window.onload = function () {{
            window.ui = SwaggerUIBundle({{
                url: "{spec_url}",
                dom_id: "#swagger-ui",
                deepLinking: true,
                docExpansion: "list",
            }});
        }};
    </script>
</body>
</html>
"""


def render_viewer(spec_url: str = "/docs/openapi.json", title: str = "API") -> str:
    """Render the viewer page that fetches the document from spec_url."""
    return _VIEWER_HTML.format(
        title=html.escape(title),
        spec_url=html.escape(spec_url, quote=True),
        version=SWAGGER_UI_VERSION,
    )
