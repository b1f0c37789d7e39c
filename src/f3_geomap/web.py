"""
f3-geomap web server — level views over HTTP.

The navigation state lives in the client's query string (``?org=<id>`` or
``?level=<n>``), so the server keeps one read-only session and no per-user
state.

Routes:
    GET  /api/status          health check, load state
    GET  /api/level           level view JSON for the query-string state
    POST /api/navigate        apply a navigation action, return the new view
    GET  /api/render.png      the level view drawn as PNG
    GET  /api/org/{org_id}    summary of one organization

If the initial load failed, every data route answers 503.

Usage:
    python -m f3_geomap.web [--port 8767] [--host 0.0.0.0]
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from aiohttp import web

from .config import Settings
from .navigation import message_from_dict
from .renderer import MapRenderer
from .session import Session, load_session

logger = logging.getLogger(__name__)

SESSION_KEY = web.AppKey("session", Session)
SETTINGS_KEY = web.AppKey("settings", Settings)
LOAD_ERROR_KEY = web.AppKey("load_error", str)


def _session(request: web.Request) -> Optional[Session]:
    return request.app.get(SESSION_KEY)


def _unavailable() -> web.Response:
    return web.json_response({"error": "Failed to load data."}, status=503)


# =============================================================================
# HTTP Handlers
# =============================================================================

async def handle_status(request):
    """Health check endpoint."""
    session = _session(request)
    return web.json_response({
        "status": "ok" if session is not None else "failed",
        "service": "f3-geomap",
        "orgs": len(session.hierarchy) if session is not None else 0,
        "error": request.app.get(LOAD_ERROR_KEY),
        "timestamp": datetime.now().isoformat(),
    })


async def handle_level(request):
    """Level view for the state in the query string."""
    session = _session(request)
    if session is None:
        return _unavailable()

    state = session.navigation.from_query(request.query_string)
    view = session.level_view(state)
    payload = view.to_dict()
    if state.level_index == 0:
        payload["nation"] = session.nation_summary()
    return web.json_response(payload)


async def handle_navigate(request):
    """Apply one navigation action to the caller's state."""
    session = _session(request)
    if session is None:
        return _unavailable()

    try:
        data = await request.json()
    except ValueError:
        return web.json_response({"error": "Body must be JSON"}, status=400)
    if not isinstance(data, dict):
        return web.json_response({"error": "Body must be a JSON object"}, status=400)

    try:
        message = message_from_dict(session.hierarchy, data)
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)

    view = session.navigate(data.get("query", ""), message)
    return web.json_response(view.to_dict())


async def handle_render(request):
    """PNG of the level view for the query-string state."""
    session = _session(request)
    if session is None:
        return _unavailable()

    theme = request.query.get("theme", "dark")
    try:
        renderer = MapRenderer(scale=float(request.query.get("scale", 1.0)), theme=theme)
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)

    state = session.navigation.from_query(request.query_string)
    view = session.level_view(state)
    png = await asyncio.to_thread(renderer.render, view)
    return web.Response(body=png, content_type="image/png")


async def handle_org(request):
    """Summary of a single organization."""
    session = _session(request)
    if session is None:
        return _unavailable()

    try:
        org = session.hierarchy.get(int(request.match_info["org_id"]))
    except ValueError:
        org = None
    if org is None:
        return web.json_response({"error": "Organization not found"}, status=404)

    summary = session.summary_for(org)
    shape = session.shape_for(org)
    summary["shape"] = None if shape is None else shape.kind.value
    return web.json_response(summary)


async def _load_on_startup(app: web.Application):
    settings = app[SETTINGS_KEY]
    try:
        app[SESSION_KEY] = await load_session(settings)
    except Exception as e:
        app[LOAD_ERROR_KEY] = str(e)
        logger.exception("Failed to load data")


def create_app(settings: Optional[Settings] = None, session: Optional[Session] = None) -> web.Application:
    """Create the aiohttp application.

    Pass ``session`` to serve already-loaded data; otherwise the
    collections are loaded on startup.
    """
    app = web.Application()
    app[SETTINGS_KEY] = settings or Settings.from_env()
    if session is not None:
        app[SESSION_KEY] = session
    else:
        app.on_startup.append(_load_on_startup)

    app.router.add_get('/api/status', handle_status)
    app.router.add_get('/api/level', handle_level)
    app.router.add_post('/api/navigate', handle_navigate)
    app.router.add_get('/api/render.png', handle_render)
    app.router.add_get('/api/org/{org_id}', handle_org)

    return app


async def main(host: str = '0.0.0.0', port: int = 8767):
    """Run the web server."""
    settings = Settings.from_env()
    app = create_app(settings)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"f3-geomap running at http://{host}:{port}")

    # Keep running
    while True:
        await asyncio.sleep(3600)


def run():
    """Console entry point."""
    import argparse

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description='f3-geomap web server')
    parser.add_argument('--host', default=settings.host, help='Host to bind to')
    parser.add_argument('--port', type=int, default=settings.port, help='Port to listen on')
    args = parser.parse_args()

    try:
        asyncio.run(main(host=args.host, port=args.port))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == '__main__':
    run()
