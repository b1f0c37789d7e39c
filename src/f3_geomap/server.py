"""f3-geomap MCP server — tools for browsing the organization map."""

from __future__ import annotations

import base64
import json
import logging
import uuid
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import ImageContent, TextContent, Tool

from .config import Settings
from .navigation import message_from_dict
from .renderer import MapRenderer
from .session import Session, load_session

logger = logging.getLogger(__name__)

server = Server("f3-geomap")

_settings: Optional[Settings] = None
_session: Optional[Session] = None
_load_error: Optional[str] = None


QUERY_PROPERTY = {
    "type": "string",
    "description": (
        "Navigation state as a query string: 'org=<id>' to show the children "
        "of an organization, 'level=<n>' for a whole level (0=sector, 1=area, "
        "2=region, 3=ao), or empty for the sector overview."
    ),
    "default": "",
}


async def _get_session() -> Optional[Session]:
    """Load the collections once; later calls reuse the session or the error."""
    global _settings, _session, _load_error
    if _session is None and _load_error is None:
        _settings = _settings or Settings.from_env()
        try:
            _session = await load_session(_settings)
        except Exception as e:
            _load_error = str(e)
            logger.exception("Failed to load data")
    return _session


def _failed() -> list[TextContent]:
    return [TextContent(type="text", text=f"Failed to load data: {_load_error}")]


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="show_level",
            description=(
                "List the organizations visible for a navigation state, with "
                "their boundary shape (hull, circle or decorative), style hint "
                "and summary, plus breadcrumbs and a fit-to-bounds box."
            ),
            inputSchema={
                "type": "object",
                "properties": {"query": QUERY_PROPERTY},
            },
        ),
        Tool(
            name="navigate",
            description=(
                "Apply one navigation action to a state and return the new "
                "level view. Actions: 'select' (drill into orgId), 'back', "
                "'crumb' (jump to breadcrumb depth, -1 for the root), "
                "'level' (show a whole level by levelIndex)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": QUERY_PROPERTY,
                    "action": {"type": "string", "enum": ["select", "back", "crumb", "level"]},
                    "orgId": {"type": "integer"},
                    "depth": {"type": "integer"},
                    "levelIndex": {"type": "integer"},
                },
                "required": ["action"],
            },
        ),
        Tool(
            name="render_level",
            description=(
                "Render the boundaries of a navigation state to PNG. "
                "Returns the image and the path it was saved to."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": QUERY_PROPERTY,
                    "scale": {
                        "type": "number",
                        "description": "Render scale factor (default 1.0)",
                        "default": 1.0,
                    },
                    "theme": {"type": "string", "enum": ["dark", "light"], "default": "dark"},
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                },
            },
        ),
        Tool(
            name="describe_org",
            description="Summary of one organization: type, contact links and active location count.",
            inputSchema={
                "type": "object",
                "properties": {"org_id": {"type": "integer"}},
                "required": ["org_id"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent | ImageContent]:
    if name == "show_level":
        return await _show_level(arguments)
    elif name == "navigate":
        return await _navigate(arguments)
    elif name == "render_level":
        return await _render_level(arguments)
    elif name == "describe_org":
        return await _describe_org(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


async def _show_level(args: dict) -> list[TextContent]:
    session = await _get_session()
    if session is None:
        return _failed()

    state = session.navigation.from_query(args.get("query", ""))
    return [TextContent(type="text", text=json.dumps(session.level_view(state).to_dict()))]


async def _navigate(args: dict) -> list[TextContent]:
    session = await _get_session()
    if session is None:
        return _failed()

    try:
        message = message_from_dict(session.hierarchy, args)
    except ValueError as e:
        return [TextContent(type="text", text=f"Invalid navigation action: {e}")]

    view = session.navigate(args.get("query", ""), message)
    return [TextContent(type="text", text=json.dumps(view.to_dict()))]


async def _render_level(args: dict) -> list[TextContent | ImageContent]:
    session = await _get_session()
    if session is None:
        return _failed()

    output_dir = _settings.ensure_output_dir()
    filename = args.get("filename", str(uuid.uuid4())[:8])
    output_path = str(output_dir / f"{filename}.png")

    state = session.navigation.from_query(args.get("query", ""))
    view = session.level_view(state)

    try:
        renderer = MapRenderer(scale=args.get("scale", 1.0), theme=args.get("theme", "dark"))
        png = renderer.render(view, output_path=output_path)
    except Exception as e:
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    return [
        ImageContent(type="image", data=base64.b64encode(png).decode(), mimeType="image/png"),
        TextContent(
            type="text",
            text=json.dumps({
                "status": "success",
                "path": output_path,
                "query": view.query,
                "level": state.level.value,
                "drawn": len(view.drawn),
                "visible": len(view.items),
            }),
        ),
    ]


async def _describe_org(args: dict) -> list[TextContent]:
    session = await _get_session()
    if session is None:
        return _failed()

    try:
        org_id = int(args["org_id"])
    except (KeyError, TypeError, ValueError):
        return [TextContent(type="text", text=f"Invalid org_id: {args.get('org_id')!r}")]

    org = session.hierarchy.get(org_id)
    if org is None:
        return [TextContent(type="text", text=f"Organization not found: {args['org_id']}")]

    summary = session.summary_for(org)
    shape = session.shape_for(org)
    summary["shape"] = None if shape is None else shape.kind.value
    summary["path"] = [a.name for a in session.hierarchy.ancestors(org.id)]
    return [TextContent(type="text", text=json.dumps(summary))]


def main():
    """Entry point for the MCP server."""
    import asyncio

    settings = Settings.from_env()
    # stdout carries the MCP protocol; logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
