"""MCP Server for Godot Engine tools.

Runs the Godot executable for one-shot commands (version, editor launch,
project run/stop) and drives structured scene operations through a generated
GDScript.

Usage:
    # Run directly (stdio transport)
    python mcp_server.py

    # Add to Claude Desktop config:
    {
        "mcpServers": {
            "godot": {
                "command": "godot-agent-mcp",
                "env": {"GODOT_PATH": "/path/to/godot"}
            }
        }
    }
"""

import json
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger("godot-agent-tools")

# Support source-based invocation:
#   python /path/to/repo/godot_agent/mcp_server.py
# In that mode, sys.path[0] is the package directory itself, so absolute
# imports like `from godot_agent...` need the repo root added explicitly.
if __package__ in (None, ""):
    repo_root = Path(__file__).resolve().parent.parent
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from godot_agent.bridge_script import DEFAULT_SCENE
from godot_agent.commands import GodotContext
from godot_agent.errors import ExecutableNotFound
from godot_agent.files import read_file, write_file
from godot_agent.operations import SUPPORTED_NODE_TYPES
from godot_agent.scaffold import ProjectTemplate

# Create the MCP server
server = Server("godot-agent-tools")

# Process-lifetime state: cached executable path, bridge, running project
context = GodotContext()

_PROJECT_PATH_SCHEMA = {
    "type": "string",
    "description": "Absolute path to the Godot project directory",
}
_NODE_TYPE_SCHEMA = {
    "type": "string",
    "enum": sorted(SUPPORTED_NODE_TYPES),
}


def _format_operation(result: dict, label: str, key: str = "message") -> str:
    """Render a bridge result as tool text."""
    if not result.get("success"):
        return f"Error: {result.get('error', 'Unknown error')}"
    payload = result.get(key)
    if isinstance(payload, (dict, list)):
        payload = json.dumps(payload, indent=2)
    return f"{label}: {payload}" if key == "message" else f"{label}:\n{payload}"


# =============================================================================
# Tool handlers
# =============================================================================


async def _godot_version(ctx: GodotContext, arguments: dict) -> str:
    return f"Godot version: {await ctx.get_version()}"


async def _launch_editor(ctx: GodotContext, arguments: dict) -> str:
    return await ctx.launch_editor(arguments.get("projectPath", ""))


async def _list_projects(ctx: GodotContext, arguments: dict) -> str:
    projects = ctx.list_projects(arguments.get("directoryPath", ""))
    if not projects:
        return "No Godot projects found in the specified directory"
    return f"Found {len(projects)} Godot projects:\n" + "\n".join(projects)


async def _create_project(ctx: GodotContext, arguments: dict) -> str:
    return ctx.create_project(
        arguments.get("parentDirectory", ""),
        arguments.get("projectName", ""),
        arguments.get("template") or ProjectTemplate.THREE_D.value,
    )


async def _run_project(ctx: GodotContext, arguments: dict) -> str:
    return await ctx.run_project(arguments.get("projectPath", ""))


async def _stop_project(ctx: GodotContext, arguments: dict) -> str:
    return await ctx.stop_project()


async def _get_debug_output(ctx: GodotContext, arguments: dict) -> str:
    return ctx.get_debug_output()


async def _get_scene_tree(ctx: GodotContext, arguments: dict) -> str:
    result = await ctx.get_scene_tree(
        arguments.get("projectPath", ""),
        arguments.get("scenePath") or DEFAULT_SCENE,
    )
    return _format_operation(result, "Scene tree", key="data")


async def _create_scene(ctx: GodotContext, arguments: dict) -> str:
    result = await ctx.create_scene(
        arguments.get("projectPath", ""),
        arguments.get("sceneName", ""),
        arguments.get("nodeType") or "Node3D",
    )
    return _format_operation(result, "Scene created")


async def _add_node(ctx: GodotContext, arguments: dict) -> str:
    result = await ctx.add_node(
        arguments.get("projectPath", ""),
        arguments.get("parentPath", "."),
        arguments.get("nodeName", ""),
        arguments.get("nodeType", ""),
        arguments.get("scenePath") or DEFAULT_SCENE,
    )
    return _format_operation(result, "Node added")


async def _write_file(ctx: GodotContext, arguments: dict) -> str:
    path = write_file(arguments.get("filePath", ""), arguments.get("content", ""))
    return f"File written successfully: {path}"


async def _read_file(ctx: GodotContext, arguments: dict) -> str:
    return f"File content:\n{read_file(arguments.get('filePath', ''))}"


# name -> (handler, verb used in error messages)
HANDLERS = {
    "godot_version": (_godot_version, "getting Godot version"),
    "launch_editor": (_launch_editor, "launching editor"),
    "list_projects": (_list_projects, "listing projects"),
    "create_project": (_create_project, "creating project"),
    "run_project": (_run_project, "running project"),
    "stop_project": (_stop_project, "stopping project"),
    "get_debug_output": (_get_debug_output, "getting debug output"),
    "get_scene_tree": (_get_scene_tree, "getting scene tree"),
    "create_scene": (_create_scene, "creating scene"),
    "add_node": (_add_node, "adding node"),
    "write_file": (_write_file, "writing file"),
    "read_file": (_read_file, "reading file"),
}


async def dispatch_tool(name: str, arguments: dict, ctx: GodotContext = None) -> str:
    """Run a tool and return its text, converting failures into error text."""
    ctx = ctx or context
    entry = HANDLERS.get(name)
    if entry is None:
        return f"Error: Unknown tool: {name}"

    handler, doing = entry
    try:
        return await handler(ctx, arguments or {})
    except Exception as e:
        logger.debug("Tool %s failed", name, exc_info=True)
        return f"Error {doing}: {e}"


# =============================================================================
# MCP Tool Definitions
# =============================================================================


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Return available tools."""
    return [
        Tool(
            name="godot_version",
            description="Get the installed Godot version.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="launch_editor",
            description="Open the Godot editor for a project. The editor runs independently of this server.",
            inputSchema={
                "type": "object",
                "properties": {"projectPath": _PROJECT_PATH_SCHEMA},
                "required": ["projectPath"],
            },
        ),
        Tool(
            name="list_projects",
            description="List Godot projects (folders containing project.godot) directly inside a directory.",
            inputSchema={
                "type": "object",
                "properties": {
                    "directoryPath": {
                        "type": "string",
                        "description": "Directory to search for Godot projects",
                    }
                },
                "required": ["directoryPath"],
            },
        ),
        Tool(
            name="create_project",
            description="Create a new Godot project with scenes/, scripts/ and assets/ folders.",
            inputSchema={
                "type": "object",
                "properties": {
                    "parentDirectory": {
                        "type": "string",
                        "description": "Directory to create the project in",
                    },
                    "projectName": {
                        "type": "string",
                        "description": "Name of the project to create",
                    },
                    "template": {
                        "type": "string",
                        "enum": [t.value for t in ProjectTemplate],
                        "description": "Project template (3d, 2d, or empty)",
                        "default": "3d",
                    },
                },
                "required": ["parentDirectory", "projectName"],
            },
        ),
        Tool(
            name="run_project",
            description="Run a Godot project. Any project already running is stopped first.",
            inputSchema={
                "type": "object",
                "properties": {"projectPath": _PROJECT_PATH_SCHEMA},
                "required": ["projectPath"],
            },
        ),
        Tool(
            name="stop_project",
            description="Stop the running Godot project.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_debug_output",
            description="Get console output (stdout and stderr) of the running Godot project so far.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_scene_tree",
            description="Get the node hierarchy of a scene.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": _PROJECT_PATH_SCHEMA,
                    "scenePath": {
                        "type": "string",
                        "description": f"Scene path relative to the project (default: {DEFAULT_SCENE})",
                    },
                },
                "required": ["projectPath"],
            },
        ),
        Tool(
            name="create_scene",
            description="Create a scene under scenes/ with a single root node.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": _PROJECT_PATH_SCHEMA,
                    "sceneName": {
                        "type": "string",
                        "description": "Name of the scene to create",
                    },
                    "nodeType": {
                        **_NODE_TYPE_SCHEMA,
                        "description": "Type of the root node (default: Node3D)",
                    },
                },
                "required": ["projectPath", "sceneName"],
            },
        ),
        Tool(
            name="add_node",
            description="Add a node to a saved scene.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": _PROJECT_PATH_SCHEMA,
                    "scenePath": {
                        "type": "string",
                        "description": f"Scene path relative to the project (default: {DEFAULT_SCENE})",
                    },
                    "parentPath": {
                        "type": "string",
                        "description": "Path to the parent node relative to the scene root ('.' for the root)",
                    },
                    "nodeName": {
                        "type": "string",
                        "description": "Name of the node to add",
                    },
                    "nodeType": {
                        **_NODE_TYPE_SCHEMA,
                        "description": "Type of the node",
                    },
                },
                "required": ["projectPath", "parentPath", "nodeName", "nodeType"],
            },
        ),
        Tool(
            name="write_file",
            description="Write content to a file, creating parent directories.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filePath": {
                        "type": "string",
                        "description": "Absolute path to the file to write",
                    },
                    "content": {
                        "type": "string",
                        "description": "Content to write to the file",
                    },
                },
                "required": ["filePath", "content"],
            },
        ),
        Tool(
            name="read_file",
            description="Read the content of a file.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filePath": {
                        "type": "string",
                        "description": "Absolute path to the file to read",
                    }
                },
                "required": ["filePath"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    text = await dispatch_tool(name, arguments)
    return [TextContent(type="text", text=text)]


# =============================================================================
# Main
# =============================================================================


async def main():
    """Run the MCP server."""
    # Enable debug logging when GODOT_MCP_DEBUG is set
    if os.environ.get("GODOT_MCP_DEBUG"):
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    print("Godot Agent Tools MCP Server", file=sys.stderr)
    print(f"Tools: {', '.join(HANDLERS)}", file=sys.stderr)

    try:
        print(f"Godot: {context.require_godot()}", file=sys.stderr)
    except ExecutableNotFound as e:
        print(f"Warning: {e}", file=sys.stderr)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await context.stop_project()


def cli_main():
    """Entry point for the godot-agent-mcp command."""
    import asyncio

    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
