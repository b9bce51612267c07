#!/usr/bin/env python3
"""
Godot Agent Toolkit - Command-line helpers

Usage:
    godot-agent-toolkit locate                     Show which Godot executable is used
    godot-agent-toolkit version                    Print the Godot version
    godot-agent-toolkit list <dir>                 List Godot projects in a directory
    godot-agent-toolkit create <dir> <name>        Scaffold a new project
    godot-agent-toolkit set-path <path>            Save an explicit Godot path
    godot-agent-toolkit add-search-path <path>     Add an extra install location
    godot-agent-toolkit config                     Show the saved configuration
"""

import argparse
import asyncio
import json
import sys

from godot_agent.core import config
from godot_agent.commands import GodotContext
from godot_agent.engine_detect import locate_godot
from godot_agent.errors import GodotAgentError
from godot_agent.scaffold import ProjectTemplate


def cmd_locate(args):
    """Show the resolved Godot executable."""
    godot_path = locate_godot()
    if not godot_path:
        print("ERROR: Godot executable not found")
        print()
        print("Set the GODOT_PATH environment variable, or save a path with:")
        print("  godot-agent-toolkit set-path /path/to/godot")
        sys.exit(1)
    print(godot_path)


def cmd_version(args):
    ctx = GodotContext()
    print(asyncio.run(ctx.get_version()))


def cmd_list(args):
    """List projects under a directory."""
    projects = GodotContext().list_projects(args.directory)
    if not projects:
        print("No Godot projects found.")
        return

    print("Projects:")
    for project in projects:
        print(f"  {project}")


def cmd_create(args):
    template = args.template or config.get_default_template() or "3d"
    print(GodotContext().create_project(args.directory, args.name, template))


def cmd_set_path(args):
    try:
        saved = config.set_godot_path(args.path)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    print(f"Saved Godot path: {saved}")


def cmd_add_search_path(args):
    search_paths = config.add_search_path(args.path)
    print("Search paths:")
    for path in search_paths:
        print(f"  {path}")


def cmd_config(args):
    print(f"Config file: {config.CONFIG_FILE}")
    print(json.dumps(config.load_config(), indent=2))


COMMANDS = {
    "locate": cmd_locate,
    "version": cmd_version,
    "list": cmd_list,
    "create": cmd_create,
    "set-path": cmd_set_path,
    "add-search-path": cmd_add_search_path,
    "config": cmd_config,
}


def main():
    parser = argparse.ArgumentParser(
        description="Godot Agent Toolkit - Godot executable & project helpers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog="""
Examples:
  godot-agent-toolkit locate
  godot-agent-toolkit list ~/Projects
  godot-agent-toolkit create ~/Projects MyGame --template 2d
  godot-agent-toolkit set-path /opt/godot/Godot_v4.2-stable_linux.x86_64
""",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("locate", help="Show the Godot executable in use")
    subparsers.add_parser("version", help="Print the Godot version")

    list_parser = subparsers.add_parser("list", help="List projects in a directory")
    list_parser.add_argument("directory", help="Directory to search")

    create_parser = subparsers.add_parser("create", help="Scaffold a new project")
    create_parser.add_argument("directory", help="Parent directory")
    create_parser.add_argument("name", help="Project name")
    create_parser.add_argument(
        "--template",
        choices=[t.value for t in ProjectTemplate],
        help="Project template (default: from config, else 3d)",
    )

    set_path_parser = subparsers.add_parser("set-path", help="Save a Godot path")
    set_path_parser.add_argument("path", help="Path to the Godot executable")

    search_parser = subparsers.add_parser(
        "add-search-path", help="Add an extra Godot install location"
    )
    search_parser.add_argument("path", help="Candidate path to the Godot executable")

    subparsers.add_parser("config", help="Show the saved configuration")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        COMMANDS[args.command](args)
    except (GodotAgentError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
