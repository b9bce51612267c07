"""Godot Engine tools for MCP agents."""

__version__ = "0.1.0"
