"""Tool discovery: the tool registry and MCP-backed tool providers."""

from .registry import ToolProvider, ToolRegistry

__all__ = ["ToolProvider", "ToolRegistry"]
