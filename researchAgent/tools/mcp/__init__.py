"""MCP (Model Context Protocol) tool providers."""

from .connection import MCPConnection, create_connection
from .manager import MCPServerManager
from .wrapper import MCPToolWrapper

__all__ = [
    "MCPConnection",
    "MCPServerManager",
    "MCPToolWrapper",
    "create_connection",
]
