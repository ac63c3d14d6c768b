"""MCP server connections (stdio subprocess or remote SSE endpoint)."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from langchain_core.tools import BaseTool
from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from researchAgent.config.app_config import MCPServerConfig
from researchAgent.utils.error_handler import ToolProviderError

from .wrapper import MCPToolWrapper

LOGGER = logging.getLogger(__name__)


def resolve_env(env: Dict[str, str]) -> Dict[str, str]:
    """Expand ``${VAR}`` references against the current environment."""
    resolved = {}
    for key, value in env.items():
        if value.startswith("${") and value.endswith("}"):
            resolved[key] = os.environ.get(value[2:-1], "")
        else:
            resolved[key] = value
    return resolved


class MCPConnection(ABC):
    """One initialized MCP client session. Also a tool provider for the registry."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        self._session: Optional[ClientSession] = None
        self._transport_context = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    def _open_transport(self):
        """Return the async context manager yielding ``(read, write)`` streams."""

    async def start(self) -> None:
        """Open the transport and run the MCP initialize handshake."""
        context = self._open_transport()
        read_stream, write_stream = await context.__aenter__()
        self._transport_context = context

        self._session = ClientSession(read_stream, write_stream)
        await self._session.__aenter__()
        await self._session.initialize()
        self._initialized = True

        LOGGER.debug(f"  ✓ Connection established for server: {self.server_id}")

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> str:
        """Call a tool and flatten its text content.

        Raises:
            ToolProviderError: If the connection is not initialized or the server reports a tool error
        """
        if not self._initialized:
            raise ToolProviderError(self.server_id, "server not initialized")

        LOGGER.debug(f"  Calling tool: {tool_name} on server {self.server_id}")
        result = await self._session.call_tool(tool_name, arguments)

        text = "\n".join(item.text for item in result.content or [] if hasattr(item, "text"))
        if getattr(result, "isError", False):
            raise ToolProviderError(self.server_id, text or f"{tool_name} reported an error")
        return text

    async def list_raw_tools(self) -> List[Any]:
        """Tool descriptors exactly as the server lists them."""
        if not self._initialized:
            raise ToolProviderError(self.server_id, "server not initialized")
        result = await self._session.list_tools()
        return result.tools

    async def list_tools(self) -> List[BaseTool]:
        """List the server's tools wrapped as LangChain tools."""
        return [
            MCPToolWrapper(
                server_id=self.server_id,
                tool_name=tool.name,
                description=tool.description or tool.name,
                connection=self,
                input_schema=tool.inputSchema,
            )
            for tool in await self.list_raw_tools()
        ]

    async def close(self) -> None:
        if self._session is not None:
            try:
                await self._session.__aexit__(None, None, None)
            except Exception as e:
                LOGGER.warning(f"  Error closing client session for {self.server_id}: {e}")
            self._session = None

        if self._transport_context is not None:
            try:
                await self._transport_context.__aexit__(None, None, None)
            except Exception as e:
                LOGGER.warning(f"  Error closing transport for {self.server_id}: {e}")
            self._transport_context = None

        self._initialized = False
        LOGGER.debug(f"  ✓ Closed connection for server: {self.server_id}")


class StdioMCPConnection(MCPConnection):
    """Server spawned as a subprocess, spoken to over stdin/stdout."""

    def __init__(self, server_id: str, command: str, args: List[str], env: Dict[str, str]):
        super().__init__(server_id)
        self.command = command
        self.args = args
        self.env = env

    def _open_transport(self):
        full_env = os.environ.copy()
        full_env.update(resolve_env(self.env))
        LOGGER.debug(f"  Starting stdio server: {self.command} {' '.join(self.args)}")
        return stdio_client(StdioServerParameters(command=self.command, args=self.args, env=full_env))


class SSEMCPConnection(MCPConnection):
    """Already-running server reached over HTTP Server-Sent Events."""

    def __init__(self, server_id: str, url: str):
        super().__init__(server_id)
        self.url = url

    def _open_transport(self):
        LOGGER.debug(f"  Connecting to SSE server: {self.url}")
        return sse_client(self.url)


def create_connection(server_id: str, config: MCPServerConfig) -> MCPConnection:
    """Factory function to create the connection type the config asks for."""
    if config.transport == "sse":
        return SSEMCPConnection(server_id, config.url)
    return StdioMCPConnection(server_id, config.command, list(config.args), dict(config.env))


__all__ = ["MCPConnection", "StdioMCPConnection", "SSEMCPConnection", "create_connection", "resolve_env"]
