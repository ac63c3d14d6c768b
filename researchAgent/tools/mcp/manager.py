"""MCP server lifecycle: eager startup of every configured server, shutdown on exit."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Mapping

from researchAgent.config.app_config import MCPServerConfig
from researchAgent.utils.error_handler import ConfigurationError

from .connection import MCPConnection, create_connection

LOGGER = logging.getLogger(__name__)


class MCPServerManager:
    """Owns the MCP connections for the lifetime of the process.

    All servers are connected and initialized up front. A single failure
    closes whatever was already opened and aborts startup.
    """

    def __init__(
        self,
        servers: Mapping[str, MCPServerConfig],
        startup_timeout: float = 60.0,
        connection_factory: Callable[[str, MCPServerConfig], MCPConnection] = create_connection,
    ):
        self._configs = dict(servers)
        self._startup_timeout = startup_timeout
        self._connection_factory = connection_factory
        self._connections: Dict[str, MCPConnection] = {}

    async def start_all(self) -> Dict[str, MCPConnection]:
        """Connect to every configured server.

        Returns:
            handle → initialized connection

        Raises:
            ConfigurationError: If any server fails or times out
        """
        for server_id, cfg in self._configs.items():
            LOGGER.info(f"🚀 Starting MCP server: {server_id} ({cfg.transport})")
            connection = self._connection_factory(server_id, cfg)
            try:
                await asyncio.wait_for(connection.start(), timeout=self._startup_timeout)
            except asyncio.TimeoutError as e:
                await self._abort(connection)
                raise ConfigurationError(
                    f"MCP server startup timeout after {self._startup_timeout}s: {server_id}"
                ) from e
            except Exception as e:
                await self._abort(connection)
                raise ConfigurationError(f"Failed to start MCP server '{server_id}': {e}") from e

            self._connections[server_id] = connection
            LOGGER.info(f"  ✓ MCP server started: {server_id}")

        return dict(self._connections)

    async def _abort(self, failed: MCPConnection) -> None:
        await failed.close()
        await self.shutdown()

    @property
    def connections(self) -> Dict[str, MCPConnection]:
        return dict(self._connections)

    async def shutdown(self) -> None:
        """Close every open connection."""
        if not self._connections:
            return

        LOGGER.info(f"Shutting down {len(self._connections)} MCP server(s)...")
        for server_id, connection in self._connections.items():
            try:
                await connection.close()
                LOGGER.info(f"  ✓ Closed: {server_id}")
            except Exception as e:
                LOGGER.error(f"  ✗ Failed to close {server_id}: {e}")

        self._connections.clear()

    def list_configured_servers(self) -> list:
        return list(self._configs)


__all__ = ["MCPServerManager"]
