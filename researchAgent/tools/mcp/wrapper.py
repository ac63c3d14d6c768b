"""MCP tool wrapper for LangChain BaseTool integration."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.tools import BaseTool, ToolException
from pydantic import ConfigDict, Field

LOGGER = logging.getLogger(__name__)


class MCPToolWrapper(BaseTool):
    """LangChain tool that forwards calls to one tool on an MCP server.

    The parameter schema is the server's ``inputSchema`` (a JSON schema dict).
    Failures raise ToolException so the calling tool node reports them to the
    model as an error result.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    server_id: str = Field(description="MCP server identifier")
    connection: Any = Field(description="MCPConnection instance", exclude=True)

    def __init__(
        self,
        server_id: str,
        tool_name: str,
        description: str,
        connection: Any,
        input_schema: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            name=tool_name,
            description=description,
            server_id=server_id,
            connection=connection,
        )
        if input_schema:
            self.args_schema = input_schema

    async def _arun(self, **kwargs) -> str:
        LOGGER.debug(f"Executing MCP tool: {self.name} (server: {self.server_id})")
        try:
            return await self.connection.call_tool(self.name, kwargs)
        except Exception as e:
            LOGGER.error(f"MCP tool {self.name} on {self.server_id} failed: {e}")
            raise ToolException(f"{self.name} failed: {e}") from e

    def _run(self, **kwargs) -> str:
        # The MCP session belongs to the event loop that opened it
        raise ToolException(f"{self.name} is async only; call it with ainvoke")


__all__ = ["MCPToolWrapper"]
