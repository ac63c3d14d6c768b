"""Process-wide tool registry built once from the configured tool providers."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from langchain_core.tools import BaseTool

LOGGER = logging.getLogger(__name__)

# Handles with this prefix also feed the code-execution tool set
EXECUTION_HANDLE_PREFIX = "python"


class ToolProvider(Protocol):
    """Anything that can list invokable tools (an MCP connection, a test double...)."""

    async def list_tools(self) -> List[BaseTool]: ...


class ToolRegistry:
    """Immutable partition of discovered tools.

    - research set: every listed tool, in handle iteration order
    - execution set: tools of handles whose name starts with ``python``

    Build with ``await ToolRegistry.discover(providers)``.
    """

    def __init__(self, providers: Mapping[str, List[BaseTool]]) -> None:
        self._providers = MappingProxyType({handle: tuple(tools) for handle, tools in providers.items()})
        research: List[BaseTool] = []
        execution: List[BaseTool] = []
        for handle, tools in self._providers.items():
            research.extend(tools)
            if handle.startswith(EXECUTION_HANDLE_PREFIX):
                execution.extend(tools)
        self._research = tuple(research)
        self._execution = tuple(execution)

    @classmethod
    async def discover(cls, providers: Mapping[str, ToolProvider]) -> "ToolRegistry":
        """List tools from every provider and partition them.

        A provider whose listing fails is logged and skipped; discovery itself
        never fails.
        """
        listed: Dict[str, List[BaseTool]] = {}
        for handle, provider in providers.items():
            try:
                tools = await provider.list_tools()
            except Exception as e:
                LOGGER.warning(f"Failed to list tools from '{handle}': {e}")
                continue
            listed[handle] = list(tools)
            LOGGER.info(f"Provider '{handle}': {len(tools)} tool(s) [{', '.join(t.name for t in tools)}]")

        registry = cls(listed)
        if not registry.execution_tools:
            LOGGER.warning(
                f"No '{EXECUTION_HANDLE_PREFIX}*' tool provider available, the coder agent will have no tools"
            )
        return registry

    @property
    def research_tools(self) -> Tuple[BaseTool, ...]:
        return self._research

    @property
    def execution_tools(self) -> Tuple[BaseTool, ...]:
        return self._execution

    @property
    def providers(self) -> Mapping[str, Tuple[BaseTool, ...]]:
        return self._providers

    def find_tool_by_suffix(self, suffix: str) -> Optional[BaseTool]:
        """First tool whose name ends with ``suffix``.

        Handles are searched in lexical order, tools in listing order within a handle.
        """
        for handle in sorted(self._providers):
            for tool in self._providers[handle]:
                if tool.name.endswith(suffix):
                    return tool
        return None

    def __repr__(self) -> str:
        return (
            f"ToolRegistry(providers={list(self._providers)}, research={len(self._research)}, "
            f"execution={len(self._execution)})"
        )


__all__ = ["ToolRegistry", "ToolProvider", "EXECUTION_HANDLE_PREFIX"]
