"""Background investigator: one search call, no model."""

from __future__ import annotations

import logging
from typing import List

from researchAgent.agents.stream import EventStream, RunContext
from researchAgent.schema import Message, message_event
from researchAgent.tools.registry import ToolRegistry
from researchAgent.utils.logging_utils import log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)

SEARCH_SUFFIX = "search"


class InvestigatorAgent:
    """Runs the first ``*search`` tool on the latest message and reports the result.

    Every run emits exactly one assistant message, failures included.
    """

    name = "investigator"
    description = (
        "Conducts initial background investigation using search tools. "
        "Useful for gathering context before planning."
    )

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    def run(self, ctx: RunContext, history: List[Message]) -> EventStream:
        stream = EventStream()
        ctx.spawn(self._produce(history, stream), stream, name=f"agent:{self.name}")
        return stream

    async def _produce(self, history: List[Message], stream: EventStream) -> None:
        reply = await self._investigate(history)
        stream.result = [reply]
        stream.send(message_event(self.name, reply))

    async def _investigate(self, history: List[Message]) -> Message:
        if not history:
            return Message.assistant("")
        query = history[-1].content

        search_tool = self._registry.find_tool_by_suffix(SEARCH_SUFFIX)
        if search_tool is None:
            LOGGER.warning("No search tool found for background investigation")
            return Message.assistant("No search tool available for background investigation.")

        log_tool_call(LOGGER, search_tool.name, {"query": query})
        try:
            result = await search_tool.ainvoke({"query": query})
        except Exception as e:
            log_tool_result(LOGGER, search_tool.name, e, success=False)
            return Message.assistant(f"Background investigation failed: {e}")

        log_tool_result(LOGGER, search_tool.name, result)
        return Message.assistant(f"Background Investigation Result: {result}")


__all__ = ["InvestigatorAgent", "SEARCH_SUFFIX"]
