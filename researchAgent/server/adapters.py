"""Event stream → SSE wire protocols.

``StreamAdapter`` owns the shared algorithm:

- complete messages are framed as they are
- live chunk streams are drained to the end: text is forwarded immediately,
  tool-call deltas are forwarded as they arrive and collected per index,
  then the resolved calls are framed in index order
- actions and errors are framed without stopping the outer stream

Subclasses only decide what each frame looks like.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List

from researchAgent.agents.stream import EventStream
from researchAgent.schema import AgentEvent, InterruptContext, Message, MessageVariant, Role, ToolCall
from researchAgent.server.aggregation import ToolCallAccumulator
from researchAgent.server.sse import format_sse, format_sse_json
from researchAgent.utils.logging_utils import log_error

LOGGER = logging.getLogger(__name__)


class StreamAdapter(ABC):
    """Translate one top-level EventStream into SSE frames."""

    def __init__(self, events: EventStream):
        self._events = events

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames until the event stream is exhausted."""
        while True:
            try:
                event, has_more = await self._events.next()
            except Exception as e:
                log_error(LOGGER, e, context="reading agent event stream")
                for frame in self.error_frames("", e):
                    yield frame
                break
            if not has_more:
                break
            async for frame in self._event_frames(event):
                yield frame

        for frame in self.finish_frames():
            yield frame

    async def _event_frames(self, event: AgentEvent) -> AsyncIterator[str]:
        agent = event.agent_name

        if event.output is not None:
            if event.output.is_streaming:
                async for frame in self._drain(agent, event.output):
                    yield frame
            else:
                for frame in self.message_frames(agent, event.output.message):
                    yield frame

        action = event.action
        if action is not None:
            if action.transfer_to_agent is not None:
                for frame in self.transfer_frames(agent, action.transfer_to_agent.dest_agent_name):
                    yield frame
            if action.interrupted is not None:
                for frame in self.interrupt_frames(agent, action.interrupted):
                    yield frame
            if action.exit:
                for frame in self.exit_frames(agent):
                    yield frame

        if event.error is not None:
            for frame in self.error_frames(agent, event.error):
                yield frame

    async def _drain(self, agent: str, output: MessageVariant) -> AsyncIterator[str]:
        stream = output.message_stream
        accumulator = ToolCallAccumulator()

        while True:
            try:
                chunk, has_more = await stream.next()
            except Exception as e:
                for frame in self.error_frames(agent, e):
                    yield frame
                break
            if not has_more:
                break

            if chunk.content:
                for frame in self.chunk_frames(agent, chunk):
                    yield frame
            if chunk.tool_calls:
                for frame in self.delta_frames(agent, chunk.tool_calls):
                    yield frame
                for delta in chunk.tool_calls:
                    accumulator.add(delta)

        for call in accumulator.resolve():
            for frame in self.resolved_call_frames(agent, call):
                yield frame

    # ========== Framing hooks ==========

    @abstractmethod
    def message_frames(self, agent: str, message: Message) -> List[str]:
        """Frames for a complete (non-streamed) message."""

    @abstractmethod
    def chunk_frames(self, agent: str, chunk: Message) -> List[str]:
        """Frames for the text content of one streamed chunk."""

    @abstractmethod
    def delta_frames(self, agent: str, deltas: List[ToolCall]) -> List[str]:
        """Live progress frames for the raw tool-call deltas of one chunk."""

    @abstractmethod
    def resolved_call_frames(self, agent: str, call: ToolCall) -> List[str]:
        """Frames for one tool call reassembled from deltas."""

    def transfer_frames(self, agent: str, dest_agent_name: str) -> List[str]:
        return []

    def interrupt_frames(self, agent: str, contexts: List[InterruptContext]) -> List[str]:
        return []

    def exit_frames(self, agent: str) -> List[str]:
        return []

    @abstractmethod
    def error_frames(self, agent: str, error: BaseException) -> List[str]:
        """Frames reporting an error."""

    def finish_frames(self) -> List[str]:
        return []


def _call_payload(call: ToolCall) -> Dict[str, Any]:
    return {"id": call.id, "type": call.type, "name": call.function_name, "args": call.arguments}


class ChatCompletionsAdapter(StreamAdapter):
    """Framing for ``POST /v1/chat/completions``.

    Events: message, tool_result, tool_call_start, tool_call_end,
    tool_call_delta, transfer_to_agent, interrupt_options, exit, error.
    """

    def message_frames(self, agent: str, message: Message) -> List[str]:
        frames = []
        if message.content:
            frames.append(format_sse("message", message.content))
        for call in message.tool_calls:
            frames.extend(self._start_end(call))
        return frames

    def chunk_frames(self, agent: str, chunk: Message) -> List[str]:
        frames = [format_sse("message", chunk.content)]
        if chunk.role == Role.TOOL:
            frames.append(format_sse("tool_result", chunk.content))
        return frames

    def delta_frames(self, agent: str, deltas: List[ToolCall]) -> List[str]:
        return [format_sse_json("tool_call_delta", delta.to_dict()) for delta in deltas if delta.is_delta]

    def resolved_call_frames(self, agent: str, call: ToolCall) -> List[str]:
        return self._start_end(call)

    def transfer_frames(self, agent: str, dest_agent_name: str) -> List[str]:
        return [format_sse("transfer_to_agent", dest_agent_name)]

    def interrupt_frames(self, agent: str, contexts: List[InterruptContext]) -> List[str]:
        return [format_sse_json("interrupt_options", [c.to_dict() for c in contexts])]

    def exit_frames(self, agent: str) -> List[str]:
        return [format_sse("exit", "")]

    def error_frames(self, agent: str, error: BaseException) -> List[str]:
        return [format_sse("error", str(error))]

    @staticmethod
    def _start_end(call: ToolCall) -> List[str]:
        payload = _call_payload(call)
        return [format_sse_json("tool_call_start", payload), format_sse_json("tool_call_end", payload)]


class ThreadChatAdapter(StreamAdapter):
    """Framing for ``POST /api/chat/stream``.

    Every frame is JSON ``{id, thread_id, agent, role, ...}`` where ``id`` is
    minted once per agent for the lifetime of the response.
    """

    DEFAULT_AGENT = "coordinator"

    def __init__(self, events: EventStream, thread_id: str):
        super().__init__(events)
        self._thread_id = thread_id
        self._message_ids: Dict[str, str] = {}

    def message_id(self, agent: str) -> str:
        agent = agent or self.DEFAULT_AGENT
        if agent not in self._message_ids:
            self._message_ids[agent] = f"run-{agent}-{time.time_ns()}"
        return self._message_ids[agent]

    def _base(self, agent: str, role: str = "assistant") -> Dict[str, Any]:
        agent = agent or self.DEFAULT_AGENT
        return {"id": self.message_id(agent), "thread_id": self._thread_id, "agent": agent, "role": role}

    def _role(self, agent: str, role: Role) -> str:
        # Coordinator tool results are shown as its own speech
        if role == Role.TOOL and (agent or self.DEFAULT_AGENT) != self.DEFAULT_AGENT:
            return "tool"
        return "assistant"

    def message_frames(self, agent: str, message: Message) -> List[str]:
        frames = [format_sse_json(
            "message_chunk",
            dict(self._base(agent, self._role(agent, message.role)), content=message.content),
        )]
        if message.tool_calls:
            frames.append(self._tool_calls_frame(agent, message.tool_calls))
        return frames

    def chunk_frames(self, agent: str, chunk: Message) -> List[str]:
        return [format_sse_json(
            "message_chunk",
            dict(self._base(agent, self._role(agent, chunk.role)), content=chunk.content),
        )]

    def delta_frames(self, agent: str, deltas: List[ToolCall]) -> List[str]:
        chunks = [
            {
                "type": "tool_call_chunk",
                "index": delta.fragment_index if delta.fragment_index is not None else 0,
                "id": delta.id,
                "name": delta.function_name,
                "args": delta.arguments,
            }
            for delta in deltas
        ]
        return [format_sse_json("tool_call_chunks", dict(self._base(agent), tool_call_chunks=chunks))]

    def resolved_call_frames(self, agent: str, call: ToolCall) -> List[str]:
        return [self._tool_calls_frame(agent, [call])]

    def interrupt_frames(self, agent: str, contexts: List[InterruptContext]) -> List[str]:
        return [format_sse_json("interrupt", dict(self._base(agent), options=[c.to_dict() for c in contexts]))]

    def exit_frames(self, agent: str) -> List[str]:
        return [format_sse_json("message_chunk", dict(self._base(agent), finish_reason="stop"))]

    def error_frames(self, agent: str, error: BaseException) -> List[str]:
        return [format_sse_json("message_chunk", dict(self._base(agent), content=str(error)))]

    def finish_frames(self) -> List[str]:
        return [format_sse_json("message_chunk", dict(self._base(self.DEFAULT_AGENT), finish_reason="stop"))]

    def _tool_calls_frame(self, agent: str, calls: List[ToolCall]) -> str:
        return format_sse_json(
            "tool_calls",
            dict(
                self._base(agent),
                finish_reason="tool_calls",
                tool_calls=[
                    {"type": "tool_call", "id": c.id, "name": c.function_name, "args": c.parsed_arguments()}
                    for c in calls
                ],
                tool_call_chunks=[],
            ),
        )


__all__ = ["StreamAdapter", "ChatCompletionsAdapter", "ThreadChatAdapter"]
