"""Test doubles shared by the unit and integration tests.

The chat model is replaced by ``ScriptedChatModel``: every call pops the next
scripted AIMessage, and streaming splits it into text and tool-call deltas the
way a real provider does. ``ScriptedTeam`` hands one scripted model to each
agent in build order.
"""

import json
import re
from typing import Any, Dict, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.messages.tool import tool_call_chunk
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from langchain_core.tools import StructuredTool
from pydantic import Field

from researchAgent.config.settings import ModelSettings, ObservabilitySettings, Settings


# ========== Scripted chat model ==========


def ai_text(content: str) -> AIMessage:
    return AIMessage(content=content)


def ai_call(name: str, args: Optional[Dict[str, Any]] = None, call_id: Optional[str] = None, content: str = "") -> AIMessage:
    """Scripted assistant turn calling one tool."""
    return AIMessage(
        content=content,
        tool_calls=[{"id": call_id or f"call_{name}", "name": name, "args": args or {}}],
    )


class ScriptedChatModel(BaseChatModel):
    """Chat model replaying a fixed list of responses.

    Runs out of script → empty assistant message.
    """

    responses: List[AIMessage] = Field(default_factory=list)
    received: List[List[BaseMessage]] = Field(default_factory=list)
    fail_with: Optional[str] = None

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        return self

    def _next(self, messages: List[BaseMessage]) -> AIMessage:
        self.received.append(list(messages))
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        if not self.responses:
            return AIMessage(content="")
        return self.responses.pop(0)

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        return ChatResult(generations=[ChatGeneration(message=self._next(messages))])

    async def _astream(self, messages, stop=None, run_manager=None, **kwargs):
        message = self._next(messages)
        if message.content:
            # Two text chunks so ordering is observable
            half = len(message.content) // 2 or len(message.content)
            for part in (message.content[:half], message.content[half:]):
                if part:
                    yield ChatGenerationChunk(message=AIMessageChunk(content=part))
        for index, call in enumerate(message.tool_calls):
            args = json.dumps(call["args"])
            split = len(args) // 2
            yield ChatGenerationChunk(message=AIMessageChunk(
                content="",
                tool_call_chunks=[tool_call_chunk(name=call["name"], args=args[:split], id=call["id"], index=index)],
            ))
            yield ChatGenerationChunk(message=AIMessageChunk(
                content="",
                tool_call_chunks=[tool_call_chunk(name=None, args=args[split:], id=None, index=index)],
            ))


AGENT_BUILD_ORDER = (
    "planner",
    "researcher",
    "coder",
    "reporter",
    "podcast_writer",
    "ppt_composer",
    "coordinator",
)


class ScriptedTeam:
    """Model factory handing each agent its own scripted model.

    Agents are built in a fixed order on every request, so the n-th factory
    call maps to ``AGENT_BUILD_ORDER[n % 7]``. Models are shared across
    builds, so a script continues over a resumed run.
    """

    def __init__(self, scripts: Optional[Dict[str, List[AIMessage]]] = None):
        scripts = scripts or {}
        self.models = {name: ScriptedChatModel(responses=list(scripts.get(name, []))) for name in AGENT_BUILD_ORDER}
        self.builds = 0

    def __call__(self) -> ScriptedChatModel:
        name = AGENT_BUILD_ORDER[self.builds % len(AGENT_BUILD_ORDER)]
        self.builds += 1
        return self.models[name]


# ========== Tool providers ==========


class FakeProvider:
    """Tool provider double returning prebuilt tools (or failing)."""

    def __init__(self, tools=None, error: Optional[Exception] = None):
        self._tools = list(tools or [])
        self._error = error
        self.list_calls = 0

    async def list_tools(self):
        self.list_calls += 1
        if self._error is not None:
            raise self._error
        return list(self._tools)


def make_tool(name: str, reply: str = "ok", error: Optional[Exception] = None):
    """Async tool taking a single ``query`` argument."""
    calls = []

    async def _run(query: str = "") -> str:
        calls.append(query)
        if error is not None:
            raise error
        return f"{reply}:{query}" if query else reply

    tool = StructuredTool.from_function(coroutine=_run, name=name, description=f"{name} tool")
    tool.metadata = {"calls": calls}
    return tool


# ========== SSE ==========


def parse_sse(body: str) -> List[Dict[str, str]]:
    """Split an SSE body into ``{"event", "data"}`` frames.

    Lines end on ``\\r\\n``, ``\\r`` or ``\\n`` and a blank line dispatches the frame,
    as in a browser EventSource.
    """
    frames = []
    event, data = "", []
    for line in re.split(r"\r\n|\r|\n", body):
        if not line:
            if event or data:
                frames.append({"event": event, "data": "\n".join(data)})
            event, data = "", []
        elif line.startswith("event:"):
            event = line[len("event:"):]
        elif line.startswith("data:"):
            data.append(line[len("data:"):])
    if event or data:
        frames.append({"event": event, "data": "\n".join(data)})
    return frames


def parse_sse_json(body: str) -> List[Dict[str, Any]]:
    return [{"event": f["event"], "data": json.loads(f["data"])} for f in parse_sse(body)]


def make_settings(api_key: Optional[str] = "test-key") -> Settings:
    return Settings(
        models=ModelSettings(OPENAI_API_KEY=api_key, ARK_API_KEY=None, OPENAI_MODEL="gpt-test"),
        observability=ObservabilitySettings(LANGCHAIN_TRACING_V2=False),
    )
