"""Core data model shared by agents, the supervisor and the stream adapters.

Messages travel in two shapes: our own ``Message`` (what the wire adapters
consume) and langchain_core messages (what chat models consume). Conversions
live here so the rest of the code only ever deals with one of them at a time.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

if TYPE_CHECKING:
    from researchAgent.agents.stream import MessageStream


class Role(str, Enum):
    """Message author role"""
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    """A tool call, or one streamed fragment of a tool call.

    A call carrying ``fragment_index`` is a partial delta: deltas sharing an
    index concatenate (in arrival order) into one logical call.
    """

    id: str = ""
    function_name: str = ""
    arguments: str = ""
    type: str = "function"
    fragment_index: Optional[int] = None

    @property
    def is_delta(self) -> bool:
        return self.fragment_index is not None

    def parsed_arguments(self) -> Dict[str, Any]:
        """Arguments as a dict; ``{}`` when they are not a JSON object."""
        try:
            value = json.loads(self.arguments) if self.arguments else {}
        except (TypeError, ValueError):
            return {}
        return value if isinstance(value, dict) else {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "type": self.type,
            "name": self.function_name,
            "args": self.arguments,
        }
        if self.fragment_index is not None:
            payload["index"] = self.fragment_index
        return payload


@dataclass
class Message:
    """A conversation message as seen by the stream adapters."""

    role: Role
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    # ========== Constructors ==========

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=list(tool_calls or []))

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: Optional[str] = None) -> "Message":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name)

    # ========== langchain_core interop ==========

    def to_langchain(self) -> BaseMessage:
        if self.role == Role.USER:
            return HumanMessage(content=self.content)
        if self.role == Role.TOOL:
            return ToolMessage(
                content=self.content,
                tool_call_id=self.tool_call_id or "",
                name=self.name,
            )
        tool_calls = [
            {"id": tc.id, "name": tc.function_name, "args": tc.parsed_arguments()}
            for tc in self.tool_calls
        ]
        return AIMessage(content=self.content, tool_calls=tool_calls)

    @classmethod
    def from_langchain(cls, message: BaseMessage) -> "Message":
        """Convert a langchain message (complete or chunk) into a Message.

        ``AIMessageChunk`` tool calls come from ``tool_call_chunks`` so their
        ``index`` survives as ``fragment_index``.

        Raises:
            ValueError: For message types with no counterpart (e.g. system messages)
        """
        content = message_text(message)

        if isinstance(message, AIMessageChunk):
            calls = [
                ToolCall(
                    id=chunk.get("id") or "",
                    function_name=chunk.get("name") or "",
                    arguments=chunk.get("args") or "",
                    fragment_index=chunk.get("index"),
                )
                for chunk in message.tool_call_chunks
            ]
            return cls(role=Role.ASSISTANT, content=content, tool_calls=calls)

        if isinstance(message, AIMessage):
            calls = [
                ToolCall(
                    id=call.get("id") or "",
                    function_name=call.get("name") or "",
                    arguments=json.dumps(call.get("args") or {}, ensure_ascii=False),
                )
                for call in message.tool_calls
            ]
            return cls(role=Role.ASSISTANT, content=content, tool_calls=calls)

        if isinstance(message, ToolMessage):
            return cls(
                role=Role.TOOL,
                content=content,
                tool_call_id=message.tool_call_id,
                name=message.name,
            )

        if isinstance(message, HumanMessage):
            return cls(role=Role.USER, content=content)

        raise ValueError(f"Unsupported message type: {type(message).__name__}")

    # ========== plain-dict form (checkpoint store) ==========

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
            "tool_call_id": self.tool_call_id,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            tool_calls=[
                ToolCall(
                    id=tc.get("id") or "",
                    function_name=tc.get("name") or "",
                    arguments=tc.get("args") or "",
                    type=tc.get("type") or "function",
                    fragment_index=tc.get("index"),
                )
                for tc in data.get("tool_calls") or []
            ],
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
        )


def message_text(message: BaseMessage) -> str:
    """Extract text content from a langchain message (str or content-block list)."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def to_langchain_history(history: List[Message]) -> List[BaseMessage]:
    return [m.to_langchain() for m in history]


def from_langchain_history(messages: List[BaseMessage]) -> List[Message]:
    """Convert langchain messages, skipping system prompts."""
    return [Message.from_langchain(m) for m in messages if not isinstance(m, SystemMessage)]


# ========== Events ==========


@dataclass
class MessageVariant:
    """Agent output: a complete message or a live chunk stream (never both)."""

    message: Optional[Message] = None
    message_stream: Optional["MessageStream"] = None
    role: Role = Role.ASSISTANT
    tool_name: Optional[str] = None

    def __post_init__(self):
        if (self.message is None) == (self.message_stream is None):
            raise ValueError("MessageVariant needs exactly one of message or message_stream")

    @property
    def is_streaming(self) -> bool:
        return self.message_stream is not None


@dataclass(frozen=True)
class TransferToAgent:
    dest_agent_name: str
    task: str = ""


@dataclass(frozen=True)
class InterruptContext:
    """Resumable context attached to an interrupt."""

    id: str
    info: Dict[str, Any] = field(default_factory=dict)
    is_root_cause: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "info": dict(self.info), "is_root_cause": self.is_root_cause}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterruptContext":
        return cls(
            id=data["id"],
            info=dict(data.get("info") or {}),
            is_root_cause=bool(data.get("is_root_cause", True)),
        )


@dataclass
class AgentAction:
    """Control action emitted by an agent: transfer, interrupt or exit."""

    transfer_to_agent: Optional[TransferToAgent] = None
    interrupted: Optional[List[InterruptContext]] = None
    exit: bool = False

    def __post_init__(self):
        populated = sum([
            self.transfer_to_agent is not None,
            self.interrupted is not None,
            bool(self.exit),
        ])
        if populated != 1:
            raise ValueError("AgentAction needs exactly one of transfer_to_agent, interrupted or exit")


@dataclass
class AgentEvent:
    """One tick of an agent run. At most one of output/action/error is set."""

    agent_name: str = ""
    output: Optional[MessageVariant] = None
    action: Optional[AgentAction] = None
    error: Optional[BaseException] = None

    def __post_init__(self):
        populated = sum(x is not None for x in (self.output, self.action, self.error))
        if populated > 1:
            raise ValueError("AgentEvent carries at most one of output, action or error")

    @property
    def is_noop(self) -> bool:
        return self.output is None and self.action is None and self.error is None


def message_event(agent_name: str, message: Message) -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name,
        output=MessageVariant(message=message, role=message.role, tool_name=message.name),
    )


def stream_event(agent_name: str, stream: "MessageStream", role: Role = Role.ASSISTANT) -> AgentEvent:
    return AgentEvent(agent_name=agent_name, output=MessageVariant(message_stream=stream, role=role))


def transfer_event(agent_name: str, dest_agent_name: str, task: str = "") -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name,
        action=AgentAction(transfer_to_agent=TransferToAgent(dest_agent_name, task)),
    )


def interrupt_event(agent_name: str, contexts: List[InterruptContext]) -> AgentEvent:
    return AgentEvent(agent_name=agent_name, action=AgentAction(interrupted=list(contexts)))


def exit_event(agent_name: str) -> AgentEvent:
    return AgentEvent(agent_name=agent_name, action=AgentAction(exit=True))


def error_event(agent_name: str, error: BaseException) -> AgentEvent:
    return AgentEvent(agent_name=agent_name, error=error)


__all__ = [
    "Role",
    "ToolCall",
    "Message",
    "MessageVariant",
    "TransferToAgent",
    "InterruptContext",
    "AgentAction",
    "AgentEvent",
    "message_text",
    "to_langchain_history",
    "from_langchain_history",
    "message_event",
    "stream_event",
    "transfer_event",
    "interrupt_event",
    "exit_event",
    "error_event",
]
