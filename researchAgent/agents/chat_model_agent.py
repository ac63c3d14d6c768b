"""Model-backed agent: a small LangGraph loop of model turns and tool calls.

The graph is compiled once per agent instance. Each run invokes it with the
run's EventStream passed through ``config["configurable"]``.
Nodes push events as they go:

- model node: one Output event per turn (a live chunk stream when streaming is
  enabled, otherwise the complete message)
- tools node: one Output event per tool result; a signal tool result
  (transfer / approval / exit) becomes the run's single Action event and
  ends the loop
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Optional, Sequence, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage, message_chunk_to_message
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode

from researchAgent.agents.handoff_tools import PLAN_OPTIONS, read_signal
from researchAgent.agents.stream import EventStream, MessageStream, RunContext
from researchAgent.schema import (
    AgentEvent,
    InterruptContext,
    Message,
    Role,
    error_event,
    exit_event,
    from_langchain_history,
    interrupt_event,
    message_event,
    stream_event,
    to_langchain_history,
    transfer_event,
)
from researchAgent.utils.error_handler import ModelInvocationError, as_model_error
from researchAgent.utils.logging_utils import log_error, log_routing_decision, log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)


class AgentState(TypedDict):
    messages: Annotated[List[BaseMessage], add_messages]
    # Signal decoded from a signal tool result; ends the loop when set
    action: Optional[Dict[str, Any]]


class ChatModelAgent:
    """Agent driven by a tool-calling chat model.

    Args:
        name: Agent name (also used in events and transfer tool names)
        description: One-line description shown to the coordinator
        instruction: System prompt
        model: Chat model; tools are bound with ``bind_tools`` when given
        tools: Tools the model may call
        max_iterations: Maximum model turns per run
    """

    def __init__(
        self,
        name: str,
        description: str,
        instruction: str,
        model: BaseChatModel,
        tools: Optional[Sequence[BaseTool]] = None,
        max_iterations: int = 20,
    ):
        self._name = name
        self._description = description
        self._instruction = instruction
        self._tools = tuple(tools or ())
        self._max_iterations = max_iterations
        self._model = model.bind_tools(list(self._tools)) if self._tools else model
        self._tool_node = ToolNode(list(self._tools), handle_tool_errors=True) if self._tools else None
        self._graph = self._build_graph()

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def instruction(self) -> str:
        return self._instruction

    @property
    def tools(self) -> tuple:
        return self._tools

    def run(self, ctx: RunContext, history: List[Message]) -> EventStream:
        """Start a run over ``history`` and return its event stream."""
        stream = EventStream()
        ctx.spawn(self._produce(ctx, history, stream), stream, name=f"agent:{self._name}")
        return stream

    # ========== Graph ==========

    def _build_graph(self):
        graph = StateGraph(AgentState)
        graph.add_node("model", self._call_model)
        graph.add_edge(START, "model")

        if self._tool_node is not None:
            graph.add_node("tools", self._call_tools)
            graph.add_conditional_edges("model", self._route_after_model, {"tools": "tools", END: END})
            graph.add_conditional_edges("tools", self._route_after_tools, {"model": "model", END: END})
        else:
            graph.add_edge("model", END)

        return graph.compile()

    def _route_after_model(self, state: AgentState) -> str:
        last = state["messages"][-1] if state["messages"] else None
        if isinstance(last, AIMessage) and last.tool_calls:
            decision = "tools"
            reason = f"{len(last.tool_calls)} tool call(s)"
        else:
            decision = END
            reason = "no tool calls"
        log_routing_decision(LOGGER, f"{self._name}.model", decision, reason)
        return decision

    def _route_after_tools(self, state: AgentState) -> str:
        if state.get("action"):
            log_routing_decision(LOGGER, f"{self._name}.tools", END, f"signal {state['action'].get('signal')}")
            return END
        return "model"

    # ========== Nodes ==========

    async def _call_model(self, state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
        conf = config.get("configurable", {})
        emitter: EventStream = conf["emitter"]
        streaming = conf.get("enable_streaming", True)

        messages = list(state["messages"])
        if self._instruction:
            messages = [SystemMessage(content=self._instruction)] + messages

        if streaming:
            ai_message = await self._stream_turn(messages, emitter)
        else:
            try:
                ai_message = await self._model.ainvoke(messages)
            except Exception as e:
                raise as_model_error(e) from e
            emitter.send(message_event(self._name, Message.from_langchain(ai_message)))

        for call in getattr(ai_message, "tool_calls", None) or []:
            log_tool_call(LOGGER, call.get("name", ""), call.get("args", {}))

        return {"messages": [ai_message]}

    async def _stream_turn(self, messages: List[BaseMessage], emitter: EventStream) -> AIMessage:
        """Forward model chunks live while aggregating the complete message."""
        chunk_stream = MessageStream()
        emitter.send(stream_event(self._name, chunk_stream))

        aggregate = None
        try:
            async for chunk in self._model.astream(messages):
                chunk_stream.send(Message.from_langchain(chunk))
                aggregate = chunk if aggregate is None else aggregate + chunk
        except Exception as e:
            error = as_model_error(e)
            # Already delivered to the consumer through the chunk stream
            error.streamed = True
            chunk_stream.send_error(error)
            raise error from e
        finally:
            chunk_stream.close()

        if aggregate is None:
            return AIMessage(content="")
        return message_chunk_to_message(aggregate)

    async def _call_tools(self, state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
        conf = config.get("configurable", {})
        emitter: EventStream = conf["emitter"]
        streaming = conf.get("enable_streaming", True)

        result = await self._tool_node.ainvoke(state, config)
        tool_messages: List[ToolMessage] = result["messages"]

        action = None
        for message in tool_messages:
            failed = getattr(message, "status", "success") == "error"
            log_tool_result(LOGGER, message.name or "", message.content, success=not failed)
            self._emit_tool_message(emitter, Message.from_langchain(message), streaming)

            signal = read_signal(message)
            if signal is not None and action is None:
                action = dict(signal, tool_call_id=message.tool_call_id)

        return {"messages": tool_messages, "action": action}

    def _emit_tool_message(self, emitter: EventStream, message: Message, streaming: bool) -> None:
        if not streaming:
            emitter.send(message_event(self._name, message))
            return
        chunk_stream = MessageStream()
        chunk_stream.send(message)
        chunk_stream.close()
        emitter.send(stream_event(self._name, chunk_stream, role=Role.TOOL))

    # ========== Run ==========

    async def _produce(self, ctx: RunContext, history: List[Message], stream: EventStream) -> None:
        initial = to_langchain_history(history)
        config = {
            "configurable": {"emitter": stream, "enable_streaming": ctx.enable_streaming},
            "recursion_limit": self._max_iterations * 2 + 1,
        }

        try:
            final_state = await self._graph.ainvoke({"messages": initial, "action": None}, config=config)
        except GraphRecursionError:
            error = ModelInvocationError(
                f"{self._name} exceeded {self._max_iterations} iterations",
                user_message=f"{self._name} stopped after {self._max_iterations} iterations",
            )
            log_error(LOGGER, error, context=f"agent {self._name}")
            stream.send(error_event(self._name, error))
            return
        except Exception as e:
            log_error(LOGGER, e, context=f"agent {self._name}")
            if not getattr(e, "streamed", False):
                stream.send(error_event(self._name, e))
            return

        stream.result = from_langchain_history(final_state["messages"][len(initial):])

        action = final_state.get("action")
        if action:
            stream.send(self._action_event(action))

    def _action_event(self, action: Dict[str, Any]) -> AgentEvent:
        kind = action.get("signal")
        if kind == "transfer":
            return transfer_event(self._name, action["agent"], action.get("task", ""))
        if kind == "interrupt":
            context = InterruptContext(
                id=action.get("tool_call_id") or f"{self._name}-approval",
                info={"plan": action.get("plan", ""), "options": PLAN_OPTIONS},
            )
            return interrupt_event(self._name, [context])
        return exit_event(self._name)


__all__ = ["ChatModelAgent", "AgentState"]
