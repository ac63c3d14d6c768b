"""Console mode: one request from stdin, events printed as they arrive."""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from researchAgent.agents.stream import EventStream
from researchAgent.runtime import Runtime, Runner
from researchAgent.schema import AgentEvent, Role
from researchAgent.utils.logging_utils import log_error

LOGGER = logging.getLogger(__name__)

SEPARATOR = "-" * 50


class ConsolePrinter:
    """Renders agent events as plain text."""

    def __init__(self, print_fn: Callable[..., None] = print):
        self._print = print_fn

    async def render(self, stream: EventStream) -> Optional[AgentEvent]:
        """Print every event; return the interrupt event, if the run stopped on one."""
        interrupt = None
        async for event in stream:
            await self._render_event(event)
            if event.action is not None and event.action.interrupted is not None:
                interrupt = event
        return interrupt

    async def _render_event(self, event: AgentEvent) -> None:
        agent = event.agent_name or "coordinator"
        if event.output is not None:
            output = event.output
            if output.is_streaming:
                await self._render_stream(agent, output)
            else:
                self._render_message(agent, output.message)

        action = event.action
        if action is not None:
            if action.transfer_to_agent is not None:
                self._print(f"\n[{agent}] → transfer to {action.transfer_to_agent.dest_agent_name}")
            if action.interrupted is not None:
                for context in action.interrupted:
                    self._print(f"\n[{agent}] waiting for approval of the plan:\n{context.info.get('plan', '')}")
            if action.exit:
                self._print(f"\n[{agent}] done.")

        if event.error is not None:
            self._print(f"\n[{agent}] error: {event.error}")

    def _render_message(self, agent: str, message) -> None:
        prefix = f"[{agent}:tool]" if message.role == Role.TOOL else f"[{agent}]"
        if message.content:
            self._print(f"\n{prefix} {message.content}")
        for call in message.tool_calls:
            self._print(f"\n{prefix} tool call {call.function_name}({call.arguments})")

    async def _render_stream(self, agent: str, output) -> None:
        started = False
        names = {}
        try:
            async for chunk in output.message_stream:
                if chunk.content:
                    if not started:
                        tag = f"[{agent}:tool]" if output.role == Role.TOOL else f"[{agent}]"
                        self._print(f"\n{tag} ", end="")
                        started = True
                    self._print(chunk.content, end="", flush=True)
                for delta in chunk.tool_calls:
                    if delta.function_name and delta.fragment_index not in names:
                        names[delta.fragment_index] = delta.function_name
        except Exception as e:
            self._print(f"\n[{agent}] stream error: {e}")
        for name in names.values():
            self._print(f"\n[{agent}] tool call {name}")
        if started:
            self._print("")


async def run_console(
    runtime: Runtime,
    input_fn: Callable[[str], str] = input,
    print_fn: Callable[..., None] = print,
) -> int:
    """Read one request, run it, and handle plan approval interactively.

    Returns:
        Process exit code
    """
    if not runtime.has_credentials():
        print_fn("Please set OPENAI_API_KEY or ARK_API_KEY environment variable.")
        return 1

    query = input_fn("What would you like to research? ").strip()
    if not query:
        return 0

    print_fn(SEPARATOR)
    runner: Runner = runtime.build_runner()
    ctx = runner.context(thread_id=f"console_{uuid.uuid4().hex[:8]}")
    printer = ConsolePrinter(print_fn)

    try:
        interrupt = await printer.render(runner.query(ctx, query))
        while interrupt is not None:
            reply = input_fn("\nAccept the plan? [y] or describe the changes: ").strip()
            if reply.lower() in ("", "y", "yes"):
                stream = runner.resume(ctx, "accepted")
            else:
                stream = runner.resume(ctx, "edit_plan", reply)
            interrupt = await printer.render(stream)
    except Exception as e:
        log_error(LOGGER, e, context="console run")
        print_fn(f"\nRun failed: {e}")
        return 1
    finally:
        ctx.cancel()

    return 0


__all__ = ["ConsolePrinter", "run_console"]
