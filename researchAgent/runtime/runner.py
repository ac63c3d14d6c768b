"""Runner: drives the top-level agent and keeps interrupted runs resumable.

When a run ends on an interrupt (plan approval), its conversation and the
interrupt contexts are stored under the thread id. ``resume`` loads them,
appends the requester's reply as an approval signal and runs again from that
point.
"""

from __future__ import annotations

import itertools
import logging
from typing import List, Optional

from langgraph.store.base import BaseStore

from researchAgent.agents.policy import approval_reply
from researchAgent.agents.stream import EventStream, RunContext
from researchAgent.agents.supervisor import Agent
from researchAgent.schema import InterruptContext, Message
from researchAgent.utils.error_handler import ResumeError
from researchAgent.utils.logging_utils import log_user_message

LOGGER = logging.getLogger(__name__)

SUSPENDED_NAMESPACE = ("interrupted_runs",)
DEFAULT_MAX_SUSPENDED = 1000

# Suspension order, shared by every Runner over the same process-wide store
_SUSPEND_SEQ = itertools.count()


class Runner:
    """Entry point for running an agent tree on one request.

    Args:
        agent: Top-level agent (normally the supervisor)
        store: Checkpoint store for suspended runs
        enable_streaming: Whether model turns are streamed chunk by chunk
        max_suspended: Suspended runs kept in the store; the oldest are
            evicted once a new suspension goes over the limit
    """

    def __init__(
        self,
        agent: Agent,
        store: BaseStore,
        enable_streaming: bool = True,
        max_suspended: int = DEFAULT_MAX_SUSPENDED,
    ):
        self._agent = agent
        self._store = store
        self._enable_streaming = enable_streaming
        self._max_suspended = max_suspended

    def context(self, thread_id: Optional[str] = None) -> RunContext:
        return RunContext(enable_streaming=self._enable_streaming, thread_id=thread_id)

    def query(self, ctx: RunContext, text: str) -> EventStream:
        """Run on a single user message."""
        log_user_message(LOGGER, text)
        return self.run(ctx, [Message.user(text)])

    def run(self, ctx: RunContext, messages: List[Message]) -> EventStream:
        inner = self._agent.run(ctx, list(messages))
        out = EventStream()
        ctx.spawn(self._relay(ctx, inner, out), out, name="runner")
        return out

    def resume(self, ctx: RunContext, feedback: str, text: str = "") -> EventStream:
        """Continue the run suspended under ``ctx.thread_id``.

        Args:
            ctx: Run context; its thread id selects the suspended run
            feedback: ``accepted`` or an edit request kind (e.g. ``edit_plan``)
            text: Free-text reply from the requester

        Raises:
            ResumeError: If nothing is suspended under the thread id
        """
        suspended = self.load_suspended(ctx.thread_id)
        if suspended is None:
            raise ResumeError(f"No interrupted run for thread {ctx.thread_id!r}")

        history, contexts = suspended
        self._store.delete(SUSPENDED_NAMESPACE, ctx.thread_id)
        reply = approval_reply(feedback, text)
        LOGGER.info(f"Resuming thread {ctx.thread_id} ({len(contexts)} interrupt(s)) with {reply!r}")
        return self.run(ctx, history + [Message.user(reply)])

    def load_suspended(self, thread_id: Optional[str]):
        """Return ``(history, contexts)`` for a suspended thread, or None."""
        if not thread_id:
            return None
        item = self._store.get(SUSPENDED_NAMESPACE, thread_id)
        if item is None:
            return None
        history = [Message.from_dict(m) for m in item.value.get("history", [])]
        contexts = [InterruptContext.from_dict(c) for c in item.value.get("interrupts", [])]
        return history, contexts

    async def _relay(self, ctx: RunContext, inner: EventStream, out: EventStream) -> None:
        interrupts = None
        async for event in inner:
            out.send(event)
            if event.action is not None and event.action.interrupted is not None:
                interrupts = event.action.interrupted

        out.result = inner.result
        if interrupts is not None:
            self._suspend(ctx.thread_id, inner.result or [], interrupts)

    def _suspend(self, thread_id: Optional[str], history: List[Message], interrupts: List[InterruptContext]) -> None:
        if not thread_id:
            LOGGER.warning("Run interrupted without a thread id, it cannot be resumed")
            return
        self._store.put(
            SUSPENDED_NAMESPACE,
            thread_id,
            {
                "history": [m.to_dict() for m in history],
                "interrupts": [c.to_dict() for c in interrupts],
                "seq": next(_SUSPEND_SEQ),
            },
        )
        LOGGER.info(f"Run suspended under thread {thread_id}")
        self._evict_oldest()

    def _evict_oldest(self) -> None:
        # The store never holds more than limit + 1 entries, so one page covers it
        items = self._store.search(SUSPENDED_NAMESPACE, limit=self._max_suspended + 1)
        excess = len(items) - self._max_suspended
        if excess <= 0:
            return
        items.sort(key=lambda item: item.value.get("seq", 0))
        for item in items[:excess]:
            self._store.delete(SUSPENDED_NAMESPACE, item.key)
            LOGGER.warning(f"Dropped suspended run for thread {item.key}: over the limit of {self._max_suspended}")


__all__ = ["Runner", "SUSPENDED_NAMESPACE", "DEFAULT_MAX_SUSPENDED"]
