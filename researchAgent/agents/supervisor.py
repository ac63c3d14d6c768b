"""Supervisor: the coordinator plus the agents it may transfer control to.

Loop per request:

1. run the coordinator on the conversation and forward its events
2. on a transfer, run the target agent on the user-side messages plus the
   task, forward its events, append its answer to the conversation and
   transfer back to the coordinator
3. stop when the coordinator exits, interrupts, answers without an action or
   the transfer budget is spent
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import List, Mapping, Optional, Protocol, Sequence

from researchAgent.agents.policy import contract_violations
from researchAgent.agents.stream import EventStream, RunContext
from researchAgent.schema import AgentAction, Message, Role, error_event, transfer_event
from researchAgent.utils.error_handler import ConfigurationError, ResearchAgentError
from researchAgent.utils.logging_utils import log_agent_transfer

LOGGER = logging.getLogger(__name__)


class Agent(Protocol):
    """Capability shared by every agent."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    def run(self, ctx: RunContext, history: List[Message]) -> EventStream: ...


class SupervisorAgent:
    """Delegation loop around a coordinator agent.

    Args:
        coordinator: Model-backed agent holding the transfer/approval/exit tools
        sub_agents: Agents the coordinator may transfer to, in delegation order
        max_transfers: Transfers allowed per run before it is stopped with an error
    """

    def __init__(self, coordinator: Agent, sub_agents: Sequence[Agent], max_transfers: int = 40):
        names = [agent.name for agent in sub_agents]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate sub-agent names: {names}")
        if coordinator.name in names:
            raise ConfigurationError(f"Sub-agent cannot share the coordinator name '{coordinator.name}'")

        self._coordinator = coordinator
        self._sub_agents = MappingProxyType({agent.name: agent for agent in sub_agents})
        self._max_transfers = max_transfers

    @property
    def name(self) -> str:
        return self._coordinator.name

    @property
    def description(self) -> str:
        return self._coordinator.description

    @property
    def sub_agents(self) -> Mapping[str, Agent]:
        return self._sub_agents

    def run(self, ctx: RunContext, history: List[Message]) -> EventStream:
        stream = EventStream()
        ctx.spawn(self._produce(ctx, list(history), stream), stream, name="supervisor")
        return stream

    async def _produce(self, ctx: RunContext, history: List[Message], out: EventStream) -> None:
        transfers = 0
        try:
            while not ctx.cancelled:
                coordinator_stream = self._coordinator.run(ctx, history)
                action = await self._forward(coordinator_stream, out)
                history.extend(coordinator_stream.result or [])

                if action is None or action.exit or action.interrupted is not None:
                    break

                target_name = action.transfer_to_agent.dest_agent_name
                target = self._sub_agents.get(target_name)
                if target is None:
                    out.send(error_event(self.name, ResearchAgentError(f"Unknown agent: {target_name}")))
                    break

                transfers += 1
                if transfers > self._max_transfers:
                    out.send(error_event(
                        self.name,
                        ResearchAgentError(f"Stopped after {self._max_transfers} agent transfers"),
                    ))
                    break

                log_agent_transfer(LOGGER, self.name, target_name, action.transfer_to_agent.task)
                answer = await self._delegate(ctx, target, history, action.transfer_to_agent.task, out)
                history.append(Message.user(f"For context: [{target_name}] said: {answer}"))
                out.send(transfer_event(target_name, self.name))
                log_agent_transfer(LOGGER, target_name, self.name)
        finally:
            out.result = history

        for violation in contract_violations(history):
            LOGGER.warning(f"Workflow contract violation: {violation}")

    async def _delegate(
        self,
        ctx: RunContext,
        agent: Agent,
        history: List[Message],
        task: str,
        out: EventStream,
    ) -> str:
        """Run one sub-agent and return its final answer text."""
        sub_history = [m for m in history if m.role == Role.USER]
        if task:
            sub_history.append(Message.user(task))

        stream = agent.run(ctx, sub_history)
        await self._forward(stream, out)

        for message in reversed(stream.result or []):
            if message.role == Role.ASSISTANT and message.content:
                return message.content
        return "(no output)"

    @staticmethod
    async def _forward(stream: EventStream, out: EventStream) -> Optional[AgentAction]:
        """Forward every event of ``stream``; return its last action, if any."""
        action = None
        async for event in stream:
            out.send(event)
            if event.action is not None:
                action = event.action
        return action


__all__ = ["Agent", "SupervisorAgent"]
