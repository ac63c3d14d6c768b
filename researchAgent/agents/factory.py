"""Per-request agent assembly.

Agents are cheap: every request gets a fresh set built from the process-wide
prompt library and tool registry, plus a fresh model handle per agent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from langchain_core.language_models import BaseChatModel

from researchAgent.agents.chat_model_agent import ChatModelAgent
from researchAgent.agents.handoff_tools import create_approval_tool, create_exit_tool, create_transfer_tools
from researchAgent.agents.investigator import InvestigatorAgent
from researchAgent.agents.policy import COORDINATOR_NAME, render_workflow, validate_delegates
from researchAgent.agents.supervisor import Agent, SupervisorAgent
from researchAgent.prompts.library import PromptLibrary
from researchAgent.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

CURRENT_TIME_PLACEHOLDER = "{{ CURRENT_TIME }}"

ModelFactory = Callable[[], BaseChatModel]


@dataclass(frozen=True)
class AgentResources:
    """Shared, read-only inputs for building an agent set."""

    prompts: PromptLibrary
    registry: ToolRegistry
    max_step_num: int = 3
    max_iterations: int = 20
    max_transfers: int = 40


def current_time_rfc3339(now: Optional[datetime] = None) -> str:
    """Local time in RFC3339 with second precision, e.g. ``2025-06-01T09:30:00+02:00``."""
    now = now or datetime.now().astimezone()
    return now.isoformat(timespec="seconds")


def with_current_time(template: str, now: Optional[datetime] = None) -> str:
    return template.replace(CURRENT_TIME_PLACEHOLDER, current_time_rfc3339(now))


def build_sub_agents(resources: AgentResources, model_factory: ModelFactory) -> List[Agent]:
    """Build the agents the coordinator can delegate to, in delegation order.

    Raises:
        PromptNotFoundError: If a prompt template is missing
    """
    prompts = resources.prompts
    iterations = resources.max_iterations

    def chat_agent(name, description, prompt_key, tools=None, stamp_time=False):
        instruction = prompts.get(prompt_key)
        if stamp_time:
            instruction = with_current_time(instruction)
        return ChatModelAgent(
            name=name,
            description=description,
            instruction=instruction,
            model=model_factory(),
            tools=tools,
            max_iterations=iterations,
        )

    return [
        InvestigatorAgent(resources.registry),
        chat_agent(
            "planner",
            "Responsible for breaking down complex tasks into executable steps. "
            "Call this agent when you need to create a plan.",
            "planner",
        ),
        chat_agent(
            "researcher",
            "Responsible for executing research tasks. Call this agent when you need to gather information.",
            "researcher",
            tools=resources.registry.research_tools,
        ),
        chat_agent(
            "coder",
            "Responsible for writing code. Call this agent when you need to generate code.",
            "coder",
            tools=resources.registry.execution_tools,
            stamp_time=True,
        ),
        chat_agent(
            "reporter",
            "Responsible for generating the final report based on the findings.",
            "reporter",
        ),
        chat_agent(
            "podcast_writer",
            "Responsible for converting content into a podcast script.",
            "podcast_script_writer",
        ),
        chat_agent(
            "ppt_composer",
            "Responsible for creating a markdown presentation from content.",
            "ppt_composer",
        ),
    ]


def build_coordinator(resources: AgentResources, model_factory: ModelFactory, sub_agents: List[Agent]) -> SupervisorAgent:
    """Build the coordinator and wrap it, with its delegates, in a supervisor.

    Raises:
        PromptNotFoundError: If the coordinator prompt is missing
        ConfigurationError: If the workflow references unregistered agents
    """
    delegates = [(agent.name, agent.description) for agent in sub_agents]
    workflow = render_workflow(delegates, resources.max_step_num)
    validate_delegates([name for name, _ in delegates], workflow)

    instruction = with_current_time(resources.prompts.get(COORDINATOR_NAME)) + workflow
    tools = create_transfer_tools(delegates) + [create_approval_tool(), create_exit_tool()]

    coordinator = ChatModelAgent(
        name=COORDINATOR_NAME,
        description="Coordinates the planning and execution process.",
        instruction=instruction,
        model=model_factory(),
        tools=tools,
        max_iterations=resources.max_iterations,
    )
    return SupervisorAgent(coordinator, sub_agents, max_transfers=resources.max_transfers)


def build_agents(resources: AgentResources, model_factory: ModelFactory) -> SupervisorAgent:
    """Assemble the full agent tree for one request."""
    sub_agents = build_sub_agents(resources, model_factory)
    supervisor = build_coordinator(resources, model_factory, sub_agents)
    LOGGER.debug(f"Built agent set: {COORDINATOR_NAME} → {[a.name for a in sub_agents]}")
    return supervisor


__all__ = [
    "AgentResources",
    "ModelFactory",
    "CURRENT_TIME_PLACEHOLDER",
    "current_time_rfc3339",
    "with_current_time",
    "build_sub_agents",
    "build_coordinator",
    "build_agents",
]
