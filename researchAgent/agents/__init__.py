"""Agents: model-backed agents, the investigator and the supervising coordinator."""

from .chat_model_agent import ChatModelAgent
from .factory import AgentResources, build_agents
from .investigator import InvestigatorAgent
from .stream import EventStream, MessageStream, RunContext
from .supervisor import Agent, SupervisorAgent

__all__ = [
    "Agent",
    "AgentResources",
    "ChatModelAgent",
    "EventStream",
    "InvestigatorAgent",
    "MessageStream",
    "RunContext",
    "SupervisorAgent",
    "build_agents",
]
