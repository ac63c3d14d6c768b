"""Signal tools that give the coordinator control over the run.

- ``transfer_to_{agent}``: delegate a task to another agent
- ``request_plan_approval``: suspend the run until the requester approves the plan
- ``exit``: finish the request

The tools themselves only echo a JSON signal. The agent's tools node reads the
resulting ToolMessage by name and turns it into an AgentAction, ending the
agent's own loop.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from langchain_core.messages import ToolMessage
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field

LOGGER = logging.getLogger(__name__)

TRANSFER_PREFIX = "transfer_to_"
EXIT_TOOL_NAME = "exit"
APPROVAL_TOOL_NAME = "request_plan_approval"

# Interrupt choices offered to the requester
PLAN_OPTIONS = [
    {"text": "Edit plan", "value": "edit_plan"},
    {"text": "Start research", "value": "accepted"},
]


class TransferInput(BaseModel):
    task: str = Field(default="", description="Detailed task for the target agent, including any context it needs")


class ExitInput(BaseModel):
    final_result: str = Field(default="", description="Short closing remark for the requester")


class ApprovalInput(BaseModel):
    plan: str = Field(description="The plan to present to the requester, one step per line")


def transfer_tool_name(agent_name: str) -> str:
    return f"{TRANSFER_PREFIX}{agent_name}"


def create_transfer_tools(agents: Sequence[Tuple[str, str]]) -> List[BaseTool]:
    """Create one transfer tool per delegate.

    Args:
        agents: ``(name, description)`` pairs, in delegation order

    Returns:
        List of ``transfer_to_{name}`` tools
    """
    tools = []
    for name, description in agents:
        tools.append(_create_single_transfer_tool(name, description))
        LOGGER.debug(f"Created handoff tool: {transfer_tool_name(name)}")
    return tools


def _create_single_transfer_tool(agent_name: str, description: str) -> BaseTool:
    tool_name = transfer_tool_name(agent_name)

    def handoff(task: str = "") -> str:
        return json.dumps({"signal": "transfer", "agent": agent_name, "task": task}, ensure_ascii=False)

    return StructuredTool.from_function(
        func=handoff,
        name=tool_name,
        description=(
            f"Transfer control to the {agent_name} agent.\n\n{description}\n\n"
            "The target agent only sees the original request, earlier agent "
            "results and the task you pass, so make the task self-contained."
        ),
        args_schema=TransferInput,
    )


def create_exit_tool() -> BaseTool:
    def exit_run(final_result: str = "") -> str:
        return json.dumps({"signal": "exit", "final_result": final_result}, ensure_ascii=False)

    return StructuredTool.from_function(
        func=exit_run,
        name=EXIT_TOOL_NAME,
        description="Finish the request. Call only after the final output has been produced.",
        args_schema=ExitInput,
    )


def create_approval_tool() -> BaseTool:
    def request_plan_approval(plan: str) -> str:
        return json.dumps({"signal": "interrupt", "plan": plan}, ensure_ascii=False)

    return StructuredTool.from_function(
        func=request_plan_approval,
        name=APPROVAL_TOOL_NAME,
        description=(
            "Present the plan to the requester and wait for approval. "
            "The run pauses until the requester accepts or asks for changes."
        ),
        args_schema=ApprovalInput,
    )


def read_signal(message: ToolMessage) -> Optional[Dict[str, Any]]:
    """Decode the signal carried by a signal tool's ToolMessage.

    Returns:
        The signal dict, or None if the message is not a (successful) signal
    """
    name = message.name or ""
    if not (name.startswith(TRANSFER_PREFIX) or name in (EXIT_TOOL_NAME, APPROVAL_TOOL_NAME)):
        return None
    if getattr(message, "status", "success") == "error":
        return None
    try:
        signal = json.loads(message.content)
    except (TypeError, ValueError):
        LOGGER.warning(f"Malformed signal from {name}: {message.content!r}")
        return None
    return signal if isinstance(signal, dict) and "signal" in signal else None


__all__ = [
    "TRANSFER_PREFIX",
    "EXIT_TOOL_NAME",
    "APPROVAL_TOOL_NAME",
    "PLAN_OPTIONS",
    "transfer_tool_name",
    "create_transfer_tools",
    "create_exit_tool",
    "create_approval_tool",
    "read_signal",
]
