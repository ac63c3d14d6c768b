"""Coordinator workflow policy and its checkable contract.

The plan → approve → execute → finish sequence is only ever *asked for* in the
coordinator's instruction. What can be checked mechanically is the
conversation it leaves behind, which is what ``contract_violations`` does.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Tuple

from jinja2.sandbox import SandboxedEnvironment

from researchAgent.agents.handoff_tools import EXIT_TOOL_NAME, TRANSFER_PREFIX
from researchAgent.prompts.library import TEMPLATE_DIR
from researchAgent.schema import Message, Role
from researchAgent.utils.error_handler import ConfigurationError

COORDINATOR_NAME = "coordinator"
PLANNER_NAME = "planner"
INVESTIGATOR_NAME = "investigator"
RESEARCH_AGENTS = frozenset({"researcher", "coder"})
FINISHERS = frozenset({"reporter", "podcast_writer", "ppt_composer"})

APPROVAL_SIGNAL = "[ACCEPTED]"
EDIT_PLAN_SIGNAL = "[EDIT_PLAN]"

WORKFLOW_TEMPLATE = TEMPLATE_DIR / "workflow.jinja2"

_BOLD_NAME = re.compile(r"\*\*([a-z_]+)\*\*")


def render_workflow(delegates: Sequence[Tuple[str, str]], max_step_num: int) -> str:
    """Render the workflow section appended to the coordinator instruction.

    Args:
        delegates: ``(name, description)`` of every agent the coordinator may call
        max_step_num: Maximum number of plan steps

    Returns:
        Rendered workflow text
    """
    template = WORKFLOW_TEMPLATE.read_text(encoding="utf-8")
    env = SandboxedEnvironment()
    return env.from_string(template).render(
        delegates=[{"name": name, "description": description} for name, description in delegates],
        max_step_num=max_step_num,
    )


def referenced_agents(workflow_text: str) -> List[str]:
    """Agent names the workflow text tells the coordinator to call (``**name**``)."""
    seen = []
    for name in _BOLD_NAME.findall(workflow_text):
        if name not in seen:
            seen.append(name)
    return seen


def validate_delegates(delegate_names: Iterable[str], workflow_text: str) -> None:
    """Fail fast when the delegation wiring and the workflow text disagree.

    Raises:
        ConfigurationError: On duplicate names, a delegate named like the
            coordinator, or a workflow reference to an unregistered agent
    """
    names = list(delegate_names)
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate agent names: {', '.join(duplicates)}")
    if COORDINATOR_NAME in names:
        raise ConfigurationError(f"'{COORDINATOR_NAME}' cannot delegate to itself")

    missing = [n for n in referenced_agents(workflow_text) if n not in names]
    if missing:
        raise ConfigurationError(f"Workflow references unregistered agents: {', '.join(missing)}")


def approval_reply(feedback: str, text: str = "") -> str:
    """Turn an interrupt reply into the signal message the coordinator expects.

    ``accepted`` (any case) approves; anything else asks for plan changes.
    """
    if feedback.strip().lower() == "accepted":
        return APPROVAL_SIGNAL
    detail = text.strip()
    if detail.startswith(EDIT_PLAN_SIGNAL):
        detail = detail[len(EDIT_PLAN_SIGNAL):].strip()
    detail = detail or feedback.strip()
    return f"{EDIT_PLAN_SIGNAL} {detail}".rstrip()


def is_approval(message: Message) -> bool:
    return message.role == Role.USER and message.content.strip().startswith(APPROVAL_SIGNAL)


def has_approval(history: Sequence[Message]) -> bool:
    return any(is_approval(m) for m in history)


def delegations(history: Sequence[Message]) -> List[str]:
    """Agents the coordinator transferred to, in order (``exit`` included as-is)."""
    calls = []
    for message in history:
        if message.role != Role.ASSISTANT:
            continue
        for call in message.tool_calls:
            if call.function_name.startswith(TRANSFER_PREFIX):
                calls.append(call.function_name[len(TRANSFER_PREFIX):])
            elif call.function_name == EXIT_TOOL_NAME:
                calls.append(EXIT_TOOL_NAME)
    return calls


def contract_violations(history: Sequence[Message]) -> List[str]:
    """Check a supervisor conversation against the workflow contract.

    - no ``exit`` before a finisher ran, once research or coding happened
    - no research or coding without an approval signal since the latest plan;
      skipping the planner counts as unapproved

    Returns:
        Human-readable violations, empty when the run complied
    """
    violations = []
    planned = False
    approved = False
    researched = False
    finished = False

    for message in history:
        if is_approval(message):
            approved = True
            continue
        if message.role != Role.ASSISTANT:
            continue
        for call in message.tool_calls:
            name = call.function_name
            if name == EXIT_TOOL_NAME:
                if researched and not finished:
                    violations.append("exit called before any finisher ran")
                continue
            if not name.startswith(TRANSFER_PREFIX):
                continue
            target = name[len(TRANSFER_PREFIX):]
            if target == PLANNER_NAME:
                # A revised plan needs a fresh approval
                planned = True
                approved = False
            elif target in RESEARCH_AGENTS:
                if not (planned and approved):
                    violations.append(f"delegated to {target} before the plan was approved")
                researched = True
            elif target in FINISHERS:
                finished = True

    return violations


__all__ = [
    "COORDINATOR_NAME",
    "PLANNER_NAME",
    "INVESTIGATOR_NAME",
    "RESEARCH_AGENTS",
    "FINISHERS",
    "APPROVAL_SIGNAL",
    "EDIT_PLAN_SIGNAL",
    "render_workflow",
    "referenced_agents",
    "validate_delegates",
    "approval_reply",
    "is_approval",
    "has_approval",
    "delegations",
    "contract_violations",
]
