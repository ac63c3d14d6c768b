"""Tests for the prompt library and per-request agent assembly."""

from datetime import datetime, timedelta, timezone

import pytest

from researchAgent.agents.factory import AgentResources, build_agents, current_time_rfc3339, with_current_time
from researchAgent.agents.handoff_tools import APPROVAL_TOOL_NAME, EXIT_TOOL_NAME
from researchAgent.prompts.library import PROMPT_KEYS, PromptLibrary
from researchAgent.tools.registry import ToolRegistry
from researchAgent.utils.error_handler import PromptNotFoundError
from tests.helpers import ScriptedTeam, make_tool


def resources(registry=None, prompts=None):
    return AgentResources(
        prompts=prompts or PromptLibrary.load(),
        registry=registry or ToolRegistry({}),
        max_step_num=4,
    )


def test_bundled_prompts_cover_every_agent():
    library = PromptLibrary.load()
    assert set(library.keys()) == set(PROMPT_KEYS)
    assert "{{ CURRENT_TIME }}" in library.get("coder")


def test_missing_prompt_file_is_fatal(tmp_path):
    (tmp_path / "planner.md").write_text("plan", encoding="utf-8")
    with pytest.raises(PromptNotFoundError) as excinfo:
        PromptLibrary.load(tmp_path, keys=("planner", "reporter"))
    assert excinfo.value.key == "reporter"


def test_unknown_prompt_key_is_fatal():
    with pytest.raises(PromptNotFoundError):
        PromptLibrary({"planner": "x"}).get("coordinator")


def test_current_time_is_rfc3339():
    moment = datetime(2025, 6, 1, 9, 30, 15, 999, tzinfo=timezone(timedelta(hours=2)))
    assert current_time_rfc3339(moment) == "2025-06-01T09:30:15+02:00"
    assert with_current_time("now: {{ CURRENT_TIME }}", moment) == "now: 2025-06-01T09:30:15+02:00"


def test_agent_set_wiring():
    registry = ToolRegistry({
        "tavily": [make_tool("web_search")],
        "python_executor": [make_tool("python_repl")],
    })
    supervisor = build_agents(resources(registry), ScriptedTeam())

    assert supervisor.name == "coordinator"
    assert list(supervisor.sub_agents) == [
        "investigator", "planner", "researcher", "coder", "reporter", "podcast_writer", "ppt_composer",
    ]
    agents = supervisor.sub_agents
    assert [t.name for t in agents["researcher"].tools] == ["web_search", "python_repl"]
    assert [t.name for t in agents["coder"].tools] == ["python_repl"]
    assert agents["reporter"].tools == ()
    assert "{{ CURRENT_TIME }}" not in agents["coder"].instruction


def test_coordinator_holds_transfer_approval_and_exit_tools():
    supervisor = build_agents(resources(), ScriptedTeam())
    coordinator = supervisor._coordinator
    names = [t.name for t in coordinator.tools]

    assert names[-2:] == [APPROVAL_TOOL_NAME, EXIT_TOOL_NAME]
    assert {n for n in names if n.startswith("transfer_to_")} == {
        f"transfer_to_{name}" for name in supervisor.sub_agents
    }
    assert "Max steps: 4" in coordinator.instruction
    # Only the coordinator can exit
    for agent in supervisor.sub_agents.values():
        assert EXIT_TOOL_NAME not in [t.name for t in getattr(agent, "tools", ())]


def test_every_request_gets_fresh_agents():
    team = ScriptedTeam()
    first = build_agents(resources(), team)
    second = build_agents(resources(), team)
    assert first is not second
    assert first.sub_agents["planner"] is not second.sub_agents["planner"]


def test_missing_prompt_fails_agent_construction():
    prompts = PromptLibrary({key: "x" for key in PROMPT_KEYS if key != "reporter"})
    with pytest.raises(PromptNotFoundError):
        build_agents(resources(prompts=prompts), ScriptedTeam())
