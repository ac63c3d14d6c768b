"""Tests for console mode."""

import pytest

from researchAgent.cli import run_console
from tests.helpers import ScriptedTeam, ai_call, ai_text, make_settings


class Console:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []
        self.out = []

    def input(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)

    def print(self, *args, end="\n", flush=False):
        self.out.append(" ".join(str(a) for a in args) + end)

    @property
    def text(self):
        return "".join(self.out)


@pytest.mark.asyncio
async def test_console_requires_credentials(runtime_factory):
    runtime = await runtime_factory(ScriptedTeam(), settings=make_settings(api_key=None))
    console = Console()

    assert await run_console(runtime, console.input, console.print) == 1
    assert "OPENAI_API_KEY" in console.text
    assert console.prompts == []


@pytest.mark.asyncio
async def test_console_runs_query_and_approves_plan(runtime_factory):
    team = ScriptedTeam({
        "coordinator": [
            ai_call("transfer_to_planner", {"task": "plan"}),
            ai_call("request_plan_approval", {"plan": "1. dig"}),
            ai_text("All done"),
        ],
        "planner": [ai_text("1. dig")],
    })
    runtime = await runtime_factory(team)
    console = Console("what is x?", "y")

    assert await run_console(runtime, console.input, console.print) == 0
    assert "transfer to planner" in console.text
    assert "waiting for approval of the plan:\n1. dig" in console.text
    assert "All done" in console.text
    assert len(console.prompts) == 2


@pytest.mark.asyncio
async def test_console_sends_plan_edits(runtime_factory):
    team = ScriptedTeam({
        "coordinator": [ai_call("request_plan_approval", {"plan": "1. a"}), ai_text("revised")],
    })
    runtime = await runtime_factory(team)
    console = Console("q", "add a cost step")

    await run_console(runtime, console.input, console.print)
    assert team.models["coordinator"].received[-1][-1].content == "[EDIT_PLAN] add a cost step"


@pytest.mark.asyncio
async def test_empty_query_exits_quietly(runtime_factory):
    team = ScriptedTeam()
    runtime = await runtime_factory(team)
    assert await run_console(runtime, Console("  ").input, Console().print) == 0
    assert team.builds == 0
