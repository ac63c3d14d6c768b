"""End-to-end orchestration over scripted models.

The coordinator follows the workflow only because its model is told to; these
tests script the model both ways and check what the conversation shows.
"""

import pytest

from researchAgent.agents.policy import contract_violations, delegations, has_approval
from researchAgent.schema import Role
from tests.helpers import FakeProvider, ScriptedTeam, ai_call, ai_text, make_tool

pytestmark = pytest.mark.integration


def compliant_team():
    return ScriptedTeam({
        "coordinator": [
            ai_call("transfer_to_investigator", {"task": "solar panel efficiency"}),
            ai_call("transfer_to_planner", {"task": "plan the research"}),
            ai_call("request_plan_approval", {"plan": "1. research efficiency"}, call_id="approve_1"),
            # after resume
            ai_call("transfer_to_researcher", {"task": "research efficiency"}),
            ai_call("transfer_to_reporter", {"task": "write the report"}),
            ai_call("exit", {"final_result": "report delivered"}),
        ],
        "planner": [ai_text("1. research efficiency")],
        "researcher": [ai_call("web_search", {"query": "panel efficiency"}), ai_text("about 22%")],
        "reporter": [ai_text("# Solar report\n\nEfficiency is about 22%.")],
    })


async def first_leg(runtime, query, thread_id):
    runner = runtime.build_runner()
    return await runner.query(runner.context(thread_id), query).collect()


@pytest.mark.asyncio
async def test_plan_approval_suspends_and_resume_completes(runtime_factory):
    team = compliant_team()
    search = make_tool("web_search", reply="22% typical")
    runtime = await runtime_factory(team, providers={"tavily": FakeProvider([search])})

    first = await first_leg(runtime, "How efficient are solar panels?", "thread-a")

    # Suspended at the approval gate
    last = first[-1]
    assert last.agent_name == "coordinator"
    [context] = last.action.interrupted
    assert context.id == "approve_1"
    assert context.info["plan"] == "1. research efficiency"
    assert team.models["researcher"].received == []
    # The investigator used the registered search tool
    assert search.metadata["calls"][0] == "solar panel efficiency"

    resumed_runner = runtime.build_runner()
    second = await resumed_runner.resume(resumed_runner.context("thread-a"), "accepted").collect()

    assert second[-1].action.exit
    assert resumed_runner.load_suspended("thread-a") is None

    transcript = team.models["coordinator"].received[-1]
    assert any(getattr(m, "content", "") == "[ACCEPTED]" for m in transcript)


@pytest.mark.asyncio
async def test_compliant_run_satisfies_contract(runtime_factory):
    team = compliant_team()
    runtime = await runtime_factory(team, providers={"tavily": FakeProvider([make_tool("web_search")])})

    await first_leg(runtime, "How efficient are solar panels?", "thread-b")
    resumed = runtime.build_runner()
    stream = resumed.resume(resumed.context("thread-b"), "accepted")
    await stream.collect()

    history = stream.result
    assert has_approval(history)
    assert delegations(history) == ["investigator", "planner", "researcher", "reporter", "exit"]
    assert contract_violations(history) == []
    # Delegate answers are folded back into the coordinator conversation
    assert any(
        m.role == Role.USER and m.content.startswith("For context: [reporter] said: # Solar report")
        for m in history
    )


@pytest.mark.asyncio
async def test_skipping_approval_is_detected(runtime_factory, caplog):
    team = ScriptedTeam({
        "coordinator": [
            ai_call("transfer_to_planner", {"task": "plan"}),
            ai_call("transfer_to_researcher", {"task": "research"}),
            ai_call("exit", {}),
        ],
        "planner": [ai_text("1. research")],
        "researcher": [ai_text("findings")],
    })
    runtime = await runtime_factory(team)
    runner = runtime.build_runner()
    stream = runner.query(runner.context("thread-c"), "research something")
    events = await stream.collect()

    assert events[-1].action.exit
    assert contract_violations(stream.result) == [
        "delegated to researcher before the plan was approved",
        "exit called before any finisher ran",
    ]
    assert "Workflow contract violation" in caplog.text


@pytest.mark.asyncio
async def test_edit_plan_goes_back_to_the_planner(runtime_factory):
    team = ScriptedTeam({
        "coordinator": [
            ai_call("transfer_to_planner", {"task": "plan"}),
            ai_call("request_plan_approval", {"plan": "1. a"}),
            ai_call("transfer_to_planner", {"task": "revise: fewer steps"}),
            ai_call("request_plan_approval", {"plan": "1. b"}),
        ],
        "planner": [ai_text("1. a"), ai_text("1. b")],
    })
    runtime = await runtime_factory(team)
    runner = runtime.build_runner()
    await runner.query(runner.context("thread-d"), "q").collect()

    again = runtime.build_runner()
    events = await again.resume(again.context("thread-d"), "edit_plan", "fewer steps").collect()

    assert events[-1].action.interrupted[0].info["plan"] == "1. b"
    planner_inputs = team.models["planner"].received[-1]
    assert planner_inputs[-1].content == "revise: fewer steps"
    assert any(getattr(m, "content", "") == "[EDIT_PLAN] fewer steps" for m in planner_inputs)


@pytest.mark.asyncio
async def test_model_failure_is_forwarded_and_run_ends(runtime_factory):
    team = ScriptedTeam()
    team.models["coordinator"].fail_with = "Request timeout"
    runtime = await runtime_factory(team)
    runner = runtime.build_runner()

    events = await runner.query(runner.context("thread-e"), "q").collect()

    [event] = events
    assert event.output.is_streaming
    with pytest.raises(Exception, match="timeout"):
        await event.output.message_stream.collect()
