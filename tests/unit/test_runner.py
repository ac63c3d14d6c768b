"""Tests for Runner suspension and resume."""

import pytest
from langgraph.store.memory import InMemoryStore

from researchAgent.agents.stream import EventStream
from researchAgent.runtime.runner import SUSPENDED_NAMESPACE, Runner
from researchAgent.schema import InterruptContext, Message, exit_event, interrupt_event, message_event
from researchAgent.utils.error_handler import ResumeError


class EchoAgent:
    """Interrupts on the first run, exits on later ones."""

    name = "coordinator"
    description = "echo"

    def __init__(self):
        self.histories = []

    def run(self, ctx, history):
        self.histories.append(list(history))
        stream = EventStream()
        first = len(self.histories) == 1

        async def produce():
            reply = Message.assistant("plan" if first else "done")
            stream.result = list(history) + [reply]
            stream.send(message_event(self.name, reply))
            if first:
                stream.send(interrupt_event(self.name, [InterruptContext(id="c1", info={"plan": "plan"})]))
            else:
                stream.send(exit_event(self.name))

        ctx.spawn(produce(), stream)
        return stream


@pytest.mark.asyncio
async def test_interrupted_run_is_stored_and_resumed():
    agent = EchoAgent()
    store = InMemoryStore()
    runner = Runner(agent, store)
    ctx = runner.context("thread-1")

    events = await runner.query(ctx, "research x").collect()
    assert events[-1].action.interrupted[0].id == "c1"

    history, contexts = runner.load_suspended("thread-1")
    assert [m.content for m in history] == ["research x", "plan"]
    assert contexts[0].info == {"plan": "plan"}

    resumed = await runner.resume(runner.context("thread-1"), "accepted").collect()
    assert resumed[-1].action.exit
    assert [m.content for m in agent.histories[1]] == ["research x", "plan", "[ACCEPTED]"]
    # Consumed on resume
    assert store.get(SUSPENDED_NAMESPACE, "thread-1") is None


@pytest.mark.asyncio
async def test_edit_feedback_is_forwarded_as_edit_request():
    agent = EchoAgent()
    runner = Runner(agent, InMemoryStore())
    await runner.query(runner.context("t"), "q").collect()

    await runner.resume(runner.context("t"), "edit_plan", "fewer steps").collect()
    assert agent.histories[1][-1].content == "[EDIT_PLAN] fewer steps"


@pytest.mark.asyncio
async def test_resume_without_suspended_run_fails():
    runner = Runner(EchoAgent(), InMemoryStore())
    with pytest.raises(ResumeError):
        runner.resume(runner.context("nothing-here"), "accepted")


@pytest.mark.asyncio
async def test_run_without_thread_id_is_not_stored():
    store = InMemoryStore()
    runner = Runner(EchoAgent(), store)
    await runner.query(runner.context(), "q").collect()
    assert store.search(SUSPENDED_NAMESPACE) == []


@pytest.mark.asyncio
async def test_oldest_suspended_runs_are_dropped_over_the_limit(caplog):
    store = InMemoryStore()
    for thread_id in ("t1", "t2", "t3"):
        runner = Runner(EchoAgent(), store, max_suspended=2)
        await runner.query(runner.context(thread_id), "q").collect()

    runner = Runner(EchoAgent(), store, max_suspended=2)
    assert runner.load_suspended("t1") is None
    assert runner.load_suspended("t2") is not None
    assert runner.load_suspended("t3") is not None
    assert "Dropped suspended run for thread t1" in caplog.text


@pytest.mark.asyncio
async def test_resuspending_a_thread_refreshes_its_place():
    store = InMemoryStore()
    for thread_id in ("t1", "t2", "t1", "t3"):
        runner = Runner(EchoAgent(), store, max_suspended=2)
        await runner.query(runner.context(thread_id), "q").collect()

    runner = Runner(EchoAgent(), store, max_suspended=2)
    assert runner.load_suspended("t2") is None
    assert runner.load_suspended("t1") is not None
    assert runner.load_suspended("t3") is not None
