"""HTTP endpoint tests through FastAPI's TestClient."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from researchAgent.config.app_config import AppConfig
from researchAgent.runtime import build_runtime
from researchAgent.server import create_app
from researchAgent.server.app import SETUP_MESSAGE
from tests.helpers import ScriptedTeam, ai_call, ai_text, make_settings, parse_sse

pytestmark = pytest.mark.integration


def client_for(team, api_key="test-key"):
    runtime = asyncio.run(build_runtime(
        settings=make_settings(api_key),
        app_config=AppConfig(),
        model_factory=team,
        providers={},
    ))
    return TestClient(create_app(runtime))


def json_frames(body):
    return [dict(f, data=json.loads(f["data"])) for f in parse_sse(body)]


# ========== POST /v1/chat/completions ==========


def test_no_user_message_is_400_without_building_agents():
    team = ScriptedTeam()
    with client_for(team) as client:
        response = client.post("/v1/chat/completions", json={"messages": [{"role": "assistant", "content": "hi"}]})

    assert response.status_code == 400
    assert "error" in response.json()
    assert team.builds == 0


def test_invalid_payload_is_400():
    with client_for(ScriptedTeam()) as client:
        response = client.post("/v1/chat/completions", json={"messages": "not a list"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_text_answer_streams_as_message_frames():
    team = ScriptedTeam({"coordinator": [ai_text("Hello there")]})
    with client_for(team) as client:
        response = client.post("/v1/chat/completions", json={"messages": [
            {"role": "user", "content": "earlier"},
            {"role": "assistant", "content": "ok"},
            {"role": "user", "content": "say hello"},
        ]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    frames = parse_sse(response.text)
    assert [f["event"] for f in frames] == ["message", "message"]
    assert "".join(f["data"] for f in frames) == "Hello there"
    # Last user message is the query
    assert team.models["coordinator"].received[0][-1].content == "say hello"


def test_exit_run_frames():
    team = ScriptedTeam({"coordinator": [ai_call("exit", {"final_result": "bye"}, call_id="c_exit")]})
    with client_for(team) as client:
        response = client.post("/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]})

    frames = parse_sse(response.text)
    names = [f["event"] for f in frames]
    assert names[:2] == ["tool_call_delta", "tool_call_delta"]
    start = json.loads(frames[names.index("tool_call_start")]["data"])
    assert start["id"] == "c_exit" and start["name"] == "exit"
    assert json.loads(start["args"]) == {"final_result": "bye"}
    assert "tool_result" in names
    assert names[-1] == "exit"


def test_transfer_is_surfaced_with_destination():
    team = ScriptedTeam({
        "coordinator": [ai_call("transfer_to_reporter", {"task": "write"}), ai_call("exit")],
        "reporter": [ai_text("# Report")],
    })
    with client_for(team) as client:
        response = client.post("/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]})

    frames = parse_sse(response.text)
    transfers = [f["data"] for f in frames if f["event"] == "transfer_to_agent"]
    assert transfers == ["reporter", "coordinator"]
    assert "# Report" in "".join(f["data"] for f in frames if f["event"] == "message")


def test_model_error_is_an_error_frame():
    team = ScriptedTeam()
    team.models["coordinator"].fail_with = "429 rate_limit"
    with client_for(team) as client:
        response = client.post("/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    frames = parse_sse(response.text)
    assert frames[-1]["event"] == "error"
    assert "429" in frames[-1]["data"]


# ========== POST /api/chat/stream ==========


def test_without_credentials_a_single_setup_frame_is_sent():
    team = ScriptedTeam()
    with client_for(team, api_key=None) as client:
        response = client.post("/api/chat/stream", json={"messages": [{"role": "user", "content": "hi"}]})

    frames = json_frames(response.text)
    assert len(frames) == 1
    assert frames[0]["event"] == "message_chunk"
    assert frames[0]["data"]["content"] == SETUP_MESSAGE
    assert frames[0]["data"]["thread_id"].startswith("thread_")
    assert team.builds == 0


def test_thread_run_interrupts_then_resumes():
    team = ScriptedTeam({
        "coordinator": [
            ai_call("request_plan_approval", {"plan": "1. look it up"}, call_id="approval_call"),
            ai_text("Starting now"),
        ],
    })
    with client_for(team) as client:
        first = client.post("/api/chat/stream", json={
            "thread_id": "t-42",
            "messages": [{"role": "user", "content": "research x"}],
        })
        frames = json_frames(first.text)
        interrupt = [f for f in frames if f["event"] == "interrupt"]
        assert len(interrupt) == 1
        [option] = interrupt[0]["data"]["options"]
        assert option["id"] == "approval_call"
        assert option["info"]["plan"] == "1. look it up"
        assert all(f["data"]["thread_id"] == "t-42" for f in frames)

        second = client.post("/api/chat/stream", json={
            "thread_id": "t-42",
            "interrupt_feedback": "accepted",
            "messages": [{"role": "user", "content": "go ahead"}],
        })

    frames = json_frames(second.text)
    text = "".join(f["data"].get("content", "") for f in frames if f["event"] == "message_chunk")
    assert "Starting now" in text
    assert frames[-1]["data"]["finish_reason"] == "stop"
    assert team.models["coordinator"].received[-1][-1].content == "[ACCEPTED]"


def test_feedback_without_suspended_run_is_400():
    with client_for(ScriptedTeam()) as client:
        response = client.post("/api/chat/stream", json={"thread_id": "nope", "interrupt_feedback": "accepted"})
    assert response.status_code == 400


def test_stream_without_query_or_feedback_is_400():
    team = ScriptedTeam()
    with client_for(team) as client:
        response = client.post("/api/chat/stream", json={"messages": []})
    assert response.status_code == 400
    assert team.builds == 0


# ========== GET /api/config ==========


def test_config_lists_basic_models():
    with client_for(ScriptedTeam()) as client:
        response = client.get("/api/config")
    assert response.status_code == 200
    assert response.json()["models"] == {"basic": ["gpt-test"], "reasoning": []}
