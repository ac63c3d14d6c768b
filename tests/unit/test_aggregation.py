"""Tests for tool-call delta reassembly."""

from researchAgent.schema import ToolCall
from researchAgent.server.aggregation import ToolCallAccumulator, merge_fragments


def test_two_deltas_resolve_to_one_call():
    acc = ToolCallAccumulator()
    acc.add(ToolCall(id="c1", function_name="run", arguments='{"x":', fragment_index=0))
    acc.add(ToolCall(arguments="1}", fragment_index=0))

    [call] = acc.resolve()
    assert (call.id, call.function_name, call.arguments) == ("c1", "run", '{"x":1}')
    assert call.parsed_arguments() == {"x": 1}
    assert call.type == "function"


def test_id_and_name_come_from_first_non_empty_fragment():
    call = merge_fragments([
        ToolCall(arguments="[", fragment_index=2),
        ToolCall(id="late", arguments="1", fragment_index=2),
        ToolCall(id="ignored", function_name="f", arguments="]", fragment_index=2),
    ])
    assert call.id == "late"
    assert call.function_name == "f"
    assert call.arguments == "[1]"


def test_resolve_orders_by_index_not_arrival():
    acc = ToolCallAccumulator()
    acc.add(ToolCall(id="b", function_name="second", arguments="{}", fragment_index=1))
    acc.add(ToolCall(id="a", function_name="first", arguments="{", fragment_index=0))
    acc.add(ToolCall(arguments="}", fragment_index=0))

    assert [c.id for c in acc.resolve()] == ["a", "b"]
    assert len(acc) == 2


def test_delta_without_index_is_not_aggregated():
    acc = ToolCallAccumulator()
    assert acc.add(ToolCall(id="x", function_name="f")) is False
    assert acc.resolve() == []
