"""Reassembly of streamed tool-call deltas.

Deltas sharing a ``fragment_index`` belong to one logical call. Their
``arguments`` concatenate in arrival order; ``id``, ``function_name`` and
``type`` come from the first delta that carries a non-empty value.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from researchAgent.schema import ToolCall


def merge_fragments(fragments: Iterable[ToolCall]) -> ToolCall:
    """Merge the deltas of a single call into one resolved ToolCall."""
    merged = ToolCall(id="", function_name="", arguments="", type="")
    arguments = []
    for fragment in fragments:
        if not merged.id and fragment.id:
            merged.id = fragment.id
        if not merged.function_name and fragment.function_name:
            merged.function_name = fragment.function_name
        if not merged.type and fragment.type:
            merged.type = fragment.type
        arguments.append(fragment.arguments or "")
    merged.arguments = "".join(arguments)
    merged.type = merged.type or "function"
    return merged


class ToolCallAccumulator:
    """Groups deltas of one chunk stream by index."""

    def __init__(self):
        self._fragments: Dict[int, List[ToolCall]] = {}

    def add(self, delta: ToolCall) -> bool:
        """Record a delta. Deltas without an index are not aggregated.

        Returns:
            Whether the delta was recorded
        """
        if delta.fragment_index is None:
            return False
        self._fragments.setdefault(delta.fragment_index, []).append(delta)
        return True

    def __len__(self) -> int:
        return len(self._fragments)

    def resolve(self) -> List[ToolCall]:
        """One resolved call per index, in index order."""
        return [merge_fragments(self._fragments[index]) for index in sorted(self._fragments)]


__all__ = ["ToolCallAccumulator", "merge_fragments"]
