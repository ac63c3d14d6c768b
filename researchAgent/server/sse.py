"""Server-Sent Events framing."""

from __future__ import annotations

import json
import re
from typing import Any

# SSE readers end a line on any of these
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_sse(event: str, data: str = "") -> str:
    """Encode one SSE frame; multi-line data becomes one ``data:`` line per line.

    ``\\r\\n`` and a lone ``\\r`` split lines the same way ``\\n`` does, so a
    client rebuilds the text with ``\\n`` in their place and loses nothing.
    """
    lines = _LINE_BREAK.split(data) if data else [""]
    return f"event:{event}\n" + "".join(f"data:{line}\n" for line in lines) + "\n"


def format_sse_json(event: str, payload: Any) -> str:
    return format_sse(event, json.dumps(payload, ensure_ascii=False))


__all__ = ["format_sse", "format_sse_json"]
