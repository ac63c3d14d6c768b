"""HTTP server: FastAPI endpoints and the SSE stream adapters."""

from .adapters import ChatCompletionsAdapter, StreamAdapter, ThreadChatAdapter
from .app import create_app, run_server

__all__ = [
    "ChatCompletionsAdapter",
    "StreamAdapter",
    "ThreadChatAdapter",
    "create_app",
    "run_server",
]
