"""Request bodies for the HTTP endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: str
    content: str = ""


class _MessagesRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)

    def last_user_query(self) -> str:
        """Content of the last user message, ``""`` when there is none."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


class ChatCompletionsRequest(_MessagesRequest):
    """Body of ``POST /v1/chat/completions``."""


class ChatStreamRequest(_MessagesRequest):
    """Body of ``POST /api/chat/stream``.

    ``interrupt_feedback`` (``accepted`` / ``edit_plan``) resumes the run
    suspended under ``thread_id``; the last user message is the reply text.
    """

    thread_id: str = ""
    locale: str = ""
    interrupt_feedback: Optional[str] = None


__all__ = ["ChatMessage", "ChatCompletionsRequest", "ChatStreamRequest"]
