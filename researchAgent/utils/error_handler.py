"""Exception hierarchy and model error translation for researchAgent."""

from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)


class ResearchAgentError(Exception):
    """Base exception for researchAgent errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class ConfigurationError(ResearchAgentError):
    """Invalid or missing configuration. Fatal at startup."""
    pass


class PromptNotFoundError(ConfigurationError):
    """An agent asked for a prompt template that was never loaded."""

    def __init__(self, key: str):
        super().__init__(f"Prompt template not found: {key}")
        self.key = key


class ToolProviderError(ResearchAgentError):
    """Listing or invoking a tool on a provider failed."""

    def __init__(self, handle: str, message: str):
        super().__init__(f"[{handle}] {message}")
        self.handle = handle


class ModelInvocationError(ResearchAgentError):
    """Error during model invocation."""
    pass


class ResumeError(ResearchAgentError):
    """No suspended run exists for the requested thread."""
    pass


def handle_model_error(error: Exception) -> str:
    """Convert model invocation errors to user-friendly messages.

    Args:
        error: Exception raised during model invocation

    Returns:
        User-friendly error message
    """
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Too many requests, please retry later"

    if "timeout" in error_str:
        return "The model timed out, please retry"

    if "context_length" in error_str:
        return "Conversation is too long for the model context window"

    if "invalid_api_key" in error_str or "authentication" in error_str:
        return "Invalid API key"

    if "quota" in error_str or "insufficient" in error_str:
        return "Model quota exhausted"

    return f"Model service unavailable: {error}"


def as_model_error(error: Exception) -> ModelInvocationError:
    """Wrap an arbitrary model failure, keeping the original as ``__cause__``."""
    if isinstance(error, ModelInvocationError):
        return error
    wrapped = ModelInvocationError(str(error), user_message=handle_model_error(error))
    wrapped.__cause__ = error
    return wrapped


__all__ = [
    "ResearchAgentError",
    "ConfigurationError",
    "PromptNotFoundError",
    "ToolProviderError",
    "ModelInvocationError",
    "ResumeError",
    "handle_model_error",
    "as_model_error",
]
