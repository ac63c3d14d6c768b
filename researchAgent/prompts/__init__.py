"""Agent prompt templates."""

from .library import PROMPT_KEYS, TEMPLATE_DIR, PromptLibrary

__all__ = ["PromptLibrary", "PROMPT_KEYS", "TEMPLATE_DIR"]
