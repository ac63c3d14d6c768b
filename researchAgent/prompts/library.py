"""Prompt templates, loaded once at startup and shared read-only."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from researchAgent.utils.error_handler import ConfigurationError, PromptNotFoundError

LOGGER = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

PROMPT_KEYS = (
    "planner",
    "researcher",
    "coder",
    "reporter",
    "podcast_script_writer",
    "ppt_composer",
    "coordinator",
)


class PromptLibrary:
    """Immutable mapping from prompt key to raw template text."""

    def __init__(self, prompts: Mapping[str, str]):
        self._prompts = MappingProxyType(dict(prompts))

    @classmethod
    def load(cls, template_dir: Optional[Path] = None, keys: Iterable[str] = PROMPT_KEYS) -> "PromptLibrary":
        """Read ``<key>.md`` for every key.

        Raises:
            PromptNotFoundError: If a template file is missing
            ConfigurationError: If a template file cannot be read
        """
        directory = Path(template_dir) if template_dir else TEMPLATE_DIR
        prompts = {}
        for key in keys:
            path = directory / f"{key}.md"
            if not path.exists():
                raise PromptNotFoundError(key)
            try:
                prompts[key] = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Failed to read prompt {path}: {e}") from e
        LOGGER.info(f"Loaded {len(prompts)} prompt template(s) from {directory}")
        return cls(prompts)

    def get(self, key: str) -> str:
        try:
            return self._prompts[key]
        except KeyError:
            raise PromptNotFoundError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._prompts

    def keys(self):
        return self._prompts.keys()


__all__ = ["PromptLibrary", "PROMPT_KEYS", "TEMPLATE_DIR"]
