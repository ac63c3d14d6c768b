"""Chat model factory wired from settings and the YAML ``model`` section.

Resolution order:
    - MODEL_TYPE=ark: ARK_API_KEY / ARK_MODEL / ARK_BASE_URL (OpenAI-compatible endpoint)
    - otherwise: YAML ``model`` values, falling back to OPENAI_API_KEY /
      OPENAI_MODEL / OPENAI_BASE_URL; OPENAI_BY_AZURE=true switches to Azure
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from researchAgent.config.app_config import ModelSection
from researchAgent.config.settings import ModelSettings
from researchAgent.utils.error_handler import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_ARK_BASE_URL = "https://ark.cn-beijing.volces.com/api/v3"
DEFAULT_OPENAI_MODEL = "gpt-4o"


class ModelConfig(TypedDict):
    provider: str
    id: str
    api_key: Optional[str]
    base_url: Optional[str]
    by_azure: bool


def resolve_model_config(settings: ModelSettings, model_section: Optional[ModelSection] = None) -> ModelConfig:
    """Pick the model id and credentials from settings and YAML.

    Args:
        settings: Environment model settings
        model_section: YAML ``model`` section (values win over OpenAI env vars)

    Returns:
        Normalized ModelConfig
    """
    if settings.use_ark:
        return {
            "provider": "ark",
            "id": settings.ark_model or "",
            "api_key": settings.ark_api_key,
            "base_url": settings.ark_base_url or DEFAULT_ARK_BASE_URL,
            "by_azure": False,
        }

    section = model_section or ModelSection()
    return {
        "provider": "openai",
        "id": section.default_model or settings.openai_model or DEFAULT_OPENAI_MODEL,
        "api_key": section.api_key or settings.openai_api_key,
        "base_url": section.base_url or settings.openai_base_url,
        "by_azure": settings.openai_by_azure,
    }


def _chat_kwargs(config: ModelConfig, temperature: float) -> Dict[str, object]:
    if not config["api_key"]:
        raise ConfigurationError(f"Missing API key for model {config['id'] or '(unset)'}")
    if not config["id"]:
        raise ConfigurationError(f"Missing model name for provider {config['provider']}")
    kwargs: Dict[str, object] = {"api_key": config["api_key"], "temperature": temperature}
    if config["by_azure"]:
        kwargs["azure_deployment"] = config["id"]
        if config["base_url"]:
            kwargs["azure_endpoint"] = config["base_url"]
    else:
        kwargs["model"] = config["id"]
        if config["base_url"]:
            kwargs["base_url"] = config["base_url"]
    return kwargs


def build_model_factory(
    settings: ModelSettings,
    model_section: Optional[ModelSection] = None,
) -> Callable[[], BaseChatModel]:
    """Construct a factory returning a fresh chat model per call.

    Credentials are checked lazily, on the first model request, so the server
    can start (and answer its setup message) without them.

    Example:
        >>> factory = build_model_factory(get_settings().models)
        >>> model = factory()
    """
    config = resolve_model_config(settings, model_section)
    LOGGER.info(f"Model resolved: provider={config['provider']} id={config['id'] or '(unset)'}")

    def factory() -> BaseChatModel:
        kwargs = _chat_kwargs(config, settings.temperature)
        if config["by_azure"]:
            if settings.azure_api_version:
                kwargs["api_version"] = settings.azure_api_version
            return AzureChatOpenAI(**kwargs)
        return ChatOpenAI(**kwargs)

    return factory


__all__ = ["ModelConfig", "resolve_model_config", "build_model_factory"]
