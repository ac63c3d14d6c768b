"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables with support for
multiple alias names (e.g., OPENAI_MODEL and OPENAI_MODEL_ID both work).

Example:
    from researchAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    api_key = settings.models.openai_api_key
    max_transfers = settings.governance.max_transfers
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class ModelSettings(BaseSettings):
    """Chat model credentials and endpoints.

    Two providers are supported, both through the OpenAI-compatible client:
    - OpenAI (or any compatible gateway): OPENAI_API_KEY, OPENAI_MODEL, OPENAI_BASE_URL
    - Ark: MODEL_TYPE=ark plus ARK_API_KEY, ARK_MODEL, ARK_BASE_URL

    Values from the YAML ``model`` section take precedence over OpenAI env vars.
    """

    provider: str = Field(default="openai", alias="MODEL_TYPE")

    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_MODEL", "OPENAI_MODEL_ID"),
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_BASE_URL", "OPENAI_API_BASE"),
    )
    openai_by_azure: bool = Field(default=False, alias="OPENAI_BY_AZURE")
    azure_api_version: Optional[str] = Field(default=None, alias="OPENAI_API_VERSION")

    ark_api_key: Optional[str] = Field(default=None, alias="ARK_API_KEY")
    ark_model: Optional[str] = Field(default=None, alias="ARK_MODEL")
    ark_base_url: Optional[str] = Field(default=None, alias="ARK_BASE_URL")

    temperature: float = Field(default=0.2, ge=0.0, le=2.0, alias="MODEL_TEMPERATURE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def use_ark(self) -> bool:
        return self.provider.lower() == "ark"

    def has_credentials(self) -> bool:
        """Whether any model credential is configured."""
        return bool(self.openai_api_key or self.ark_api_key)

    def basic_model_names(self) -> List[str]:
        """Configured basic model names, OpenAI first."""
        names = []
        if self.openai_model:
            names.append(self.openai_model)
        if self.ark_model:
            names.append(self.ark_model)
        return names


class ServerSettings(BaseSettings):
    """HTTP server binding."""

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, ge=1, le=65535, alias="PORT")
    reload: bool = Field(default=False, alias="SERVER_RELOAD")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class GovernanceSettings(BaseSettings):
    """Runtime governance and control settings.

    Controls agent behavior limits:
    - max_iterations: model/tool round trips allowed inside one agent run (default: 20)
    - max_transfers: delegations the supervisor performs per request (default: 40)
    - mcp_startup_timeout: seconds to wait for each MCP server to initialize (default: 60)
    - max_suspended_runs: runs kept waiting for plan approval before the oldest is dropped (default: 1000)
    """

    max_iterations: int = Field(default=20, ge=1, le=200, alias="AGENT_MAX_ITERATIONS")
    max_transfers: int = Field(default=40, ge=1, le=500, alias="SUPERVISOR_MAX_TRANSFERS")
    mcp_startup_timeout: float = Field(default=60.0, gt=0, alias="MCP_STARTUP_TIMEOUT")
    max_suspended_runs: int = Field(default=1000, ge=1, alias="MAX_SUSPENDED_RUNS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ObservabilitySettings(BaseSettings):
    """Tracing, logging, and configuration file location.

    Controls observability features:
    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, etc.)
    - Logging settings (LOG_LEVEL, LOG_DIR)
    - YAML config path (RESEARCH_AGENT_CONFIG)
    """

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")

    # Relative paths are resolved against the project root
    config_path: str = Field(default="conf/research_agent.yaml", alias="RESEARCH_AGENT_CONFIG")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing four nested settings groups:
    - models: Model credentials (ModelSettings)
    - server: HTTP binding (ServerSettings)
    - governance: Agent behavior controls (GovernanceSettings)
    - observability: Tracing, logging and config location (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelSettings = Field(default_factory=ModelSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
