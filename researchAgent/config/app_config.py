"""YAML application configuration (MCP servers, model, workflow settings).

The file layout mirrors ``conf/research_agent.yaml``::

    mcp:
      servers:
        python_runner:
          command: uvx
          args: ["mcp-python-runner"]
          env: {API_TOKEN: "${API_TOKEN}"}
    model:
      default_model: gpt-4o
      api_key: ""
      base_url: ""
    setting:
      max_plan_iterations: 1
      max_step_num: 3

Any problem reading or validating the file is a ConfigurationError: the process
cannot start without it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from researchAgent.config.project_root import resolve_project_path
from researchAgent.utils.error_handler import ConfigurationError

LOGGER = logging.getLogger(__name__)


class MCPServerConfig(BaseModel):
    """One tool-provider process (stdio) or endpoint (SSE when ``url`` is set)."""

    command: str = ""
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None
    enabled: bool = True

    @property
    def transport(self) -> str:
        return "sse" if self.url else "stdio"


class MCPSection(BaseModel):
    servers: Dict[str, MCPServerConfig] = Field(default_factory=dict)


class ModelSection(BaseModel):
    default_model: str = ""
    api_key: str = ""
    base_url: str = ""


class WorkflowSection(BaseModel):
    max_plan_iterations: int = Field(default=1, ge=1)
    max_step_num: int = Field(default=3, ge=1)


class AppConfig(BaseModel):
    """Typed view of the YAML configuration file."""

    mcp: MCPSection = Field(default_factory=MCPSection)
    model: ModelSection = Field(default_factory=ModelSection)
    setting: WorkflowSection = Field(default_factory=WorkflowSection)

    def enabled_servers(self) -> Dict[str, MCPServerConfig]:
        return {name: cfg for name, cfg in self.mcp.servers.items() if cfg.enabled}


def load_app_config(config_path: str | Path) -> AppConfig:
    """Load and validate the YAML configuration.

    Args:
        config_path: Path to the YAML file (relative paths resolve against project root)

    Returns:
        AppConfig instance

    Raises:
        ConfigurationError: If the file is missing, unreadable, not YAML, or fails validation
    """
    path = resolve_project_path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at top level")

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    LOGGER.info(
        f"Loaded config {path}: {len(config.mcp.servers)} MCP server(s), "
        f"max_step_num={config.setting.max_step_num}"
    )
    return config


__all__ = [
    "AppConfig",
    "MCPServerConfig",
    "ModelSection",
    "WorkflowSection",
    "load_app_config",
]
