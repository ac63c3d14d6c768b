"""Runtime assembly: the one-time initialization phase.

``build_runtime`` loads configuration, prompts and tools once and returns a
frozen Runtime that request handlers share by reference. Per-request agent
sets come from ``Runtime.build_agents``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from langgraph.store.base import BaseStore
from langgraph.store.memory import InMemoryStore

from researchAgent.agents.factory import AgentResources, ModelFactory, build_agents
from researchAgent.agents.supervisor import SupervisorAgent
from researchAgent.config import AppConfig, Settings, get_settings, load_app_config
from researchAgent.prompts.library import PromptLibrary
from researchAgent.runtime.model_resolver import build_model_factory
from researchAgent.runtime.runner import Runner
from researchAgent.telemetry import configure_tracing
from researchAgent.tools.mcp import MCPServerManager
from researchAgent.tools.registry import ToolProvider, ToolRegistry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Runtime:
    """Process-wide, read-only application state."""

    settings: Settings
    app_config: AppConfig
    prompts: PromptLibrary
    registry: ToolRegistry
    mcp_manager: MCPServerManager
    model_factory: ModelFactory
    checkpoints: BaseStore

    @property
    def resources(self) -> AgentResources:
        return AgentResources(
            prompts=self.prompts,
            registry=self.registry,
            max_step_num=self.app_config.setting.max_step_num,
            max_iterations=self.settings.governance.max_iterations,
            max_transfers=self.settings.governance.max_transfers,
        )

    def has_credentials(self) -> bool:
        return self.settings.models.has_credentials() or bool(self.app_config.model.api_key)

    def build_agents(self) -> SupervisorAgent:
        """Fresh agent tree for one request."""
        return build_agents(self.resources, self.model_factory)

    def build_runner(self, enable_streaming: bool = True) -> Runner:
        return Runner(
            self.build_agents(),
            self.checkpoints,
            enable_streaming=enable_streaming,
            max_suspended=self.settings.governance.max_suspended_runs,
        )

    async def shutdown(self) -> None:
        await self.mcp_manager.shutdown()


async def build_runtime(
    settings: Optional[Settings] = None,
    app_config: Optional[AppConfig] = None,
    model_factory: Optional[ModelFactory] = None,
    providers: Optional[Mapping[str, ToolProvider]] = None,
    prompts: Optional[PromptLibrary] = None,
) -> Runtime:
    """Run the initialization phase.

    Args:
        settings: Defaults to ``get_settings()``
        app_config: Defaults to the YAML file named by RESEARCH_AGENT_CONFIG
        model_factory: Defaults to the ChatOpenAI factory from settings
        providers: Tool providers; defaults to the MCP servers from the config
        prompts: Defaults to the bundled prompt templates

    Raises:
        ConfigurationError: On any invalid config, missing prompt or MCP startup failure
    """
    settings = settings or get_settings()
    configure_tracing(settings.observability)

    if app_config is None:
        app_config = load_app_config(settings.observability.config_path)
    if prompts is None:
        prompts = PromptLibrary.load()

    manager = MCPServerManager(
        app_config.enabled_servers(),
        startup_timeout=settings.governance.mcp_startup_timeout,
    )
    if providers is None:
        providers = await manager.start_all()

    registry = await ToolRegistry.discover(providers)
    LOGGER.info(f"Runtime ready: {registry!r}")

    return Runtime(
        settings=settings,
        app_config=app_config,
        prompts=prompts,
        registry=registry,
        mcp_manager=manager,
        model_factory=model_factory or build_model_factory(settings.models, app_config.model),
        checkpoints=InMemoryStore(),
    )


__all__ = ["Runtime", "build_runtime"]
