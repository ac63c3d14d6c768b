"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from researchAgent.config.app_config import AppConfig  # noqa: E402
from researchAgent.runtime import build_runtime  # noqa: E402
from tests.helpers import ScriptedTeam, make_settings  # noqa: E402


@pytest.fixture
def team():
    return ScriptedTeam()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def runtime_factory():
    """Build a runtime over scripted models and in-memory tool providers."""

    async def _build(team, providers=None, settings=None, app_config=None):
        return await build_runtime(
            settings=settings or make_settings(),
            app_config=app_config or AppConfig(),
            model_factory=team,
            providers=providers or {},
        )

    return _build
