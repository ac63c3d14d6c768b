"""Runtime: initialization phase, model wiring and the run driver."""

from .app import Runtime, build_runtime
from .runner import Runner

__all__ = ["Runtime", "Runner", "build_runtime"]
