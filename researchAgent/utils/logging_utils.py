"""Logging utilities for researchAgent."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from researchAgent.config.project_root import resolve_project_path

ROOT_LOGGER_NAME = "researchAgent"


def setup_logging(
    console_level: Union[int, str] = logging.WARNING,
    log_dir: Optional[str] = "logs",
) -> logging.Logger:
    """Setup logging configuration for researchAgent.

    Args:
        console_level: Level for the console handler (default: WARNING)
        log_dir: Directory for the timestamped log file; ``None`` disables the file handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Set to DEBUG to capture all child logs
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    log_file: Optional[Path] = None
    if log_dir:
        logs_path = resolve_project_path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        log_file = logs_path / f"research_agent_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    if isinstance(console_level, str):
        console_level = logging.getLevelName(console_level.upper())
        if not isinstance(console_level, int):
            console_level = logging.WARNING

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("researchAgent session started")
    if log_file:
        logger.info(f"Log file: {log_file}")
    logger.info("=" * 80)

    return logger


def log_agent_transfer(logger: logging.Logger, from_agent: str, to_agent: str, task: str = "") -> None:
    """Log a delegation between agents.

    Args:
        logger: Logger instance
        from_agent: Delegating agent name
        to_agent: Destination agent name
        task: Task description passed along with the transfer
    """
    logger.info(f"Agent transfer: {from_agent} → {to_agent}")
    if task:
        logger.debug(f"  Task: {task[:200]}{'...' if len(task) > 200 else ''}")


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    """Log tool invocation.

    Args:
        logger: Logger instance
        tool_name: Name of the tool being called
        args: Tool arguments
    """
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True) -> None:
    """Log tool execution result, truncating long payloads."""
    status = "✓ Success" if success else "✗ Failed"
    logger.info(f"Tool result: {tool_name} - {status}")

    result_str = str(result)
    if len(result_str) > 500:
        result_str = result_str[:500] + "... (truncated)"
    logger.debug(f"  Result: {result_str}")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    logger.info(f"Routing decision from {from_node} → {decision}")
    if reason:
        logger.debug(f"  Reason: {reason}")


def log_error(logger: logging.Logger, error: BaseException, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {error}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)


def log_user_message(logger: logging.Logger, content: str) -> None:
    logger.info(f"User input: {content[:100]}{'...' if len(content) > 100 else ''}")


__all__ = [
    "setup_logging",
    "log_agent_transfer",
    "log_tool_call",
    "log_tool_result",
    "log_routing_decision",
    "log_error",
    "log_user_message",
]
