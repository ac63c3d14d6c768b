"""researchAgent entrypoint

Usage:
    # Console mode: ask one research question on stdin
    python -m researchAgent

    # HTTP server mode (SSE endpoints)
    python -m researchAgent -s
"""
import argparse
import asyncio
import logging
import sys

from researchAgent.cli import run_console
from researchAgent.config import get_settings
from researchAgent.runtime import build_runtime
from researchAgent.server import run_server
from researchAgent.utils.error_handler import ConfigurationError
from researchAgent.utils.logging_utils import setup_logging

LOGGER = logging.getLogger("researchAgent.main")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="researchAgent - multi-agent deep research",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-s", "--server",
        action="store_true",
        help="Run the HTTP server instead of the console",
    )
    return parser.parse_args(argv)


async def console_main() -> int:
    runtime = await build_runtime()
    try:
        return await run_console(runtime)
    finally:
        await runtime.shutdown()


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(
        console_level=settings.observability.log_level,
        log_dir=settings.observability.log_dir,
    )

    try:
        if args.server:
            run_server(settings)
            return 0
        return asyncio.run(console_main())
    except ConfigurationError as e:
        LOGGER.error(f"Initialization failed: {e}")
        print(f"Initialization failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
