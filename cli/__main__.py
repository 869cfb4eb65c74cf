"""
CLI Main Entry Point

Run this module to start the interactive CLI:
    DISCOVERY_LOADER=mybundle.runtime:loader python -m cli

DISCOVERY_LOG_LEVEL (default INFO) controls verbosity; DEBUG shows search timings.
"""
import asyncio
import logging
import os
from dotenv import load_dotenv
from cli.main import main


def configure_logging(level_name: str) -> None:
    """Configure logging for the CLI."""
    level = logging.getLevelName(level_name.upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


if __name__ == '__main__':
    load_dotenv()
    configure_logging(os.getenv("DISCOVERY_LOG_LEVEL", "INFO"))
    asyncio.run(main())
