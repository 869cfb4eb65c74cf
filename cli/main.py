"""
CLI Application Logic

Provides an interactive command-line session for inspecting a running bundle
through module discovery.
"""
import logging
import re
from typing import Optional

from discovery import DiscoverySettings, ModuleDiscovery
from discovery.diagnostics import run_reporter
from discovery.utils.loader_ref import resolve_loader
from discovery.utils.source_text import defining_text

logger = logging.getLogger(__name__)

REGEX_PREFIX = "re:"


def _parse_filters(raw: str) -> list:
    """Split a comma-separated filter list; `re:` entries become regexes."""
    filters: list = []
    for part in (p.strip() for p in raw.split(",")):
        if not part:
            continue
        if part.startswith(REGEX_PREFIX):
            filters.append(re.compile(part[len(REGEX_PREFIX):]))
        else:
            filters.append(part)
    return filters


async def interactive_session(discovery: ModuleDiscovery) -> None:
    """
    Run an interactive inspection session.

    Args:
        discovery: Initialized ModuleDiscovery instance
    """
    if not discovery.is_initialized():
        logger.error("Discovery is not initialized. Cannot start interactive session.")
        return

    logger.info("\n%s", "=" * 70)
    logger.info("🧭 INTERACTIVE MODULE DISCOVERY")
    logger.info("%s", "=" * 70)
    logger.info("Commands: 'exit' to quit; filters are comma separated, prefix regexes with 're:'\n")

    while True:
        try:
            step = input("🔄 Step (🔎 search, 🆔 find_id, 📄 extract, 📝 history, 🧪 report, 📊 status, 👋 exit): ").strip().lower()

            if step == "search":
                filters = _parse_filters(input("🔎 Filters: "))
                if not filters:
                    continue
                results = discovery.search(*filters)
                logger.info("\n🔎 %d factories matched: %s", len(results), list(results))
                continue

            if step == "find_id":
                code = [c for c in (p.strip() for p in input("🆔 Code strings: ").split(",")) if c]
                if not code:
                    continue
                module_id = discovery.find_module_id(*code)
                logger.info("\n🆔 Module id: %s", module_id)
                continue

            if step == "extract":
                raw_id = input("📄 Module id: ").strip()
                extracted = discovery.extract(raw_id)
                if extracted is None and raw_id.isdigit():
                    extracted = discovery.extract(int(raw_id))
                if extracted is None:
                    logger.warning("❓ No factory with id %s", raw_id)
                else:
                    logger.info("\n%s", defining_text(extracted))
                continue

            if step == "history":
                for entry in discovery.history:
                    logger.info("📝 %s %r", entry.kind.value, entry.args)
                logger.info("📝 %d entries", len(discovery.history))
                continue

            if step == "report":
                report = await run_reporter(discovery)
                logger.info("\n🧪 Report:\n%s", report.to_serializable())
                continue

            if step == "status":
                logger.info(
                    "\n📊 modules=%d pending=%d strict=%s history=%d",
                    discovery.module_count(),
                    discovery.pending_count,
                    discovery.policy.strict,
                    len(discovery.history),
                )
                continue

            if step == 'exit':
                logger.info("\n👋 Goodbye!")
                break

            logger.warning("❓ Unknown command: %s", step)
        except KeyboardInterrupt:
            logger.info("\n👋 Goodbye!")
            break
        except Exception as e:
            logger.exception("❌ Error during command: %s", e)


async def run_cli(
    settings: Optional[DiscoverySettings] = None,
    interactive: bool = True
) -> ModuleDiscovery:
    """
    Run the CLI application.

    Args:
        settings: Discovery settings; read from the environment when omitted
        interactive: Whether to start interactive session

    Returns:
        The ModuleDiscovery instance (initialized if a loader was configured)
    """
    logger.info("=" * 70)
    logger.info("🚀 MODULE DISCOVERY CLI")
    logger.info("=" * 70)

    settings = settings or DiscoverySettings.from_env()
    discovery = ModuleDiscovery(settings)

    if not settings.loader:
        logger.error("DISCOVERY_LOADER is not set. Point it at 'package.module:loader'.")
        return discovery

    logger.info("⚙️  Attaching loader %s...", settings.loader)
    try:
        discovery.initialize(resolve_loader(settings.loader))
    except (ImportError, AttributeError, ValueError) as e:
        logger.error("Failed to resolve loader: %s", e)
        return discovery

    if interactive:
        await interactive_session(discovery)

    return discovery


async def main() -> None:
    """Default CLI entry point with standard configuration."""
    await run_cli(interactive=True)
