import asyncio
import logging

from discovery.errors import AlreadyInitializedError

logger = logging.getLogger(__name__)


class ReadinessGate:
    """One-shot signal that opens once the loader's registries are available."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_resolved(self) -> bool:
        return self._event.is_set()

    def resolve(self) -> None:
        if self._event.is_set():
            raise AlreadyInitializedError("Readiness gate already resolved")
        self._event.set()
        logger.debug("Readiness gate resolved")

    async def wait(self) -> None:
        await self._event.wait()
