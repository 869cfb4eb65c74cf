"""Optional timing of the primitive search operations."""
from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class TraceStat:
    calls: int = 0
    total_seconds: float = 0.0

    @property
    def mean_seconds(self) -> float:
        return self.total_seconds / self.calls if self.calls else 0.0


class Tracer:
    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._stats: Dict[str, TraceStat] = {}

    def record(self, name: str, elapsed: float) -> None:
        stat = self._stats.setdefault(name, TraceStat())
        stat.calls += 1
        stat.total_seconds += elapsed
        logger.debug("⏱️  %s took %.6fs", name, elapsed)

    def stats(self) -> Dict[str, TraceStat]:
        return dict(self._stats)


def traced(name: str) -> Callable[[F], F]:
    """Time a method through `self.tracer` when that tracer is enabled."""

    def _wrap(method: F) -> F:
        @functools.wraps(method)
        def _traced(self: Any, *args: Any, **kwargs: Any) -> Any:
            tracer = getattr(self, "tracer", None)
            if tracer is None or not tracer.enabled:
                return method(self, *args, **kwargs)
            start = time.perf_counter()
            try:
                return method(self, *args, **kwargs)
            finally:
                tracer.record(name, time.perf_counter() - start)

        return _traced  # type: ignore[return-value]

    return _wrap
