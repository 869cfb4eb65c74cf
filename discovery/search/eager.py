"""Scans of the live module registry."""
import logging
from typing import Any, Iterator, List, Optional, Tuple

from discovery.config import StrictnessPolicy
from discovery.diagnostics.tracer import Tracer, traced
from discovery.errors import BulkMismatchError, NoModuleMatchError
from discovery.models import ModuleId, ModuleRegistry, Predicate
from discovery.utils.source_text import MISSING, default_export

logger = logging.getLogger(__name__)


def _require_callable(predicate: Any) -> None:
    if not callable(predicate):
        raise TypeError(f"Invalid filter. Expected a function got {type(predicate).__name__}")


class EagerSearch:
    """Synchronous searches over whatever modules are loaded right now."""

    def __init__(self, policy: StrictnessPolicy, tracer: Optional[Tracer] = None):
        self.policy = policy
        self.tracer = tracer or Tracer()
        self.registry: Optional[ModuleRegistry] = None

    def iter_exports(self) -> Iterator[Tuple[ModuleId, Any]]:
        """Yield `(module_id, exports)` for loaded modules; nothing before init."""
        if self.registry is None:
            return
        for module_id, record in self.registry.entries():
            exports = getattr(record, "exports", None)
            if exports is None:
                continue
            yield module_id, exports

    @staticmethod
    def _candidates(exports: Any) -> Iterator[Any]:
        yield exports
        default = default_export(exports)
        if default is not MISSING and default is not None:
            yield default

    @traced("find")
    def find(self, predicate: Predicate, *, indirect: bool = False) -> Any:
        """Return the first export (or default export) matching `predicate`.

        Returns None when nothing matches; unless `indirect`, the miss is
        reported through the strictness policy first.
        """
        _require_callable(predicate)

        for _, exports in self.iter_exports():
            for candidate in self._candidates(exports):
                if predicate(candidate):
                    return candidate

        if not indirect:
            self.policy.report(NoModuleMatchError("find found no module"), predicate)
        return None

    def find_all(self, predicate: Predicate) -> List[Any]:
        _require_callable(predicate)

        results: List[Any] = []
        for _, exports in self.iter_exports():
            for candidate in self._candidates(exports):
                if predicate(candidate):
                    results.append(candidate)
        return results

    @traced("find_bulk")
    def find_bulk(self, *predicates: Predicate) -> List[Any]:
        """Find several modules in a single registry pass.

        Results are aligned with `predicates`. A module satisfies at most one
        predicate: the first pending one, in declaration order, that matches it.
        """
        if len(predicates) < 2:
            raise ValueError("find_bulk expects at least two filters. Use find for a single filter")
        for predicate in predicates:
            _require_callable(predicate)

        results: List[Any] = [None] * len(predicates)
        pending = list(range(len(predicates)))

        for _, exports in self.iter_exports():
            if not pending:
                break
            claimed = None
            for index in pending:
                for candidate in self._candidates(exports):
                    if predicates[index](candidate):
                        results[index] = candidate
                        claimed = index
                        break
                if claimed is not None:
                    break
            if claimed is not None:
                pending = [i for i in pending if i != claimed]

        found = len(predicates) - len(pending)
        if pending:
            self.policy.report(
                BulkMismatchError(len(predicates), found),
                *(predicates[i] for i in pending),
                level=logging.WARNING,
            )
        return results
