"""Replays recorded searches to find the ones a build change broke."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from discovery.filters import by_code, by_props, by_store_name, component_by_code
from discovery.models import SearchHistoryEntry, SearchKind

if TYPE_CHECKING:
    from discovery.api import ModuleDiscovery

logger = logging.getLogger(__name__)

_PREDICATE_KINDS = {
    SearchKind.WAIT_FOR,
    SearchKind.BIND_LAZY_VALUE,
    SearchKind.FIND_COMPONENT,
}
_FILTER_BUILDERS = {
    SearchKind.FIND_BY_PROPS: by_props,
    SearchKind.FIND_EXPORTED_COMPONENT: by_props,
    SearchKind.FIND_COMPONENT_BY_CODE: component_by_code,
    SearchKind.FIND_BY_CODE: by_code,
    SearchKind.FIND_STORE: by_store_name,
}


@dataclass
class ReportFailure:
    entry: SearchHistoryEntry
    reason: str

    def to_serializable(self) -> Dict[str, Any]:
        return {**self.entry.to_serializable(), "reason": self.reason}


@dataclass
class Report:
    checked: int = 0
    failures: List[ReportFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_serializable(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "ok": self.ok,
            "failures": [f.to_serializable() for f in self.failures],
        }


async def run_reporter(discovery: "ModuleDiscovery") -> Report:
    """Check every recorded search against the modules loaded now.

    Meant to run after the bundle has loaded everything it is going to load.
    """
    report = Report()
    for entry in discovery.history:
        report.checked += 1
        reason = await _check_entry(discovery, entry)
        if reason is not None:
            report.failures.append(ReportFailure(entry=entry, reason=reason))

    if report.ok:
        logger.info("✅ Reporter: all %d searches resolved", report.checked)
    else:
        for failure in report.failures:
            logger.warning("❌ Reporter: %s%r failed: %s", failure.entry.kind.value, failure.entry.args, failure.reason)
    return report


async def _check_entry(discovery: "ModuleDiscovery", entry: SearchHistoryEntry) -> Optional[str]:
    kind, args = entry.kind, entry.args

    if kind in _PREDICATE_KINDS:
        predicate = args[0]
    elif kind in _FILTER_BUILDERS:
        predicate = _FILTER_BUILDERS[kind](*args)
    elif kind is SearchKind.EXTRACT_AND_LOAD_CHUNKS:
        code, matcher = args
        try:
            result = await discovery.extract_and_load_chunks(code, matcher)
        except Exception as exc:
            return f"chunk load raised {type(exc).__name__}: {exc}"
        return None if result is not None else "entry point could not be extracted or loaded"
    elif kind in (SearchKind.PROXY_LAZY, SearchKind.LAZY_COMPONENT):
        factory = args[0]
        try:
            result = factory()
        except Exception as exc:
            return f"factory raised {type(exc).__name__}: {exc}"
        return None if result is not None else "factory returned None"
    else:
        return f"unknown search kind {kind!r}"

    if discovery.find(predicate, indirect=True) is None:
        return "no loaded module matched"
    return None
