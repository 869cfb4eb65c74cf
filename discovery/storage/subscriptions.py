import logging
from typing import Any, Dict, List, Set, Tuple

from discovery.models import ModuleCallback, ModuleId, ModuleListener, Predicate
from discovery.utils.source_text import MISSING, default_export

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Pending `(predicate, callback)` pairs plus raw registration listeners.

    Subscriptions are keyed by predicate identity; registering the same
    predicate twice keeps the last callback. A satisfied subscription is
    removed before its callback runs, so each one fires at most once.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[Predicate, ModuleCallback] = {}
        self._listeners: Set[ModuleListener] = set()

    @property
    def pending_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, predicate: Predicate, callback: ModuleCallback) -> None:
        self._subscriptions[predicate] = callback

    def add_listener(self, listener: ModuleListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: ModuleListener) -> None:
        self._listeners.discard(listener)

    def notify(self, module_id: ModuleId, exports: Any, *, include_listeners: bool = True) -> int:
        """Fan a newly registered module out to listeners and pending subscriptions.

        Returns the number of subscriptions satisfied by this module.
        """
        if exports is None:
            return 0

        if include_listeners:
            for listener in list(self._listeners):
                try:
                    listener(exports, module_id)
                except Exception:
                    logger.exception("Error in module listener for module %r", module_id)

        # Subscriptions added by callbacks below only observe later registrations
        snapshot: List[Tuple[Predicate, ModuleCallback]] = list(self._subscriptions.items())
        fired = 0
        for predicate, callback in snapshot:
            if self._subscriptions.get(predicate) is not callback:
                continue
            try:
                match = self._match(predicate, exports)
                if match is MISSING:
                    continue
                del self._subscriptions[predicate]
                fired += 1
                callback(match)
            except Exception:
                logger.exception("Error while firing subscription %r for module %r", predicate, module_id)
        return fired

    @staticmethod
    def _match(predicate: Predicate, exports: Any) -> Any:
        if predicate(exports):
            return exports
        default = default_export(exports)
        if default is not MISSING and default is not None and predicate(default):
            return default
        return MISSING
