"""
Public API of the discovery layer.

`ModuleDiscovery` owns every piece of long-lived state (subscriptions,
readiness, history) and is the object other code talks to.
"""
from .module_discovery import ModuleDiscovery

__all__ = ["ModuleDiscovery"]
