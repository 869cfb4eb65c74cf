"""
Discovery Module - find modules in a running bundle by shape, not by id

This is a pure library package with NO CLI or server code.
Import this in your CLI, server, or any other application.

Usage:
    from discovery import ModuleDiscovery, filters

    discovery = ModuleDiscovery().initialize(loader)
    Flux = discovery.bind_lazy_value(filters.by_props("dispatch", "subscribe"))
"""

from discovery import filters
from discovery.api import ModuleDiscovery
from discovery.config import DiscoverySettings

__all__ = ["DiscoverySettings", "ModuleDiscovery", "filters"]
