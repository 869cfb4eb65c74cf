"""Data models and collaborator protocols"""
from .models import (
    BundleLoader,
    FactoryRegistry,
    ModuleCallback,
    ModuleId,
    ModuleListener,
    ModuleRecord,
    ModuleRegistry,
    Predicate,
    SearchHistoryEntry,
    SearchKind,
)

__all__ = [
    "BundleLoader",
    "FactoryRegistry",
    "ModuleCallback",
    "ModuleId",
    "ModuleListener",
    "ModuleRecord",
    "ModuleRegistry",
    "Predicate",
    "SearchHistoryEntry",
    "SearchKind",
]
