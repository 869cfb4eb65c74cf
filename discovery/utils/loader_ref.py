import importlib
import logging
from typing import Any

from discovery.models import BundleLoader

logger = logging.getLogger(__name__)


def resolve_loader(ref: str) -> BundleLoader:
    """Import a loader from a 'package.module:attribute' reference.

    If the attribute is a factory (callable without a `modules` registry), it is
    called with no arguments and its result is used.
    """
    module_name, _, attr_path = ref.partition(":")
    if not module_name or not attr_path:
        raise ValueError(f"Invalid loader reference {ref!r}. Expected 'package.module:attribute'")

    target: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        target = getattr(target, part)

    if callable(target) and not hasattr(target, "modules"):
        logger.debug("Calling loader factory %s", ref)
        target = target()
    return target
