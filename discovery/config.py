"""Settings and strictness policy for the discovery service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from discovery.errors import DiscoveryError

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(env: Mapping[str, str], name: str) -> Optional[bool]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip().lower() in _TRUTHY


class DiscoverySettings(BaseModel):
    """Runtime configuration for a `ModuleDiscovery` instance."""

    strict: bool = Field(False, description="Escalate not-found conditions to exceptions")
    tooling_attached: bool = Field(False, description="Developer tooling is attached; never raise on not-found")
    record_history: Optional[bool] = Field(None, description="Record search history (defaults to strict)")
    trace: bool = Field(False, description="Time the primitive search operations")
    loader: Optional[str] = Field(None, description="'package.module:attribute' reference to the bundle loader")

    @property
    def history_enabled(self) -> bool:
        if self.record_history is None:
            return self.strict
        return self.record_history

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DiscoverySettings":
        """Build settings from DISCOVERY_* environment variables."""
        env = os.environ if env is None else env
        values: dict[str, Any] = {}
        for field_name, var in (
            ("strict", "DISCOVERY_STRICT"),
            ("tooling_attached", "DISCOVERY_TOOLING_ATTACHED"),
            ("record_history", "DISCOVERY_RECORD_HISTORY"),
            ("trace", "DISCOVERY_TRACE"),
        ):
            flag = _env_flag(env, var)
            if flag is not None:
                values[field_name] = flag
        if env.get("DISCOVERY_LOADER"):
            values["loader"] = env["DISCOVERY_LOADER"]
        return cls(**values)


@dataclass
class StrictnessPolicy:
    """Decides whether a reportable condition is logged only or also raised."""

    strict: bool = False
    tooling_attached: bool = False

    @property
    def should_raise(self) -> bool:
        return self.strict and not self.tooling_attached

    def report(self, err: DiscoveryError, *context: Any, level: int = logging.ERROR) -> None:
        if context:
            logger.log(level, "%s | %s", err, ", ".join(repr(c) for c in context))
        else:
            logger.log(level, "%s", err)
        if self.should_raise:
            raise err

    @classmethod
    def from_settings(cls, settings: DiscoverySettings) -> "StrictnessPolicy":
        return cls(strict=settings.strict, tooling_attached=settings.tooling_attached)
