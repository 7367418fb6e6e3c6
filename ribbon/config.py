import os
from typing import Sequence, TypedDict

from ribbon.errors import Diagnostics

ENV_RIBBON_HARD_FAIL = "RIBBON_HARD_FAIL"
ENV_RIBBON_AUTO_REGISTER = "RIBBON_AUTO_REGISTER"

_TRUTHY = {"1", "true", "yes", "on"}


class RegistryConfig(TypedDict, total=False):
    hard_fail: bool
    auto_register: bool
    events: Sequence[str]
    diagnostics: Diagnostics


def env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def config_from_env() -> RegistryConfig:
    """Registry settings from ``RIBBON_HARD_FAIL`` / ``RIBBON_AUTO_REGISTER``."""
    return RegistryConfig(
        hard_fail=env_flag(ENV_RIBBON_HARD_FAIL, False),
        auto_register=env_flag(ENV_RIBBON_AUTO_REGISTER, True),
    )
