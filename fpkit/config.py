from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .logger import LEVELS


class ConfigError(ValueError):
    pass


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE: return True
    if v in _FALSE: return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class RuntimeConfig:
    """Settings for :meth:`Runtime.default`, normally read from ``FPKIT_*`` variables."""

    log_level: str = "INFO"
    log_json: bool = False
    logger_name: str = "fpkit"
    async_debug: bool = False

    def __post_init__(self) -> None:
        if self.log_level.upper() not in LEVELS:
            raise ConfigError(f"FPKIT_LOG_LEVEL must be one of {', '.join(LEVELS)}, got {self.log_level!r}")
        if not self.logger_name:
            raise ConfigError("FPKIT_LOGGER_NAME must not be empty")

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "RuntimeConfig":
        env = os.environ if environ is None else environ
        defaults = RuntimeConfig()

        def flag(name: str, default: bool) -> bool:
            return _parse_bool(name, env[name]) if name in env else default

        return RuntimeConfig(
            log_level=env.get("FPKIT_LOG_LEVEL", defaults.log_level).strip().upper(),
            log_json=flag("FPKIT_LOG_JSON", defaults.log_json),
            logger_name=env.get("FPKIT_LOGGER_NAME", defaults.logger_name).strip(),
            async_debug=flag("FPKIT_ASYNC_DEBUG", defaults.async_debug),
        )
