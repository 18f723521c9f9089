"""
Settings for the command-line driver.

Sources, lowest priority first: built-in defaults, a YAML file
(``covariant.yaml`` in the working directory or an explicit ``--config``
path), ``COVARIANT_*`` environment variables, then command-line flags.

Example ``covariant.yaml``::

    quality: fine
    stl_format: ascii
    boolean_engine: manifold
    log_level: INFO
    thread_mode: none
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .geometry.export import ExportOptions, Quality, StlFormat
from .geometry.threads import ThreadMode

DEFAULT_CONFIG_FILE = "covariant.yaml"

ENV_VARS = {
    "quality": "COVARIANT_QUALITY",
    "stl_format": "COVARIANT_STL_FORMAT",
    "boolean_engine": "COVARIANT_BOOLEAN_ENGINE",
    "log_level": "COVARIANT_LOG_LEVEL",
    "thread_mode": "COVARIANT_THREAD_MODE",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    quality: Quality = field(default_factory=Quality.standard)
    stl_format: StlFormat = StlFormat.BINARY
    boolean_engine: str = "manifold"
    log_level: str = "WARNING"
    thread_mode: ThreadMode = ThreadMode.NONE

    # --- Loading ---

    @classmethod
    def load(cls, config_path: Optional[Path] = None,
             environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from a YAML file and the environment.

        ``config_path`` must exist when given; otherwise ``covariant.yaml``
        in the working directory is read if present.
        """
        settings = cls()
        if config_path is not None:
            settings = settings.merged(read_config_file(Path(config_path)))
        elif Path(DEFAULT_CONFIG_FILE).is_file():
            settings = settings.merged(read_config_file(Path(DEFAULT_CONFIG_FILE)))
        return settings.merged(env_overrides(os.environ if environ is None else environ))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        return cls().merged(env_overrides(os.environ if environ is None else environ))

    def merged(self, raw: Mapping[str, Any]) -> "Settings":
        """A copy with ``raw`` (string or typed values) applied on top."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"unknown setting(s): {', '.join(unknown)}")
        return replace(self, **{key: _PARSERS[key](value) for key, value in raw.items()})

    # --- Derived ---

    def export_options(self) -> ExportOptions:
        return ExportOptions(self.quality, self.stl_format, self.thread_mode)

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping of settings."""
    with open(path, 'r', encoding='utf-8') as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of settings")
    return data


def env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: environ[var]
        for key, var in ENV_VARS.items()
        if environ.get(var, "").strip()
    }


# =============================================================================
# Value parsers
# =============================================================================

def parse_quality(value: Any) -> Quality:
    if isinstance(value, Quality):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Quality.custom(float(value))
    return Quality.parse(str(value))


def parse_stl_format(value: Any) -> StlFormat:
    if isinstance(value, StlFormat):
        return value
    try:
        return StlFormat(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown STL format '{value}' (expected binary or ascii)") from None


def parse_thread_mode(value: Any) -> ThreadMode:
    if isinstance(value, ThreadMode):
        return value
    try:
        return ThreadMode(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"unknown thread mode '{value}' (expected none, cosmetic or full)"
        ) from None


def parse_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level '{value}' (expected one of {', '.join(LOG_LEVELS)})")
    return level


def parse_engine(value: Any) -> str:
    engine = str(value).strip()
    if not engine:
        raise ValueError("boolean engine name must not be empty")
    return engine


_PARSERS = {
    "quality": parse_quality,
    "stl_format": parse_stl_format,
    "boolean_engine": parse_engine,
    "log_level": parse_log_level,
    "thread_mode": parse_thread_mode,
}
