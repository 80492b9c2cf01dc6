"""Configuration paths, defaults and TOML-backed parser settings."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .models import FindingSeverity

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("CABPARSE_HOME", str(Path.home() / ".cabparse"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB

# Severities of the broken-logic rules, overridable under [severity]
DEFAULT_SEVERITIES: Dict[str, FindingSeverity] = {
    "missing_parameter": FindingSeverity.HIGH,
    "invalid_constraint": FindingSeverity.MEDIUM,
}

COMPLEXITY_WEIGHTS = {"parts": 10, "parameters": 2, "constraints": 5}
COMPLEXITY_CAP = 100


@dataclass(frozen=True)
class ParserConfig:
    """Switches for the parsing pipeline.

    ``strict_mode`` reports structural warnings as errors. Buffers larger
    than ``max_file_size`` bytes are rejected with a validation error.
    """
    enable_version_detection: bool = True
    enable_broken_logic_detection: bool = True
    enable_dependency_analysis: bool = True
    strict_mode: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    severities: Dict[str, FindingSeverity] = field(default_factory=lambda: dict(DEFAULT_SEVERITIES))

    def severity_for(self, issue_type: str) -> FindingSeverity:
        return self.severities.get(issue_type, FindingSeverity.MEDIUM)

    def with_overrides(self, **overrides: Any) -> "ParserConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severities"] = {k: v.value for k, v in self.severities.items()}
        return data


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = config_file or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read config %s: %s", path, exc)
        return {}


def load_config(config_file: Optional[Path] = None) -> ParserConfig:
    """Build a :class:`ParserConfig` from ``[parser]`` and ``[severity]``.

    Returns:
        The defaults when the file doesn't exist or can't be parsed.
        Unknown keys and invalid severity names are ignored.
    """
    raw = load_full_config(config_file)
    parser_section = raw.get("parser", {})
    known = {"enable_version_detection", "enable_broken_logic_detection",
             "enable_dependency_analysis", "strict_mode", "max_file_size"}
    values = {k: v for k, v in parser_section.items() if k in known}

    severities = dict(DEFAULT_SEVERITIES)
    for issue_type, name in raw.get("severity", {}).items():
        try:
            severities[issue_type] = FindingSeverity(str(name).lower())
        except ValueError:
            logger.warning("Ignoring unknown severity '%s' for %s", name, issue_type)

    return ParserConfig(severities=severities, **values)


def save_config(config: ParserConfig, config_file: Optional[Path] = None) -> bool:
    """Write ``[parser]`` and ``[severity]``, preserving other sections."""
    path = config_file or CONFIG_FILE
    full = load_full_config(path)
    data = config.to_dict()
    full["severity"] = data.pop("severities")
    full["parser"] = data
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w") as f:
            toml.dump(full, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", path, exc)
        return False
