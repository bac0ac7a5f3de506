"""
callgate - Configuration.

Rule configuration (which functions are forbidden, and where they are
still allowed) plus runtime settings for the command-line runner.

Rule configuration file (YAML; JSON is accepted as a YAML subset)::

    rules:
      - functions: [Html.input, Html.textarea]
        allowed: View.Input
      - functions: Html.button
        allowed: [View.Button, View.Form]

A bare top-level list of ``[functions, allowed]`` pairs is accepted too.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

import yaml


logger = logging.getLogger(__name__)

StrOrList = Union[str, Sequence[str]]

CONFIG_ENV_VAR = "CALLGATE_CONFIG"

# Checked under the scanned root, in order
CONFIG_FILENAMES = ("callgate.yaml", "callgate.yml", "callgate.json")


class ConfigError(ValueError):
    """Invalid rule configuration."""


def _as_tuple(value: Any, what: str) -> tuple[str, ...]:
    """Normalize a single string or a list of strings."""
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        raise ConfigError(f"{what} must be a string or a list of strings, got {type(value).__name__}")

    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{what} entries must be strings, got {item!r}")
    return tuple(item.strip() for item in items)


def _validate_dotted(name: str, what: str) -> None:
    if not name or any(not segment for segment in name.split(".")):
        raise ConfigError(f"Malformed {what} {name!r}")


@dataclass(frozen=True)
class Binding:
    """One configuration entry: functions that are only allowed in the listed modules."""
    functions: tuple[str, ...]
    allowed_modules: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.functions:
            raise ConfigError("A binding must name at least one function")
        for name in self.functions:
            _validate_dotted(name, "function name")
        for module in self.allowed_modules:
            _validate_dotted(module, "module name")

    @classmethod
    def from_pair(cls, functions: StrOrList, allowed: StrOrList) -> "Binding":
        binding = cls(
            functions=_as_tuple(functions, "functions"),
            allowed_modules=_as_tuple(allowed, "allowed modules"),
        )
        if not binding.allowed_modules:
            logger.warning("No allowed modules for %s: forbidden everywhere", ", ".join(binding.functions))
        return binding


@dataclass(frozen=True)
class RuleConfig:
    """Ordered list of independent bindings."""
    bindings: tuple[Binding, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[StrOrList, StrOrList]]) -> "RuleConfig":
        bindings = []
        for index, pair in enumerate(pairs):
            try:
                functions, allowed = pair
            except (TypeError, ValueError):
                raise ConfigError(f"Entry {index} must be a (functions, allowed modules) pair") from None
            bindings.append(Binding.from_pair(functions, allowed))
        return cls(bindings=tuple(bindings))

    @classmethod
    def from_data(cls, data: Any) -> "RuleConfig":
        """Build from decoded YAML/JSON data."""
        if isinstance(data, dict):
            if "rules" not in data:
                raise ConfigError("Configuration mapping must have a 'rules' key")
            data = data["rules"] or []
        if not isinstance(data, list):
            raise ConfigError("Configuration must be a list of rules")

        pairs = []
        for index, entry in enumerate(data):
            if isinstance(entry, dict):
                if "functions" not in entry:
                    raise ConfigError(f"Rule {index} is missing 'functions'")
                pairs.append((entry["functions"], entry.get("allowed", [])))
            else:
                pairs.append(entry)
        return cls.from_pairs(pairs)

    @property
    def function_names(self) -> tuple[str, ...]:
        """Every configured function name, first occurrence order."""
        seen: dict[str, None] = {}
        for binding in self.bindings:
            for name in binding.functions:
                seen.setdefault(name, None)
        return tuple(seen)


def load_rule_config(path: Path) -> RuleConfig:
    """Load a RuleConfig from a YAML or JSON file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if data is None:
        raise ConfigError(f"{path} is empty")

    config = RuleConfig.from_data(data)
    logger.info("Loaded %d rule binding(s) from %s", len(config.bindings), path)
    return config


def find_config_file(root: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    """Locate the rule configuration: explicit path, environment variable, then root files."""
    if explicit is not None:
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.exists():
            return candidate
    return None


@dataclass
class LintConfig:
    """Runtime configuration for the runner."""

    root: Path

    source_exts: tuple[str, ...] = (".elm",)

    # Directory exclusions
    exclude_dirs: tuple[str, ...] = (
        ".git",
        "elm-stuff",
        "node_modules",
        "dist",
        "build",
    )

    # Explicit file list (disables directory scan)
    explicit_files: Optional[tuple[Path, ...]] = None

    # Resolve references through a precomputed module-name lookup table
    use_lookup_table: bool = False

    # Output settings
    json_output: bool = False

    rules: RuleConfig = field(default_factory=RuleConfig)


def should_exclude_path(cfg: LintConfig, path: Path) -> bool:
    """Check if path should be excluded from scanning."""
    return any(d in path.parts for d in cfg.exclude_dirs)
