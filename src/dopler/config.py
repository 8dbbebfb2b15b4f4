"""
Deserializer configuration.

Settings come from (later wins):
    1. DeserializerConfig defaults
    2. A YAML file (explicit path, or $DOPLER_CONFIG)
    3. $DOPLER_LOG_LEVEL for the log level

Example YAML:

    delimiter: ";"
    strict_ranges: true
    rule_clause_split: keyword
    type_aliases:
      enumeration: ENUM
      double: NUMBER
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dopler.factory import DEFAULT_TYPE_ALIASES
from dopler.model import DecisionType

CONFIG_ENV_VAR = "DOPLER_CONFIG"
LOG_LEVEL_ENV_VAR = "DOPLER_LOG_LEVEL"

RULE_CLAUSE_SPLITS = ("keyword", "substring")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""
    pass


@dataclass
class DeserializerConfig:
    """
    Options for DecisionModelDeserializer.

    Properties:
        delimiter:
            Column delimiter; None detects ';' or ',' from the header line
        encoding:
            Text encoding for file sources
        strict_ranges:
            Reject ranges on BOOLEAN (other than true|false) and STRING
            decisions. When False, such ranges are kept as option lists.
        rule_clause_split:
            "keyword" cuts RULES cells at the whole word ``if``;
            "substring" cuts at every occurrence of the letters ``if``
        type_aliases:
            Extra TYPE tags mapped to canonical type names
        log_level:
            Level used by configure_logging
    """

    delimiter: Optional[str] = None
    encoding: str = "utf-8"
    strict_ranges: bool = True
    rule_clause_split: str = "keyword"
    type_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TYPE_ALIASES))
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.delimiter is not None and len(self.delimiter) != 1:
            raise ConfigError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.rule_clause_split not in RULE_CLAUSE_SPLITS:
            raise ConfigError(
                f"rule_clause_split must be one of {RULE_CLAUSE_SPLITS}, got {self.rule_clause_split!r}"
            )
        if not isinstance(self.strict_ranges, bool):
            raise ConfigError(f"strict_ranges must be true or false, got {self.strict_ranges!r}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        if not isinstance(self.type_aliases, dict):
            raise ConfigError("type_aliases must be a mapping")
        canonical = {t.value for t in DecisionType}
        for alias, target in self.type_aliases.items():
            if str(target).upper() not in canonical:
                raise ConfigError(f"type alias {alias!r} maps to unknown type {target!r}")


def config_from_dict(data: Dict[str, Any]) -> DeserializerConfig:
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")
    known = {f.name for f in fields(DeserializerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {unknown}")
    return DeserializerConfig(**data)


def load_config(path: Optional[Union[str, Path]] = None) -> DeserializerConfig:
    """
    Load configuration from YAML.

    Args:
        path: YAML file; falls back to $DOPLER_CONFIG, then to defaults

    Raises:
        ConfigError: if the file is missing, unparseable or invalid
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)

    data: Dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

    level = os.getenv(LOG_LEVEL_ENV_VAR)
    if level:
        data = dict(data, log_level=level)

    return config_from_dict(data)
