"""
Configuration Loader (``planner_config.loader``).

Responsibility
--------------
Loads the YAML defaults, merges admin overrides over them and parses the
result into the frozen ``AdminConfig``.  Runtime callers go through
``planner_config.get_admin_config()`` rather than calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Engine settings are validated by ``EngineConfig`` itself; a bad value
  surfaces as ``EngineConfigError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  mapping for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing section or key  -> ``ConfigurationError``.
* Invalid engine setting  -> ``EngineConfigError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from planner_config.schema import AdminConfig
from planner_engines.cash_engine import EngineConfig
from planner_engines.metrics import InterestRates
from planner_kernel.domain.values import to_decimal
from planner_kernel.exceptions import ConfigurationError, EngineConfigError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge_overrides(
    defaults: Mapping[str, Any], overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Recursively merge ``overrides`` over ``defaults`` without mutating either."""
    merged = copy.deepcopy(dict(defaults))
    for key, value in (overrides or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name)
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Missing configuration section: {name}")
    return section


def _require(section: Mapping[str, Any], section_name: str, key: str) -> Any:
    if key not in section:
        raise ConfigurationError(f"Missing configuration key: {section_name}.{key}")
    return section[key]


def _decimal_setting(section: Mapping[str, Any], section_name: str, key: str) -> Any:
    value = _require(section, section_name, key)
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise EngineConfigError(key, value, "must be a number") from exc


def parse_admin_config(data: Mapping[str, Any]) -> AdminConfig:
    """
    Parse a merged configuration mapping into ``AdminConfig``.

    Raises:
        ConfigurationError: a required section or key is missing.
        EngineConfigError: an engine setting is out of range.
    """
    engine = _section(data, "cash_engine")
    rates = InterestRates(
        deposit_rate=_decimal_setting(engine, "cash_engine", "deposit_rate"),
        overdraft_rate=_decimal_setting(engine, "cash_engine", "overdraft_rate"),
    )
    cash_engine = EngineConfig(
        max_iterations=_require(engine, "cash_engine", "max_iterations"),
        tolerance=_decimal_setting(engine, "cash_engine", "tolerance"),
        convergence_check=_require(engine, "cash_engine", "convergence_check"),
        rates=rates,
    )

    return AdminConfig(
        cash_engine=cash_engine,
        checksum=compute_checksum(dict(data)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
