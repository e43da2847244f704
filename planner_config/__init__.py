"""
planner_config -- single public entrypoint for admin configuration.

Responsibility:
    Provides the ONLY way to obtain admin configuration at runtime through
    ``get_admin_config()``.  The YAML defaults shipped with the package are
    merged with overrides (normally the rows of the ``admin_config`` table)
    and compiled into a frozen ``AdminConfig``.

Architecture position:
    Configuration -- sits above ``planner_kernel`` and ``planner_engines``
    and below ``planner_services``.  Engines never import this package;
    services read the config once per run and pass ``EngineConfig`` down.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_admin_config()``.
    - Deterministic: the same defaults and overrides always produce the same
      ``AdminConfig`` and checksum.

Failure modes:
    - ``FileNotFoundError`` -- the defaults file is missing.
    - ``ConfigurationError`` -- a required section or key is missing.
    - ``EngineConfigError`` -- an engine setting violates its constraints.

Audit relevance:
    Every successful call emits a ``PLANNER_CONFIG_TRACE`` log entry with
    the checksum and the effective cash engine settings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from planner_config.loader import load_yaml_file, merge_overrides, parse_admin_config
from planner_config.schema import AdminConfig

_logger = logging.getLogger("planner_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_admin_config(
    overrides: Mapping[str, Any] | None = None,
    defaults_path: Path | None = None,
) -> AdminConfig:
    """The ONLY public configuration entrypoint.

    Args:
        overrides: Section-keyed overrides, e.g.
            ``{"cash_engine": {"max_iterations": 5}}``.  Keys not present
            keep their default.
        defaults_path: Override path to the defaults YAML.

    Returns:
        AdminConfig -- frozen, validated.
    """
    defaults = load_yaml_file(defaults_path or DEFAULTS_PATH)
    merged = merge_overrides(defaults, overrides)
    config = parse_admin_config(merged)

    _logger.info(
        "PLANNER_CONFIG_TRACE",
        extra={
            "trace_type": "PLANNER_CONFIG_TRACE",
            "checksum": config.checksum,
            "max_iterations": config.cash_engine.max_iterations,
            "tolerance": str(config.cash_engine.tolerance),
            "convergence_check": config.cash_engine.convergence_check.value,
            "override_sections": sorted(overrides or {}),
        },
    )
    return config


__all__ = ["AdminConfig", "DEFAULTS_PATH", "get_admin_config"]
