"""
Admin configuration schema (``planner_config.schema``).

Frozen dataclasses describing the compiled admin configuration.  The
cash engine settings are the engine's own ``EngineConfig`` so the value
handed to the engine is exactly the value that was validated here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from planner_engines.cash_engine import EngineConfig


@dataclass(frozen=True)
class AdminConfig:
    """Compiled admin configuration, the sole runtime config artifact."""

    cash_engine: EngineConfig
    checksum: str = ""

    def to_dict(self) -> dict[str, Any]:
        engine = self.cash_engine
        return {
            "cash_engine": {
                "max_iterations": engine.max_iterations,
                "tolerance": str(engine.tolerance),
                "convergence_check": engine.convergence_check.value,
                "deposit_rate": str(engine.rates.deposit_rate),
                "overdraft_rate": str(engine.rates.overdraft_rate),
            },
        }
