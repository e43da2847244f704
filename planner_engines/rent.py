"""
planner_engines.rent -- Rent under the FixedEscalation, RevenueShare and PartnerModel schemes.

Responsibility:
    Compute the annual rent of the relocated campus under one of three
    named rent models, project it across years, value the projection as an
    NPV, express it as a share of revenue, and validate model settings.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import planner_kernel domain/logging/exceptions.

Invariants enforced:
    - Tagged union: a RentModel's config class always matches its type tag;
      a mismatch or an unknown tag is rejected at construction.
    - Exhaustive dispatch: every use site handles all three model types.
    - Escalation is gated: the exponent is floor((year - base_year) / frequency).
    - RevenueShare applies the floor before the cap.
    - Decimal-only arithmetic.

Failure modes:
    - UnknownRentModelError for an unrecognized type tag.
    - RentModelConfigError when a config does not fit its tag, or when a
      frequency below 1 would make escalation undefined.
    - MissingRevenueError when a RevenueShare rent is requested without revenue.
    - Validators never raise; they return human-readable messages.

Usage:
    from planner_engines.rent import RentModel, calculate_rent

    model = RentModel.from_dict({
        "type": "FixedEscalation",
        "config": {"baseRent": 100000, "escalationRate": 0.03, "escalationFrequency": 1},
    })
    rent_2028 = calculate_rent(model=model, year=2028, base_year=2025)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from planner_kernel.domain.values import to_decimal
from planner_kernel.exceptions import (
    MissingRevenueError,
    RentModelConfigError,
    UnknownRentModelError,
)
from planner_kernel.logging_config import get_logger
from planner_engines.tracer import traced_engine

logger = get_logger("engines.rent")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")

ALLOWED_FREQUENCIES = (1, 2, 3)


class RentModelType(str, Enum):
    """Rent model tag."""

    FIXED_ESCALATION = "FixedEscalation"
    REVENUE_SHARE = "RevenueShare"
    PARTNER_MODEL = "PartnerModel"


def _decimal_fields(obj: Any, names: Sequence[str]) -> None:
    for name in names:
        value = getattr(obj, name)
        if value is not None:
            object.__setattr__(obj, name, to_decimal(value))


@dataclass(frozen=True)
class FixedEscalationConfig:
    base_rent: Decimal
    escalation_rate: Decimal  # 0.03 for 3%
    escalation_frequency: int  # years between escalations

    def __post_init__(self) -> None:
        _decimal_fields(self, ("base_rent", "escalation_rate"))


@dataclass(frozen=True)
class RevenueShareConfig:
    revenue_share_pct: Decimal  # 15 for 15%
    minimum_rent: Decimal | None = None
    maximum_rent: Decimal | None = None

    def __post_init__(self) -> None:
        _decimal_fields(self, ("revenue_share_pct", "minimum_rent", "maximum_rent"))


@dataclass(frozen=True)
class PartnerModelConfig:
    land_size: Decimal  # sqm
    land_price_per_sqm: Decimal
    bua_size: Decimal  # built-up area, sqm
    bua_price_per_sqm: Decimal
    yield_base: Decimal  # 8 for 8%
    yield_growth_rate: Decimal  # 0.005 for 0.5%
    growth_frequency: int

    def __post_init__(self) -> None:
        _decimal_fields(self, (
            "land_size", "land_price_per_sqm", "bua_size",
            "bua_price_per_sqm", "yield_base", "yield_growth_rate",
        ))


RentModelConfig = Union[FixedEscalationConfig, RevenueShareConfig, PartnerModelConfig]

_CONFIG_CLASSES: dict[RentModelType, type] = {
    RentModelType.FIXED_ESCALATION: FixedEscalationConfig,
    RentModelType.REVENUE_SHARE: RevenueShareConfig,
    RentModelType.PARTNER_MODEL: PartnerModelConfig,
}


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _parse_model_type(value: Any) -> RentModelType:
    try:
        return RentModelType(value)
    except ValueError:
        raise UnknownRentModelError(value) from None


@dataclass(frozen=True)
class RentModel:
    """
    A rent model: type tag plus the matching config.

    Contract:
        ``type`` accepts the enum or its string value.
        ``config`` must be an instance of the class registered for the tag.
    """

    type: RentModelType
    config: RentModelConfig

    def __post_init__(self) -> None:
        model_type = _parse_model_type(self.type)
        object.__setattr__(self, "type", model_type)
        expected = _CONFIG_CLASSES[model_type]
        if not isinstance(self.config, expected):
            raise RentModelConfigError(
                model_type.value,
                f"expected {expected.__name__}, got {type(self.config).__name__}",
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RentModel:
        """Build from ``{"type": ..., "config": {...}}``; config keys may be camelCase."""
        model_type = _parse_model_type(data.get("type"))
        config_class = _CONFIG_CLASSES[model_type]
        raw_config = data.get("config")
        if not isinstance(raw_config, Mapping):
            raise RentModelConfigError(model_type.value, "config must be a mapping")

        kwargs = {_snake_case(k): v for k, v in raw_config.items()}
        known = {f.name for f in fields(config_class)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise RentModelConfigError(
                model_type.value, f"unexpected fields: {', '.join(unknown)}",
            )
        try:
            config = config_class(**kwargs)
        except TypeError as exc:
            raise RentModelConfigError(model_type.value, str(exc)) from exc
        except ValueError as exc:
            raise RentModelConfigError(model_type.value, str(exc)) from exc
        return cls(type=model_type, config=config)

    def to_dict(self) -> dict[str, Any]:
        config = {}
        for f in fields(self.config):
            value = getattr(self.config, f.name)
            config[f.name] = str(value) if isinstance(value, Decimal) else value
        return {"type": self.type.value, "config": config}


@dataclass(frozen=True)
class RentProjection:
    year: int
    rent: Decimal
    model: RentModelType


# ---------------------------------------------------------------------------
# Model calculators
# ---------------------------------------------------------------------------


def _steps(model_type: RentModelType, year: int, base_year: int, frequency: int) -> int:
    if frequency < 1:
        raise RentModelConfigError(model_type.value, f"frequency must be >= 1, got {frequency}")
    return (year - base_year) // frequency


def calculate_fixed_escalation(
    config: FixedEscalationConfig, year: int, base_year: int,
) -> Decimal:
    """base_rent * (1 + escalation_rate) ** floor((year - base_year) / frequency)"""
    steps = _steps(
        RentModelType.FIXED_ESCALATION, year, base_year, config.escalation_frequency,
    )
    return config.base_rent * (_ONE + config.escalation_rate) ** steps


def calculate_revenue_share(config: RevenueShareConfig, revenue: Decimal) -> Decimal:
    """revenue * pct / 100, raised to the floor and then limited by the cap."""
    rent = to_decimal(revenue) * (config.revenue_share_pct / _HUNDRED)
    if config.minimum_rent is not None:
        rent = max(rent, config.minimum_rent)
    if config.maximum_rent is not None:
        rent = min(rent, config.maximum_rent)
    return rent


def calculate_partner_model(config: PartnerModelConfig, year: int, base_year: int) -> Decimal:
    """
    capex_base = land_size * land_price + bua_size * bua_price
    yield      = yield_base * (1 + growth_rate) ** floor((year - base_year) / frequency)
    rent       = capex_base * yield / 100
    """
    capex_base = (
        config.land_size * config.land_price_per_sqm
        + config.bua_size * config.bua_price_per_sqm
    )
    steps = _steps(RentModelType.PARTNER_MODEL, year, base_year, config.growth_frequency)
    current_yield = config.yield_base * (_ONE + config.yield_growth_rate) ** steps
    return capex_base * (current_yield / _HUNDRED)


@traced_engine("rent", "1.0", fingerprint_fields=("model", "year", "base_year", "revenue"))
def calculate_rent(
    *,
    model: RentModel,
    year: int,
    base_year: int,
    revenue: Decimal | None = None,
) -> Decimal:
    """
    Rent for one year under any model.

    Raises:
        MissingRevenueError: RevenueShare without ``revenue``.
    """
    if model.type is RentModelType.FIXED_ESCALATION:
        return calculate_fixed_escalation(model.config, year, base_year)
    if model.type is RentModelType.REVENUE_SHARE:
        if revenue is None:
            raise MissingRevenueError(year)
        return calculate_revenue_share(model.config, revenue)
    if model.type is RentModelType.PARTNER_MODEL:
        return calculate_partner_model(model.config, year, base_year)
    raise UnknownRentModelError(model.type)


def calculate_rent_projection(
    model: RentModel,
    start_year: int,
    end_year: int,
    base_year: int,
    revenue_by_year: Mapping[int, Decimal] | None = None,
) -> list[RentProjection]:
    """Rent for every year in ``start_year..end_year`` inclusive."""
    projections = []
    for year in range(start_year, end_year + 1):
        revenue = revenue_by_year.get(year) if revenue_by_year is not None else None
        rent = calculate_rent(model=model, year=year, base_year=base_year, revenue=revenue)
        projections.append(RentProjection(year=year, rent=rent, model=model.type))
    return projections


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------


def calculate_npv(
    cash_flows: Sequence[Decimal],
    discount_rate: Decimal,
    start_year: int = 0,
) -> Decimal:
    """sum(cash_flow_i / (1 + discount_rate) ** (start_year + i))"""
    factor = _ONE + to_decimal(discount_rate)
    npv = _ZERO
    for index, cash_flow in enumerate(cash_flows):
        npv += to_decimal(cash_flow) / factor ** (start_year + index)
    return npv


def calculate_rent_npv(projections: Sequence[RentProjection], discount_rate: Decimal) -> Decimal:
    return calculate_npv([p.rent for p in projections], discount_rate)


def calculate_rent_load_percent(rent: Decimal, revenue: Decimal) -> Decimal:
    """Rent as a percentage of revenue; 0 when revenue is 0."""
    revenue = to_decimal(revenue)
    if revenue == _ZERO:
        return _ZERO
    return to_decimal(rent) / revenue * _HUNDRED


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_fixed_escalation(config: FixedEscalationConfig) -> list[str]:
    errors = []
    if config.base_rent <= _ZERO:
        errors.append("Base rent must be greater than 0")
    if config.escalation_rate < _ZERO:
        errors.append("Escalation rate cannot be negative")
    if config.escalation_frequency not in ALLOWED_FREQUENCIES:
        errors.append("Escalation frequency must be 1, 2, or 3 years")
    return errors


def validate_revenue_share(config: RevenueShareConfig) -> list[str]:
    errors = []
    if config.revenue_share_pct < _ZERO or config.revenue_share_pct > _HUNDRED:
        errors.append("Revenue share percentage must be between 0 and 100")
    if config.minimum_rent is not None and config.minimum_rent < _ZERO:
        errors.append("Minimum rent cannot be negative")
    if config.maximum_rent is not None and config.maximum_rent < _ZERO:
        errors.append("Maximum rent cannot be negative")
    if (
        config.minimum_rent is not None
        and config.maximum_rent is not None
        and config.minimum_rent > config.maximum_rent
    ):
        errors.append("Minimum rent cannot exceed maximum rent")
    return errors


def validate_partner_model(config: PartnerModelConfig) -> list[str]:
    errors = []
    positive = (
        (config.land_size, "Land size"),
        (config.land_price_per_sqm, "Land price per sqm"),
        (config.bua_size, "BUA size"),
        (config.bua_price_per_sqm, "BUA price per sqm"),
        (config.yield_base, "Yield base"),
    )
    for value, label in positive:
        if value <= _ZERO:
            errors.append(f"{label} must be greater than 0")
    if config.yield_growth_rate < _ZERO:
        errors.append("Yield growth rate cannot be negative")
    if config.growth_frequency not in ALLOWED_FREQUENCIES:
        errors.append("Growth frequency must be 1, 2, or 3 years")
    return errors


def validate_rent_model(model: RentModel) -> list[str]:
    if model.type is RentModelType.FIXED_ESCALATION:
        return validate_fixed_escalation(model.config)
    if model.type is RentModelType.REVENUE_SHARE:
        return validate_revenue_share(model.config)
    if model.type is RentModelType.PARTNER_MODEL:
        return validate_partner_model(model.config)
    return [f"Unknown rent model type: {model.type}"]
