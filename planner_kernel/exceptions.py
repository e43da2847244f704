"""
Typed Exception Hierarchy for the Planner Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The projection engine distinguishes three kinds of trouble:

  1. Missing data       -> never an exception; nulls propagate through
                           derivations and surface as null metrics.
  2. Structural faults  -> a typed exception that stops the computation
                           (mismatched curriculum years, unknown rent model).
  3. Non-convergence    -> not an error at all; reported as converged=False
                           with full diagnostics.

Every exception below carries a ``code`` class attribute (machine-readable,
API-safe) and structured attributes instead of relying on message text.

    try:
        aggregate_curricula(params)
    except CurriculumYearMismatchError as e:
        log.warning("mismatch", extra={"fr": e.fr_year, "ib": e.ib_year})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PlannerError (base)
    |
    +-- ConfigurationError
    |   +-- EngineConfigError
    |
    +-- DomainError
    |   +-- InvalidYearRangeError
    |   +-- UnknownMetricKeyError
    |
    +-- RentModelError
    |   +-- UnknownRentModelError
    |   +-- RentModelConfigError
    |   +-- MissingRevenueError
    |
    +-- CurriculumError
    |   +-- CurriculumYearMismatchError
    |
    +-- PersistenceError
    |   +-- MetricPersistenceError
    |   +-- CacheWriteError
    |
    +-- VersionError
        +-- VersionNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                       | When Raised
------------|----------------------------|---------------------------------------
Config      | ENGINE_CONFIG_INVALID      | max_iterations < 1, tolerance < 0, bad check mode
Domain      | INVALID_YEAR_RANGE         | Year outside 2023-2052 or start > end
            | UNKNOWN_METRIC_KEY         | Metric key not in the closed set
Rent        | UNKNOWN_RENT_MODEL         | Tag is not a known rent model
            | RENT_MODEL_CONFIG_INVALID  | Config shape does not match the tag
            | MISSING_REVENUE            | RevenueShare rent requested without revenue
Curriculum  | CURRICULUM_YEAR_MISMATCH   | FR and IB records for different years
Persistence | METRIC_PERSISTENCE_FAILED  | A metric batch could not be written
            | CACHE_WRITE_FAILED         | Computed artifact could not be written
Version     | VERSION_NOT_FOUND          | Version id does not exist
"""

from typing import Any


class PlannerError(Exception):
    """
    Base exception for all planner errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PLANNER_ERROR"


# Configuration exceptions


class ConfigurationError(PlannerError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class EngineConfigError(ConfigurationError):
    """Cash engine settings violate their constraints."""

    code: str = "ENGINE_CONFIG_INVALID"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid engine config {field}={value!r}: {reason}")


# Domain exceptions


class DomainError(PlannerError):
    """Base exception for year and metric domain errors."""

    code: str = "DOMAIN_ERROR"


class InvalidYearRangeError(DomainError):
    """Requested year range is outside the model horizon or inverted."""

    code: str = "INVALID_YEAR_RANGE"

    def __init__(self, start_year: int, end_year: int, reason: str):
        self.start_year = start_year
        self.end_year = end_year
        self.reason = reason
        super().__init__(f"Invalid year range {start_year}-{end_year}: {reason}")


class UnknownMetricKeyError(DomainError):
    """Metric key is not part of the closed metric set."""

    code: str = "UNKNOWN_METRIC_KEY"

    def __init__(self, metric_key: str):
        self.metric_key = metric_key
        super().__init__(f"Unknown metric key: {metric_key}")


# Rent model exceptions


class RentModelError(PlannerError):
    """Base exception for rent model errors."""

    code: str = "RENT_MODEL_ERROR"


class UnknownRentModelError(RentModelError):
    """Rent model tag is not recognized."""

    code: str = "UNKNOWN_RENT_MODEL"

    def __init__(self, model_type: Any):
        self.model_type = model_type
        super().__init__(f"Unknown rent model type: {model_type}")


class RentModelConfigError(RentModelError):
    """Rent model config does not have the shape its tag requires."""

    code: str = "RENT_MODEL_CONFIG_INVALID"

    def __init__(self, model_type: str, reason: str):
        self.model_type = model_type
        self.reason = reason
        super().__init__(f"Invalid config for rent model {model_type}: {reason}")


class MissingRevenueError(RentModelError):
    """RevenueShare rent was requested without a revenue figure."""

    code: str = "MISSING_REVENUE"

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Revenue is required for RevenueShare model (year {year})")


# Curriculum exceptions


class CurriculumError(PlannerError):
    """Base exception for curriculum calculation errors."""

    code: str = "CURRICULUM_ERROR"


class CurriculumYearMismatchError(CurriculumError):
    """FR and IB curriculum records refer to different years."""

    code: str = "CURRICULUM_YEAR_MISMATCH"

    def __init__(self, fr_year: int, ib_year: int):
        self.fr_year = fr_year
        self.ib_year = ib_year
        super().__init__(f"Year mismatch: FR={fr_year}, IB={ib_year}")


# Persistence exceptions


class PersistenceError(PlannerError):
    """Base exception for storage errors."""

    code: str = "PERSISTENCE_ERROR"


class MetricPersistenceError(PersistenceError):
    """A batch of metric rows could not be upserted.

    Batches written before the failing one stay committed.
    """

    code: str = "METRIC_PERSISTENCE_FAILED"

    def __init__(self, version_id: str, batch_index: int, batch_size: int, reason: str):
        self.version_id = version_id
        self.batch_index = batch_index
        self.batch_size = batch_size
        self.reason = reason
        super().__init__(
            f"Failed to persist metrics for version {version_id} "
            f"(batch {batch_index}, {batch_size} rows): {reason}"
        )


class CacheWriteError(PersistenceError):
    """The computed convergence artifact could not be written."""

    code: str = "CACHE_WRITE_FAILED"

    def __init__(self, version_id: str, computed_key: str, reason: str):
        self.version_id = version_id
        self.computed_key = computed_key
        self.reason = reason
        super().__init__(
            f"Failed to cache {computed_key} for version {version_id}: {reason}"
        )


# Version exceptions


class VersionError(PlannerError):
    """Base exception for model version errors."""

    code: str = "VERSION_ERROR"


class VersionNotFoundError(VersionError):
    """Version id does not exist."""

    code: str = "VERSION_NOT_FOUND"

    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Version not found: {version_id}")
