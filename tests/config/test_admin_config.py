"""
Tests for admin configuration loading.

Covers:
- Shipped defaults compile into a valid AdminConfig
- Overrides merge key by key without touching the defaults
- Missing sections and out-of-range engine settings are rejected
- PLANNER_CONFIG_TRACE audit log
"""

from decimal import Decimal

import pytest
import yaml

from planner_config import DEFAULTS_PATH, get_admin_config
from planner_config.loader import (
    compute_checksum,
    load_yaml_file,
    merge_overrides,
    parse_admin_config,
)
from planner_engines.cash_engine import ConvergenceCheck
from planner_kernel.exceptions import ConfigurationError, EngineConfigError


class TestDefaults:

    def test_defaults_compile(self):
        config = get_admin_config()

        engine = config.cash_engine
        assert engine.max_iterations == 3
        assert engine.tolerance == Decimal("0.01")
        assert engine.convergence_check is ConvergenceCheck.BS_CF_BALANCE
        assert engine.rates.deposit_rate == Decimal("0.05")
        assert engine.rates.overdraft_rate == Decimal("0.12")

    def test_checksum_is_stable(self):
        assert get_admin_config().checksum == get_admin_config().checksum
        assert len(get_admin_config().checksum) == 64

    def test_to_dict_round_trips_through_parser(self):
        config = get_admin_config()

        reparsed = parse_admin_config(config.to_dict())

        assert reparsed.cash_engine == config.cash_engine
        assert set(config.to_dict()) == {"cash_engine"}


class TestOverrides:

    def test_override_single_key(self):
        config = get_admin_config({"cash_engine": {"max_iterations": 7}})

        assert config.cash_engine.max_iterations == 7
        assert config.cash_engine.tolerance == Decimal("0.01")

    def test_override_changes_checksum(self):
        default = get_admin_config()
        overridden = get_admin_config({"cash_engine": {"tolerance": "0.5"}})

        assert overridden.cash_engine.tolerance == Decimal("0.5")
        assert overridden.checksum != default.checksum

    def test_override_check_mode_by_value(self):
        config = get_admin_config({"cash_engine": {"convergence_check": "cash_balance"}})
        assert config.cash_engine.convergence_check is ConvergenceCheck.CASH_BALANCE

    def test_merge_does_not_mutate_inputs(self):
        defaults = {"cash_engine": {"max_iterations": 3, "tolerance": 0.01}}
        overrides = {"cash_engine": {"max_iterations": 5}}

        merged = merge_overrides(defaults, overrides)

        assert merged == {"cash_engine": {"max_iterations": 5, "tolerance": 0.01}}
        assert defaults["cash_engine"]["max_iterations"] == 3

    def test_merge_adds_new_sections(self):
        merged = merge_overrides({"a": {"x": 1}}, {"b": {"y": 2}})
        assert merged == {"a": {"x": 1}, "b": {"y": 2}}


class TestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cash_engine": {"max_iterations": 0}},
            {"cash_engine": {"tolerance": -1}},
            {"cash_engine": {"convergence_check": "eventually"}},
            {"cash_engine": {"deposit_rate": -0.01}},
            {"cash_engine": {"tolerance": "loose"}},
        ],
    )
    def test_invalid_engine_settings(self, overrides):
        with pytest.raises(EngineConfigError):
            get_admin_config(overrides)

    def test_missing_section(self, tmp_path):
        path = tmp_path / "defaults.yaml"
        path.write_text(yaml.safe_dump({"settings": {"max_iterations": 3}}))

        with pytest.raises(ConfigurationError):
            get_admin_config(defaults_path=path)

    def test_missing_key(self):
        data = load_yaml_file(DEFAULTS_PATH)
        del data["cash_engine"]["overdraft_rate"]

        with pytest.raises(ConfigurationError, match="cash_engine.overdraft_rate"):
            parse_admin_config(data)

    def test_unrecognised_sections_only_affect_checksum(self):
        config = get_admin_config({"legacy": {"discount_rate": 0.1}})

        assert config.cash_engine == get_admin_config().cash_engine
        assert config.checksum != get_admin_config().checksum

    def test_missing_defaults_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_admin_config(defaults_path=tmp_path / "absent.yaml")


class TestChecksum:

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestConfigTrace:

    def test_emits_config_trace(self, captured_logs):
        get_admin_config({"cash_engine": {"max_iterations": 4}})

        traces = [r for r in captured_logs() if r["message"] == "PLANNER_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["max_iterations"] == 4
        assert traces[0]["override_sections"] == ["cash_engine"]
        assert traces[0]["convergence_check"] == "bs_cf_balance"
