"""Tests for configuration validation."""

import pytest

from inertialflow.config import MAX_SUPPORTED_DEPTH, PartitionConfig
from inertialflow.exceptions import InvalidConfiguration


class TestPartitionConfig:
    def test_defaults(self):
        config = PartitionConfig()
        assert config.balance_factor == 0.25
        assert config.candidate_direction_count == 4
        assert config.workers == 1

    @pytest.mark.parametrize("field,value", [
        ("balance_factor", 0.0),
        ("balance_factor", 0.5),
        ("balance_factor", -0.1),
        ("max_recursion_depth", -1),
        ("max_recursion_depth", MAX_SUPPORTED_DEPTH + 1),
        ("min_cell_size", -5),
        ("candidate_direction_count", 1),
        ("workers", 0),
        ("direction_workers", 0),
    ])
    def test_out_of_range(self, field, value):
        with pytest.raises(InvalidConfiguration) as info:
            PartitionConfig(**{field: value})
        assert info.value.context[field] == value

    def test_zero_depth_allowed(self):
        assert PartitionConfig(max_recursion_depth=0).max_recursion_depth == 0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("INERTIAL_FLOW_MIN_CELL_SIZE", "7")
        monkeypatch.setenv("INERTIAL_FLOW_BALANCE_FACTOR", "0.4")
        config = PartitionConfig()
        assert config.min_cell_size == 7
        assert config.balance_factor == 0.4

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("INERTIAL_FLOW_BALANCE_FACTOR", "0.9")
        with pytest.raises(InvalidConfiguration):
            PartitionConfig()

    def test_wrong_type(self):
        with pytest.raises(InvalidConfiguration) as info:
            PartitionConfig(balance_factor="abc")
        assert info.value.context['fields'] == "balance_factor"

    def test_wrong_type_in_environment(self, monkeypatch):
        monkeypatch.setenv("INERTIAL_FLOW_MIN_CELL_SIZE", "many")
        with pytest.raises(InvalidConfiguration) as info:
            PartitionConfig()
        assert info.value.context['fields'] == "min_cell_size"
