"""Tests for BalancerConfig and config file loading."""

import pytest
from pydantic import ValidationError

from balancer_core.config import BalancerConfig, CostWeights, load_balancer_config
from balancer_core.exceptions import ConfigError


class TestBalancerConfig:
    """Tests for config validation."""

    def test_defaults(self):
        config = BalancerConfig()
        assert config.weights.region_count_skew == 500
        assert config.weights.table_skew == 35
        assert config.weights.move == 7
        assert config.max_moves_per_server == 4
        assert config.cooling == "linear"

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            CostWeights(move=-1)

    def test_unknown_field_rejected(self):
        """Typos in config keys should fail instead of being ignored."""
        with pytest.raises(ValidationError):
            BalancerConfig.model_validate({"max_step": 10})

    def test_final_temperature_above_initial_rejected(self):
        with pytest.raises(ValidationError):
            BalancerConfig(initial_temperature=1.0, final_temperature=2.0)

    def test_geometric_cooling_needs_positive_final(self):
        with pytest.raises(ValidationError):
            BalancerConfig(cooling="geometric", final_temperature=0.0)
        BalancerConfig(cooling="geometric", final_temperature=0.01)

    def test_some_generator_must_be_enabled(self):
        with pytest.raises(ValidationError):
            BalancerConfig.model_validate({"generators": {"random_move": 0, "random_swap": 0, "load": 0}})

    def test_run_time_must_be_positive(self):
        with pytest.raises(ValidationError):
            BalancerConfig(max_run_time_seconds=0)


class TestLoadBalancerConfig:
    """Tests for load_balancer_config."""

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "balancer.yaml"
        path.write_text(
            "weights:\n"
            "  table_skew: 0\n"
            "generators:\n"
            "  load: 3\n"
            "max_steps: 1000\n"
            "min_cost_improvement: 0.5\n"
        )
        config = load_balancer_config(path)
        assert config.weights.table_skew == 0
        assert config.weights.region_count_skew == 500
        assert config.generators.load == 3
        assert config.max_steps == 1000
        assert config.min_cost_improvement == 0.5

    def test_loads_json(self, tmp_path):
        path = tmp_path / "balancer.json"
        path.write_text('{"max_moves_per_server": 2}')
        assert load_balancer_config(path).max_moves_per_server == 2

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_balancer_config(path) == BalancerConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_balancer_config(tmp_path / "missing.yaml")
        assert exc_info.value.path == tmp_path / "missing.yaml"

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("weights: [unclosed\n")
        with pytest.raises(ConfigError):
            load_balancer_config(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            load_balancer_config(path)

    def test_invalid_values_raise_validation_error(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("max_moves_per_server: 0\n")
        with pytest.raises(ValidationError):
            load_balancer_config(path)
