"""
Balancer configuration.

All tuning knobs of a balancing run live in one explicit BalancerConfig value
that is passed to the balancer; there is no process-wide balancer state.
Configuration files are YAML (JSON is accepted too, being a YAML subset) and
are validated with Pydantic.

Example config file:

    ```yaml
    weights:
      region_count_skew: 500
      table_skew: 35
      move: 7
      locality: 0        # disable locality
    generators:
      random_move: 1
      random_swap: 1
      load: 2
    max_steps: 200000
    max_run_time_seconds: 10
    min_cost_improvement: 0.05
    initial_temperature: 2.0
    final_temperature: 0.0
    max_moves_per_server: 4
    ```
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from balancer_core.exceptions import ConfigError


class CostWeights(BaseModel):
    """
    Weight of each cost function in the total cost.

    A weight of 0 disables the function. Load and locality functions are
    also skipped when the run has no load or locality data.
    """

    model_config = ConfigDict(extra="forbid")

    region_count_skew: float = Field(default=500.0, ge=0, description="Per-server region count skew")
    table_skew: float = Field(default=35.0, ge=0, description="Per-table region count skew")
    move: float = Field(default=7.0, ge=0, description="Fraction of regions moved")
    locality: float = Field(default=25.0, ge=0, description="Data locality of regions on their server")
    read_request: float = Field(default=5.0, ge=0, description="Skew of read requests per server")
    write_request: float = Field(default=5.0, ge=0, description="Skew of write requests per server")
    memstore_size: float = Field(default=5.0, ge=0, description="Skew of memstore size per server")
    storefile_size: float = Field(default=5.0, ge=0, description="Skew of store file size per server")


class GeneratorWeights(BaseModel):
    """Relative frequency with which each action generator is picked."""

    model_config = ConfigDict(extra="forbid")

    random_move: float = Field(default=1.0, ge=0)
    random_swap: float = Field(default=1.0, ge=0)
    load: float = Field(default=1.0, ge=0)
    locality: float = Field(default=1.0, ge=0)


class BalancerConfig(BaseModel):
    """
    Complete configuration of a balancing run.

    Attributes:
        weights: Cost function weights.
        generators: Action generator weights.
        max_steps: Hard ceiling on search steps.
        steps_per_region: Step budget grows with regions x servers times this
            factor, up to max_steps.
        max_run_time_seconds: Wall-clock deadline of the search.
        min_cost_improvement: Minimum drop in total cost for a plan to be
            worth executing when the cluster is already count balanced.
        initial_temperature: Annealing temperature at step 0.
        final_temperature: Annealing temperature at the last step.
        cooling: Shape of the temperature decay.
        max_moves_per_server: Most moves any destination receives per plan round.
        max_move_percent: Fraction of regions the move cost tolerates.
        min_max_moves: Floor on the number of moves the move cost tolerates.
    """

    model_config = ConfigDict(extra="forbid")

    weights: CostWeights = Field(default_factory=CostWeights)
    generators: GeneratorWeights = Field(default_factory=GeneratorWeights)
    max_steps: int = Field(default=1_000_000, ge=0)
    steps_per_region: int = Field(default=800, ge=1)
    max_run_time_seconds: float = Field(default=30.0, gt=0)
    min_cost_improvement: float = Field(default=0.01, ge=0)
    initial_temperature: float = Field(default=1.0, ge=0)
    final_temperature: float = Field(default=0.0, ge=0)
    cooling: Literal["linear", "geometric"] = "linear"
    max_moves_per_server: int = Field(default=4, ge=1)
    max_move_percent: float = Field(default=0.25, gt=0, le=1)
    min_max_moves: int = Field(default=600, ge=1)

    @model_validator(mode="after")
    def validate_temperatures(self) -> "BalancerConfig":
        if self.final_temperature > self.initial_temperature:
            raise ValueError(
                f"final_temperature ({self.final_temperature}) must not exceed "
                f"initial_temperature ({self.initial_temperature})"
            )
        if self.cooling == "geometric" and self.final_temperature <= 0:
            raise ValueError("geometric cooling needs a final_temperature above 0")
        return self

    @model_validator(mode="after")
    def validate_generators(self) -> "BalancerConfig":
        g = self.generators
        if g.random_move + g.random_swap + g.load <= 0:
            raise ValueError("at least one of random_move, random_swap or load generators must be enabled")
        return self


def load_balancer_config(path: Path) -> BalancerConfig:
    """
    Load and validate a balancer config from a YAML file.

    An empty file yields the defaults.

    Args:
        path: Path to the YAML (or JSON) file

    Returns:
        Validated BalancerConfig

    Raises:
        ConfigError: If the file cannot be read or is not valid YAML
        pydantic.ValidationError: If the content doesn't match the schema
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(path, str(e)) from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(path, "expected a mapping at the top level")
    return BalancerConfig.model_validate(data)
