"""Step budget and annealing temperature of an optimization run."""

import math
from dataclasses import dataclass

from balancer_core.config import BalancerConfig


def compute_max_steps(config: BalancerConfig, region_count: int, server_count: int) -> int:
    """
    Step budget of a run.

    Grows with the size of the search space (regions x servers) up to the
    configured hard ceiling.
    """
    return min(config.max_steps, config.steps_per_region * region_count * server_count)


@dataclass(frozen=True)
class TemperatureSchedule:
    """
    Non-increasing temperature from initial to final over a number of steps.

    Attributes:
        initial: Temperature at step 0.
        final: Temperature at the last step and after it.
        steps: Length of the schedule.
        cooling: "linear" or "geometric".
    """

    initial: float
    final: float
    steps: int
    cooling: str = "linear"

    @classmethod
    def from_config(cls, config: BalancerConfig, steps: int) -> "TemperatureSchedule":
        return cls(config.initial_temperature, config.final_temperature, steps, config.cooling)

    def at(self, step: int) -> float:
        if self.steps <= 0 or step >= self.steps:
            return self.final
        if step <= 0:
            return self.initial
        progress = step / self.steps
        if self.cooling == "geometric":
            if self.initial <= 0:
                return 0.0
            return self.initial * math.pow(self.final / self.initial, progress)
        return self.initial + (self.final - self.initial) * progress
