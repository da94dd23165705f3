"""
Simulated annealing acceptance for ALNS.
"""

import math
from typing import Optional

from routeopt.core.random_source import RandomSource


class SimulatedAnnealing:
    """Accept improvements always, worse candidates with probability exp(-delta / T)."""
    
    def __init__(self, initial_temperature: float, cooling_rate: float = 0.995,
                 schedule: str = "exponential", final_temperature: float = 1e-3,
                 max_iterations: Optional[int] = None):
        """
        Initialize the annealing schedule.
        
        Args:
            initial_temperature: Starting temperature T0
            cooling_rate: Factor applied each iteration ('exponential')
            schedule: 'exponential' (T *= cooling_rate) or 'linear'
                (T0 to final_temperature over max_iterations)
            final_temperature: End temperature of the linear schedule
            max_iterations: Iteration budget, required by the linear schedule
        """
        if schedule not in ("exponential", "linear"):
            raise ValueError(f"Unknown temperature schedule: {schedule}")
        if schedule == "linear" and not max_iterations:
            raise ValueError("Linear schedule needs max_iterations")
        self.initial_temperature = initial_temperature
        self.temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.schedule = schedule
        self.final_temperature = final_temperature
        self.max_iterations = max_iterations
    
    @staticmethod
    def calibrate(initial_cost: float, control: float) -> float:
        """
        Temperature at which a solution `control` times worse than
        initial_cost is accepted with probability 0.5.
        """
        if not math.isfinite(initial_cost) or initial_cost <= 0:
            return 1.0
        return control * initial_cost / math.log(2)
    
    def accept(self, candidate_cost: float, current_cost: float, rng: RandomSource) -> bool:
        if math.isnan(candidate_cost):
            return False
        if candidate_cost <= current_cost:
            return True
        if self.temperature <= 0:
            return False
        delta = candidate_cost - current_cost
        return rng.uniform() < math.exp(-delta / self.temperature)
    
    def step(self, iteration: int):
        """Advance the schedule to the given (1-based) iteration count."""
        if self.schedule == "exponential":
            self.temperature *= self.cooling_rate
        else:
            progress = min(1.0, iteration / self.max_iterations)
            self.temperature = (self.initial_temperature
                                + (self.final_temperature - self.initial_temperature) * progress)
