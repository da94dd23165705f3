"""
Abstract base classes for VRP algorithms.
Defines interfaces for constructive heuristics, optimizers and decoders.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from routeopt.core.exceptions import InvalidConfigurationError
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Solution


class BaseAlgorithm(ABC):
    """Base class for algorithms that build a solution from scratch."""
    
    def __init__(self, problem: VRPProblem):
        """
        Initialize algorithm.
        
        Args:
            problem: VRP problem instance
        """
        self.problem = problem
        self.evaluator = RouteEvaluator(problem)
    
    @abstractmethod
    def solve(self) -> Solution:
        """
        Solve VRP problem and return solution.
        
        Returns:
            Best solution found
        """
    
    @abstractmethod
    def get_statistics(self) -> Dict[str, Any]:
        """Return algorithm statistics."""


class BaseOptimizer(ABC):
    """Base class for local search optimizers."""
    
    name = "optimizer"
    
    def __init__(self, problem: VRPProblem):
        """
        Initialize optimizer.
        
        Args:
            problem: VRP problem instance
        """
        self.problem = problem
        self.evaluator = RouteEvaluator(problem)
        self.moves_applied = 0
    
    @abstractmethod
    def optimize(self, solution: Solution) -> Solution:
        """
        Improve a solution in place until no improving feasible move exists.
        
        Args:
            solution: Solution to optimize (mutated)
            
        Returns:
            The same solution object
        """
    
    def get_statistics(self) -> Dict[str, Any]:
        return {'operator': self.name, 'moves_applied': self.moves_applied}
    
    def _vehicle(self, route):
        return self.problem.get_vehicle(route.vehicle_id)


class BaseDecoder(ABC):
    """Base class for giant-tour decoders."""
    
    def __init__(self, problem: VRPProblem):
        """
        Initialize decoder.
        
        Args:
            problem: VRP problem instance
        """
        self.problem = problem
    
    @abstractmethod
    def decode(self, giant_tour: List[int]) -> Solution:
        """Decode a giant tour into a solution."""
    
    def encode(self, solution: Solution) -> List[int]:
        """Encode a solution back into a giant tour."""
        return solution.giant_tour()


def fleet_template(problem: VRPProblem, vehicle: Optional[Vehicle] = None) -> Vehicle:
    """
    Vehicle profile used by algorithms that assume an identical fleet.
    
    Args:
        problem: VRP problem instance
        vehicle: Explicit profile; required when the fleet is heterogeneous
        
    Raises:
        InvalidConfigurationError: If the fleet is heterogeneous and no profile is given
    """
    if vehicle is not None:
        return vehicle
    if not problem.is_homogeneous():
        raise InvalidConfigurationError(
            parameter='vehicle',
            value=None,
            expected="an explicit vehicle profile for a heterogeneous fleet"
        )
    return problem.vehicles[0]
