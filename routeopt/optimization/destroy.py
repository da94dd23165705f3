"""
Destroy operators for ALNS.

Every operator shares one contract: apply(solution, pool_size, rng) removes
up to pool_size customers from the solution it is handed (which the caller
owns exclusively), drops routes left empty, and returns the partial solution
together with the removed customers.
"""

import logging
from typing import Dict, List, Optional, Tuple

from routeopt.algorithms.local_search import removal_delta
from routeopt.core.random_source import RandomSource
from routeopt.evaluation.compare import sort_key
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import RemovedPool, Solution

logger = logging.getLogger(__name__)


def _detach(solution: Solution, customers: List[int]) -> Tuple[Solution, RemovedPool]:
    for c in customers:
        solution.remove_customer(c)
    solution.remove_empty_routes()
    return solution, RemovedPool(tuple(customers))


class RandomRemoval:
    """Remove a uniform sample of customers."""
    
    name = "random"
    
    def __init__(self, problem: VRPProblem):
        self.problem = problem
    
    def apply(self, solution: Solution, pool_size: int,
              rng: RandomSource) -> Tuple[Solution, RemovedPool]:
        assigned = solution.customer_ids()
        k = min(pool_size, len(assigned))
        return _detach(solution, rng.sample(assigned, k))


class WorstRemoval:
    """
    Remove customers whose removal saves the most cost.
    
    Savings are recomputed after each removal and the largest one is taken,
    ties going to the earlier (route, position). Passing randomness p enables
    the randomized variant of Ropke & Pisinger (2006): the candidate at rank
    floor(u**p * n) is taken, so larger p is greedier.
    """
    
    name = "worst"
    
    def __init__(self, problem: VRPProblem, randomness: Optional[float] = None):
        self.problem = problem
        self.matrix = problem.distance_matrix
        self.randomness = randomness
    
    def removal_gains(self, solution: Solution) -> List[Tuple[float, int]]:
        """
        Cost decrease of removing each customer on its own.
        
        Returns:
            (gain, customer) pairs, largest gain first, NaN gains last
        """
        gains = []
        for route in solution.routes:
            vehicle = self.problem.get_vehicle(route.vehicle_id)
            for pos, c in enumerate(route.customers):
                gain = -removal_delta(self.matrix, route.customers, pos) * vehicle.cost_per_distance
                if len(route.customers) == 1:
                    gain += vehicle.fixed_cost
                gains.append((gain, c))
        gains.sort(key=lambda item: sort_key(-item[0]))
        return gains
    
    def apply(self, solution: Solution, pool_size: int,
              rng: RandomSource) -> Tuple[Solution, RemovedPool]:
        removed = []
        k = min(pool_size, len(solution.customer_ids()))
        for _ in range(k):
            gains = self.removal_gains(solution)
            rank = 0
            if self.randomness is not None:
                rank = min(int(rng.uniform() ** self.randomness * len(gains)), len(gains) - 1)
            customer = gains[rank][1]
            solution.remove_customer(customer)
            removed.append(customer)
        solution.remove_empty_routes()
        return solution, RemovedPool(tuple(removed))


class ShawRemoval:
    """
    Remove related customers (Shaw 1998).
    
    Relatedness R(i, j) = w_d * d(i, j) / d_max + w_q * |q_i - q_j| / q_range,
    lower meaning more related. After a random seed customer, the customer
    with the lowest relatedness to any removed customer goes next.
    """
    
    name = "shaw"
    
    def __init__(self, problem: VRPProblem, distance_weight: float = 9.0,
                 demand_weight: float = 2.0):
        self.problem = problem
        self.matrix = problem.distance_matrix
        self.distance_weight = distance_weight
        self.demand_weight = demand_weight
        
        self.max_distance = self.matrix.max_distance() or 1.0
        demands = [problem.demand(c) for c in problem.customer_ids]
        spread = (max(demands) - min(demands)) if demands else 0
        self.demand_range = spread or 1
    
    def relatedness(self, i: int, j: int) -> float:
        distance = self.matrix.distance(i, j) / self.max_distance
        demand = abs(self.problem.demand(i) - self.problem.demand(j)) / self.demand_range
        return self.distance_weight * distance + self.demand_weight * demand
    
    def apply(self, solution: Solution, pool_size: int,
              rng: RandomSource) -> Tuple[Solution, RemovedPool]:
        assigned = solution.customer_ids()
        k = min(pool_size, len(assigned))
        if k == 0:
            return solution, RemovedPool()
        
        seed = rng.choice(assigned)
        removed = [seed]
        remaining = [c for c in assigned if c != seed]
        # closest relatedness of each remaining customer to the removed set
        closest: Dict[int, float] = {c: sort_key(self.relatedness(seed, c)) for c in remaining}
        
        while len(removed) < k:
            best = min(remaining, key=lambda c: closest[c])
            removed.append(best)
            remaining.remove(best)
            del closest[best]
            for c in remaining:
                closest[c] = min(closest[c], sort_key(self.relatedness(best, c)))
        
        return _detach(solution, removed)


DESTROY_OPERATORS = {
    'random': RandomRemoval,
    'worst': WorstRemoval,
    'shaw': ShawRemoval,
}


def build_destroy_operator(name: str, problem: VRPProblem, config: Dict):
    """Instantiate a registered destroy operator with its configured parameters."""
    if name == 'worst':
        return WorstRemoval(problem, randomness=config['worst_removal_randomness'])
    if name == 'shaw':
        return ShawRemoval(problem,
                           distance_weight=config['shaw_distance_weight'],
                           demand_weight=config['shaw_demand_weight'])
    return DESTROY_OPERATORS[name](problem)
