"""
Entry points of the routing core.
One solve() for every heuristic family, plus evaluate() and decode().
"""

import logging
from typing import Dict, List, Optional, Tuple

from routeopt.algorithms.clarke_wright import ClarkeWrightSavings
from routeopt.algorithms.genetic_algorithm import GeneticAlgorithm
from routeopt.algorithms.local_search import LocalSearch
from routeopt.algorithms.nearest_neighbor import NearestNeighborHeuristic
from routeopt.algorithms.split import SplitDecoder
from routeopt.algorithms.sweep import SweepHeuristic
from routeopt.config import get_constructive_config
from routeopt.core.exceptions import InvalidConfigurationError
from routeopt.core.validators import DataValidator, SolutionValidator
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import Solution
from routeopt.optimization.alns_optimizer import ALNSOptimizer

logger = logging.getLogger(__name__)

METHODS = ('nearest_neighbor', 'clarke_wright', 'sweep', 'ga', 'alns')


def solve(problem: VRPProblem, method: str = "alns", config: Optional[Dict] = None,
          seed: Optional[int] = None, local_search_config: Optional[Dict] = None) -> Solution:
    """
    Solve a VRP instance with one heuristic family.
    
    Args:
        problem: VRP problem instance
        method: One of METHODS
        config: Overrides for the method's config dict (CONSTRUCTIVE_CONFIG,
            GA_CONFIG or ALNS_CONFIG)
        seed: Random seed for 'ga' and 'alns' (overrides config['seed'])
        local_search_config: Overrides for LOCAL_SEARCH_CONFIG used to refine
            constructive solutions
        
    Returns:
        Solution serving every customer
        
    Raises:
        InvalidConfigurationError: If method or config is invalid
        InfeasibleInstanceError: If the instance cannot be served
    """
    if method not in METHODS:
        raise InvalidConfigurationError(parameter='method', value=method, expected=f"one of {list(METHODS)}")
    
    if method == 'alns':
        overrides = dict(config or {})
        if seed is not None:
            overrides['seed'] = seed
        return ALNSOptimizer(problem, overrides).optimize().best_solution
    
    if method == 'ga':
        overrides = dict(config or {})
        if seed is not None:
            overrides['seed'] = seed
        return GeneticAlgorithm(problem, overrides).solve()
    
    constructive = get_constructive_config(config)
    evaluator = RouteEvaluator(problem)
    DataValidator.check_instance(problem, evaluator)
    
    if method == 'nearest_neighbor':
        solution = NearestNeighborHeuristic(
            problem,
            waiting_weight=constructive['nn_waiting_weight'],
            urgency_weight=constructive['nn_urgency_weight']
        ).solve_complete()
    elif method == 'clarke_wright':
        solution = ClarkeWrightSavings(problem).solve()
    else:
        solution = SweepHeuristic(problem, start_angle=constructive['sweep_start_angle']).solve()
    
    if constructive['local_search']:
        LocalSearch(problem, local_search_config).optimize(solution)
    
    SolutionValidator.validate(solution, problem)
    logger.info(f"{method}: cost {evaluator.solution_cost(solution):.2f}, {solution.num_routes} routes")
    return solution


def evaluate(problem: VRPProblem, solution: Solution) -> Tuple[float, bool]:
    """Return (total cost, feasible) of a solution."""
    return RouteEvaluator(problem).evaluate(solution)


def decode(problem: VRPProblem, giant_tour: List[int]) -> Solution:
    """
    Split a giant tour into its cheapest feasible routes.
    
    Raises:
        DecodingError: If the tour is not a permutation of the customers
        InfeasibleInstanceError: If no feasible split exists
    """
    return SplitDecoder(problem).decode(giant_tour)
