"""
Adaptive Large Neighborhood Search (ALNS) for VRP.

Each iteration:
1. SELECT a destroy and a repair operator by roulette over adaptive weights
2. DESTROY: remove k customers from a copy of the current solution
3. REPAIR: reinsert them
4. ACCEPT: feasible candidates under simulated annealing
5. SCORE the operator pair and fold scores into weights every segment

The current solution is owned by one destroy/repair cycle at a time: a copy
is handed to destroy and comes back from repair before the next iteration.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from routeopt.algorithms.local_search import LocalSearch
from routeopt.algorithms.nearest_neighbor import NearestNeighborHeuristic
from routeopt.config import get_alns_config
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.core.profiler import PipelineProfiler
from routeopt.core.random_source import RandomSource
from routeopt.core.validators import DataValidator, SolutionValidator
from routeopt.evaluation.compare import is_better
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import RemovedPool, Solution
from routeopt.optimization.acceptance import SimulatedAnnealing
from routeopt.optimization.adaptive_weights import AdaptiveWeights
from routeopt.optimization.destroy import build_destroy_operator
from routeopt.optimization.repair import GreedyInsertion, build_repair_operator

logger = logging.getLogger(__name__)

# Config key of the weight score earned by each acceptance outcome
SCORE_KEYS = {
    'new_best': 'score_new_best',
    'improved': 'score_improved',
    'accepted': 'score_accepted',
}


@dataclass
class ALNSResult:
    """Outcome of an ALNS run."""
    best_solution: Solution
    best_cost: float
    initial_cost: float
    iterations: int = 0
    elapsed: float = 0.0
    stopped_by: str = "max_iterations"
    history: List[float] = field(default_factory=list)
    current_history: List[float] = field(default_factory=list)
    operator_stats: Dict = field(default_factory=dict)
    
    def to_dict(self) -> Dict:
        return {
            'best_cost': self.best_cost,
            'initial_cost': self.initial_cost,
            'iterations': self.iterations,
            'elapsed': self.elapsed,
            'stopped_by': self.stopped_by,
            'solution': self.best_solution.to_dict(),
            'operator_stats': self.operator_stats,
        }


class ALNSOptimizer:
    """Adaptive Large Neighborhood Search over complete feasible solutions."""
    
    def __init__(self, problem: VRPProblem, config: Optional[Dict] = None,
                 rng: Optional[RandomSource] = None):
        """
        Initialize ALNS.
        
        Args:
            problem: VRP problem instance
            config: Overrides for ALNS_CONFIG (validated here, before any search)
            rng: Random source (built from config['seed'] when None)
        """
        self.problem = problem
        self.config = get_alns_config(config)
        self.rng = rng or RandomSource(self.config['seed'])
        self.evaluator = RouteEvaluator(problem)
        
        self.destroy_operators = [build_destroy_operator(name, problem, self.config)
                                  for name in self.config['destroy_operators']]
        self.repair_operators = [build_repair_operator(name, problem, self.config)
                                 for name in self.config['repair_operators']]
        self.destroy_weights = AdaptiveWeights(self.config['destroy_operators'],
                                               self.config['reaction_factor'],
                                               self.config['min_weight'])
        self.repair_weights = AdaptiveWeights(self.config['repair_operators'],
                                              self.config['reaction_factor'],
                                              self.config['min_weight'])
        self.profiler = PipelineProfiler()
        self.local_search = (LocalSearch(problem, profiler=self.profiler)
                             if self.config['local_search_on_best'] else None)
        
        self.outcomes = {outcome: 0 for outcome in SCORE_KEYS}
    
    def build_initial_solution(self) -> Solution:
        """
        Nearest neighbor, with leftovers placed by greedy insertion.
        
        Raises:
            InfeasibleInstanceError: If no complete feasible solution was built
        """
        nn = NearestNeighborHeuristic(self.problem)
        solution = nn.solve()
        if nn.unassigned:
            GreedyInsertion(self.problem).apply(solution, RemovedPool(tuple(nn.unassigned)))
        
        _, feasible = self.evaluator.evaluate(solution)
        if not feasible:
            raise InfeasibleInstanceError(reason="could not construct a feasible initial solution")
        return solution
    
    def optimize(self, initial: Optional[Solution] = None) -> ALNSResult:
        """
        Run ALNS until the iteration or time budget is spent.
        
        Args:
            initial: Feasible starting solution (built when None, not modified)
            
        Returns:
            ALNSResult holding the best solution found
            
        Raises:
            InfeasibleInstanceError: If the instance cannot be served
            ValueError: If the given initial solution is infeasible
        """
        DataValidator.check_instance(self.problem, self.evaluator)
        
        if initial is None:
            current = self.build_initial_solution()
        else:
            current = initial.copy()
        SolutionValidator.validate(current, self.problem)
        current_cost, feasible = self.evaluator.evaluate(current)
        if not feasible:
            raise ValueError("Initial solution must be feasible")
        
        best = current.copy()
        best_cost = current_cost
        result = ALNSResult(best_solution=best, best_cost=best_cost, initial_cost=current_cost)
        
        temperature = self.config['initial_temperature']
        if temperature is None:
            temperature = SimulatedAnnealing.calibrate(current_cost, self.config['start_temperature_control'])
        annealing = SimulatedAnnealing(temperature,
                                       cooling_rate=self.config['cooling_rate'],
                                       schedule=self.config['temperature_schedule'],
                                       final_temperature=self.config['final_temperature'],
                                       max_iterations=self.config['max_iterations'])
        
        logger.info(f"ALNS started: {self.problem.num_customers} customers, "
                    f"initial cost {current_cost:.2f}, T0={temperature:.4f}")
        
        n_customers = self.problem.num_customers
        if n_customers == 0:
            result.stopped_by = "empty"
            return result
        
        k_high = min(self.config['k_max'], n_customers)
        k_low = min(self.config['k_min'], k_high)
        segment_length = self.config['segment_length']
        time_limit = self.config['time_limit']
        start_time = time.perf_counter()
        
        iteration = 0
        for iteration in range(1, self.config['max_iterations'] + 1):
            if time_limit is not None and time.perf_counter() - start_time >= time_limit:
                result.stopped_by = "time_limit"
                iteration -= 1
                break
            
            with self.profiler.profile("alns.iteration"):
                d_idx = self.destroy_weights.select(self.rng)
                r_idx = self.repair_weights.select(self.rng)
                destroy = self.destroy_operators[d_idx]
                repair = self.repair_operators[r_idx]
                k = self.rng.integer(k_low, k_high)
                
                candidate, pool = destroy.apply(current.copy(), k, self.rng)
                candidate = repair.apply(candidate, pool)
                candidate_cost, candidate_feasible = self.evaluator.evaluate(candidate)
                
                score = 0.0
                if candidate_feasible and annealing.accept(candidate_cost, current_cost, self.rng):
                    outcome = self.classify(candidate_cost, current_cost, best_cost)
                    self.outcomes[outcome] += 1
                    score = self.config[SCORE_KEYS[outcome]]
                    if outcome == 'new_best':
                        if self.local_search is not None:
                            self.local_search.optimize(candidate)
                            candidate_cost = self.evaluator.solution_cost(candidate)
                        best = candidate.copy()
                        best_cost = candidate_cost
                        logger.debug(f"Iter {iteration}: NEW BEST {best_cost:.2f} "
                                     f"({destroy.name}/{repair.name}, k={k})")
                    current, current_cost = candidate, candidate_cost
                
                self.destroy_weights.record(d_idx, score)
                self.repair_weights.record(r_idx, score)
                if iteration % segment_length == 0:
                    self.destroy_weights.update()
                    self.repair_weights.update()
                annealing.step(iteration)
            
            result.history.append(best_cost)
            result.current_history.append(current_cost)
            
            if iteration % self.config['log_interval'] == 0:
                logger.info(f"Iter {iteration}: best={best_cost:.2f}, current={current_cost:.2f}, "
                            f"T={annealing.temperature:.4f}")
        
        result.iterations = iteration
        result.elapsed = time.perf_counter() - start_time
        result.best_solution = best
        result.best_cost = best_cost
        result.operator_stats = self.get_statistics()
        
        logger.info(f"ALNS completed in {result.elapsed:.2f}s: {result.initial_cost:.2f} -> "
                    f"{best_cost:.2f} after {iteration} iterations ({result.stopped_by}), "
                    f"acceptance rate {self.accepted / max(1, iteration) * 100:.1f}%")
        return result
    
    @staticmethod
    def classify(candidate_cost: float, current_cost: float, best_cost: float) -> str:
        """
        Outcome of an accepted candidate, which selects its weight score.
        
        Returns:
            'new_best' on strict improvement over best-so-far, 'improved' on
            strict improvement over current, 'accepted' otherwise
        """
        if is_better(candidate_cost, best_cost):
            return 'new_best'
        if is_better(candidate_cost, current_cost):
            return 'improved'
        return 'accepted'
    
    @property
    def accepted(self) -> int:
        return sum(self.outcomes.values())
    
    def get_statistics(self) -> Dict:
        return {
            'accepted': self.accepted,
            'new_bests': self.outcomes['new_best'],
            'outcomes': dict(self.outcomes),
            'destroy': self.destroy_weights.get_statistics(),
            'repair': self.repair_weights.get_statistics(),
            'profile': self.profiler.get_summary(),
        }
