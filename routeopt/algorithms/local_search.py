"""
Local search operators for VRP.
Implements intra-route (2-opt, 3-opt, Or-opt) and inter-route (Relocate, 2-opt*) improvements.
Every candidate is confirmed by the full route evaluator before it is applied.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from routeopt.algorithms.base import BaseOptimizer
from routeopt.config import get_local_search_config
from routeopt.core.profiler import PipelineProfiler
from routeopt.evaluation.compare import EPSILON, is_better
from routeopt.evaluation.evaluator import RouteEvaluation, RouteEvaluator
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Solution

logger = logging.getLogger(__name__)


def removal_delta(matrix, customers: Sequence[int], pos: int) -> float:
    """Distance change when the customer at pos is removed."""
    prev = customers[pos - 1] if pos > 0 else 0
    nxt = customers[pos + 1] if pos + 1 < len(customers) else 0
    c = customers[pos]
    return matrix.distance(prev, nxt) - matrix.distance(prev, c) - matrix.distance(c, nxt)


def insertion_delta(matrix, customers: Sequence[int], pos: int, customer: int) -> float:
    """Distance change when customer is inserted before index pos."""
    prev = customers[pos - 1] if pos > 0 else 0
    nxt = customers[pos] if pos < len(customers) else 0
    return (matrix.distance(prev, customer) + matrix.distance(customer, nxt)
            - matrix.distance(prev, nxt))


class TwoOptOptimizer(BaseOptimizer):
    """2-opt local search optimizer for VRP routes."""
    
    name = "two_opt"
    
    def __init__(self, problem: VRPProblem, policy: str = "first"):
        """
        Initialize 2-opt optimizer.
        
        Args:
            problem: VRP problem instance
            policy: 'first' applies the first improving move in (i, j) order,
                'best' the strictly best one (lowest (i, j) on ties)
        """
        super().__init__(problem)
        if policy not in ("first", "best"):
            raise ValueError(f"Unknown 2-opt policy: {policy}")
        self.policy = policy
        self.matrix = problem.distance_matrix
    
    def optimize(self, solution: Solution) -> Solution:
        for route in solution.routes:
            route.customers = self.optimize_route(route.customers, self._vehicle(route))
        return solution
    
    def optimize_route(self, customers: Sequence[int], vehicle: Vehicle) -> List[int]:
        """
        Apply 2-opt to a single route until no improving feasible move remains.
        
        Args:
            customers: Route customers (depot excluded)
            vehicle: Vehicle driving the route
            
        Returns:
            Improved customer order
        """
        current = list(customers)
        if len(current) < 2:
            return current
        
        current_eval = self.evaluator.evaluate_route(current, vehicle)
        while True:
            move = self._find_move(current, current_eval, vehicle)
            if move is None:
                break
            current, current_eval = move
            self.moves_applied += 1
        return current
    
    def _find_move(self, route: List[int], current_eval: RouteEvaluation,
                   vehicle: Vehicle) -> Optional[Tuple[List[int], RouteEvaluation]]:
        n = len(route)
        ext = [0] + route + [0]
        d = self.matrix.distance
        # Edge deltas are only exact when reversing a segment keeps its length
        use_delta = self.matrix.is_symmetric()
        
        best = None
        best_cost = current_eval.cost
        for i in range(n - 1):
            for j in range(i + 2, n + 1):
                if use_delta:
                    delta = (d(ext[i], ext[j]) + d(ext[i + 1], ext[j + 1])
                             - d(ext[i], ext[i + 1]) - d(ext[j], ext[j + 1]))
                    if not delta < -EPSILON:
                        continue
                candidate = route[:i] + route[i:j][::-1] + route[j:]
                ev = self.evaluator.evaluate_route(candidate, vehicle)
                if ev.feasible and is_better(ev.cost, best_cost):
                    best, best_cost = (candidate, ev), ev.cost
                    if self.policy == "first":
                        return best
        return best


class ThreeOptOptimizer(BaseOptimizer):
    """
    3-opt on single routes, first improvement.
    
    Three edges of the depot-padded route are cut at 0 <= i < j < k <= n,
    giving A = route[:i], B = route[i:j], C = route[j:k], D = route[k:].
    The seven reconnections below replace A B C D; moves with only one
    reversed segment are the 2-opt special cases.
    """
    
    name = "three_opt"
    
    # (first segment, reverse it, second segment, reverse it)
    PATTERNS = (
        ('B', False, 'C', True),
        ('B', True, 'C', False),
        ('B', True, 'C', True),
        ('C', False, 'B', False),
        ('C', False, 'B', True),
        ('C', True, 'B', False),
        ('C', True, 'B', True),
    )
    
    def __init__(self, problem: VRPProblem):
        super().__init__(problem)
        self.matrix = problem.distance_matrix
    
    def optimize(self, solution: Solution) -> Solution:
        for route in solution.routes:
            route.customers = self.optimize_route(route.customers, self._vehicle(route))
        return solution
    
    def optimize_route(self, customers: Sequence[int], vehicle: Vehicle) -> List[int]:
        current = list(customers)
        if len(current) < 3:
            return current
        
        current_eval = self.evaluator.evaluate_route(current, vehicle)
        while True:
            move = self._find_move(current, current_eval, vehicle)
            if move is None:
                return current
            current, current_eval = move
            self.moves_applied += 1
    
    def _find_move(self, route: List[int], current_eval: RouteEvaluation,
                   vehicle: Vehicle) -> Optional[Tuple[List[int], RouteEvaluation]]:
        n = len(route)
        ext = [0] + route + [0]
        d = self.matrix.distance
        use_delta = self.matrix.is_symmetric()
        
        for i in range(n - 1):
            for j in range(i + 1, n):
                for k in range(j + 1, n + 1):
                    segments = {'B': route[i:j], 'C': route[j:k]}
                    removed = d(ext[i], ext[i + 1]) + d(ext[j], ext[j + 1]) + d(ext[k], ext[k + 1])
                    for first, rev_first, second, rev_second in self.PATTERNS:
                        seg1 = segments[first][::-1] if rev_first else segments[first]
                        seg2 = segments[second][::-1] if rev_second else segments[second]
                        if use_delta:
                            added = d(ext[i], seg1[0]) + d(seg1[-1], seg2[0]) + d(seg2[-1], ext[k + 1])
                            if not added - removed < -EPSILON:
                                continue
                        candidate = route[:i] + seg1 + seg2 + route[k:]
                        ev = self.evaluator.evaluate_route(candidate, vehicle)
                        if ev.feasible and is_better(ev.cost, current_eval.cost):
                            return candidate, ev
        return None


class RelocateOptimizer(BaseOptimizer):
    """Move single customers between (or within) routes, best improvement per sweep."""
    
    name = "relocate"
    
    def __init__(self, problem: VRPProblem):
        super().__init__(problem)
        self.matrix = problem.distance_matrix
    
    def optimize(self, solution: Solution) -> Solution:
        while True:
            move = self._find_best_move(solution)
            if move is None:
                break
            a, new_a, b, new_b = move
            solution.routes[a].customers = new_a
            if b != a:
                solution.routes[b].customers = new_b
            self.moves_applied += 1
            solution.remove_empty_routes()
        return solution
    
    def _find_best_move(self, solution: Solution):
        """
        Scan every (customer, target position) pair.
        
        Returns:
            (source index, new source customers, target index, new target customers)
            for the largest strict gain, or None. Ties go to the first move found.
        """
        routes = solution.routes
        vehicles = [self._vehicle(r) for r in routes]
        evals = [self.evaluator.evaluate_route(r.customers, v) for r, v in zip(routes, vehicles)]
        loads = [ev.load for ev in evals]
        
        best = None
        best_gain = EPSILON
        for a, route_a in enumerate(routes):
            source = route_a.customers
            veh_a = vehicles[a]
            for p, c in enumerate(source):
                reduced = source[:p] + source[p + 1:]
                removal = removal_delta(self.matrix, source, p) * veh_a.cost_per_distance
                if not reduced:
                    removal -= veh_a.fixed_cost
                reduced_eval = None
                demand = self.problem.demand(c)
                
                for b, route_b in enumerate(routes):
                    veh_b = vehicles[b]
                    if b == a:
                        target = reduced
                    else:
                        if loads[b] + demand > veh_b.capacity:
                            continue
                        target = route_b.customers
                    
                    for q in range(len(target) + 1):
                        if b == a and q == p:
                            continue
                        insertion = insertion_delta(self.matrix, target, q, c) * veh_b.cost_per_distance
                        if not target:
                            insertion += veh_b.fixed_cost
                        estimate = -(removal + insertion)
                        if not estimate > best_gain:
                            continue
                        
                        new_target = target[:q] + [c] + target[q:]
                        if b == a:
                            new_eval = self.evaluator.evaluate_route(new_target, veh_a)
                            if not new_eval.feasible:
                                continue
                            gain = evals[a].cost - new_eval.cost
                            if gain > best_gain:
                                best, best_gain = (a, new_target, a, new_target), gain
                        else:
                            if reduced_eval is None:
                                reduced_eval = self.evaluator.evaluate_route(reduced, veh_a)
                            if not reduced_eval.feasible:
                                break
                            new_eval = self.evaluator.evaluate_route(new_target, veh_b)
                            if not new_eval.feasible:
                                continue
                            gain = (evals[a].cost + evals[b].cost) - (reduced_eval.cost + new_eval.cost)
                            if gain > best_gain:
                                best, best_gain = (a, reduced, b, new_target), gain
        return best


class OrOptOptimizer(BaseOptimizer):
    """Move segments of consecutive customers to another position of the same route."""
    
    name = "or_opt"
    
    def __init__(self, problem: VRPProblem, max_segment_length: int = 3):
        super().__init__(problem)
        self.max_segment_length = max_segment_length
    
    def optimize(self, solution: Solution) -> Solution:
        for route in solution.routes:
            route.customers = self.optimize_route(route.customers, self._vehicle(route))
        return solution
    
    def optimize_route(self, customers: Sequence[int], vehicle: Vehicle) -> List[int]:
        current = list(customers)
        current_eval = self.evaluator.evaluate_route(current, vehicle)
        while True:
            best = None
            best_cost = current_eval.cost
            n = len(current)
            for length in range(1, min(self.max_segment_length, n - 1) + 1):
                for i in range(n - length + 1):
                    segment = current[i:i + length]
                    rest = current[:i] + current[i + length:]
                    for q in range(len(rest) + 1):
                        if q == i:
                            continue
                        candidate = rest[:q] + segment + rest[q:]
                        ev = self.evaluator.evaluate_route(candidate, vehicle)
                        if ev.feasible and is_better(ev.cost, best_cost):
                            best, best_cost = (candidate, ev), ev.cost
            if best is None:
                return current
            current, current_eval = best
            self.moves_applied += 1


class CrossExchangeOptimizer(BaseOptimizer):
    """2-opt*: exchange the tails of two routes."""
    
    name = "cross_exchange"
    
    def optimize(self, solution: Solution) -> Solution:
        while True:
            move = self._find_best_move(solution)
            if move is None:
                break
            a, new_a, b, new_b = move
            solution.routes[a].customers = new_a
            solution.routes[b].customers = new_b
            self.moves_applied += 1
            solution.remove_empty_routes()
        return solution
    
    def _find_best_move(self, solution: Solution):
        routes = solution.routes
        vehicles = [self._vehicle(r) for r in routes]
        costs = [self.evaluator.route_cost(r.customers, v) for r, v in zip(routes, vehicles)]
        
        best = None
        best_gain = EPSILON
        for a in range(len(routes)):
            ra = routes[a].customers
            for b in range(a + 1, len(routes)):
                rb = routes[b].customers
                for i in range(len(ra) + 1):
                    for j in range(len(rb) + 1):
                        if (i == 0 and j == 0) or (i == len(ra) and j == len(rb)):
                            continue
                        new_a = ra[:i] + rb[j:]
                        new_b = rb[:j] + ra[i:]
                        ev_a = self.evaluator.evaluate_route(new_a, vehicles[a])
                        if not ev_a.feasible:
                            continue
                        ev_b = self.evaluator.evaluate_route(new_b, vehicles[b])
                        if not ev_b.feasible:
                            continue
                        gain = (costs[a] + costs[b]) - (ev_a.cost + ev_b.cost)
                        if gain > best_gain:
                            best, best_gain = (a, new_a, b, new_b), gain
        return best


LOCAL_SEARCH_OPERATORS = {
    'two_opt': TwoOptOptimizer,
    'three_opt': ThreeOptOptimizer,
    'relocate': RelocateOptimizer,
    'or_opt': OrOptOptimizer,
    'cross_exchange': CrossExchangeOptimizer,
}


class LocalSearch:
    """Variable neighbourhood descent over the configured operators."""
    
    def __init__(self, problem: VRPProblem, config: Optional[Dict] = None,
                 profiler: Optional[PipelineProfiler] = None):
        """
        Initialize local search.
        
        Args:
            problem: VRP problem instance
            config: Overrides for LOCAL_SEARCH_CONFIG
            profiler: Stage timings owner (a private one when None)
        """
        self.problem = problem
        self.profiler = profiler or PipelineProfiler()
        self.config = get_local_search_config(config)
        self.evaluator = RouteEvaluator(problem)
        self.operators = [self._build(name) for name in self.config['operators']]
        self.rounds = 0
    
    def _build(self, name: str) -> BaseOptimizer:
        if name == 'two_opt':
            return TwoOptOptimizer(self.problem, policy=self.config['two_opt_policy'])
        if name == 'or_opt':
            return OrOptOptimizer(self.problem, max_segment_length=self.config['or_opt_max_segment'])
        return LOCAL_SEARCH_OPERATORS[name](self.problem)
    
    def optimize(self, solution: Solution) -> Solution:
        """
        Run every operator to its local optimum, repeating while any improves.
        
        Args:
            solution: Solution to improve (mutated in place)
            
        Returns:
            The same solution object
        """
        with self.profiler.profile("local_search.optimize"):
            initial_cost = self.evaluator.solution_cost(solution)
            for _ in range(self.config['max_rounds']):
                self.rounds += 1
                applied = 0
                for operator in self.operators:
                    before = operator.moves_applied
                    operator.optimize(solution)
                    applied += operator.moves_applied - before
                if applied == 0:
                    break
            final_cost = self.evaluator.solution_cost(solution)
        
        logger.debug(f"Local search: {initial_cost:.2f} -> {final_cost:.2f}")
        return solution
    
    def get_statistics(self) -> Dict:
        return {
            'rounds': self.rounds,
            'operators': [op.get_statistics() for op in self.operators]
        }
