"""
Repair operators for ALNS.

Every operator shares one contract: apply(solution, pool) reinserts all pooled
customers and returns the solution. Insertion options are every position of
every route plus a new route on the cheapest feasible unused vehicle; each
option is gated by the full route evaluator.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from routeopt.evaluation.compare import sort_key
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import RemovedPool, Route, Solution

logger = logging.getLogger(__name__)

# (insertion cost, route index, position); route index == number of routes opens a new
# route, and position then indexes the unused vehicle
Option = Tuple[float, int, int]


class InsertionState:
    """
    Cached cheapest insertion per (route, customer) for one repair call.
    
    Only the route that received a customer is re-evaluated after an insertion.
    """
    
    def __init__(self, problem: VRPProblem, evaluator: RouteEvaluator, solution: Solution):
        self.problem = problem
        self.evaluator = evaluator
        self.solution = solution
        self.vehicles: List[Vehicle] = [problem.get_vehicle(r.vehicle_id) for r in solution.routes]
        evaluations = [evaluator.evaluate_route(r.customers, v)
                       for r, v in zip(solution.routes, self.vehicles)]
        self.costs = [ev.cost for ev in evaluations]
        self.loads = [ev.load for ev in evaluations]
        used = set(solution.used_vehicle_ids())
        self.unused = [v for v in problem.vehicles if v.id not in used]
        self._cache: List[Dict[int, Optional[Tuple[float, int]]]] = [{} for _ in solution.routes]
    
    def best_in_route(self, customer: int, r: int) -> Optional[Tuple[float, int]]:
        """Cheapest feasible (cost, position) of customer in route r, first position on ties."""
        cache = self._cache[r]
        if customer in cache:
            return cache[customer]
        
        result = None
        vehicle = self.vehicles[r]
        if self.loads[r] + self.problem.demand(customer) <= vehicle.capacity:
            route = self.solution.routes[r].customers
            for pos in range(len(route) + 1):
                ev = self.evaluator.evaluate_route(route[:pos] + [customer] + route[pos:], vehicle)
                if not ev.feasible:
                    continue
                delta = ev.cost - self.costs[r]
                if math.isnan(delta):
                    continue
                if result is None or delta < result[0]:
                    result = (delta, pos)
        cache[customer] = result
        return result
    
    def new_route(self, customer: int) -> Optional[Tuple[float, int]]:
        """
        Cheapest feasible singleton route on an unused vehicle.
        
        Returns:
            (cost, index into self.unused), the earliest vehicle in fleet
            order on ties, or None if no unused vehicle can serve customer
        """
        best = None
        tried: List[Vehicle] = []
        for idx, vehicle in enumerate(self.unused):
            if any(vehicle.same_profile(other) for other in tried):
                continue
            tried.append(vehicle)
            ev = self.evaluator.evaluate_route([customer], vehicle)
            if not ev.feasible or math.isnan(ev.cost):
                continue
            if best is None or ev.cost < best[0]:
                best = (ev.cost, idx)
        return best
    
    def options(self, customer: int) -> List[Option]:
        """Best option per route, then the new-route option, in route order."""
        options = []
        for r in range(len(self.solution.routes)):
            best = self.best_in_route(customer, r)
            if best is not None:
                options.append((best[0], r, best[1]))
        new_route = self.new_route(customer)
        if new_route is not None:
            options.append((new_route[0], len(self.solution.routes), new_route[1]))
        return options
    
    def insert(self, customer: int, r: int, pos: int):
        """Insert customer at pos of route r; r == number of routes opens a route on self.unused[pos]."""
        routes = self.solution.routes
        if r == len(routes):
            vehicle = self.unused.pop(pos)
            routes.append(Route(vehicle.id, [customer]))
            self.vehicles.append(vehicle)
            self.costs.append(0.0)
            self.loads.append(0)
            self._cache.append({})
        else:
            routes[r].customers.insert(pos, customer)
        
        ev = self.evaluator.evaluate_route(routes[r].customers, self.vehicles[r])
        self.costs[r] = ev.cost
        self.loads[r] = ev.load
        self._cache[r] = {}
    
    def force_insert(self, customer: int):
        """
        Insert at the cheapest position ignoring feasibility.
        
        Keeps the coverage invariant when no feasible option exists; the
        resulting solution is infeasible.
        """
        best = None
        for r, route in enumerate(self.solution.routes):
            for pos in range(len(route.customers) + 1):
                candidate = route.customers[:pos] + [customer] + route.customers[pos:]
                delta = sort_key(self.evaluator.route_cost(candidate, self.vehicles[r]) - self.costs[r])
                if best is None or delta < best[0]:
                    best = (delta, r, pos)
        if best is None:
            if not self.unused:
                raise RuntimeError("No route or vehicle available for insertion")
            best = (math.inf, len(self.solution.routes), 0)
        logger.debug(f"No feasible insertion for customer {customer}, forced into route {best[1]}")
        self.insert(customer, best[1], best[2])


class GreedyInsertion:
    """Repeatedly insert the globally cheapest (customer, position) pair."""
    
    name = "greedy"
    
    def __init__(self, problem: VRPProblem):
        self.problem = problem
        self.evaluator = RouteEvaluator(problem)
        self.insertion_order: List[int] = []
    
    def apply(self, solution: Solution, pool: RemovedPool) -> Solution:
        state = InsertionState(self.problem, self.evaluator, solution)
        pending = list(pool.customers)
        self.insertion_order = []
        
        while pending:
            best = None
            for idx, c in enumerate(pending):
                for cost, r, pos in state.options(c):
                    if best is None or cost < best[0]:
                        best = (cost, idx, r, pos)
            
            if best is None:
                customer = pending.pop(0)
                state.force_insert(customer)
            else:
                _, idx, r, pos = best
                customer = pending.pop(idx)
                state.insert(customer, r, pos)
            self.insertion_order.append(customer)
        
        return solution


class RegretInsertion:
    """
    Regret-k insertion.
    
    regret = c_k - c_1 over each customer's best option per route, sorted
    ascending. Customers with fewer than k options have infinite regret. The
    largest regret goes first; ties go to the lower best cost, then pool order.
    """
    
    name = "regret"
    
    def __init__(self, problem: VRPProblem, k: int = 2):
        if k < 2:
            raise ValueError(f"Regret order must be >= 2, got {k}")
        self.problem = problem
        self.k = k
        self.evaluator = RouteEvaluator(problem)
        self.insertion_order: List[int] = []
    
    def regret(self, options: List[Option]) -> float:
        ranked = sorted(options, key=lambda o: (o[0], o[1], o[2]))
        if len(ranked) < self.k:
            return math.inf
        return ranked[self.k - 1][0] - ranked[0][0]
    
    def apply(self, solution: Solution, pool: RemovedPool) -> Solution:
        state = InsertionState(self.problem, self.evaluator, solution)
        pending = list(pool.customers)
        self.insertion_order = []
        
        while pending:
            best_key = None
            choice = None
            for idx, c in enumerate(pending):
                options = state.options(c)
                if not options:
                    continue
                first = min(options, key=lambda o: (o[0], o[1], o[2]))
                key = (-self.regret(options), first[0], idx)
                if best_key is None or key < best_key:
                    best_key, choice = key, (idx, first)
            
            if choice is None:
                customer = pending.pop(0)
                state.force_insert(customer)
            else:
                idx, (_, r, pos) = choice
                customer = pending.pop(idx)
                state.insert(customer, r, pos)
            self.insertion_order.append(customer)
        
        return solution


REPAIR_OPERATORS = {
    'greedy': GreedyInsertion,
    'regret': RegretInsertion,
}


def build_repair_operator(name: str, problem: VRPProblem, config: Dict):
    """Instantiate a registered repair operator with its configured parameters."""
    if name == 'regret':
        return RegretInsertion(problem, k=config['regret_k'])
    return REPAIR_OPERATORS[name](problem)
