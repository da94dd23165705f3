"""
Route and solution evaluation.
Single source of truth for cost and feasibility (capacity, time windows, route limits).
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Solution


class ViolationType(Enum):
    CAPACITY = "capacity"
    TIME_WINDOW = "time_window"
    MAX_DISTANCE = "max_distance"
    MAX_DURATION = "max_duration"
    NUMERICAL = "numerical"
    VEHICLE = "vehicle"


@dataclass(frozen=True)
class Violation:
    """One broken constraint. customer_id is 0 for route-level violations."""
    kind: ViolationType
    customer_id: int = 0
    amount: float = 0.0


@dataclass
class RouteEvaluation:
    """Derived metrics of one route."""
    distance: float = 0.0
    duration: float = 0.0
    load: int = 0
    cost: float = 0.0
    waiting_time: float = 0.0
    feasible: bool = True
    violations: List[Violation] = field(default_factory=list)
    arrival_times: List[float] = field(default_factory=list)


@dataclass
class SolutionEvaluation:
    """Aggregate metrics of a solution."""
    cost: float = 0.0
    distance: float = 0.0
    duration: float = 0.0
    feasible: bool = True
    route_evaluations: List[RouteEvaluation] = field(default_factory=list)
    
    @property
    def num_routes(self) -> int:
        return len(self.route_evaluations)
    
    @property
    def violations(self) -> List[Violation]:
        return [v for ev in self.route_evaluations for v in ev.violations]
    
    def to_dict(self) -> Dict:
        return {
            'cost': self.cost,
            'distance': self.distance,
            'duration': self.duration,
            'feasible': self.feasible,
            'num_routes': self.num_routes,
            'violations': [(v.kind.value, v.customer_id, v.amount) for v in self.violations]
        }


class RouteEvaluator:
    """Evaluates routes left to right in one pass; no state is cached between calls."""
    
    def __init__(self, problem: VRPProblem):
        """
        Initialize evaluator.
        
        Args:
            problem: VRP problem instance
        """
        self.problem = problem
        self.matrix = problem.distance_matrix
        depot_window = problem.depot.time_window
        self.start_time = depot_window.ready if depot_window is not None else 0.0
    
    def evaluate_route(self, customers: Sequence[int], vehicle: Vehicle) -> RouteEvaluation:
        """
        Evaluate a route driven by a vehicle.
        
        Arrival at a customer is the previous departure plus travel time. Service
        starts at max(arrival, ready) and a violation is recorded when arrival is
        after due. Infeasible routes are still fully measured.
        
        Args:
            customers: Customer ids in visiting order (depot excluded)
            vehicle: Vehicle driving the route
            
        Returns:
            RouteEvaluation with distance, duration, load, cost and violations
        """
        if not customers:
            return RouteEvaluation()
        
        problem_customers = self.problem.customers
        matrix = self.matrix
        violations: List[Violation] = []
        arrivals: List[float] = []
        
        distance = 0.0
        waiting = 0.0
        load = 0
        time = self.start_time
        prev = 0
        for c in customers:
            customer = problem_customers[c]
            distance += matrix.distance(prev, c)
            arrival = time + matrix.time(prev, c)
            arrivals.append(arrival)
            
            window = customer.time_window
            if window is not None:
                if arrival > window.due:
                    violations.append(Violation(ViolationType.TIME_WINDOW, c, arrival - window.due))
                wait = window.waiting_time(arrival)
                waiting += wait
                time = arrival + wait + customer.service_time
            else:
                time = arrival + customer.service_time
            
            load += customer.demand
            prev = c
        
        distance += matrix.distance(prev, 0)
        return_time = time + matrix.time(prev, 0)
        duration = return_time - self.start_time
        
        depot_window = self.problem.depot.time_window
        if depot_window is not None and return_time > depot_window.due:
            violations.append(Violation(ViolationType.TIME_WINDOW, 0, return_time - depot_window.due))
        
        if load > vehicle.capacity:
            violations.append(Violation(ViolationType.CAPACITY, 0, load - vehicle.capacity))
        if vehicle.max_distance is not None and distance > vehicle.max_distance:
            violations.append(Violation(ViolationType.MAX_DISTANCE, 0, distance - vehicle.max_distance))
        if vehicle.max_duration is not None and duration > vehicle.max_duration:
            violations.append(Violation(ViolationType.MAX_DURATION, 0, duration - vehicle.max_duration))
        
        cost = distance * vehicle.cost_per_distance + vehicle.fixed_cost
        if math.isnan(distance) or math.isnan(duration):
            # NaN comparisons above are all False, so flag the route explicitly
            violations.append(Violation(ViolationType.NUMERICAL, 0, math.nan))
            cost = math.inf
        
        return RouteEvaluation(
            distance=distance,
            duration=duration,
            load=load,
            cost=cost,
            waiting_time=waiting,
            feasible=not violations,
            violations=violations,
            arrival_times=arrivals
        )
    
    def route_cost(self, customers: Sequence[int], vehicle: Vehicle) -> float:
        return self.evaluate_route(customers, vehicle).cost
    
    def is_feasible_route(self, customers: Sequence[int], vehicle: Vehicle) -> bool:
        return self.evaluate_route(customers, vehicle).feasible
    
    def evaluate_solution(self, solution: Solution) -> SolutionEvaluation:
        """
        Evaluate all routes of a solution.
        
        A solution is infeasible if any route is, or if a route names an unknown
        vehicle or a vehicle already used by another route.
        """
        result = SolutionEvaluation()
        seen_vehicles = set()
        for route in solution.routes:
            if not self.problem.has_vehicle(route.vehicle_id) or route.vehicle_id in seen_vehicles:
                ev = RouteEvaluation(feasible=False, cost=math.inf,
                                     violations=[Violation(ViolationType.VEHICLE, 0, route.vehicle_id)])
            else:
                ev = self.evaluate_route(route.customers, self.problem.get_vehicle(route.vehicle_id))
            seen_vehicles.add(route.vehicle_id)
            
            result.route_evaluations.append(ev)
            result.cost += ev.cost
            result.distance += ev.distance
            result.duration += ev.duration
            result.feasible = result.feasible and ev.feasible
        return result
    
    def evaluate(self, solution: Solution) -> Tuple[float, bool]:
        """Return (total cost, feasible)."""
        ev = self.evaluate_solution(solution)
        return ev.cost, ev.feasible
    
    def solution_cost(self, solution: Solution) -> float:
        return self.evaluate_solution(solution).cost
