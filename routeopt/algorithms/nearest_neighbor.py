"""
Nearest Neighbor constructive heuristic for VRP.
Builds routes vehicle by vehicle, always driving to the closest customer that keeps the route feasible.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from routeopt.algorithms.base import BaseAlgorithm
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Route, Solution

logger = logging.getLogger(__name__)


class NearestNeighborHeuristic(BaseAlgorithm):
    """Nearest Neighbor heuristic, time-window aware through optional ranking weights."""
    
    def __init__(self, problem: VRPProblem, waiting_weight: float = 0.0,
                 urgency_weight: float = 0.0):
        """
        Initialize Nearest Neighbor heuristic.
        
        Args:
            problem: VRP problem instance
            waiting_weight: Penalty per unit of idle time before a window opens
            urgency_weight: Penalty per unit of slack to a customer's due time
                (favours customers whose windows close soon)
        """
        super().__init__(problem)
        self.waiting_weight = waiting_weight
        self.urgency_weight = urgency_weight
        self.unassigned: List[int] = []
    
    def solve(self) -> Solution:
        """
        Solve VRP using Nearest Neighbor heuristic.
        
        Customers that fit no vehicle are left out of the solution and listed
        in ``self.unassigned``.
        
        Returns:
            Solution covering every assigned customer
        """
        unvisited = list(self.problem.customer_ids)
        routes: List[Route] = []
        
        for vehicle in self.problem.vehicles:
            if not unvisited:
                break
            customers = self._build_single_route(unvisited, vehicle)
            if customers:
                routes.append(Route(vehicle.id, customers))
        
        if unvisited:
            self._fit_remaining_customers(routes, unvisited)
        
        self.unassigned = sorted(unvisited)
        if self.unassigned:
            logger.info(f"Nearest neighbor left {len(self.unassigned)} customers unassigned")
        return Solution(routes)
    
    def solve_complete(self) -> Solution:
        """Like solve(), but every customer must be served."""
        solution = self.solve()
        if self.unassigned:
            raise InfeasibleInstanceError(
                reason=f"nearest neighbor could not place customers {self.unassigned}"
            )
        return solution
    
    def _build_single_route(self, unvisited: List[int], vehicle: Vehicle) -> List[int]:
        """
        Build a single route using Nearest Neighbor.
        
        Args:
            unvisited: Unvisited customer IDs (visited ones are removed)
            vehicle: Vehicle driving the route
            
        Returns:
            Customer order of the route
        """
        route: List[int] = []
        load = 0
        
        while unvisited:
            best: Optional[Tuple[float, float, int]] = None
            current = route[-1] if route else 0
            
            for customer_id in unvisited:
                if load + self.problem.demand(customer_id) > vehicle.capacity:
                    continue
                distance = self.problem.get_distance(current, customer_id)
                if math.isnan(distance):
                    continue
                if best is not None and distance > best[0] and not self._uses_ranking():
                    continue
                
                evaluation = self.evaluator.evaluate_route(route + [customer_id], vehicle)
                if not evaluation.feasible:
                    continue
                
                score = distance + self._ranking_penalty(customer_id, evaluation.arrival_times[-1])
                key = (score, distance, customer_id)
                if best is None or key < best:
                    best = key
            
            if best is None:
                break
            
            nearest = best[2]
            route.append(nearest)
            load += self.problem.demand(nearest)
            unvisited.remove(nearest)
        
        return route
    
    def _uses_ranking(self) -> bool:
        return self.waiting_weight > 0 or self.urgency_weight > 0
    
    def _ranking_penalty(self, customer_id: int, arrival: float) -> float:
        window = self.problem.customers[customer_id].time_window
        if window is None or not self._uses_ranking():
            return 0.0
        waiting = window.waiting_time(arrival)
        slack = max(0.0, window.due - arrival)
        return self.waiting_weight * waiting + self.urgency_weight * slack
    
    def _fit_remaining_customers(self, routes: List[Route], unvisited: List[int]):
        """
        Try to fit remaining customers into existing routes at their cheapest feasible position.
        
        Args:
            routes: Existing routes (modified in place)
            unvisited: Unvisited customer IDs (placed ones are removed)
        """
        for customer_id in list(unvisited):
            best = None
            best_increase = math.inf
            for route_idx, route in enumerate(routes):
                vehicle = self.problem.get_vehicle(route.vehicle_id)
                base_cost = self.evaluator.route_cost(route.customers, vehicle)
                for pos in range(len(route.customers) + 1):
                    candidate = route.customers[:pos] + [customer_id] + route.customers[pos:]
                    evaluation = self.evaluator.evaluate_route(candidate, vehicle)
                    if not evaluation.feasible:
                        continue
                    increase = evaluation.cost - base_cost
                    if increase < best_increase:
                        best_increase = increase
                        best = (route_idx, pos)
            
            if best is not None:
                routes[best[0]].customers.insert(best[1], customer_id)
                unvisited.remove(customer_id)
    
    def get_statistics(self) -> Dict[str, Any]:
        return {'algorithm': 'nearest_neighbor', 'unassigned': list(self.unassigned)}
