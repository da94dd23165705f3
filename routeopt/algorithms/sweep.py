"""
Sweep heuristic: customers ordered by polar angle around the depot are cut into routes.
"""

import logging
import math
from typing import Any, Dict, List

from routeopt.algorithms.base import BaseAlgorithm
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import Route, Solution

logger = logging.getLogger(__name__)


class SweepHeuristic(BaseAlgorithm):
    """Sweep a ray around the depot and start a new route when the next customer does not fit."""
    
    def __init__(self, problem: VRPProblem, start_angle: float = 0.0):
        super().__init__(problem)
        self.start_angle = start_angle
    
    def sweep_order(self) -> List[int]:
        """Customers by angle from start_angle, ties by distance to the depot then id."""
        depot = self.problem.depot
        
        def key(c):
            customer = self.problem.customers[c]
            angle = math.atan2(customer.y - depot.y, customer.x - depot.x)
            relative = (angle - self.start_angle) % (2 * math.pi)
            return relative, depot.distance_to(customer), c
        
        return sorted(self.problem.customer_ids, key=key)
    
    def solve(self) -> Solution:
        """
        Build routes along the sweep order.
        
        Raises:
            InfeasibleInstanceError: If the fleet runs out or a customer fits no route
        """
        vehicles = iter(self.problem.vehicles)
        routes: List[Route] = []
        current = None
        
        for c in self.sweep_order():
            if current is not None:
                vehicle = self.problem.get_vehicle(current.vehicle_id)
                if self.evaluator.is_feasible_route(current.customers + [c], vehicle):
                    current.customers.append(c)
                    continue
            
            vehicle = next(vehicles, None)
            if vehicle is None:
                raise InfeasibleInstanceError(reason="sweep ran out of vehicles")
            if not self.evaluator.is_feasible_route([c], vehicle):
                raise InfeasibleInstanceError(
                    reason=f"customer {c} does not fit vehicle {vehicle.id} on its own",
                    customer_id=c
                )
            current = Route(vehicle.id, [c])
            routes.append(current)
        
        logger.info(f"Sweep: {len(routes)} routes")
        return Solution(routes)
    
    def get_statistics(self) -> Dict[str, Any]:
        return {'algorithm': 'sweep', 'start_angle': self.start_angle}
