"""
Clarke-Wright savings heuristic (parallel version).
Merges singleton routes in decreasing order of savings while the merged route stays feasible.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from routeopt.algorithms.base import BaseAlgorithm, fleet_template
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Route, Solution

logger = logging.getLogger(__name__)


class ClarkeWrightSavings(BaseAlgorithm):
    """Parallel savings algorithm over an identical fleet."""
    
    def __init__(self, problem: VRPProblem, vehicle: Optional[Vehicle] = None):
        """
        Initialize savings heuristic.
        
        Args:
            problem: VRP problem instance
            vehicle: Vehicle profile used for merge feasibility
                (defaults to the fleet's common profile)
        """
        super().__init__(problem)
        self.vehicle = fleet_template(problem, vehicle)
        self.merges = 0
    
    def compute_savings(self) -> List[Tuple[float, int, int]]:
        """
        Savings s(i, j) = d(0, i) + d(0, j) - d(i, j) for i < j.
        
        Returns:
            Positive savings as (saving, i, j), largest first, ties by (i, j)
        """
        d = self.problem.get_distance
        ids = self.problem.customer_ids
        savings = []
        for idx, i in enumerate(ids):
            for j in ids[idx + 1:]:
                s = d(0, i) + d(0, j) - d(i, j)
                if s > 0:
                    savings.append((s, i, j))
        savings.sort(key=lambda item: (-item[0], item[1], item[2]))
        return savings
    
    def solve(self) -> Solution:
        """
        Solve VRP using the savings algorithm.
        
        Returns:
            Solution with vehicles assigned in fleet order
            
        Raises:
            InfeasibleInstanceError: If more routes remain than vehicles
        """
        route_of: Dict[int, int] = {}
        members: Dict[int, List[int]] = {}
        for c in self.problem.customer_ids:
            route_of[c] = c
            members[c] = [c]
        
        for _, i, j in self.compute_savings():
            ri, rj = route_of[i], route_of[j]
            if ri == rj:
                continue
            merged = self._merge(members[ri], members[rj], i, j)
            if merged is None:
                continue
            if not self.evaluator.is_feasible_route(merged, self.vehicle):
                continue
            
            members[ri] = merged
            del members[rj]
            for c in merged:
                route_of[c] = ri
            self.merges += 1
        
        route_lists = [members[key] for key in sorted(members)]
        if len(route_lists) > len(self.problem.vehicles):
            raise InfeasibleInstanceError(
                reason=f"savings produced {len(route_lists)} routes for "
                       f"{len(self.problem.vehicles)} vehicles"
            )
        
        routes = [Route(v.id, customers)
                  for v, customers in zip(self.problem.vehicles, route_lists)]
        logger.info(f"Clarke-Wright: {self.merges} merges, {len(routes)} routes")
        return Solution(routes)
    
    @staticmethod
    def _merge(route_i: List[int], route_j: List[int], i: int, j: int) -> Optional[List[int]]:
        """Join two routes through the edge (i, j) when both are route endpoints."""
        i_at_start, i_at_end = route_i[0] == i, route_i[-1] == i
        j_at_start, j_at_end = route_j[0] == j, route_j[-1] == j
        
        if i_at_end and j_at_start:
            return route_i + route_j
        if j_at_end and i_at_start:
            return route_j + route_i
        if i_at_end and j_at_end:
            return route_i + route_j[::-1]
        if i_at_start and j_at_start:
            return route_i[::-1] + route_j
        return None
    
    def get_statistics(self) -> Dict[str, Any]:
        return {'algorithm': 'clarke_wright', 'merges': self.merges}
