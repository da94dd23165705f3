"""
Optimal Split algorithm for the giant tour representation.
Implements Prins (2004) split with capacity, time windows and route limits,
and a fleet-limited variant when the unlimited split needs too many vehicles.
"""

import logging
import math
from typing import List, Optional, Tuple

from routeopt.algorithms.base import BaseDecoder, fleet_template
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.core.profiler import PipelineProfiler
from routeopt.core.validators import DataValidator
from routeopt.models.vrp_model import VRPProblem, Vehicle
from routeopt.models.solution import Route, Solution

logger = logging.getLogger(__name__)


class SplitDecoder(BaseDecoder):
    """
    Optimal split of a giant tour into routes (Prins 2004).
    
    Bellman recursion over tour positions: best[j] is the cheapest way to
    serve the first j customers of the tour, and each feasible segment
    tour[i:j] is one route starting and ending at the depot. The result is
    optimal for the given order only.
    """
    
    def __init__(self, problem: VRPProblem, vehicle: Optional[Vehicle] = None,
                 profiler: Optional[PipelineProfiler] = None):
        """
        Initialize split decoder.
        
        Args:
            problem: VRP problem instance
            vehicle: Vehicle profile for every segment (defaults to the fleet's
                common profile)
            profiler: Stage timings owner (a private one when None)
        """
        super().__init__(problem)
        self.profiler = profiler or PipelineProfiler()
        self.vehicle = fleet_template(problem, vehicle)
        self.num_vehicles = len(problem.vehicles)
        depot_window = problem.depot.time_window
        self.start_time = depot_window.ready if depot_window is not None else 0.0
        self.depot_due = depot_window.due if depot_window is not None else math.inf
    
    def decode(self, giant_tour: List[int]) -> Solution:
        """
        Decode a giant tour into its cheapest contiguous splitting.
        
        Args:
            giant_tour: Permutation of all customer ids
            
        Returns:
            Solution with vehicles assigned in fleet order
            
        Raises:
            DecodingError: If the tour is not a permutation of the customers
            InfeasibleInstanceError: If no feasible splitting exists
        """
        DataValidator.validate_giant_tour(giant_tour, self.problem)
        routes, _ = self.split(giant_tour)
        return Solution([Route(v.id, customers)
                         for v, customers in zip(self.problem.vehicles, routes)])
    
    def split(self, giant_tour: List[int]) -> Tuple[List[List[int]], float]:
        """
        Split giant tour into optimal routes.
        
        Args:
            giant_tour: Giant tour (customer ids, depot excluded)
            
        Returns:
            Tuple of (routes, total_cost)
        """
        if not giant_tour:
            return [], 0.0
        
        with self.profiler.profile("split.decode"):
            segments = self._segment_costs(giant_tour)
            routes, cost = self._split_unlimited(giant_tour, segments)
            if routes is not None and len(routes) > self.num_vehicles:
                logger.debug(f"Split needs {len(routes)} routes for {self.num_vehicles} vehicles, "
                             f"running fleet-limited split")
                routes, cost = self._split_limited(giant_tour, segments)
        
        if routes is None:
            raise InfeasibleInstanceError(
                reason=f"no feasible split of the giant tour with {self.num_vehicles} vehicles"
            )
        return routes, cost
    
    def _segment_costs(self, giant_tour: List[int]) -> List[List[Tuple[int, float]]]:
        """
        Enumerate feasible segments.
        
        Returns:
            segments[i] lists (j, cost) for every feasible route tour[i:j]
        """
        n = len(giant_tour)
        vehicle = self.vehicle
        customers = self.problem.customers
        matrix = self.problem.distance_matrix
        segments: List[List[Tuple[int, float]]] = []
        
        for i in range(n):
            options = []
            load = 0
            distance = 0.0
            time = self.start_time
            prev = 0
            for j in range(i + 1, n + 1):
                c = giant_tour[j - 1]
                customer = customers[c]
                
                load += customer.demand
                if load > vehicle.capacity:
                    break
                
                distance += matrix.distance(prev, c)
                arrival = time + matrix.time(prev, c)
                if math.isnan(distance) or math.isnan(arrival):
                    break
                window = customer.time_window
                if window is not None:
                    if arrival > window.due:
                        break
                    time = max(arrival, window.ready) + customer.service_time
                else:
                    time = arrival + customer.service_time
                prev = c
                
                # Prefix checks: extending the segment can only make these worse
                if vehicle.max_distance is not None and distance > vehicle.max_distance:
                    break
                if vehicle.max_duration is not None and time - self.start_time > vehicle.max_duration:
                    break
                if time > self.depot_due:
                    break
                
                total_distance = distance + matrix.distance(c, 0)
                return_time = time + matrix.time(c, 0)
                if math.isnan(total_distance) or math.isnan(return_time):
                    continue
                if vehicle.max_distance is not None and total_distance > vehicle.max_distance:
                    continue
                if vehicle.max_duration is not None and return_time - self.start_time > vehicle.max_duration:
                    continue
                if return_time > self.depot_due:
                    continue
                
                options.append((j, total_distance * vehicle.cost_per_distance + vehicle.fixed_cost))
            segments.append(options)
        return segments
    
    def _split_unlimited(self, giant_tour, segments):
        n = len(giant_tour)
        best = [math.inf] * (n + 1)
        pred = [-1] * (n + 1)
        best[0] = 0.0
        
        for i in range(n):
            if best[i] == math.inf:
                continue
            for j, cost in segments[i]:
                new_cost = best[i] + cost
                if new_cost < best[j]:
                    best[j] = new_cost
                    pred[j] = i
        
        if best[n] == math.inf:
            return None, math.inf
        
        routes = []
        j = n
        while j > 0:
            i = pred[j]
            routes.append(list(giant_tour[i:j]))
            j = i
        routes.reverse()
        return routes, best[n]
    
    def _split_limited(self, giant_tour, segments):
        """Split with at most one route per vehicle: V[k][j] uses exactly k routes."""
        n = len(giant_tour)
        m = min(self.num_vehicles, n)
        V = [[math.inf] * (n + 1) for _ in range(m + 1)]
        pred = [[-1] * (n + 1) for _ in range(m + 1)]
        V[0][0] = 0.0
        
        for k in range(m):
            for i in range(n):
                if V[k][i] == math.inf:
                    continue
                for j, cost in segments[i]:
                    new_cost = V[k][i] + cost
                    if new_cost < V[k + 1][j]:
                        V[k + 1][j] = new_cost
                        pred[k + 1][j] = i
        
        best_k = None
        for k in range(1, m + 1):
            if V[k][n] < math.inf and (best_k is None or V[k][n] < V[best_k][n]):
                best_k = k
        if best_k is None:
            return None, math.inf
        
        routes = []
        j, k = n, best_k
        while j > 0:
            i = pred[k][j]
            routes.append(list(giant_tour[i:j]))
            j, k = i, k - 1
        routes.reverse()
        return routes, V[best_k][n]
