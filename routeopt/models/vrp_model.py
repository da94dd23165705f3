"""
VRP problem model and data structures.
Defines the core VRP problem representation.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence
import numpy as np

from routeopt.core.exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class TimeWindow:
    """Earliest and latest service start at a customer."""
    ready: float
    due: float
    
    def __post_init__(self):
        if not (math.isfinite(self.ready) and math.isfinite(self.due)):
            raise ValueError(f"Time window bounds must be finite: [{self.ready}, {self.due}]")
        if self.ready > self.due:
            raise ValueError(f"Time window ready {self.ready} is after due {self.due}")
    
    def contains(self, t: float) -> bool:
        return self.ready <= t <= self.due
    
    def waiting_time(self, arrival: float) -> float:
        """Time spent idle when arriving before the window opens."""
        return max(0.0, self.ready - arrival)


@dataclass(frozen=True)
class Customer:
    """Represents a customer in the VRP problem (id 0 is the depot)."""
    id: int
    x: float
    y: float
    demand: int = 0
    service_time: float = 0.0
    time_window: Optional[TimeWindow] = None
    
    def __post_init__(self):
        """Validate customer data after initialization."""
        if self.demand < 0:
            raise ValueError(f"Customer {self.id} has negative demand")
        if self.service_time < 0:
            raise ValueError(f"Customer {self.id} has negative service time")
    
    @classmethod
    def depot(cls, x: float = 0.0, y: float = 0.0,
              time_window: Optional[TimeWindow] = None) -> 'Customer':
        return cls(0, x, y, 0, 0.0, time_window)
    
    @property
    def is_depot(self) -> bool:
        return self.id == 0
    
    @property
    def has_time_window(self) -> bool:
        return self.time_window is not None
    
    def distance_to(self, other: 'Customer') -> float:
        """Euclidean distance to another customer."""
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Vehicle:
    """A vehicle with capacity and optional route limits."""
    id: int
    capacity: int
    cost_per_distance: float = 1.0
    fixed_cost: float = 0.0
    max_distance: Optional[float] = None
    max_duration: Optional[float] = None
    
    def __post_init__(self):
        if self.capacity < 0:
            raise InvalidConfigurationError(
                parameter='capacity',
                value=self.capacity,
                expected=">= 0"
            )
        if not math.isfinite(self.cost_per_distance) or self.cost_per_distance < 0:
            raise InvalidConfigurationError(
                parameter='cost_per_distance',
                value=self.cost_per_distance,
                expected="finite and >= 0"
            )
        if not math.isfinite(self.fixed_cost) or self.fixed_cost < 0:
            raise InvalidConfigurationError(
                parameter='fixed_cost',
                value=self.fixed_cost,
                expected="finite and >= 0"
            )
        for name in ('max_distance', 'max_duration'):
            limit = getattr(self, name)
            if limit is not None and not (math.isfinite(limit) and limit >= 0):
                raise InvalidConfigurationError(
                    parameter=name,
                    value=limit,
                    expected="finite and >= 0, or None"
                )
    
    def same_profile(self, other: 'Vehicle') -> bool:
        """True if both vehicles differ only by id."""
        return (self.capacity == other.capacity
                and self.cost_per_distance == other.cost_per_distance
                and self.fixed_cost == other.fixed_cost
                and self.max_distance == other.max_distance
                and self.max_duration == other.max_duration)


class DistanceMatrix:
    """Read-only pairwise distance and travel-time lookup by customer index."""
    
    def __init__(self, distances, times=None):
        """
        Initialize distance matrix.
        
        Args:
            distances: Square array-like of travel costs
            times: Optional square array-like of travel times (defaults to distances)
        """
        dist = np.array(distances, dtype=float)
        if dist.ndim != 2 or dist.shape[0] != dist.shape[1]:
            raise ValueError(f"Distance matrix must be square, got shape {dist.shape}")
        if np.any(dist < 0):
            raise ValueError("Distance matrix contains negative entries")
        
        if times is None:
            tm = dist
        else:
            tm = np.array(times, dtype=float)
            if tm.shape != dist.shape:
                raise ValueError(f"Time matrix shape {tm.shape} does not match distances {dist.shape}")
            if np.any(tm < 0):
                raise ValueError("Time matrix contains negative entries")
        
        dist.setflags(write=False)
        if tm is not dist:
            tm.setflags(write=False)
        self._distances = dist
        self._times = tm
        self._symmetric = None
    
    @classmethod
    def from_customers(cls, customers: Sequence[Customer], speed: float = 1.0) -> 'DistanceMatrix':
        """Build a Euclidean matrix from customer coordinates."""
        if speed <= 0:
            raise ValueError("Speed must be positive")
        coords = np.array([(c.x, c.y) for c in customers], dtype=float)
        diff = coords[:, None, :] - coords[None, :, :]
        distances = np.sqrt(np.sum(diff ** 2, axis=2))
        times = None if speed == 1.0 else distances / speed
        return cls(distances, times)
    
    @property
    def size(self) -> int:
        return self._distances.shape[0]
    
    @property
    def distances(self) -> np.ndarray:
        return self._distances
    
    @property
    def times(self) -> np.ndarray:
        return self._times
    
    def distance(self, i: int, j: int) -> float:
        return float(self._distances[i, j])
    
    def time(self, i: int, j: int) -> float:
        return float(self._times[i, j])
    
    def is_symmetric(self, tolerance: float = 1e-9) -> bool:
        if self._symmetric is None:
            self._symmetric = bool(np.allclose(self._distances, self._distances.T,
                                               atol=tolerance, rtol=0.0, equal_nan=True))
        return self._symmetric
    
    def max_distance(self) -> float:
        """Largest finite distance (0 when there is none)."""
        finite = self._distances[np.isfinite(self._distances)]
        return float(finite.max()) if finite.size else 0.0
    
    def nearest_neighbor(self, i: int, candidates: Sequence[int]) -> Optional[int]:
        """
        Closest candidate to i. Ties go to the lower id, NaN distances are skipped.
        
        Returns:
            Candidate id or None if no candidate has a valid distance
        """
        best, best_dist = None, math.inf
        for c in candidates:
            d = self.distance(i, c)
            if math.isnan(d):
                continue
            if d < best_dist or (d == best_dist and best is not None and c < best):
                best, best_dist = c, d
        return best


class VRPProblem:
    """Represents a complete VRP problem instance."""
    
    def __init__(self,
                 customers: List[Customer],
                 vehicles: List[Vehicle],
                 distance_matrix: Optional[DistanceMatrix] = None):
        """
        Initialize VRP problem.
        
        Args:
            customers: Customers indexed by id, customers[0] is the depot
            vehicles: Vehicle fleet (each vehicle drives at most one route)
            distance_matrix: Optional pre-computed matrix (Euclidean when None)
        """
        self.customers = list(customers)
        self.vehicles = list(vehicles)
        self.distance_matrix = distance_matrix or DistanceMatrix.from_customers(self.customers)
        self._vehicle_index = {v.id: v for v in self.vehicles}
        
        self._validate_problem()
    
    @classmethod
    def homogeneous(cls, customers: List[Customer], capacity: int,
                    num_vehicles: Optional[int] = None,
                    distance_matrix: Optional[DistanceMatrix] = None,
                    **vehicle_kwargs) -> 'VRPProblem':
        """
        Build a problem with an identical fleet.
        
        Args:
            customers: Customers with the depot at index 0
            capacity: Capacity of every vehicle
            num_vehicles: Fleet size (one vehicle per customer when None)
            distance_matrix: Optional pre-computed matrix
            **vehicle_kwargs: Extra Vehicle fields (cost_per_distance, max_distance, ...)
        """
        if num_vehicles is None:
            num_vehicles = max(1, len(customers) - 1)
        vehicles = [Vehicle(k, capacity, **vehicle_kwargs) for k in range(num_vehicles)]
        return cls(customers, vehicles, distance_matrix)
    
    def _validate_problem(self):
        """Validate VRP problem structure."""
        if not self.customers:
            raise ValueError("No depot provided")
        
        if not self.vehicles:
            raise ValueError("No vehicles provided")
        
        for index, customer in enumerate(self.customers):
            if customer.id != index:
                raise ValueError(f"Customer at index {index} has id {customer.id}")
        
        if len(self._vehicle_index) != len(self.vehicles):
            raise ValueError("Vehicle ids must be unique")
        
        if self.distance_matrix.size != len(self.customers):
            raise ValueError(
                f"Distance matrix size {self.distance_matrix.size} does not match "
                f"{len(self.customers)} locations"
            )
    
    @property
    def depot(self) -> Customer:
        return self.customers[0]
    
    @property
    def num_customers(self) -> int:
        return len(self.customers) - 1
    
    @property
    def customer_ids(self) -> List[int]:
        return list(range(1, len(self.customers)))
    
    @property
    def total_demand(self) -> int:
        return sum(c.demand for c in self.customers[1:])
    
    def demand(self, customer_id: int) -> int:
        return self.customers[customer_id].demand
    
    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        return self._vehicle_index[vehicle_id]
    
    def has_vehicle(self, vehicle_id: int) -> bool:
        return vehicle_id in self._vehicle_index
    
    def is_homogeneous(self) -> bool:
        first = self.vehicles[0]
        return all(first.same_profile(v) for v in self.vehicles[1:])
    
    def has_time_windows(self) -> bool:
        return any(c.has_time_window for c in self.customers)
    
    def get_distance(self, i: int, j: int) -> float:
        return self.distance_matrix.distance(i, j)
    
    def get_travel_time(self, i: int, j: int) -> float:
        return self.distance_matrix.time(i, j)
    
    def __repr__(self):
        return (f"VRPProblem(customers={self.num_customers}, "
                f"vehicles={len(self.vehicles)}, time_windows={self.has_time_windows()})")
