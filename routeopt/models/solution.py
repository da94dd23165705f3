"""
Solution representation for VRP problems.
Defines Route and Solution for all search paths, plus Individual and Population for the GA.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np


@dataclass
class Route:
    """Ordered customer ids served by one vehicle. The depot is implicit at both ends."""
    vehicle_id: int
    customers: List[int] = field(default_factory=list)
    
    def copy(self) -> 'Route':
        return Route(self.vehicle_id, list(self.customers))
    
    def is_empty(self) -> bool:
        return not self.customers
    
    def __len__(self) -> int:
        return len(self.customers)
    
    def __iter__(self):
        return iter(self.customers)
    
    def to_dict(self) -> Dict:
        return {'vehicle_id': self.vehicle_id, 'customers': list(self.customers)}


class Solution:
    """
    A set of routes, each owned by a distinct vehicle.
    
    Route costs are never stored here; ask a RouteEvaluator. Operators mutate
    solutions in place and must keep every customer in exactly one route.
    """
    
    def __init__(self, routes: Optional[List[Route]] = None):
        self.routes: List[Route] = routes if routes is not None else []
    
    def copy(self) -> 'Solution':
        """Copy with independent route lists."""
        return Solution([route.copy() for route in self.routes])
    
    @property
    def num_routes(self) -> int:
        return len(self.routes)
    
    def customer_ids(self) -> List[int]:
        """All served customers in route order."""
        return [c for route in self.routes for c in route.customers]
    
    def used_vehicle_ids(self) -> List[int]:
        return [route.vehicle_id for route in self.routes]
    
    def find_customer(self, customer_id: int) -> Optional[Tuple[int, int]]:
        """
        Locate a customer.
        
        Returns:
            (route index, position) or None if the customer is not served
        """
        for r_idx, route in enumerate(self.routes):
            for pos, c in enumerate(route.customers):
                if c == customer_id:
                    return r_idx, pos
        return None
    
    def remove_customer(self, customer_id: int) -> Tuple[int, int]:
        """Detach a customer and return where it was. Empty routes are kept."""
        location = self.find_customer(customer_id)
        if location is None:
            raise KeyError(f"Customer {customer_id} is not in the solution")
        r_idx, pos = location
        del self.routes[r_idx].customers[pos]
        return location
    
    def insert_customer(self, customer_id: int, route_index: int, position: int):
        self.routes[route_index].customers.insert(position, customer_id)
    
    def remove_empty_routes(self) -> int:
        """Drop routes without customers, freeing their vehicles."""
        before = len(self.routes)
        self.routes = [route for route in self.routes if route.customers]
        return before - len(self.routes)
    
    def giant_tour(self) -> List[int]:
        """Concatenate routes into a giant tour (GA encoding)."""
        return self.customer_ids()
    
    def to_dict(self) -> Dict:
        return {
            'routes': [route.to_dict() for route in self.routes],
            'num_routes': self.num_routes,
            'num_customers': len(self.customer_ids())
        }
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Solution):
            return NotImplemented
        return [r.to_dict() for r in self.routes] == [r.to_dict() for r in other.routes]
    
    def __repr__(self):
        body = ", ".join(f"v{r.vehicle_id}:{r.customers}" for r in self.routes)
        return f"Solution([{body}])"


@dataclass(frozen=True)
class RemovedPool:
    """Customers detached by a destroy step, awaiting repair."""
    customers: Tuple[int, ...] = ()
    
    def __len__(self) -> int:
        return len(self.customers)
    
    def __iter__(self):
        return iter(self.customers)


@dataclass
class Individual:
    """A giant tour and its decoded solution (lower cost is better)."""
    chromosome: List[int] = field(default_factory=list)
    cost: float = math.inf
    solution: Optional[Solution] = None
    is_valid: bool = False
    
    def copy(self) -> 'Individual':
        """Create a deep copy of the individual."""
        return Individual(
            chromosome=list(self.chromosome),
            cost=self.cost,
            solution=self.solution.copy() if self.solution is not None else None,
            is_valid=self.is_valid
        )
    
    def get_route_count(self) -> int:
        return self.solution.num_routes if self.solution is not None else 0
    
    def to_dict(self) -> Dict:
        return {
            'chromosome': list(self.chromosome),
            'cost': float(self.cost),
            'routes': [r.to_dict() for r in self.solution.routes] if self.solution else [],
            'is_valid': bool(self.is_valid),
            'route_count': self.get_route_count()
        }


class Population:
    """Represents a population of individuals in the GA."""
    
    def __init__(self, individuals: Optional[List[Individual]] = None):
        """
        Initialize population.
        
        Args:
            individuals: List of individuals (empty if None)
        """
        self.individuals = individuals or []
        self.generation = 0
        self.best_cost_history: List[float] = []
    
    def get_size(self) -> int:
        return len(self.individuals)
    
    def get_best(self) -> Optional[Individual]:
        """Lowest-cost individual; the earliest wins ties."""
        if not self.individuals:
            return None
        return min(self.individuals, key=cost_key)
    
    def sort_by_cost(self):
        # sort is stable, so equal costs keep their order
        self.individuals.sort(key=cost_key)
    
    def apply_elitism(self, elite_count: int) -> List[Individual]:
        """
        Select elite individuals for next generation.
        
        Args:
            elite_count: Number of elite individuals to select
            
        Returns:
            Copies of the best individuals
        """
        ranked = sorted(self.individuals, key=cost_key)
        return [ind.copy() for ind in ranked[:elite_count]]
    
    def calculate_diversity(self) -> float:
        """Share of positions where two chromosomes differ, averaged over pairs."""
        if len(self.individuals) < 2:
            return 0.0
        
        total_differences = 0
        total_comparisons = 0
        for i in range(len(self.individuals)):
            for j in range(i + 1, len(self.individuals)):
                chrom1 = self.individuals[i].chromosome
                chrom2 = self.individuals[j].chromosome
                total_differences += sum(1 for a, b in zip(chrom1, chrom2) if a != b)
                total_comparisons += len(chrom1)
        
        return total_differences / total_comparisons if total_comparisons else 0.0
    
    def next_generation(self, individuals: List[Individual]):
        self.individuals = individuals
        self.generation += 1
    
    def get_statistics(self) -> Dict:
        """Get population statistics over valid individuals."""
        costs = np.array([ind.cost for ind in self.individuals if ind.is_valid], dtype=float)
        return {
            'size': self.get_size(),
            'generation': self.generation,
            'valid': int(costs.size),
            'best_cost': float(costs.min()) if costs.size else math.inf,
            'avg_cost': float(costs.mean()) if costs.size else math.inf,
            'worst_cost': float(costs.max()) if costs.size else math.inf,
            'cost_std': float(costs.std()) if costs.size else 0.0,
            'diversity': self.calculate_diversity()
        }


def cost_key(individual: Individual) -> float:
    # NaN never ranks ahead of a real cost
    return math.inf if math.isnan(individual.cost) else individual.cost
