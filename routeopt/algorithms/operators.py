"""
Genetic operators on giant tours.
Implements selection, order crossover and permutation-preserving mutations.
"""

from typing import List, Optional, Tuple

from routeopt.core.random_source import RandomSource
from routeopt.models.solution import Individual, cost_key


class SelectionOperator:
    """Selection operators for the GA."""
    
    @staticmethod
    def tournament_selection(population: List[Individual], tournament_size: int,
                             rng: RandomSource) -> Individual:
        """
        Tournament selection: the lowest-cost of a random sample wins.
        
        Args:
            population: Individuals to select from
            tournament_size: Number of contestants
            rng: Random source
            
        Returns:
            Selected individual (not copied)
        """
        size = min(tournament_size, len(population))
        contestants = rng.sample(population, size)
        return min(contestants, key=cost_key)


class CrossoverOperator:
    """Crossover operators for giant tours."""
    
    @staticmethod
    def order_crossover(parent1: List[int], parent2: List[int], rng: RandomSource,
                        cut: Optional[Tuple[int, int]] = None) -> List[int]:
        """
        Order Crossover (OX).
        
        The child keeps parent1's slice [start, end] at the same positions; the
        other positions are filled left to right with parent2's customers in
        parent2's order, skipping those already placed.
        
        Args:
            parent1: Slice donor
            parent2: Order donor
            rng: Random source (used when cut is None)
            cut: Optional inclusive (start, end) slice
            
        Returns:
            Child giant tour (always a permutation of the parents' customers)
        """
        if len(parent1) != len(parent2):
            raise ValueError("Parents must have same chromosome length")
        
        n = len(parent1)
        if n < 2:
            return list(parent1)
        
        if cut is None:
            start = rng.integer(0, n - 2)
            end = rng.integer(start + 1, n - 1)
        else:
            start, end = cut
        
        child: List[Optional[int]] = [None] * n
        child[start:end + 1] = parent1[start:end + 1]
        placed = set(parent1[start:end + 1])
        
        fill = (gene for gene in parent2 if gene not in placed)
        for idx in range(n):
            if child[idx] is None:
                child[idx] = next(fill)
        return child


class MutationOperator:
    """Mutation operators for giant tours. Each returns a new list."""
    
    @staticmethod
    def swap_mutation(chromosome: List[int], rng: RandomSource) -> List[int]:
        """Swap two random positions."""
        mutated = list(chromosome)
        if len(mutated) < 2:
            return mutated
        i, j = rng.sample(range(len(mutated)), 2)
        mutated[i], mutated[j] = mutated[j], mutated[i]
        return mutated
    
    @staticmethod
    def inversion_mutation(chromosome: List[int], rng: RandomSource) -> List[int]:
        """Reverse a random slice."""
        mutated = list(chromosome)
        if len(mutated) < 2:
            return mutated
        i, j = sorted(rng.sample(range(len(mutated)), 2))
        mutated[i:j + 1] = reversed(mutated[i:j + 1])
        return mutated
    
    @staticmethod
    def insertion_mutation(chromosome: List[int], rng: RandomSource) -> List[int]:
        """Move one customer to another position."""
        mutated = list(chromosome)
        if len(mutated) < 2:
            return mutated
        i, j = rng.sample(range(len(mutated)), 2)
        gene = mutated.pop(i)
        mutated.insert(j, gene)
        return mutated
    
    @staticmethod
    def mutate(chromosome: List[int], rng: RandomSource) -> List[int]:
        """Swap or inversion with equal probability."""
        if rng.uniform() < 0.5:
            return MutationOperator.swap_mutation(chromosome, rng)
        return MutationOperator.inversion_mutation(chromosome, rng)
