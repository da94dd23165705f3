"""
Seedable random source shared by every stochastic component.
Wraps a numpy Generator and hands back plain Python values.
"""

from typing import List, Optional, Sequence, TypeVar
import numpy as np

T = TypeVar('T')


class RandomSource:
    """Uniform, weighted-choice and shuffle draws from one sequential stream."""
    
    def __init__(self, seed: Optional[int] = None):
        """
        Initialize random source.
        
        Args:
            seed: Seed for reproducible runs (None draws fresh entropy)
        """
        self.seed = seed
        self._generator = np.random.default_rng(seed)
    
    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        """Draw a float in [low, high)."""
        return float(self._generator.uniform(low, high))
    
    def integer(self, low: int, high: int) -> int:
        """Draw an integer in [low, high], both ends inclusive."""
        if high < low:
            raise ValueError(f"Empty integer range [{low}, {high}]")
        return int(self._generator.integers(low, high + 1))
    
    def weighted_choice(self, weights: Sequence[float]) -> int:
        """
        Draw an index with probability proportional to its weight.
        
        Args:
            weights: Non-negative weights, at least one positive
            
        Returns:
            Selected index
        """
        w = np.asarray(weights, dtype=float)
        if w.size == 0 or not np.all(np.isfinite(w)) or np.any(w < 0) or w.sum() <= 0:
            raise ValueError(f"Invalid weights for weighted choice: {list(weights)}")
        # Roulette over cumulative weights
        cumulative = np.cumsum(w)
        r = self.uniform(0.0, float(cumulative[-1]))
        index = int(np.searchsorted(cumulative, r, side='right'))
        return min(index, w.size - 1)
    
    def sample(self, items: Sequence[T], k: int) -> List[T]:
        """Draw k distinct items without replacement, in draw order."""
        if k > len(items):
            raise ValueError(f"Cannot sample {k} items from {len(items)}")
        indices = self._generator.choice(len(items), size=k, replace=False)
        return [items[int(i)] for i in indices]
    
    def choice(self, items: Sequence[T]) -> T:
        """Draw one item uniformly."""
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.integer(0, len(items) - 1)]
    
    def shuffle(self, items: List[T]) -> None:
        """Shuffle a list in place."""
        order = self._generator.permutation(len(items))
        items[:] = [items[int(i)] for i in order]
    
    def spawn(self) -> 'RandomSource':
        """Derive an independent child stream (e.g. for a separate run)."""
        child = RandomSource()
        child.seed = None
        child._generator = self._generator.spawn(1)[0]
        return child
