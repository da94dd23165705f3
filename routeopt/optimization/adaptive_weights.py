"""
Adaptive operator weights for ALNS (Ropke & Pisinger 2006).
"""

from typing import Dict, List, Sequence
import numpy as np

from routeopt.core.random_source import RandomSource


class AdaptiveWeights:
    """
    Roulette weights for one family of operators.
    
    Scores collected during a segment are folded into the weights at the
    segment end: w = (1 - r) * w + r * (segment score / segment uses) for
    every operator used, followed by renormalization and a floor so that no
    operator ever reaches zero weight. Each engine owns its own instance.
    """
    
    def __init__(self, names: Sequence[str], reaction_factor: float = 0.1,
                 min_weight: float = 0.01):
        """
        Initialize weights uniformly.
        
        Args:
            names: Operator names, in selection index order
            reaction_factor: Share of the new segment score in the updated weight
            min_weight: Floor applied to normalized weights
        """
        if not names:
            raise ValueError("At least one operator is required")
        self.names = list(names)
        self.reaction_factor = reaction_factor
        self.min_weight = min_weight
        
        n = len(self.names)
        self.weights = np.full(n, 1.0 / n)
        self.segment_scores = np.zeros(n)
        self.segment_counts = np.zeros(n, dtype=int)
        self.total_counts = np.zeros(n, dtype=int)
        self.total_scores = np.zeros(n)
        self.updates = 0
    
    def select(self, rng: RandomSource) -> int:
        """Draw an operator index with probability proportional to its weight."""
        return rng.weighted_choice(self.weights)
    
    def record(self, index: int, score: float):
        self.segment_scores[index] += score
        self.segment_counts[index] += 1
        self.total_scores[index] += score
        self.total_counts[index] += 1
    
    def update(self):
        """Fold the segment's average scores into the weights and start a new segment."""
        used = self.segment_counts > 0
        if np.any(used):
            average = self.segment_scores[used] / self.segment_counts[used]
            r = self.reaction_factor
            self.weights[used] = (1.0 - r) * self.weights[used] + r * average
        self._normalize()
        
        self.segment_scores[:] = 0.0
        self.segment_counts[:] = 0
        self.updates += 1
    
    def _normalize(self):
        total = self.weights.sum()
        if not np.isfinite(total) or total <= 0:
            self.weights[:] = 1.0
            total = self.weights.sum()
        self.weights /= total
        self.weights = np.maximum(self.weights, self.min_weight)
        self.weights /= self.weights.sum()
    
    def as_dict(self) -> Dict[str, float]:
        return {name: float(w) for name, w in zip(self.names, self.weights)}
    
    def get_statistics(self) -> List[Dict]:
        return [
            {
                'operator': name,
                'weight': float(self.weights[i]),
                'uses': int(self.total_counts[i]),
                'total_score': float(self.total_scores[i]),
            }
            for i, name in enumerate(self.names)
        ]
