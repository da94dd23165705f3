"""
NaN-safe cost comparisons shared by every operator.
"""

import math

# Minimum decrease that counts as an improvement
EPSILON = 1e-9


def is_better(candidate: float, reference: float, eps: float = EPSILON) -> bool:
    """
    True if candidate is strictly lower than reference by more than eps.
    
    A NaN candidate is never better; any real candidate beats a NaN reference.
    """
    if math.isnan(candidate):
        return False
    if math.isnan(reference):
        return True
    return candidate < reference - eps


def sort_key(value: float) -> float:
    """Ordering key that ranks NaN after every real number."""
    return math.inf if math.isnan(value) else value
