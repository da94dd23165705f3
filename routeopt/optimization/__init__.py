"""
Adaptive Large Neighborhood Search for VRP.

Exports:
- ALNSOptimizer: destroy/repair search with adaptive operator weights
- DESTROY_OPERATORS / REPAIR_OPERATORS: the registered operator variants
"""

from .destroy import DESTROY_OPERATORS, RandomRemoval, ShawRemoval, WorstRemoval
from .repair import REPAIR_OPERATORS, GreedyInsertion, RegretInsertion
from .adaptive_weights import AdaptiveWeights
from .acceptance import SimulatedAnnealing
from .alns_optimizer import ALNSOptimizer, ALNSResult

__all__ = [
    'ALNSOptimizer',
    'ALNSResult',
    'AdaptiveWeights',
    'SimulatedAnnealing',
    'DESTROY_OPERATORS',
    'REPAIR_OPERATORS',
    'RandomRemoval',
    'WorstRemoval',
    'ShawRemoval',
    'GreedyInsertion',
    'RegretInsertion',
]
