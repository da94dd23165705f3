"""
routeopt - optimization core for capacitated and time-windowed vehicle routing.
"""

from routeopt.api import solve, evaluate, decode

__version__ = "1.0.0"

__all__ = ["solve", "evaluate", "decode", "__version__"]
