"""
Shared problem builders for the test suite.
"""

import numpy as np

from routeopt.models.vrp_model import Customer, DistanceMatrix, TimeWindow, VRPProblem, Vehicle


def line_customers(demand=10):
    """Depot at (0,0) and customers at (1,0), (2,0), (3,0)."""
    return [
        Customer.depot(0, 0),
        Customer(1, 1, 0, demand),
        Customer(2, 2, 0, demand),
        Customer(3, 3, 0, demand),
    ]


def line_problem(capacity=30, num_vehicles=None, demand=10):
    return VRPProblem.homogeneous(line_customers(demand), capacity, num_vehicles)


def random_problem(n=12, seed=0, capacity=25, max_demand=10, num_vehicles=None,
                   time_windows=False):
    """Random Euclidean instance on a 100x100 square."""
    rng = np.random.default_rng(seed)
    customers = [Customer.depot(50, 50)]
    for i in range(1, n + 1):
        x, y = (float(v) for v in rng.uniform(0, 100, size=2))
        demand = int(rng.integers(1, max_demand + 1))
        window = None
        if time_windows:
            ready = float(rng.uniform(0, 200))
            window = TimeWindow(ready, ready + 150.0)
        customers.append(Customer(i, x, y, demand, 5.0 if time_windows else 0.0, window))
    return VRPProblem.homogeneous(customers, capacity, num_vehicles)


def route_distance(problem, customers):
    ext = [0] + list(customers) + [0]
    return sum(problem.get_distance(a, b) for a, b in zip(ext, ext[1:]))
