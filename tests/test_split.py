"""
Unit tests for the giant tour split decoder.
"""

import math
import unittest
import numpy as np

from routeopt.algorithms.split import SplitDecoder
from routeopt.core.exceptions import DecodingError, InfeasibleInstanceError, InvalidConfigurationError
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import Customer, DistanceMatrix, TimeWindow, VRPProblem, Vehicle

from vrp_fixtures import line_problem, random_problem


def brute_force_split(problem, tour, max_routes):
    """Cheapest feasible contiguous split by enumerating every cut set."""
    evaluator = RouteEvaluator(problem)
    vehicle = problem.vehicles[0]
    n = len(tour)
    best = math.inf
    for mask in range(2 ** (n - 1)):
        cuts = [i + 1 for i in range(n - 1) if mask >> i & 1]
        bounds = [0] + cuts + [n]
        routes = [tour[a:b] for a, b in zip(bounds, bounds[1:])]
        if len(routes) > max_routes:
            continue
        evaluations = [evaluator.evaluate_route(r, vehicle) for r in routes]
        if all(ev.feasible for ev in evaluations):
            best = min(best, sum(ev.cost for ev in evaluations))
    return best


class TestSplitDecoder(unittest.TestCase):
    """Test optimal splitting."""

    def test_capacity_forces_single_customer_routes(self):
        """Demand 10 per customer and capacity 15 gives one route each."""
        problem = line_problem(capacity=15)
        routes, cost = SplitDecoder(problem).split([1, 2, 3])
        self.assertEqual(routes, [[1], [2], [3]])
        self.assertAlmostEqual(cost, 12.0)

    def test_single_route(self):
        """With enough capacity the whole tour is one route."""
        problem = line_problem(capacity=30)
        solution = SplitDecoder(problem).decode([1, 2, 3])
        self.assertEqual(solution.num_routes, 1)
        self.assertEqual(solution.routes[0].customers, [1, 2, 3])
        self.assertEqual(solution.routes[0].vehicle_id, 0)

    def test_vehicles_in_fleet_order(self):
        """Routes get vehicles in fleet order."""
        problem = line_problem(capacity=20)
        solution = SplitDecoder(problem).decode([3, 2, 1])
        self.assertEqual(solution.used_vehicle_ids(), list(range(solution.num_routes)))
        self.assertEqual(solution.giant_tour(), [3, 2, 1])

    def test_matches_brute_force(self):
        """The split is optimal for the given order."""
        rng = np.random.default_rng(42)
        for seed in range(6):
            problem = random_problem(n=7, seed=seed, capacity=20, time_windows=(seed % 2 == 0))
            decoder = SplitDecoder(problem)
            for _ in range(3):
                tour = [int(c) for c in rng.permutation(problem.customer_ids)]
                _, cost = decoder.split(tour)
                self.assertAlmostEqual(cost, brute_force_split(problem, tour, len(problem.vehicles)))

    def test_cost_agrees_with_evaluator(self):
        """Segment costs are the evaluator's route costs."""
        problem = random_problem(n=10, seed=5, capacity=25, time_windows=True)
        decoder = SplitDecoder(problem)
        tour = problem.customer_ids
        solution = decoder.decode(tour)
        _, cost = decoder.split(tour)
        evaluated, feasible = RouteEvaluator(problem).evaluate(solution)
        self.assertTrue(feasible)
        self.assertAlmostEqual(evaluated, cost)

    def test_deterministic(self):
        """Same tour, same split."""
        problem = random_problem(n=10, seed=9)
        decoder = SplitDecoder(problem)
        tour = [5, 3, 9, 1, 10, 2, 8, 4, 7, 6]
        self.assertEqual(decoder.split(tour), decoder.split(tour))
        self.assertEqual(decoder.decode(tour), SplitDecoder(problem).decode(tour))

    def test_time_windows_break_routes(self):
        """A window that cannot be met after the previous customer starts a new route."""
        customers = [
            Customer.depot(0, 0),
            Customer(1, 10, 0, 1, 0.0, TimeWindow(0.0, 100.0)),
            Customer(2, -10, 0, 1, 0.0, TimeWindow(0.0, 15.0)),
        ]
        problem = VRPProblem.homogeneous(customers, 10, 2)
        routes, _ = SplitDecoder(problem).split([1, 2])
        self.assertEqual(routes, [[1], [2]])

    def test_empty_tour(self):
        """Nothing to split."""
        self.assertEqual(SplitDecoder(line_problem()).split([]), ([], 0.0))


class TestFleetLimitedSplit(unittest.TestCase):
    """Test the split under a fleet size limit."""

    def setUp(self):
        """Set up test data."""
        self.customers = [Customer.depot(0, 0), Customer(1, 1, 0, 1), Customer(2, -1, 0, 1)]
        self.matrix = DistanceMatrix([
            [0, 1, 1],
            [1, 0, 100],
            [1, 100, 0],
        ])

    def test_limited_fleet_merges_routes(self):
        """With one vehicle the expensive merged route is the only option."""
        problem = VRPProblem.homogeneous(self.customers, 10, 1, distance_matrix=self.matrix)
        routes, cost = SplitDecoder(problem).split([1, 2])
        self.assertEqual(routes, [[1, 2]])
        self.assertAlmostEqual(cost, 102.0)

        problem = VRPProblem.homogeneous(self.customers, 10, 2, distance_matrix=self.matrix)
        routes, cost = SplitDecoder(problem).split([1, 2])
        self.assertEqual(routes, [[1], [2]])
        self.assertAlmostEqual(cost, 4.0)

    def test_limited_matches_brute_force(self):
        """The fleet-limited split is optimal among splits with few enough routes."""
        rng = np.random.default_rng(7)
        for seed in range(4):
            problem = random_problem(n=7, seed=seed, capacity=20, num_vehicles=3)
            decoder = SplitDecoder(problem)
            for _ in range(3):
                tour = [int(c) for c in rng.permutation(problem.customer_ids)]
                expected = brute_force_split(problem, tour, 3)
                if expected == math.inf:
                    with self.assertRaises(InfeasibleInstanceError):
                        decoder.split(tour)
                else:
                    routes, cost = decoder.split(tour)
                    self.assertLessEqual(len(routes), 3)
                    self.assertAlmostEqual(cost, expected)

    def test_no_feasible_split(self):
        """Three customers of demand 10 cannot fit two vehicles of capacity 15."""
        problem = line_problem(capacity=15, num_vehicles=2)
        with self.assertRaises(InfeasibleInstanceError):
            SplitDecoder(problem).decode([1, 2, 3])


class TestDecodeValidation(unittest.TestCase):
    """Test giant tour validation."""

    def setUp(self):
        """Set up test data."""
        self.decoder = SplitDecoder(line_problem(capacity=30))

    def test_rejects_non_permutations(self):
        """Missing, repeated and unknown customers are decoding errors."""
        for tour in ([1, 2], [1, 2, 2, 3], [1, 2, 4], [0, 1, 2, 3]):
            with self.assertRaises(DecodingError):
                self.decoder.decode(tour)

    def test_heterogeneous_fleet(self):
        """A mixed fleet needs an explicit template vehicle."""
        problem = VRPProblem(line_problem().customers, [Vehicle(0, 30), Vehicle(1, 20)])
        with self.assertRaises(InvalidConfigurationError):
            SplitDecoder(problem)
        routes, _ = SplitDecoder(problem, vehicle=Vehicle(0, 20)).split([1, 2, 3])
        self.assertEqual(routes, [[1], [2, 3]])


if __name__ == '__main__':
    unittest.main()
