"""
Unit tests for local search operators.
"""

import math
import unittest

from routeopt.algorithms.local_search import (
    CrossExchangeOptimizer,
    LocalSearch,
    OrOptOptimizer,
    RelocateOptimizer,
    ThreeOptOptimizer,
    TwoOptOptimizer,
    insertion_delta,
    removal_delta,
)
from routeopt.algorithms.nearest_neighbor import NearestNeighborHeuristic
from routeopt.core.exceptions import InvalidConfigurationError
from routeopt.core.validators import SolutionValidator
from routeopt.evaluation.evaluator import RouteEvaluator
from routeopt.models.vrp_model import Customer, DistanceMatrix, TimeWindow, VRPProblem
from routeopt.models.solution import Route, Solution

from vrp_fixtures import line_customers, line_problem, random_problem


def _problem(points, capacity=100, num_vehicles=None):
    customers = [Customer.depot(0, 0)]
    customers += [Customer(i, x, y, 1) for i, (x, y) in enumerate(points, start=1)]
    return VRPProblem.homogeneous(customers, capacity, num_vehicles)


class TestDeltas(unittest.TestCase):
    """Test the O(1) edge deltas."""

    def test_removal_and_insertion(self):
        """Deltas match the route distance difference."""
        matrix = line_problem().distance_matrix
        self.assertAlmostEqual(removal_delta(matrix, [1, 3, 2], 1), -2.0)
        self.assertAlmostEqual(insertion_delta(matrix, [1, 2], 2, 3), 2.0)
        self.assertAlmostEqual(insertion_delta(matrix, [], 0, 2), 4.0)


class TestTwoOpt(unittest.TestCase):
    """Test the 2-opt optimizer."""

    def setUp(self):
        """Set up test data."""
        self.problem = _problem([(1, 0), (1, 1), (0, 1)], num_vehicles=1)
        self.evaluator = RouteEvaluator(self.problem)
        self.vehicle = self.problem.vehicles[0]

    def test_uncrosses_route(self):
        """A crossing route is untangled."""
        optimizer = TwoOptOptimizer(self.problem)
        route = optimizer.optimize_route([1, 3, 2], self.vehicle)
        self.assertEqual(route, [1, 2, 3])
        self.assertAlmostEqual(self.evaluator.route_cost(route, self.vehicle), 4.0)
        self.assertGreaterEqual(optimizer.moves_applied, 1)

    def test_best_improvement_policy(self):
        """Best improvement reaches the same optimum."""
        optimizer = TwoOptOptimizer(self.problem, policy="best")
        solution = Solution([Route(0, [3, 1, 2])])
        optimizer.optimize(solution)
        self.assertAlmostEqual(self.evaluator.solution_cost(solution), 4.0)
        with self.assertRaises(ValueError):
            TwoOptOptimizer(self.problem, policy="random")

    def test_no_move_on_optimal_line(self):
        """The line route has no improving move."""
        problem = line_problem(capacity=30, num_vehicles=1)
        solution = NearestNeighborHeuristic(problem).solve()
        optimizer = TwoOptOptimizer(problem)
        optimizer.optimize(solution)
        self.assertEqual(solution.routes[0].customers, [1, 2, 3])
        self.assertEqual(optimizer.moves_applied, 0)

    def test_asymmetric_matrix(self):
        """Asymmetric costs are evaluated in full, never by edge deltas."""
        distances = [
            [0, 1, 5, 1],
            [5, 0, 1, 5],
            [1, 5, 0, 1],
            [1, 1, 5, 0],
        ]
        problem = VRPProblem.homogeneous(line_customers(1), 10, 1,
                                         distance_matrix=DistanceMatrix(distances))
        evaluator = RouteEvaluator(problem)
        vehicle = problem.vehicles[0]
        start = [3, 2, 1]
        route = TwoOptOptimizer(problem).optimize_route(start, vehicle)
        # reversing [3, 2] gives 2 -> 3 at cost 1 instead of 5
        self.assertEqual(route, [2, 3, 1])
        self.assertLess(evaluator.route_cost(route, vehicle), evaluator.route_cost(start, vehicle))

    def test_nan_edges_never_chosen(self):
        """Moves through a NaN edge are skipped."""
        distances = [
            [0, 1, 2, 3],
            [1, 0, 1, math.nan],
            [2, 1, 0, 1],
            [3, math.nan, 1, 0],
        ]
        problem = VRPProblem.homogeneous(line_customers(1), 10, 1,
                                         distance_matrix=DistanceMatrix(distances))
        evaluator = RouteEvaluator(problem)
        vehicle = problem.vehicles[0]
        for policy in ("first", "best"):
            route = TwoOptOptimizer(problem, policy=policy).optimize_route([3, 2, 1], vehicle)
            ev = evaluator.evaluate_route(route, vehicle)
            self.assertTrue(ev.feasible)
            self.assertAlmostEqual(ev.cost, 6.0)


class TestThreeOpt(unittest.TestCase):
    """Test the 3-opt optimizer."""

    def setUp(self):
        """Set up test data."""
        self.problem = line_problem(num_vehicles=1)
        self.evaluator = RouteEvaluator(self.problem)
        self.vehicle = self.problem.vehicles[0]

    def test_swaps_segments(self):
        """Exchanging two segments restores the line order."""
        optimizer = ThreeOptOptimizer(self.problem)
        route = optimizer.optimize_route([2, 1, 3], self.vehicle)
        self.assertEqual(route, [1, 2, 3])
        self.assertAlmostEqual(self.evaluator.route_cost(route, self.vehicle), 6.0)
        self.assertEqual(optimizer.moves_applied, 1)

    def test_short_routes_unchanged(self):
        """Routes with fewer than three customers are left alone."""
        optimizer = ThreeOptOptimizer(self.problem)
        self.assertEqual(optimizer.optimize_route([2, 1], self.vehicle), [2, 1])
        self.assertEqual(optimizer.optimize_route([], self.vehicle), [])
        self.assertEqual(optimizer.moves_applied, 0)

    def test_infeasible_reconnection_skipped(self):
        """A cheaper order that breaks a time window is never applied."""
        customers = [
            Customer.depot(0, 0),
            Customer(1, 1, 0, 10, 0.0, TimeWindow(2.5, 100.0)),
            Customer(2, 2, 0, 10, 0.0, TimeWindow(0.0, 2.0)),
            Customer(3, 3, 0, 10),
        ]
        problem = VRPProblem.homogeneous(customers, 30, 1)
        vehicle = problem.vehicles[0]
        evaluator = RouteEvaluator(problem)
        self.assertFalse(evaluator.evaluate_route([1, 2, 3], vehicle).feasible)

        route = ThreeOptOptimizer(problem).optimize_route([2, 1, 3], vehicle)
        self.assertEqual(route, [2, 3, 1])
        ev = evaluator.evaluate_route(route, vehicle)
        self.assertTrue(ev.feasible)
        self.assertAlmostEqual(ev.cost, 6.0)

    def test_never_worsens(self):
        """Every route keeps its customers and never gets longer."""
        problem = random_problem(n=12, seed=5)
        solution = NearestNeighborHeuristic(problem).solve_complete()
        optimizer = ThreeOptOptimizer(problem)
        evaluator = RouteEvaluator(problem)
        for route in solution.routes:
            vehicle = problem.get_vehicle(route.vehicle_id)
            improved = optimizer.optimize_route(route.customers, vehicle)
            self.assertEqual(sorted(improved), sorted(route.customers))
            self.assertLessEqual(evaluator.route_cost(improved, vehicle),
                                 evaluator.route_cost(route.customers, vehicle) + 1e-9)

    def test_registered_with_local_search(self):
        """3-opt can be selected by name."""
        problem = random_problem(n=10, seed=3)
        solution = NearestNeighborHeuristic(problem).solve_complete()
        search = LocalSearch(problem, {'operators': ['three_opt', 'relocate']})
        self.assertEqual([op.name for op in search.operators], ['three_opt', 'relocate'])
        search.optimize(solution)
        SolutionValidator.validate(solution, problem)
        self.assertTrue(RouteEvaluator(problem).evaluate(solution)[1])


class TestRelocate(unittest.TestCase):
    """Test the relocate optimizer."""

    def test_line_has_no_move(self):
        """Scenario: single optimal route, nothing to relocate."""
        problem = line_problem(capacity=30, num_vehicles=1)
        solution = NearestNeighborHeuristic(problem).solve()
        optimizer = RelocateOptimizer(problem)
        optimizer.optimize(solution)
        self.assertEqual(optimizer.moves_applied, 0)
        self.assertEqual(solution.routes[0].customers, [1, 2, 3])

    def test_moves_customer_between_routes(self):
        """A customer close to another route is moved there."""
        problem = _problem([(10, 0), (0, 10), (11, 0)], num_vehicles=2)
        evaluator = RouteEvaluator(problem)
        solution = Solution([Route(0, [1]), Route(1, [2, 3])])
        before = evaluator.solution_cost(solution)

        RelocateOptimizer(problem).optimize(solution)
        r_idx, _ = solution.find_customer(3)
        self.assertIn(1, solution.routes[r_idx].customers)
        self.assertLess(evaluator.solution_cost(solution), before)
        SolutionValidator.validate(solution, problem)

    def test_empties_route(self):
        """Moving the last customer out of a route frees its vehicle."""
        problem = line_problem(capacity=30, num_vehicles=2)
        solution = Solution([Route(0, [1]), Route(1, [2])])
        RelocateOptimizer(problem).optimize(solution)
        self.assertEqual(solution.num_routes, 1)
        self.assertEqual(solution.customer_ids(), [1, 2])

    def test_respects_capacity(self):
        """Moves that overload the target route are rejected."""
        problem = line_problem(capacity=15, num_vehicles=3)
        solution = Solution([Route(0, [1]), Route(1, [2]), Route(2, [3])])
        optimizer = RelocateOptimizer(problem)
        optimizer.optimize(solution)
        self.assertEqual(optimizer.moves_applied, 0)


class TestOrOptAndCrossExchange(unittest.TestCase):
    """Test segment moves and tail exchange."""

    def test_or_opt_moves_segment(self):
        """A misplaced customer is moved back into line order."""
        problem = _problem([(1, 0), (2, 0), (3, 0), (4, 0)], num_vehicles=1)
        vehicle = problem.vehicles[0]
        optimizer = OrOptOptimizer(problem, max_segment_length=2)
        route = optimizer.optimize_route([2, 1, 3, 4], vehicle)
        self.assertAlmostEqual(RouteEvaluator(problem).route_cost(route, vehicle), 8.0)
        self.assertEqual(optimizer.moves_applied, 1)

    def test_cross_exchange_swaps_tails(self):
        """Two crossing routes exchange their tails."""
        problem = _problem([(10, 1), (20, 1), (-10, 1), (-20, 1)], num_vehicles=2)
        evaluator = RouteEvaluator(problem)
        solution = Solution([Route(0, [1, 4]), Route(1, [3, 2])])
        separated = evaluator.solution_cost(Solution([Route(0, [1, 2]), Route(1, [3, 4])]))

        CrossExchangeOptimizer(problem).optimize(solution)
        self.assertAlmostEqual(evaluator.solution_cost(solution), separated)
        self.assertEqual(sorted(sorted(r.customers) for r in solution.routes), [[1, 2], [3, 4]])


class TestLocalSearch(unittest.TestCase):
    """Test the combined descent."""

    def test_never_worsens(self):
        """Descent keeps feasibility and coverage and never increases cost."""
        for seed in range(4):
            problem = random_problem(n=12, seed=seed, time_windows=(seed % 2 == 1))
            evaluator = RouteEvaluator(problem)
            solution = NearestNeighborHeuristic(problem).solve_complete()
            before = evaluator.solution_cost(solution)

            search = LocalSearch(problem)
            search.optimize(solution)
            cost, feasible = evaluator.evaluate(solution)
            self.assertTrue(feasible)
            self.assertLessEqual(cost, before + 1e-9)
            SolutionValidator.validate(solution, problem)
            self.assertGreaterEqual(search.get_statistics()['rounds'], 1)

    def test_operator_selection(self):
        """Only configured operators run."""
        problem = line_problem()
        search = LocalSearch(problem, {'operators': ['relocate']})
        self.assertEqual([op.name for op in search.operators], ['relocate'])
        with self.assertRaises(InvalidConfigurationError):
            LocalSearch(problem, {'operators': ['lin_kernighan']})


if __name__ == '__main__':
    unittest.main()
