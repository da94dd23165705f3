"""
Unit tests for route and solution evaluation.
"""

import math
import unittest

from routeopt.evaluation.compare import is_better, sort_key
from routeopt.evaluation.evaluator import RouteEvaluator, ViolationType
from routeopt.models.vrp_model import Customer, DistanceMatrix, TimeWindow, VRPProblem, Vehicle
from routeopt.models.solution import Route, Solution

from vrp_fixtures import line_customers, line_problem


class TestRouteEvaluator(unittest.TestCase):
    """Test single-route evaluation."""

    def setUp(self):
        """Set up test data."""
        self.problem = line_problem(capacity=30, num_vehicles=2)
        self.evaluator = RouteEvaluator(self.problem)
        self.vehicle = self.problem.vehicles[0]

    def test_line_route(self):
        """Depot -> 1 -> 2 -> 3 -> depot on a line is 6 units long."""
        ev = self.evaluator.evaluate_route([1, 2, 3], self.vehicle)
        self.assertAlmostEqual(ev.distance, 6.0)
        self.assertAlmostEqual(ev.cost, 6.0)
        self.assertEqual(ev.load, 30)
        self.assertTrue(ev.feasible)
        self.assertEqual(ev.arrival_times, [1.0, 2.0, 3.0])

    def test_empty_route(self):
        """Empty routes cost nothing, not even the fixed cost."""
        ev = self.evaluator.evaluate_route([], Vehicle(9, 10, fixed_cost=100.0))
        self.assertEqual(ev.cost, 0.0)
        self.assertTrue(ev.feasible)

    def test_capacity_violation(self):
        """Load above capacity makes the route infeasible but keeps it measured."""
        small = Vehicle(5, 15)
        ev = self.evaluator.evaluate_route([1, 2], small)
        self.assertFalse(ev.feasible)
        self.assertEqual(ev.violations[0].kind, ViolationType.CAPACITY)
        self.assertEqual(ev.violations[0].amount, 5)
        self.assertAlmostEqual(ev.distance, 4.0)

    def test_cost_components(self):
        """Cost is distance times unit cost plus fixed cost."""
        vehicle = Vehicle(3, 30, cost_per_distance=2.0, fixed_cost=10.0)
        self.assertAlmostEqual(self.evaluator.route_cost([1, 2, 3], vehicle), 22.0)

    def test_route_limits(self):
        """Maximum distance and duration are hard limits."""
        vehicle = Vehicle(3, 30, max_distance=5.0, max_duration=4.0)
        ev = self.evaluator.evaluate_route([1, 2, 3], vehicle)
        kinds = {v.kind for v in ev.violations}
        self.assertEqual(kinds, {ViolationType.MAX_DISTANCE, ViolationType.MAX_DURATION})
        self.assertTrue(self.evaluator.is_feasible_route([1], vehicle))

    def test_nan_distance(self):
        """A NaN edge yields an infeasible route with infinite cost."""
        distances = [
            [0, 1, 2, 3],
            [1, 0, math.nan, 2],
            [2, math.nan, 0, 1],
            [3, 2, 1, 0],
        ]
        problem = VRPProblem.homogeneous(line_customers(), 30, 1,
                                         distance_matrix=DistanceMatrix(distances))
        evaluator = RouteEvaluator(problem)
        ev = evaluator.evaluate_route([1, 2, 3], problem.vehicles[0])
        self.assertFalse(ev.feasible)
        self.assertEqual(ev.cost, math.inf)
        self.assertEqual(ev.violations[-1].kind, ViolationType.NUMERICAL)
        self.assertTrue(evaluator.is_feasible_route([1, 3, 2], problem.vehicles[0]))


class TestTimeWindows(unittest.TestCase):
    """Test time window handling."""

    def setUp(self):
        """Set up test data."""
        customers = [
            Customer.depot(0, 0, TimeWindow(0.0, 100.0)),
            Customer(1, 10, 0, 1, 2.0, TimeWindow(20.0, 40.0)),
            Customer(2, 20, 0, 1, 2.0, TimeWindow(0.0, 25.0)),
        ]
        self.problem = VRPProblem.homogeneous(customers, 10, 2)
        self.evaluator = RouteEvaluator(self.problem)
        self.vehicle = self.problem.vehicles[0]

    def test_waiting_before_window(self):
        """Early arrival waits for the window to open."""
        ev = self.evaluator.evaluate_route([1], self.vehicle)
        self.assertTrue(ev.feasible)
        self.assertAlmostEqual(ev.waiting_time, 10.0)
        # 10 travel + 10 wait + 2 service + 10 back
        self.assertAlmostEqual(ev.duration, 32.0)

    def test_late_arrival(self):
        """Arriving after due is a violation."""
        ev = self.evaluator.evaluate_route([1, 2], self.vehicle)
        # service at 1 ends at 22, arrival at 2 is 32 > 25
        self.assertFalse(ev.feasible)
        self.assertEqual(ev.violations[0].kind, ViolationType.TIME_WINDOW)
        self.assertEqual(ev.violations[0].customer_id, 2)
        self.assertAlmostEqual(ev.violations[0].amount, 7.0)

        self.assertTrue(self.evaluator.is_feasible_route([2, 1], self.vehicle))

    def test_depot_closing_time(self):
        """Returning after the depot closes is a violation."""
        customers = [
            Customer.depot(0, 0, TimeWindow(0.0, 15.0)),
            Customer(1, 10, 0, 1),
        ]
        problem = VRPProblem.homogeneous(customers, 10, 1)
        ev = RouteEvaluator(problem).evaluate_route([1], problem.vehicles[0])
        self.assertFalse(ev.feasible)
        self.assertEqual(ev.violations[0].customer_id, 0)

    def test_depot_ready_time(self):
        """Routes start when the depot opens."""
        customers = [
            Customer.depot(0, 0, TimeWindow(50.0, 200.0)),
            Customer(1, 10, 0, 1, 0.0, TimeWindow(0.0, 55.0)),
        ]
        problem = VRPProblem.homogeneous(customers, 10, 1)
        ev = RouteEvaluator(problem).evaluate_route([1], problem.vehicles[0])
        self.assertEqual(ev.arrival_times, [60.0])
        self.assertFalse(ev.feasible)


class TestSolutionEvaluation(unittest.TestCase):
    """Test whole-solution evaluation."""

    def setUp(self):
        """Set up test data."""
        self.problem = line_problem(capacity=15, num_vehicles=3)
        self.evaluator = RouteEvaluator(self.problem)

    def test_totals(self):
        """Solution cost is the sum of route costs."""
        solution = Solution([Route(0, [1]), Route(1, [2]), Route(2, [3])])
        ev = self.evaluator.evaluate_solution(solution)
        self.assertAlmostEqual(ev.cost, 12.0)
        self.assertTrue(ev.feasible)
        self.assertEqual(ev.num_routes, 3)
        self.assertEqual(self.evaluator.evaluate(solution), (ev.cost, True))
        self.assertEqual(ev.to_dict()['violations'], [])

    def test_infeasible_route(self):
        """One bad route makes the solution infeasible."""
        solution = Solution([Route(0, [1, 2]), Route(1, [3])])
        cost, feasible = self.evaluator.evaluate(solution)
        self.assertFalse(feasible)
        self.assertAlmostEqual(cost, 10.0)

    def test_vehicle_reuse(self):
        """A vehicle cannot drive two routes, and unknown vehicles are rejected."""
        reused = Solution([Route(0, [1]), Route(0, [2, 3])])
        cost, feasible = self.evaluator.evaluate(reused)
        self.assertFalse(feasible)
        self.assertEqual(cost, math.inf)

        unknown = Solution([Route(7, [1, 2, 3])])
        ev = self.evaluator.evaluate_solution(unknown)
        self.assertFalse(ev.feasible)
        self.assertEqual(ev.violations[0].kind, ViolationType.VEHICLE)


class TestComparisons(unittest.TestCase):
    """Test NaN-safe comparisons."""

    def test_is_better(self):
        """Strict improvement beyond epsilon; NaN never wins."""
        self.assertTrue(is_better(1.0, 2.0))
        self.assertFalse(is_better(2.0, 2.0))
        self.assertFalse(is_better(2.0 - 1e-12, 2.0))
        self.assertFalse(is_better(math.nan, 2.0))
        self.assertTrue(is_better(5.0, math.nan))

    def test_sort_key(self):
        """NaN sorts last."""
        values = sorted([3.0, math.nan, 1.0], key=sort_key)
        self.assertEqual(values[:2], [1.0, 3.0])
        self.assertTrue(math.isnan(values[2]))


if __name__ == '__main__':
    unittest.main()
