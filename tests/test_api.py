"""
Integration tests for the public entry points.
"""

import unittest

import routeopt
from routeopt.api import METHODS
from routeopt.core.exceptions import DecodingError, InvalidConfigurationError
from routeopt.core.validators import SolutionValidator
from routeopt.models.solution import Route, Solution

from vrp_fixtures import line_problem, random_problem

FAST_CONFIGS = {
    'ga': {'population_size': 8, 'generations': 10, 'stagnation_limit': 10},
    'alns': {'max_iterations': 60, 'k_max': 3},
}


class TestSolve(unittest.TestCase):
    """Test solve() across heuristic families."""

    def test_line_instance(self):
        """Every method finds the single 6-unit route."""
        problem = line_problem(capacity=30)
        for method in METHODS:
            solution = routeopt.solve(problem, method, FAST_CONFIGS.get(method), seed=0)
            cost, feasible = routeopt.evaluate(problem, solution)
            self.assertTrue(feasible, method)
            self.assertAlmostEqual(cost, 6.0, msg=method)

    def test_capacity_bound_instance(self):
        """With capacity 15 every method needs a route per customer."""
        problem = line_problem(capacity=15)
        for method in METHODS:
            solution = routeopt.solve(problem, method, FAST_CONFIGS.get(method), seed=0)
            SolutionValidator.validate(solution, problem)
            self.assertEqual(solution.num_routes, 3, method)
            self.assertTrue(routeopt.evaluate(problem, solution)[1], method)

    def test_coverage_on_random_instances(self):
        """Every method returns a complete feasible solution."""
        problem = random_problem(n=10, seed=8, time_windows=True)
        for method in METHODS:
            solution = routeopt.solve(problem, method, FAST_CONFIGS.get(method), seed=1)
            SolutionValidator.validate(solution, problem)
            self.assertTrue(routeopt.evaluate(problem, solution)[1], method)

    def test_constructive_without_local_search(self):
        """Local search can be switched off for constructive methods."""
        problem = random_problem(n=10, seed=8)
        plain = routeopt.solve(problem, 'sweep', {'local_search': False})
        refined = routeopt.solve(problem, 'sweep')
        self.assertLessEqual(routeopt.evaluate(problem, refined)[0],
                             routeopt.evaluate(problem, plain)[0] + 1e-9)

    def test_seed_reproducibility(self):
        """The seed argument makes stochastic methods repeatable."""
        problem = random_problem(n=10, seed=3)
        first = routeopt.solve(problem, 'alns', FAST_CONFIGS['alns'], seed=12)
        second = routeopt.solve(problem, 'alns', FAST_CONFIGS['alns'], seed=12)
        self.assertEqual(first, second)

    def test_unknown_method(self):
        """Unknown methods are configuration errors."""
        with self.assertRaises(InvalidConfigurationError):
            routeopt.solve(line_problem(), 'tabu')
        with self.assertRaises(InvalidConfigurationError):
            routeopt.solve(line_problem(), 'sweep', {'sweep_angle': 1.0})


class TestEvaluateAndDecode(unittest.TestCase):
    """Test evaluate() and decode()."""

    def test_evaluate(self):
        """Cost and feasibility of a hand-made solution."""
        problem = line_problem(capacity=15)
        cost, feasible = routeopt.evaluate(problem, Solution([Route(0, [1, 2, 3])]))
        self.assertAlmostEqual(cost, 6.0)
        self.assertFalse(feasible)

    def test_decode(self):
        """A giant tour decodes into its optimal split."""
        problem = line_problem(capacity=15)
        solution = routeopt.decode(problem, [1, 2, 3])
        self.assertEqual(solution, Solution([Route(0, [1]), Route(1, [2]), Route(2, [3])]))
        with self.assertRaises(DecodingError):
            routeopt.decode(problem, [1, 1, 2])


if __name__ == '__main__':
    unittest.main()
