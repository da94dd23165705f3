"""
Validation layer for the routing core.
Provides validators for configuration, problem instances and solutions.
"""

import math
from collections import Counter
from typing import Dict, Iterable, List, Sequence

from routeopt.config import ALNS_CONFIG, CONSTRUCTIVE_CONFIG, GA_CONFIG, LOCAL_SEARCH_CONFIG
from routeopt.core.exceptions import (
    DecodingError,
    InfeasibleInstanceError,
    InvalidConfigurationError,
    SolutionIntegrityError,
)
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import Solution


def _check_known_keys(config: Dict, known: Iterable[str]):
    known = set(known)
    for key in config:
        if key not in known:
            raise InvalidConfigurationError(
                parameter=key,
                value=config[key],
                expected=f"one of {sorted(known)}"
            )


def _check_required(config: Dict, keys: Iterable[str]):
    for key in keys:
        if key not in config:
            raise InvalidConfigurationError(
                parameter=key,
                value=None,
                expected="Required parameter"
            )


def _check_int(config: Dict, key: str, minimum: int):
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidConfigurationError(
            parameter=key,
            value=value,
            expected=f"integer >= {minimum}"
        )


def _check_number(config: Dict, key: str, low: float = -math.inf, high: float = math.inf,
                  low_inclusive: bool = True, high_inclusive: bool = True):
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise InvalidConfigurationError(parameter=key, value=value, expected="a number")
    too_low = value < low if low_inclusive else value <= low
    too_high = value > high if high_inclusive else value >= high
    if too_low or too_high:
        left = '[' if low_inclusive else '('
        right = ']' if high_inclusive else ')'
        raise InvalidConfigurationError(
            parameter=key,
            value=value,
            expected=f"{left}{low}, {high}{right}"
        )


def _check_optional_positive(config: Dict, key: str):
    if config[key] is not None:
        _check_number(config, key, 0.0, low_inclusive=False)


def _check_seed(config: Dict):
    seed = config['seed']
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 0):
        raise InvalidConfigurationError(parameter='seed', value=seed, expected="None or integer >= 0")


def _check_names(config: Dict, key: str, registry: Iterable[str]):
    names = config[key]
    registry = sorted(registry)
    if isinstance(names, str) or not names:
        raise InvalidConfigurationError(
            parameter=key,
            value=names,
            expected=f"non-empty list drawn from {registry}"
        )
    for name in names:
        if name not in registry:
            raise InvalidConfigurationError(
                parameter=key,
                value=name,
                expected=f"one of {registry}"
            )
    if len(set(names)) != len(names):
        raise InvalidConfigurationError(parameter=key, value=names, expected="no duplicates")


class ConfigValidator:
    """Validate configuration parameters before any search begins."""
    
    @staticmethod
    def validate_alns_config(config: Dict) -> bool:
        """
        Validate ALNS configuration.
        
        Args:
            config: ALNS configuration dictionary
            
        Returns:
            True if valid, raises InvalidConfigurationError otherwise
            
        Raises:
            InvalidConfigurationError: If configuration is invalid
        """
        from routeopt.optimization.destroy import DESTROY_OPERATORS
        from routeopt.optimization.repair import REPAIR_OPERATORS
        
        _check_known_keys(config, ALNS_CONFIG)
        _check_required(config, ALNS_CONFIG)
        
        _check_int(config, 'max_iterations', 1)
        _check_optional_positive(config, 'time_limit')
        _check_seed(config)
        
        _check_int(config, 'k_min', 1)
        _check_int(config, 'k_max', 1)
        if config['k_max'] < config['k_min']:
            raise InvalidConfigurationError(
                parameter='k_max',
                value=config['k_max'],
                expected=f">= k_min ({config['k_min']})"
            )
        
        _check_names(config, 'destroy_operators', DESTROY_OPERATORS)
        _check_names(config, 'repair_operators', REPAIR_OPERATORS)
        _check_int(config, 'regret_k', 2)
        
        _check_int(config, 'segment_length', 1)
        _check_number(config, 'reaction_factor', 0.0, 1.0)
        _check_number(config, 'min_weight', 0.0, 1.0, low_inclusive=False)
        n_ops = max(len(config['destroy_operators']), len(config['repair_operators']))
        if config['min_weight'] * n_ops > 1.0:
            raise InvalidConfigurationError(
                parameter='min_weight',
                value=config['min_weight'],
                expected=f"<= 1 / {n_ops} (number of operators)"
            )
        for key in ('score_new_best', 'score_improved', 'score_accepted'):
            _check_number(config, key, 0.0)
        if not config['score_new_best'] >= config['score_improved'] >= config['score_accepted']:
            raise InvalidConfigurationError(
                parameter='score_improved',
                value=(config['score_new_best'], config['score_improved'], config['score_accepted']),
                expected="score_new_best >= score_improved >= score_accepted"
            )
        
        if config['initial_temperature'] is not None:
            _check_number(config, 'initial_temperature', 0.0)
        _check_number(config, 'start_temperature_control', 0.0, low_inclusive=False)
        if config['temperature_schedule'] not in ('exponential', 'linear'):
            raise InvalidConfigurationError(
                parameter='temperature_schedule',
                value=config['temperature_schedule'],
                expected="'exponential' or 'linear'"
            )
        _check_number(config, 'cooling_rate', 0.0, 1.0, low_inclusive=False)
        _check_number(config, 'final_temperature', 0.0)
        
        if config['worst_removal_randomness'] is not None:
            _check_number(config, 'worst_removal_randomness', 1.0)
        _check_number(config, 'shaw_distance_weight', 0.0)
        _check_number(config, 'shaw_demand_weight', 0.0)
        if config['shaw_distance_weight'] + config['shaw_demand_weight'] <= 0:
            raise InvalidConfigurationError(
                parameter='shaw_distance_weight',
                value=config['shaw_distance_weight'],
                expected="distance and demand weights not both zero"
            )
        
        if not isinstance(config['local_search_on_best'], bool):
            raise InvalidConfigurationError(
                parameter='local_search_on_best',
                value=config['local_search_on_best'],
                expected="bool"
            )
        _check_int(config, 'log_interval', 1)
        return True
    
    @staticmethod
    def validate_ga_config(config: Dict) -> bool:
        """
        Validate GA configuration.
        
        Raises:
            InvalidConfigurationError: If configuration is invalid
        """
        
        _check_known_keys(config, GA_CONFIG)
        _check_required(config, GA_CONFIG)
        
        _check_int(config, 'population_size', 2)
        _check_int(config, 'generations', 1)
        _check_number(config, 'crossover_prob', 0.0, 1.0)
        _check_number(config, 'mutation_prob', 0.0, 1.0)
        _check_number(config, 'elitism_rate', 0.0, 1.0)
        _check_number(config, 'local_search_prob', 0.0, 1.0)
        
        _check_int(config, 'tournament_size', 1)
        if config['tournament_size'] > config['population_size']:
            raise InvalidConfigurationError(
                parameter='tournament_size',
                value=config['tournament_size'],
                expected=f"<= population_size ({config['population_size']})"
            )
        
        _check_int(config, 'stagnation_limit', 1)
        if not isinstance(config['seed_with_nearest_neighbor'], bool):
            raise InvalidConfigurationError(
                parameter='seed_with_nearest_neighbor',
                value=config['seed_with_nearest_neighbor'],
                expected="bool"
            )
        _check_optional_positive(config, 'time_limit')
        _check_seed(config)
        _check_int(config, 'log_interval', 1)
        return True
    
    @staticmethod
    def validate_local_search_config(config: Dict) -> bool:
        """Validate local search configuration."""
        from routeopt.algorithms.local_search import LOCAL_SEARCH_OPERATORS
        
        _check_known_keys(config, LOCAL_SEARCH_CONFIG)
        _check_required(config, LOCAL_SEARCH_CONFIG)
        
        _check_names(config, 'operators', LOCAL_SEARCH_OPERATORS)
        if config['two_opt_policy'] not in ('first', 'best'):
            raise InvalidConfigurationError(
                parameter='two_opt_policy',
                value=config['two_opt_policy'],
                expected="'first' or 'best'"
            )
        _check_int(config, 'or_opt_max_segment', 1)
        _check_int(config, 'max_rounds', 1)
        return True
    
    @staticmethod
    def validate_constructive_config(config: Dict) -> bool:
        """Validate constructive heuristic configuration."""
        
        _check_known_keys(config, CONSTRUCTIVE_CONFIG)
        _check_required(config, CONSTRUCTIVE_CONFIG)
        
        if not isinstance(config['local_search'], bool):
            raise InvalidConfigurationError(
                parameter='local_search',
                value=config['local_search'],
                expected="bool"
            )
        _check_number(config, 'nn_waiting_weight', 0.0)
        _check_number(config, 'nn_urgency_weight', 0.0)
        _check_number(config, 'sweep_start_angle', -2 * math.pi, 2 * math.pi)
        return True


class DataValidator:
    """Validate problem instances and giant tours."""
    
    @staticmethod
    def check_instance(problem: VRPProblem, evaluator) -> bool:
        """
        Reject instances that no solution can serve.
        
        A customer is unservable if its demand exceeds every capacity or if its
        singleton route is infeasible for every vehicle.
        
        Args:
            problem: VRP problem instance
            evaluator: RouteEvaluator for the same problem
            
        Raises:
            InfeasibleInstanceError: If some customer cannot be served at all
        """
        max_capacity = max(v.capacity for v in problem.vehicles)
        for c in problem.customer_ids:
            demand = problem.demand(c)
            if demand > max_capacity:
                raise InfeasibleInstanceError(
                    reason=f"customer {c} demand {demand} exceeds every vehicle capacity ({max_capacity})",
                    customer_id=c
                )
            if not any(evaluator.is_feasible_route([c], v) for v in problem.vehicles):
                raise InfeasibleInstanceError(
                    reason=f"customer {c} cannot be served even by a dedicated route",
                    customer_id=c
                )
        return True
    
    @staticmethod
    def validate_giant_tour(giant_tour: Sequence[int], problem: VRPProblem) -> bool:
        """
        Check that a giant tour is a permutation of all customers.
        
        Raises:
            DecodingError: If customers are missing, repeated or unknown
        """
        expected = set(problem.customer_ids)
        counts = Counter(giant_tour)
        duplicated = [c for c, n in counts.items() if n > 1]
        unknown = [c for c in counts if c not in expected]
        missing = expected - set(counts)
        
        if duplicated or unknown or missing:
            raise DecodingError(
                giant_tour=list(giant_tour),
                reason=(f"not a permutation of customers: missing {sorted(missing)}, "
                        f"duplicated {sorted(duplicated)}, unknown {sorted(unknown)}")
            )
        return True


class SolutionValidator:
    """Validate structural invariants of solutions."""
    
    @staticmethod
    def validate(solution: Solution, problem: VRPProblem, allow_missing: bool = False) -> bool:
        """
        Check coverage and uniqueness.
        
        Every customer appears in exactly one route exactly once, and every
        route belongs to a distinct known vehicle.
        
        Args:
            solution: Solution to check
            problem: VRP problem instance
            allow_missing: Accept partial solutions (e.g. from nearest neighbor)
            
        Raises:
            SolutionIntegrityError: If an invariant is broken
        """
        counts = Counter(solution.customer_ids())
        expected = set(problem.customer_ids)
        duplicated = [c for c, n in counts.items() if n > 1]
        unknown = [c for c in counts if c not in expected]
        missing: List[int] = [] if allow_missing else list(expected - set(counts))
        
        if duplicated or unknown or missing:
            raise SolutionIntegrityError(missing=missing, duplicated=duplicated, unknown=unknown)
        
        vehicles = solution.used_vehicle_ids()
        if len(set(vehicles)) != len(vehicles):
            raise SolutionIntegrityError(reason="a vehicle owns more than one route")
        for vehicle_id in vehicles:
            if not problem.has_vehicle(vehicle_id):
                raise SolutionIntegrityError(reason=f"unknown vehicle {vehicle_id}")
        return True
