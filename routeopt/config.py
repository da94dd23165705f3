# Configuration parameters for the routing core.
# Every dict is validated by ConfigValidator before a search starts;
# use the get_*_config helpers to merge overrides into these defaults.

# Adaptive Large Neighborhood Search
# Reaction factor follows Ropke & Pisinger (2006); scores are tiered new best > improved > accepted
ALNS_CONFIG = {
    'max_iterations': 2000,
    'time_limit': None,           # seconds, None = iteration budget only
    'seed': None,

    # Destroy size, drawn uniformly in [k_min, k_max] (capped by assigned customers)
    'k_min': 1,
    'k_max': 10,

    'destroy_operators': ['random', 'worst', 'shaw'],
    'repair_operators': ['greedy', 'regret'],
    'regret_k': 2,

    # Adaptive weights
    'segment_length': 100,        # iterations between weight updates
    'reaction_factor': 0.1,       # weight given to the segment's average score
    'min_weight': 0.01,           # floor on normalized weights
    'score_new_best': 33.0,
    'score_improved': 13.0,
    'score_accepted': 9.0,

    # Simulated annealing
    'initial_temperature': None,  # None = calibrate from the initial cost
    'start_temperature_control': 0.05,  # a 5% worse solution is accepted with p=0.5 at start
    'temperature_schedule': 'exponential',  # or 'linear'
    'cooling_rate': 0.995,
    'final_temperature': 1e-3,

    # Operator parameters
    'worst_removal_randomness': None,  # None = pure greedy, p >= 1 = randomized rank u**p
    'shaw_distance_weight': 9.0,
    'shaw_demand_weight': 2.0,

    'local_search_on_best': True,
    'log_interval': 100,
}

# Genetic Algorithm over giant tours (Prins 2004)
GA_CONFIG = {
    'population_size': 50,
    'generations': 200,
    'crossover_prob': 0.9,
    'mutation_prob': 0.2,
    'tournament_size': 3,
    'elitism_rate': 0.05,
    'local_search_prob': 0.1,     # chance to 2-opt a decoded child
    'stagnation_limit': 50,       # stop after this many generations without improvement
    'seed_with_nearest_neighbor': True,
    'time_limit': None,
    'seed': None,
    'log_interval': 20,
}

# Local search (variable neighbourhood descent)
LOCAL_SEARCH_CONFIG = {
    'operators': ['two_opt', 'relocate', 'or_opt', 'cross_exchange'],
    'two_opt_policy': 'first',    # 'first' or 'best'
    'or_opt_max_segment': 3,
    'max_rounds': 100,
}

# Constructive heuristics
CONSTRUCTIVE_CONFIG = {
    'local_search': True,         # refine constructive solutions with LOCAL_SEARCH_CONFIG
    'nn_waiting_weight': 0.0,     # NN ranking: distance + w * waiting time
    'nn_urgency_weight': 0.0,     # NN ranking: + w * slack to due time
    'sweep_start_angle': 0.0,
}


def _merged(defaults, overrides, validate):
    config = dict(defaults)
    if overrides:
        config.update(overrides)
    validate(config)
    return config


def get_alns_config(overrides=None):
    from routeopt.core.validators import ConfigValidator
    return _merged(ALNS_CONFIG, overrides, ConfigValidator.validate_alns_config)


def get_ga_config(overrides=None):
    from routeopt.core.validators import ConfigValidator
    return _merged(GA_CONFIG, overrides, ConfigValidator.validate_ga_config)


def get_local_search_config(overrides=None):
    from routeopt.core.validators import ConfigValidator
    return _merged(LOCAL_SEARCH_CONFIG, overrides, ConfigValidator.validate_local_search_config)


def get_constructive_config(overrides=None):
    from routeopt.core.validators import ConfigValidator
    return _merged(CONSTRUCTIVE_CONFIG, overrides, ConfigValidator.validate_constructive_config)
