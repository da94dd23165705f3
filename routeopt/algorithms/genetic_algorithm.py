"""
Genetic Algorithm over giant tours for VRP.
Individuals are permutations of customers decoded by the Split algorithm.
"""

import logging
import math
import time
from typing import Dict, List, Optional

from routeopt.algorithms.base import BaseAlgorithm
from routeopt.algorithms.local_search import TwoOptOptimizer
from routeopt.algorithms.nearest_neighbor import NearestNeighborHeuristic
from routeopt.algorithms.operators import CrossoverOperator, MutationOperator, SelectionOperator
from routeopt.algorithms.split import SplitDecoder
from routeopt.config import get_ga_config
from routeopt.core.exceptions import InfeasibleInstanceError
from routeopt.core.profiler import PipelineProfiler
from routeopt.core.random_source import RandomSource
from routeopt.core.validators import DataValidator
from routeopt.evaluation.compare import is_better
from routeopt.models.vrp_model import VRPProblem
from routeopt.models.solution import Individual, Population, Solution

logger = logging.getLogger(__name__)


class GeneticAlgorithm(BaseAlgorithm):
    """Main Genetic Algorithm engine for VRP optimization."""
    
    def __init__(self, problem: VRPProblem, config: Optional[Dict] = None,
                 rng: Optional[RandomSource] = None):
        """
        Initialize GA engine.
        
        Args:
            problem: VRP problem instance
            config: Overrides for GA_CONFIG (validated here)
            rng: Random source (built from config['seed'] when None)
        """
        super().__init__(problem)
        self.config = get_ga_config(config)
        self.rng = rng or RandomSource(self.config['seed'])
        self.profiler = PipelineProfiler()
        self.decoder = SplitDecoder(problem, profiler=self.profiler)
        self.two_opt = TwoOptOptimizer(problem)
        
        self.population = Population()
        self.best: Optional[Individual] = None
        self.execution_time = 0.0
        self.stats = {
            'generations': 0,
            'total_evaluations': 0,
            'best_cost_history': [],
            'avg_cost_history': [],
            'stopped_by': None,
        }
    
    def initialize_population(self) -> Population:
        """Seed one individual from nearest neighbor (if enabled), shuffle the rest."""
        size = self.config['population_size']
        individuals = []
        
        if self.config['seed_with_nearest_neighbor']:
            nn = NearestNeighborHeuristic(self.problem)
            tour = nn.solve().giant_tour() + nn.unassigned
            individuals.append(self._evaluate(tour, allow_local_search=False))
        
        while len(individuals) < size:
            tour = list(self.problem.customer_ids)
            self.rng.shuffle(tour)
            individuals.append(self._evaluate(tour, allow_local_search=False))
        
        self.population = Population(individuals)
        return self.population
    
    def _evaluate(self, chromosome: List[int], allow_local_search: bool = True) -> Individual:
        """Decode a giant tour; tours without a feasible split become invalid individuals."""
        self.stats['total_evaluations'] += 1
        try:
            solution = self.decoder.decode(chromosome)
        except InfeasibleInstanceError:
            logger.debug("Giant tour has no feasible split")
            return Individual(chromosome=list(chromosome))
        
        if allow_local_search and self.rng.uniform() < self.config['local_search_prob']:
            self.two_opt.optimize(solution)
            chromosome = solution.giant_tour()
        
        cost, feasible = self.evaluator.evaluate(solution)
        return Individual(chromosome=list(chromosome), cost=cost, solution=solution,
                          is_valid=feasible)
    
    def solve(self) -> Solution:
        """
        Run GA evolution and return the best decoded solution.
        
        Raises:
            InfeasibleInstanceError: If some customer cannot be served at all,
                or no individual ever decodes feasibly
        """
        DataValidator.check_instance(self.problem, self.evaluator)
        if self.problem.num_customers == 0:
            return Solution()
        
        start_time = time.perf_counter()
        self.initialize_population()
        self._update_best()
        logger.info(f"GA started: population={self.population.get_size()}, "
                    f"initial best={self._best_cost():.2f}")
        
        stagnation = 0
        for generation in range(self.config['generations']):
            if self._time_exceeded(start_time):
                self.stats['stopped_by'] = 'time_limit'
                break
            
            with self.profiler.profile("ga.generation"):
                self._create_next_generation()
            self.stats['generations'] = generation + 1
            
            improved = self._update_best()
            stagnation = 0 if improved else stagnation + 1
            
            pop_stats = self.population.get_statistics()
            self.stats['best_cost_history'].append(self._best_cost())
            self.stats['avg_cost_history'].append(pop_stats['avg_cost'])
            
            if improved:
                logger.debug(f"Generation {generation}: NEW BEST {self._best_cost():.2f}")
            if generation % self.config['log_interval'] == 0:
                logger.info(f"Generation {generation}: best={self._best_cost():.2f}, "
                            f"avg={pop_stats['avg_cost']:.2f}, valid={pop_stats['valid']}")
            
            if stagnation >= self.config['stagnation_limit']:
                self.stats['stopped_by'] = 'stagnation'
                break
        else:
            self.stats['stopped_by'] = 'generations'
        
        self.execution_time = time.perf_counter() - start_time
        if self.best is None:
            raise InfeasibleInstanceError(reason="no giant tour could be split feasibly")
        
        logger.info(f"GA finished after {self.stats['generations']} generations: "
                    f"best={self.best.cost:.2f} in {self.execution_time:.2f}s")
        return self.best.solution.copy()
    
    def _create_next_generation(self):
        """Elitism, then tournament selection, OX crossover and mutation."""
        size = self.config['population_size']
        elite_count = max(1, int(round(size * self.config['elitism_rate'])))
        new_individuals = self.population.apply_elitism(elite_count)
        
        individuals = self.population.individuals
        while len(new_individuals) < size:
            parent1 = SelectionOperator.tournament_selection(individuals, self.config['tournament_size'], self.rng)
            parent2 = SelectionOperator.tournament_selection(individuals, self.config['tournament_size'], self.rng)
            
            if self.rng.uniform() < self.config['crossover_prob']:
                child = CrossoverOperator.order_crossover(parent1.chromosome, parent2.chromosome, self.rng)
            else:
                child = list(parent1.chromosome)
            
            if self.rng.uniform() < self.config['mutation_prob']:
                child = MutationOperator.mutate(child, self.rng)
            
            new_individuals.append(self._evaluate(child))
        
        self.population.next_generation(new_individuals)
    
    def _update_best(self) -> bool:
        candidate = self.population.get_best()
        if candidate is None or not candidate.is_valid:
            return False
        if self.best is None or is_better(candidate.cost, self.best.cost):
            self.best = candidate.copy()
            return True
        return False
    
    def _best_cost(self) -> float:
        return self.best.cost if self.best is not None else math.inf
    
    def _time_exceeded(self, start_time: float) -> bool:
        limit = self.config['time_limit']
        return limit is not None and time.perf_counter() - start_time >= limit
    
    def get_statistics(self) -> Dict:
        """Get GA execution statistics."""
        return {
            'generations': self.stats['generations'],
            'total_evaluations': self.stats['total_evaluations'],
            'execution_time': self.execution_time,
            'stopped_by': self.stats['stopped_by'],
            'best_cost': self._best_cost(),
            'population': self.population.get_statistics(),
            'profile': self.profiler.get_summary(),
        }
    
    def get_convergence_data(self) -> Dict:
        return {
            'generations': list(range(len(self.stats['best_cost_history']))),
            'best_cost': self.stats['best_cost_history'],
            'avg_cost': self.stats['avg_cost_history'],
        }
