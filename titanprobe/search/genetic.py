# titanprobe/search/genetic.py
"""
Genetic search over launch conditions.

Genes launch the probe from the source body's surface with a velocity
relative to the source body of at most ``max_dv``. Fitness is the
evaluator's higher-is-better score of the closest approach to the target.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from multiprocessing import Pool
from typing import List, Optional, Sequence, Tuple

import numpy as np

from titanprobe.config import settings
from titanprobe.data.solar_system import BodyRecord, find_record
from titanprobe.engine.evaluator import EvaluationResult, EvaluatorConfig, LaunchGene, TrajectoryEvaluator
from titanprobe.errors import ConfigurationError, SimulationError
from titanprobe.physics.geometry import (
    project_to_sphere,
    random_box_vector,
    random_vector_within,
    surface_point_toward,
    wiggle_on_sphere,
)
from titanprobe.physics.vector import Vector3D

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GAConfig:
    population_size: int = settings.POPULATION_SIZE
    generations: int = settings.GENERATIONS
    elite_count: int = settings.ELITE_COUNT
    mutation_rate: float = settings.MUTATION_RATE
    tournament_size: int = settings.TOURNAMENT_SIZE
    good_enough_km: Optional[float] = settings.GOOD_ENOUGH_KM
    max_dv: float = settings.MAX_DV
    probe_mass: float = settings.PROBE_MASS
    surface_radius: float = settings.EARTH_RADIUS_KM
    mutation_angle_deg: float = settings.MUTATION_ANGLE_DEG
    mutation_dv: float = settings.MUTATION_DV
    seed: Optional[int] = settings.DEFAULT_RANDOM_SEED
    workers: Optional[int] = None

    def __post_init__(self):
        if self.population_size <= 0:
            raise ConfigurationError(f"population_size must be > 0, got {self.population_size}")
        if self.generations < 0:
            raise ConfigurationError(f"generations must be >= 0, got {self.generations}")
        if not (0 <= self.elite_count <= self.population_size):
            raise ConfigurationError(
                f"elite_count must be within [0, {self.population_size}], got {self.elite_count}"
            )
        if not (0.0 <= self.mutation_rate <= 1.0):
            raise ConfigurationError(f"mutation_rate must be within [0, 1], got {self.mutation_rate}")
        if self.tournament_size <= 0:
            raise ConfigurationError(f"tournament_size must be > 0, got {self.tournament_size}")
        if self.max_dv <= 0 or self.probe_mass <= 0 or self.surface_radius <= 0:
            raise ConfigurationError("max_dv, probe_mass and surface_radius must be > 0")
        if self.workers is not None and self.workers <= 0:
            raise ConfigurationError(f"workers must be > 0, got {self.workers}")


@dataclass(frozen=True)
class Individual:
    """A launch gene and, once evaluated, its score."""
    gene: LaunchGene
    result: Optional[EvaluationResult] = None

    @property
    def evaluated(self) -> bool:
        return self.result is not None

    @property
    def fitness(self) -> float:
        return self.result.fitness if self.result is not None else 0.0

    @property
    def min_distance(self) -> float:
        return self.result.min_distance if self.result is not None else math.inf

    def with_result(self, result: EvaluationResult) -> "Individual":
        return replace(self, result=result)


class LaunchGeometry:
    """
    Source/target geometry the genes live in: the source body's sphere and
    its velocity, and the fixed launch point facing the target.
    """
    def __init__(self, table: Sequence[BodyRecord], source: str, target: str, config: GAConfig):
        src = find_record(table, source)
        tgt = find_record(table, target)
        self.center = Vector3D(*src.position)
        self.source_velocity = Vector3D(*src.velocity)
        self.target_position = Vector3D(*tgt.position)
        self.radius = config.surface_radius
        self.max_dv = config.max_dv
        self.probe_mass = config.probe_mass
        self.launch_point = surface_point_toward(self.center, self.target_position, self.radius)

    def relative_velocity(self, gene: LaunchGene) -> Vector3D:
        return gene.velocity - self.source_velocity

    def dv_rel(self, gene: LaunchGene) -> float:
        """Launch speed relative to the source body (km/s)."""
        return self.relative_velocity(gene).magnitude()

    def make_gene(self, position: Vector3D, relative_velocity: Vector3D) -> LaunchGene:
        rel = relative_velocity.clamp_magnitude(self.max_dv)
        return LaunchGene(position=position, velocity=self.source_velocity + rel, mass=self.probe_mass)

    def random_gene(self, rng) -> LaunchGene:
        return self.make_gene(self.launch_point, random_vector_within(rng, self.max_dv))

    def crossover(self, p1: LaunchGene, p2: LaunchGene, rng) -> LaunchGene:
        """
        Blend both parents with one t in [0, 1): the position is pulled back
        onto the surface sphere, the relative velocity is clamped to max_dv.
        """
        t = rng.random()
        blended = p1.position.scale(1.0 - t) + p2.position.scale(t)
        position = project_to_sphere(blended, self.center, self.radius, fallback=p1.position)
        rel = self.relative_velocity(p1).scale(1.0 - t) + self.relative_velocity(p2).scale(t)
        return self.make_gene(position, rel)

    def mutate(self, gene: LaunchGene, rng, max_angle: float, max_dv_step: float) -> LaunchGene:
        """Small surface wiggle plus a velocity tweak of up to max_dv_step per component."""
        position = wiggle_on_sphere(gene.position, self.center, self.radius, max_angle, rng)
        rel = self.relative_velocity(gene) + random_box_vector(rng, max_dv_step)
        return self.make_gene(position, rel)


@dataclass
class GAResult:
    best: Individual
    generations_run: int
    converged: bool
    history: List[float] = field(default_factory=list)
    top: List[Individual] = field(default_factory=list)
    failed_evaluations: int = 0
    best_dv_rel: float = math.nan


def _score(job: Tuple[TrajectoryEvaluator, LaunchGene]) -> EvaluationResult:
    """Top-level so multiprocessing can pickle it."""
    evaluator, gene = job
    try:
        return evaluator.evaluate(gene)
    except SimulationError as exc:
        return EvaluationResult.failed(str(exc))


class GeneticSearch:
    """
    Generational GA with elitism and tournament selection.
    The RNG belongs to the search run; evaluations never draw from it.
    """
    def __init__(self, table: Sequence[BodyRecord], config: GAConfig = GAConfig(),
                 evaluator_config: EvaluatorConfig = EvaluatorConfig()):
        self.config = config
        self.evaluator = TrajectoryEvaluator(table, evaluator_config)
        self.geometry = LaunchGeometry(self.evaluator.table, evaluator_config.source,
                                       evaluator_config.target, config)
        self.rng = np.random.default_rng(config.seed)
        self.failed_evaluations = 0
        self._pool = None

    # -------------------------
    # Evaluation
    # -------------------------
    def evaluate_population(self, population: List[Individual]) -> List[Individual]:
        """Score every unevaluated individual and return the population sorted best first."""
        pending = [i for i, ind in enumerate(population) if not ind.evaluated]
        jobs = [(self.evaluator, population[i].gene) for i in pending]
        if self._pool is not None:
            results = self._pool.map(_score, jobs)
        else:
            results = [_score(job) for job in jobs]

        scored = list(population)
        for i, result in zip(pending, results):
            if not result.ok:
                self.failed_evaluations += 1
                log.warning("Evaluation failed, candidate scored 0: %s", result.error)
            scored[i] = scored[i].with_result(result)
        return self.sort(scored)

    @staticmethod
    def sort(population: List[Individual]) -> List[Individual]:
        # sorted() is stable, equal scores keep their order
        return sorted(population, key=lambda ind: ind.fitness, reverse=True)

    # -------------------------
    # Operators
    # -------------------------
    def initial_population(self) -> List[Individual]:
        return [Individual(self.geometry.random_gene(self.rng)) for _ in range(self.config.population_size)]

    def tournament(self, population: List[Individual]) -> Individual:
        best = None
        for _ in range(self.config.tournament_size):
            cand = population[int(self.rng.integers(len(population)))]
            if best is None or cand.fitness > best.fitness:
                best = cand
        return best

    def evolve(self, population: List[Individual]) -> List[Individual]:
        """One generation: elites carried over, the rest bred, mutated and scored."""
        cfg = self.config
        elites = population[:cfg.elite_count]
        children = []
        for _ in range(cfg.population_size - cfg.elite_count):
            p1 = self.tournament(population)
            p2 = self.tournament(population)
            children.append(self.geometry.crossover(p1.gene, p2.gene, self.rng))

        max_angle = math.radians(cfg.mutation_angle_deg)
        for i, gene in enumerate(children):
            if self.rng.random() < cfg.mutation_rate:
                children[i] = self.geometry.mutate(gene, self.rng, max_angle, cfg.mutation_dv)

        return self.evaluate_population(list(elites) + [Individual(g) for g in children])

    def check_best(self, population: List[Individual], gen: int) -> Individual:
        """Best individual of a sorted population. Raises SimulationError when every evaluation failed."""
        best = population[0]
        if not best.result.ok:
            raise SimulationError(f"Every candidate of generation {gen} failed to simulate: {best.result.error}")
        return best

    def good_enough(self, best: Individual) -> bool:
        limit = self.config.good_enough_km
        return limit is not None and best.min_distance <= limit

    # -------------------------
    # Run
    # -------------------------
    def run(self) -> GAResult:
        cfg = self.config
        if cfg.workers is not None and cfg.workers > 1:
            with Pool(processes=cfg.workers) as pool:
                self._pool = pool
                try:
                    return self._run()
                finally:
                    self._pool = None
        return self._run()

    def _run(self) -> GAResult:
        cfg = self.config
        population = self.evaluate_population(self.initial_population())
        best = self.check_best(population, 0)
        history = [best.fitness]
        log.info("Gen %03d  fitness %.6f  d%s %.1f km", 0, best.fitness,
                 self.evaluator.config.target, best.min_distance)

        gen = 0
        while gen < cfg.generations and not self.good_enough(population[0]):
            population = self.evolve(population)
            gen += 1
            best = self.check_best(population, gen)
            history.append(best.fitness)
            log.info("Gen %03d  fitness %.6f  d%s %.1f km", gen, best.fitness,
                     self.evaluator.config.target, best.min_distance)

        best = population[0]
        converged = self.good_enough(best)
        if converged:
            log.info("Reached %.1f km after %d generation(s)", best.min_distance, gen)
        return GAResult(
            best=best,
            generations_run=gen,
            converged=converged,
            history=history,
            top=population[:max(1, cfg.elite_count)],
            failed_evaluations=self.failed_evaluations,
            best_dv_rel=self.geometry.dv_rel(best.gene),
        )


def run_ga(table: Sequence[BodyRecord], config: GAConfig = GAConfig(),
           evaluator_config: EvaluatorConfig = EvaluatorConfig()) -> GAResult:
    return GeneticSearch(table, config, evaluator_config).run()
