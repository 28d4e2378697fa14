"""
Tests for the launch genetic search: operators, invariants and seeded
reproducibility. Populations and durations are kept tiny.
"""
import math

import numpy as np
import pytest

from titanprobe.engine.evaluator import EvaluationResult
from titanprobe.errors import ConfigurationError, SimulationError
from titanprobe.search.genetic import GAConfig, GeneticSearch, Individual, LaunchGeometry, run_ga


def tiny_config(**overrides):
    params = dict(population_size=6, generations=2, elite_count=1, tournament_size=2,
                  good_enough_km=None, seed=1234)
    params.update(overrides)
    return GAConfig(**params)


@pytest.fixture
def geometry(table):
    return LaunchGeometry(table, "Earth", "Titan", GAConfig())


class TestGAConfig:

    @pytest.mark.parametrize("overrides", [
        dict(population_size=0),
        dict(elite_count=7),
        dict(mutation_rate=1.5),
        dict(tournament_size=0),
        dict(workers=0),
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            tiny_config(**overrides)


class TestOperators:

    def test_initial_genes_launch_from_fixed_point(self, table, short_eval_config):
        search = GeneticSearch(table, tiny_config(), short_eval_config)
        population = search.initial_population()
        assert len(population) == 6
        for ind in population:
            assert ind.gene.position == search.geometry.launch_point
            assert search.geometry.dv_rel(ind.gene) <= 60.0 + 1e-9
            assert not ind.evaluated

    def test_launch_point_faces_target(self, geometry):
        to_target = (geometry.target_position - geometry.center).normalize()
        from_center = (geometry.launch_point - geometry.center).normalize()
        assert from_center.dot(to_target) == pytest.approx(1.0)

    def test_crossover_stays_on_sphere_and_under_cap(self, geometry):
        rng = np.random.default_rng(99)
        parents = [geometry.random_gene(rng) for _ in range(10)]
        # spread the launch points so the blend actually has to be projected
        parents = [geometry.mutate(p, rng, math.radians(30.0), 40.0) for p in parents]
        for _ in range(200):
            i, j = rng.integers(len(parents), size=2)
            child = geometry.crossover(parents[i], parents[j], rng)
            assert child.position.distance_to(geometry.center) == pytest.approx(geometry.radius, abs=1e-6)
            assert geometry.dv_rel(child) <= geometry.max_dv + 1e-9

    def test_mutation_keeps_invariants(self, geometry):
        rng = np.random.default_rng(3)
        gene = geometry.make_gene(geometry.launch_point, geometry.launch_point - geometry.center)
        assert geometry.dv_rel(gene) == pytest.approx(geometry.max_dv)
        for _ in range(50):
            gene = geometry.mutate(gene, rng, math.radians(0.05), 0.5)
            assert gene.position.distance_to(geometry.center) == pytest.approx(geometry.radius, abs=1e-6)
            assert geometry.dv_rel(gene) <= geometry.max_dv + 1e-9

    def test_tournament_prefers_fitter(self, table, short_eval_config, geometry):
        search = GeneticSearch(table, tiny_config(tournament_size=50), short_eval_config)
        rng = np.random.default_rng(0)
        population = [
            Individual(geometry.random_gene(rng), EvaluationResult(d, 0.0, 1e6 / (d + 1000.0), 2))
            for d in (1e9, 1e8, 1e7, 1e6)
        ]
        assert search.tournament(population) is population[3]

    def test_sort_is_descending(self, geometry):
        rng = np.random.default_rng(0)
        population = [
            Individual(geometry.random_gene(rng), EvaluationResult(d, 0.0, 1e6 / (d + 1000.0), 2))
            for d in (5e6, 1e5, 3e7)
        ]
        ranked = GeneticSearch.sort(population)
        assert [ind.min_distance for ind in ranked] == [1e5, 5e6, 3e7]


class TestRun:

    def test_seeded_runs_are_identical(self, table, short_eval_config):
        a = run_ga(table, tiny_config(), short_eval_config)
        b = run_ga(table, tiny_config(), short_eval_config)
        np.testing.assert_array_equal(a.best.gene.to_array(), b.best.gene.to_array())
        assert a.best.fitness == b.best.fitness
        assert a.history == b.history

    def test_result_shape(self, table, short_eval_config):
        result = run_ga(table, tiny_config(elite_count=2), short_eval_config)
        assert result.generations_run == 2
        assert len(result.history) == 3
        assert len(result.top) == 2
        assert result.top[0] is result.best
        assert result.best.evaluated
        assert result.best_dv_rel <= 60.0 + 1e-9

    def test_elitism_never_loses_best(self, table, short_eval_config):
        result = run_ga(table, tiny_config(generations=3, elite_count=1), short_eval_config)
        assert all(b >= a for a, b in zip(result.history, result.history[1:]))

    def test_early_exit(self, table, short_eval_config):
        result = run_ga(table, tiny_config(generations=10, good_enough_km=1e12), short_eval_config)
        assert result.converged
        assert result.generations_run == 0

    def test_failed_evaluation_is_skipped(self, table, short_eval_config, monkeypatch):
        search = GeneticSearch(table, tiny_config(), short_eval_config)

        def explode(gene):
            raise SimulationError("diverged")

        monkeypatch.setattr(search.evaluator, "evaluate", explode)
        population = search.evaluate_population(search.initial_population())
        assert search.failed_evaluations == 6
        assert all(ind.fitness == 0.0 and not ind.result.ok for ind in population)

    def test_all_failed_run_raises(self, table, short_eval_config, monkeypatch):
        search = GeneticSearch(table, tiny_config(), short_eval_config)

        def explode(gene):
            raise SimulationError("diverged")

        monkeypatch.setattr(search.evaluator, "evaluate", explode)
        with pytest.raises(SimulationError, match="diverged"):
            search.run()

    def test_partial_failures_still_return_a_simulated_best(self, table, short_eval_config, monkeypatch):
        search = GeneticSearch(table, tiny_config(), short_eval_config)
        real = search.evaluator.evaluate
        calls = []

        def flaky(gene):
            calls.append(gene)
            if len(calls) % 2:
                raise SimulationError("diverged")
            return real(gene)

        monkeypatch.setattr(search.evaluator, "evaluate", flaky)
        result = search.run()
        assert result.failed_evaluations > 0
        assert result.best.result.ok
        assert result.best.min_distance < math.inf

    def test_parallel_matches_sequential(self, table, short_eval_config):
        serial = run_ga(table, tiny_config(generations=1), short_eval_config)
        parallel = run_ga(table, tiny_config(generations=1, workers=2), short_eval_config)
        assert parallel.best.fitness == serial.best.fitness
        np.testing.assert_array_equal(parallel.best.gene.to_array(), serial.best.gene.to_array())
