"""Tests for the trajectory evaluator (the fitness function)."""
import math

import numpy as np
import pytest

from titanprobe.engine.evaluator import (
    EvaluationResult,
    EvaluatorConfig,
    LaunchGene,
    TrajectoryEvaluator,
)
from titanprobe.errors import BodyNotFoundError, ConfigurationError, GeneError
from titanprobe.physics.vector import Vector3D
from titanprobe.search.genetic import GAConfig, LaunchGeometry


@pytest.fixture
def gene(table):
    geometry = LaunchGeometry(table, "Earth", "Titan", GAConfig())
    return geometry.make_gene(geometry.launch_point, Vector3D(10.0, 5.0, 0.0))


class TestLaunchGene:

    def test_array_layout(self, gene):
        arr = gene.to_array()
        assert arr.shape == (7,)
        assert LaunchGene.from_array(arr) == gene

    @pytest.mark.parametrize("values", [[1.0] * 6, [1.0] * 8, [[1.0] * 7]])
    def test_wrong_dimensionality(self, values):
        with pytest.raises(GeneError):
            LaunchGene.from_array(values)

    def test_non_finite(self):
        with pytest.raises(GeneError):
            LaunchGene.from_array([0, 0, 0, np.nan, 0, 0, 1.0])

    def test_non_positive_mass(self):
        with pytest.raises(GeneError):
            LaunchGene(Vector3D(), Vector3D(), 0.0)


class TestEvaluatorConfig:

    def test_rejects_unknown_solver(self):
        with pytest.raises(ConfigurationError):
            EvaluatorConfig(solver="verlet")

    def test_rejects_same_source_and_target(self):
        with pytest.raises(ConfigurationError):
            EvaluatorConfig(source="Titan", target="Titan")

    def test_rejects_bad_step(self):
        with pytest.raises(ConfigurationError):
            EvaluatorConfig(dt=0.0)

    @pytest.mark.parametrize("kwargs", [{"tolerance": 0.0}, {"rtol": -1e-9}, {"max_step": 0.0}])
    def test_rejects_bad_tolerances(self, kwargs):
        with pytest.raises(ConfigurationError):
            EvaluatorConfig(**kwargs)


class TestEvaluator:

    def test_deterministic(self, table, short_eval_config, gene):
        evaluator = TrajectoryEvaluator(table, short_eval_config)
        a = evaluator.evaluate(gene)
        b = evaluator.evaluate(gene)
        assert a == b
        assert a.ok

    def test_accepts_flat_gene(self, table, short_eval_config, gene):
        evaluator = TrajectoryEvaluator(table, short_eval_config)
        assert evaluator(gene.to_array()) == evaluator(gene)

    def test_result_fields(self, table, short_eval_config, gene):
        result = TrajectoryEvaluator(table, short_eval_config).evaluate(gene)
        assert result.samples == 49
        assert 0.0 <= result.closest_time <= short_eval_config.duration
        assert 0.0 < result.min_distance < math.inf
        assert result.fitness == pytest.approx(1e6 / (result.min_distance + 1000.0))

    def test_fitness_is_higher_for_closer(self, table):
        evaluator = TrajectoryEvaluator(table)
        assert evaluator.fitness(10.0) > evaluator.fitness(1e6)
        assert evaluator.fitness(0.0) == pytest.approx(1000.0)

    def test_table_untouched(self, table, short_eval_config, gene):
        before = tuple(table)
        TrajectoryEvaluator(table, short_eval_config).evaluate(gene)
        assert tuple(table) == before

    def test_missing_target(self, tiny_table):
        with pytest.raises(BodyNotFoundError):
            TrajectoryEvaluator(tiny_table, EvaluatorConfig(target="Saturn"))

    def test_failed_result(self):
        failed = EvaluationResult.failed("boom")
        assert not failed.ok
        assert failed.fitness == 0.0
        assert failed.min_distance == math.inf

    def test_rkf45_at_default_tolerances(self, table):
        """Heliocentric km-scale states pass the adaptive solver's error test."""
        geometry = LaunchGeometry(table, "Earth", "Titan", GAConfig())
        outward = (geometry.launch_point - geometry.center).normalize().scale(20.0)
        config = EvaluatorConfig(duration=2 * 86400.0, dt=3600.0, solver="rkf45")
        result = TrajectoryEvaluator(table, config).evaluate(geometry.make_gene(geometry.launch_point, outward))
        assert result.ok
        assert result.samples >= 2
        assert 0.0 < result.min_distance < math.inf
        assert 0.0 <= result.closest_time <= config.duration

    def test_rkf45_settings_reach_solver(self, table):
        config = EvaluatorConfig(solver="rkf45", tolerance=1e-6, rtol=1e-7, max_step=600.0)
        solver = TrajectoryEvaluator(table, config)._solver()
        assert (solver.tolerance, solver.rtol, solver.max_step) == (1e-6, 1e-7, 600.0)

    def test_duration_not_multiple_of_dt(self, table, gene):
        config = EvaluatorConfig(duration=5000.0, dt=3600.0, solver="rk4")
        result = TrajectoryEvaluator(table, config).evaluate(gene)
        assert result.samples == 3
        assert 0.0 <= result.closest_time <= 5000.0
