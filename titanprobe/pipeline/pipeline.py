# titanprobe/pipeline/pipeline.py
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from titanprobe.data.solar_system import BodyRecord, load_table
from titanprobe.engine.evaluator import EvaluatorConfig
from titanprobe.search.genetic import GAConfig, GAResult, run_ga
from titanprobe.search.hill_climb import HillClimbConfig, HillClimbResult, run_hill_climb

log = logging.getLogger(__name__)


@dataclass
class MissionPlan:
    ga: Optional[GAResult] = None
    insertion: Optional[HillClimbResult] = None

    def to_dict(self) -> dict:
        out = {}
        if self.ga is not None:
            best = self.ga.best
            out["launch"] = {
                "gene": best.gene.to_array().tolist(),
                "fitness": best.fitness,
                "min_distance_km": best.min_distance,
                "closest_time_s": best.result.closest_time if best.result is not None else None,
                "dv_rel_kms": self.ga.best_dv_rel,
                "generations": self.ga.generations_run,
                "converged": self.ga.converged,
                "failed_evaluations": self.ga.failed_evaluations,
                "history": self.ga.history,
                "top": [
                    {"gene": ind.gene.to_array().tolist(), "fitness": ind.fitness,
                     "min_distance_km": ind.min_distance}
                    for ind in self.ga.top
                ],
            }
        if self.insertion is not None:
            out["insertion"] = self.insertion.to_dict()
        return out


def run_pipeline(table: Sequence[BodyRecord] = None,
                 ga_config: GAConfig = GAConfig(),
                 evaluator_config: EvaluatorConfig = EvaluatorConfig(),
                 hc_config: HillClimbConfig = HillClimbConfig(),
                 launch: bool = True,
                 insertion: bool = True) -> MissionPlan:
    """
    Stage 1: genetic search for the launch state that passes closest to the target.
    Stage 2: hill climb the insertion burn schedule around the target.
    Either stage can be switched off. Returns plain data, writes nothing.
    """
    table = tuple(table) if table is not None else load_table()
    plan = MissionPlan()

    if launch:
        log.info("Launch search: population %d, %d generations, solver %s",
                 ga_config.population_size, ga_config.generations, evaluator_config.solver)
        plan.ga = run_ga(table, ga_config, evaluator_config)
        log.info("Best launch misses %s by %.1f km (dv_rel %.3f km/s)",
                 evaluator_config.target, plan.ga.best.min_distance, plan.ga.best_dv_rel)

    if insertion:
        log.info("Insertion search: %d slots of %.0f s, %d iterations",
                 hc_config.n_slots, hc_config.slot_duration, hc_config.iterations)
        plan.insertion = run_hill_climb(hc_config)

    return plan
