# titanprobe/main.py
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from titanprobe.cli import run_cli
from titanprobe.config import settings
from titanprobe.data.solar_system import load_table
from titanprobe.errors import TitanProbeError
from titanprobe.pipeline.pipeline import run_pipeline

log = logging.getLogger("main")


def save_json(obj: Any, out_dir: str, name_prefix: str) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    path = Path(out_dir)
    path.mkdir(parents=True, exist_ok=True)
    filename = path / f"{name_prefix}_{ts}.json"
    with open(filename, "w") as f:
        json.dump(obj, f, indent=2, default=lambda o: repr(o))
    return str(filename)


def print_plan(plan):
    if plan.ga is not None:
        best = plan.ga.best
        print("\n================ LAUNCH ================\n")
        print(f"Miss distance (km) : {best.min_distance:.1f}")
        print(f"Fitness            : {best.fitness:.6f}")
        print(f"dV rel. (km/s)     : {plan.ga.best_dv_rel:.3f}")
        print(f"Generations        : {plan.ga.generations_run}")
        print(f"Gene               : {best.gene.to_array().tolist()}")
    if plan.insertion is not None:
        hc = plan.insertion
        print("\n================ INSERTION ================\n")
        print(f"Cost               : {hc.cost:.3f}")
        print(f"Total dV (m/s)     : {hc.schedule.total_delta_v():.3f}")
        print(f"Fuel (kg)          : {hc.schedule.total_fuel_used():.3f}")
        for i, dv in enumerate(hc.schedule.deltas):
            print(f"  Slot {i}: [{dv.x:.3f}, {dv.y:.3f}, {dv.z:.3f}]")
    print()


def main(argv=None):
    args, evaluator_config, ga_config, hc_config = run_cli(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-7s  %(message)s",
        datefmt="%H:%M:%S"
    )
    settings.validate_settings()

    try:
        plan = run_pipeline(
            load_table(),
            ga_config=ga_config,
            evaluator_config=evaluator_config,
            hc_config=hc_config,
            launch=args.stage in ("all", "launch"),
            insertion=args.stage in ("all", "insertion"),
        )
    except TitanProbeError as e:
        log.error("Run aborted: %s", e)
        return 1

    print_plan(plan)
    if args.output:
        out = {
            "meta": {
                "stage": args.stage,
                "seed": args.seed,
                "solver": evaluator_config.solver,
                "tolerance": evaluator_config.tolerance,
                "rtol": evaluator_config.rtol,
                "dt": evaluator_config.dt,
                "duration": evaluator_config.duration,
                "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            },
            "plan": plan.to_dict(),
        }
        log.info("Saved plan: %s", save_json(out, args.output, "titan_plan"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
