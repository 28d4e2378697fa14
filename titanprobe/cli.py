# titanprobe/cli.py
import argparse

from titanprobe.config import settings
from titanprobe.engine.evaluator import EvaluatorConfig
from titanprobe.search.genetic import GAConfig
from titanprobe.search.hill_climb import HillClimbConfig


def build_parser():
    parser = argparse.ArgumentParser(
        prog="titanprobe",
        description="Plan an Earth to Titan probe: launch search (GA) and insertion burns (hill climb)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m titanprobe.main --quick                 Small, fast run of both stages
  python -m titanprobe.main --stage launch -w 4     Launch search on 4 processes
  python -m titanprobe.main --stage insertion       Insertion burns only
        """
    )

    parser.add_argument("--stage", choices=("all", "launch", "insertion"), default="all",
                        help="Which search to run (default: all)")
    parser.add_argument("--quick", action="store_true",
                        help="Small populations and budgets, for a smoke run")
    parser.add_argument("--seed", type=int, default=settings.DEFAULT_RANDOM_SEED,
                        help=f"Random seed (default: {settings.DEFAULT_RANDOM_SEED})")
    parser.add_argument("-w", "--workers", type=int, default=None,
                        help="Worker processes for fitness evaluation (default: sequential)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--output", type=str, default=None,
                        help="Directory to write the plan as JSON")

    phys = parser.add_argument_group("physics")
    phys.add_argument("--G", type=float, default=settings.G, help="Gravitational constant (km^3 kg^-1 s^-2)")
    phys.add_argument("--softening", type=float, default=settings.SOFTENING_LENGTH, help="Softening length (km)")
    phys.add_argument("--solver", choices=("euler", "rk4", "rkf45"), default=settings.DEFAULT_SOLVER)
    phys.add_argument("--dt", type=float, default=settings.DT, help="Integration step (s)")
    phys.add_argument("--duration", type=float, default=settings.SIM_LEN, help="Simulated time per evaluation (s)")
    phys.add_argument("--tolerance", type=float, default=settings.TOLERANCE,
                      help="RKF45 absolute error tolerance (default: %(default)g)")
    phys.add_argument("--rtol", type=float, default=settings.RELATIVE_TOLERANCE,
                      help="RKF45 relative error tolerance (default: %(default)g)")
    phys.add_argument("--max-step", type=float, default=settings.MAX_STEP,
                      help="Largest RKF45 step (s, default: %(default)g)")
    phys.add_argument("--pinned", type=str, default=settings.PINNED_BODY,
                      help="Body held fixed at its initial position (default: none)")

    ga = parser.add_argument_group("launch search")
    ga.add_argument("--population", type=int, default=settings.POPULATION_SIZE)
    ga.add_argument("--generations", type=int, default=settings.GENERATIONS)
    ga.add_argument("--mutation-rate", type=float, default=settings.MUTATION_RATE)
    ga.add_argument("--elites", type=int, default=settings.ELITE_COUNT)
    ga.add_argument("--tournament", type=int, default=settings.TOURNAMENT_SIZE)
    ga.add_argument("--max-dv", type=float, default=settings.MAX_DV, help="Launch speed cap (km/s)")
    ga.add_argument("--probe-mass", type=float, default=settings.PROBE_MASS, help="Probe mass (kg)")

    hc = parser.add_argument_group("insertion search")
    hc.add_argument("--slots", type=int, default=settings.N_SLOTS)
    hc.add_argument("--slot-duration", type=float, default=settings.SLOT_DURATION, help="Seconds per slot")
    hc.add_argument("--max-thrust", type=float, default=settings.F_T_MAX, help="Max thrust (N)")
    hc.add_argument("--iterations", type=int, default=settings.HC_ITERATIONS)
    hc.add_argument("--fuel", type=float, default=None, help="Fuel capacity (kg, default: unlimited)")
    return parser


def run_cli(argv=None):
    """
    Parse arguments into (args, EvaluatorConfig, GAConfig, HillClimbConfig).
    Bad values surface as ConfigurationError from the config classes.
    """
    args = build_parser().parse_args(argv)

    if args.quick:
        args.population = min(args.population, 16)
        args.generations = min(args.generations, 5)
        args.elites = min(args.elites, 2)
        args.duration = min(args.duration, 30 * settings.SECONDS_PER_DAY)
        args.iterations = min(args.iterations, 50)
        args.slot_duration = min(args.slot_duration, 3600.0)

    evaluator_config = EvaluatorConfig(
        duration=args.duration,
        dt=args.dt,
        solver=args.solver,
        tolerance=args.tolerance,
        rtol=args.rtol,
        max_step=args.max_step,
        G=args.G,
        softening=args.softening,
        pinned=args.pinned,
    )
    ga_config = GAConfig(
        population_size=args.population,
        generations=args.generations,
        elite_count=args.elites,
        mutation_rate=args.mutation_rate,
        tournament_size=args.tournament,
        max_dv=args.max_dv,
        probe_mass=args.probe_mass,
        seed=args.seed,
        workers=args.workers,
    )
    hc_config = HillClimbConfig(
        n_slots=args.slots,
        slot_duration=args.slot_duration,
        iterations=args.iterations,
        restart_every=min(settings.RESTART_EVERY, max(1, args.iterations // 5)) if args.quick else settings.RESTART_EVERY,
        max_thrust=args.max_thrust,
        probe_mass=args.probe_mass,
        fuel_capacity=args.fuel,
        G=args.G,
        seed=args.seed,
    )
    return args, evaluator_config, ga_config, hc_config
