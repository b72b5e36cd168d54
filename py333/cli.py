"""
Command line interface.

    python -m py333 solve --scramble "R U R' U'"
    python -m py333 solve --state state.json --json
    python -m py333 build-tables --output-dir tables
    python -m py333 evaluate --num-cubes 20 --scramble-moves 25 --workers 4 --table-dir tables
"""

import argparse
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, List, Optional

import numpy as np
from pydantic import ValidationError
from tqdm import tqdm

from .config import EvaluateConfig, SolverConfig, load_config
from .cube import CubeState
from .errors import CubeError
from .moves import format_moves, parse_moves, random_moves
from .solver import TwoPhaseSolver
from .tables import build_tables

EXIT_OK = 0
EXIT_UNSOLVED = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, default=None,
                        help="YAML file with solver settings (flags below override it)")
    common.add_argument("--table-dir", type=str, default=None,
                        help="Directory to load pruning tables from (built and saved there if missing)")
    common.add_argument("--timeout", type=float, default=None,
                        help="Seconds spent improving a solution once one is found (default 5). "
                             "Most random cubes use the full budget, so this is roughly the time per solve")
    common.add_argument("--phase1-max-depth", type=int, default=None)
    common.add_argument("--phase2-max-depth", type=int, default=None)
    common.add_argument("--max-extra-depth", type=int, default=None)
    common.add_argument("--verbose", action="store_true")

    parser = argparse.ArgumentParser(prog="py333", description="Two-phase 3x3x3 cube solver")
    commands = parser.add_subparsers(dest="command", required=True)

    solve = commands.add_parser("solve", parents=[common], help="Solve one cube")
    source = solve.add_mutually_exclusive_group(required=True)
    source.add_argument("--scramble", type=str, help="Scramble applied to the solved cube, e.g. \"R U R' U'\"")
    source.add_argument("--state", type=str, help="JSON file with corner_perm/corner_orient/edge_perm/edge_orient")
    solve.add_argument("--json", action="store_true", help="Print the result as JSON")

    tables = commands.add_parser("build-tables", help="Build the pruning tables and save them")
    tables.add_argument("--output-dir", type=str, required=True)
    tables.add_argument("--workers", type=int, default=None, help="Threads used to build tables")

    evaluate = commands.add_parser("evaluate", parents=[common], help="Solve random scrambles and report statistics")
    defaults = EvaluateConfig()
    evaluate.add_argument("--num-cubes", type=int, default=defaults.num_cubes)
    evaluate.add_argument("--scramble-moves", type=int, default=defaults.scramble_moves)
    evaluate.add_argument("--seed", type=int, default=defaults.seed)
    evaluate.add_argument("--workers", type=int, default=defaults.workers, help="Solver processes")

    return parser


def solver_config_from_args(args: argparse.Namespace) -> SolverConfig:
    overrides = {
        "table_dir": args.table_dir,
        "timeout": args.timeout,
        "phase1_max_depth": args.phase1_max_depth,
        "phase2_max_depth": args.phase2_max_depth,
        "max_extra_depth": args.max_extra_depth,
        "verbose": True if args.verbose else None,
    }
    if args.config:
        return load_config(args.config, **overrides)
    return SolverConfig(**{k: v for k, v in overrides.items() if v is not None})


# ============================================================================
# solve
# ============================================================================

def load_state(path: str) -> CubeState:
    with open(path, "r") as f:
        return CubeState.from_dict(json.load(f))


def cmd_solve(args: argparse.Namespace) -> int:
    config = solver_config_from_args(args)
    if args.scramble is not None:
        state = CubeState.from_scramble(parse_moves(args.scramble))
    else:
        state = load_state(args.state)

    solution = TwoPhaseSolver(config).solve_detailed(state)

    if args.json:
        print(json.dumps(solution.to_dict(), indent=2))
    elif solution.success:
        print(f"Phase 1 ({len(solution.phase1_moves)}): {solution.phase1_notation}")
        print(f"Phase 2 ({len(solution.phase2_moves)}): {solution.phase2_notation}")
        print(f"Solution ({solution.length} moves): {solution.notation}")
        print(f"Time: {solution.total_seconds:.3f}s "
              f"(phase 1 {solution.phase1_seconds:.3f}s, phase 2 {solution.phase2_seconds:.3f}s)")
    else:
        print("No solution found within the depth limits")

    return EXIT_OK if solution.success else EXIT_UNSOLVED


# ============================================================================
# build-tables
# ============================================================================

def cmd_build_tables(args: argparse.Namespace) -> int:
    start = time.time()
    tables = build_tables(workers=args.workers, verbose=True)
    build_seconds = time.time() - start
    directory = tables.save(args.output_dir, build_seconds=build_seconds)

    total = 0
    for name, array in tables.arrays().items():
        total += array.nbytes
        print(f"  {name:<20} {str(array.shape):<14} {array.nbytes / 1024:>9.1f} KiB")
    print(f"Saved {total / 2**20:.1f} MiB of tables to {directory} in {build_seconds:.2f}s")
    return EXIT_OK


# ============================================================================
# evaluate
# ============================================================================

_worker_solver: Optional[TwoPhaseSolver] = None


def _init_worker(config_data: dict):
    """Build (or load) the tables once per worker process."""
    global _worker_solver
    _worker_solver = TwoPhaseSolver(SolverConfig(**config_data))


def _solve_scramble(solver: TwoPhaseSolver, scramble: str) -> Dict:
    state = CubeState.from_scramble(scramble)
    solution = solver.solve_detailed(state)
    verified = solution.success and state.apply_sequence(solution.moves).is_solved()
    return {
        "scramble": scramble,
        "solution": solution.notation if solution.success else None,
        "length": solution.length,
        "seconds": solution.total_seconds,
        "nodes": solution.phase1_nodes + solution.phase2_nodes,
        "verified": verified,
    }


def _solve_worker(scramble: str) -> Dict:
    return _solve_scramble(_worker_solver, scramble)


def run_evaluation(config: SolverConfig, eval_config: EvaluateConfig) -> List[Dict]:
    print(f"\n{'='*60}")
    print(f"Evaluating two-phase solver on {eval_config.num_cubes} cubes")
    print(f"Scramble moves: {eval_config.scramble_moves}, Seed: {eval_config.seed}, Workers: {eval_config.workers}")
    print(f"{'='*60}\n")

    rng = np.random.default_rng(eval_config.seed)
    scrambles = [format_moves(random_moves(rng, eval_config.scramble_moves)) for _ in range(eval_config.num_cubes)]

    if eval_config.workers > 1:
        results = []
        with ProcessPoolExecutor(max_workers=eval_config.workers, initializer=_init_worker,
                                 initargs=(config.model_dump(),)) as executor:
            futures = [executor.submit(_solve_worker, scramble) for scramble in scrambles]
            for future in tqdm(as_completed(futures), total=len(futures), desc="Solving"):
                results.append(future.result())
        order = {scramble: i for i, scramble in enumerate(scrambles)}
        results.sort(key=lambda r: order[r["scramble"]])
    else:
        solver = TwoPhaseSolver(config)
        results = [_solve_scramble(solver, scramble) for scramble in tqdm(scrambles, desc="Solving")]

    for i, r in enumerate(results):
        print(f"Cube {i+1}/{len(results)}: scramble = {r['scramble']}")
        if r["verified"]:
            print(f"  ✓ Solved in {r['length']} moves: {r['solution']}")
            print(f"    Nodes: {r['nodes']}, Time: {r['seconds']:.3f}s")
        else:
            print(f"  ✗ Not solved")

    solved = [r for r in results if r["verified"]]
    print(f"\n{'='*60}")
    print("Summary")
    print(f"{'='*60}")
    print(f"Solved: {len(solved)}/{len(results)} ({100*len(solved)/max(1, len(results)):.1f}%)")
    if solved:
        print(f"Avg solution length: {np.mean([r['length'] for r in solved]):.2f}")
        print(f"Max solution length: {max(r['length'] for r in solved)}")
        print(f"Avg nodes: {np.mean([r['nodes'] for r in solved]):.1f}")
        print(f"Avg time: {np.mean([r['seconds'] for r in solved]):.3f}s")

    return results


def cmd_evaluate(args: argparse.Namespace) -> int:
    config = solver_config_from_args(args)
    eval_config = EvaluateConfig(
        num_cubes=args.num_cubes,
        scramble_moves=args.scramble_moves,
        seed=args.seed,
        workers=args.workers,
    )
    results = run_evaluation(config, eval_config)
    return EXIT_OK if all(r["verified"] for r in results) else EXIT_UNSOLVED


_COMMANDS = {
    "solve": cmd_solve,
    "build-tables": cmd_build_tables,
    "evaluate": cmd_evaluate,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return _COMMANDS[args.command](args)
    except (CubeError, ValidationError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
