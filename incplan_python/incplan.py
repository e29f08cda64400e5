#!/usr/bin/env python3
"""
incplan.py - CLI entry point for incremental SAT planning.

Reads a transition system in i/u/g/t CNF format and searches for a plan with
one incremental SAT solver, growing the plan from the initial state only
(-s) or from both the initial state and the goal (default).

Usage:
    python incplan.py [inputFile|-] [options]
"""

from __future__ import annotations
import argparse
import os
import sys
import time as time_mod

from data_structures import (
    SolverSpec, PlannerOptions, HelperVariablePosition, PrintCNF,
)
from incplan_planner import IncrementalPlanner
from problem import PlanningProblem, ProblemFormatError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='incplan - SAT planning with an incremental SAT solver',
    )
    parser.add_argument('inputFile', nargs='?', default='-',
                        help='File containing the problem. Omit or use - for stdin.')
    parser.add_argument('-r', '--ratio', type=float, default=0.5,
                        help='Ratio between states from start to states from end')
    parser.add_argument('-l', '--linearStepSize', type=int, default=1,
                        help='Linear step size')
    parser.add_argument('-e', '--exponentialStepBasis', type=float, default=0.0,
                        help='Basis of exponential step size: '
                             'makespan = l*n + floor(e ** (n + o))')
    parser.add_argument('-o', '--exponentialStepOffset', type=float, default=0.0,
                        help='Offset of exponential step size')
    parser.add_argument('-u', '--unitInGoal2Assume', action='store_true',
                        help='Assume unit goal clauses instead of adding them '
                             '(singleEnded only)')
    parser.add_argument('-i', '--intermediateSolveStep', action='store_true',
                        help='Additional solve step before adding the goal or '
                             'linking clauses')
    parser.add_argument('-n', '--nonIncrementalSolving', action='store_true',
                        help='Do not use incremental solving')
    parser.add_argument('-c', '--cleanLiteral', action='store_true',
                        help='Permanently disable goal or linking clauses of '
                             'failed rounds')
    parser.add_argument('-s', '--singleEnded', action='store_true',
                        help='Use the naive (single ended) incremental encoding')
    parser.add_argument('--outputSolverLike', action='store_true',
                        help='Output literals of time point t shifted into '
                             't*[literalsPerTime] < lit <= (t+1)*[literalsPerTime]')
    parser.add_argument('--icaps2017', action='store_true',
                        help='Place all helper variables before the encoding')
    parser.add_argument('--pathSearchPrefix', action='append', default=[],
                        help='Prefix tried when the input file is not found')
    parser.add_argument('-solver', default='cadical',
                        help='cadical, glucose, maple or minisat')
    parser.add_argument('-maxsec', type=int, default=0,
                        help='Time limit per solve call in seconds')
    parser.add_argument('-maxglobalsec', type=int, default=0,
                        help='Global time limit in seconds')
    parser.add_argument('-maxmakespan', type=int, default=1000,
                        help='Largest makespan to try (default: 1000)')
    parser.add_argument('-maxsteps', type=int, default=0,
                        help='Largest number of solve rounds (0=unlimited)')
    parser.add_argument('-scramble', action='store_true',
                        help='Randomly permute variables and clauses')
    parser.add_argument('-seed', type=int, default=None,
                        help='Seed for -scramble')
    parser.add_argument('-g', '--output', default=None,
                        help='Also write the solution to this file')
    parser.add_argument('-info', type=int, default=0,
                        help='Debug info level (0-2)')
    parser.add_argument('-printcnf', action='store_true',
                        help='Print clauses and assumptions sent to the solver')
    return parser


def open_input(path: str, prefixes: list[str]):
    """Open *path*, trying each of *prefixes* if it does not exist."""
    if path == '-':
        return sys.stdin
    for prefix in [''] + prefixes:
        candidate = os.path.join(prefix, path) if prefix else path
        if os.path.isfile(candidate):
            return open(candidate)
    raise FileNotFoundError(f"can't open file: {path}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    debug = args.info
    global_start = time_mod.time()

    if debug >= 1:
        print("incplan (Python) - incremental SAT planning")
        print(f"  Input: {args.inputFile}")

    # ── 1. Load problem ──────────────────────────────────────────────────

    try:
        stream = open_input(args.inputFile, args.pathSearchPrefix)
        try:
            problem = PlanningProblem.from_stream(stream)
        finally:
            if stream is not sys.stdin:
                stream.close()
    except (OSError, ProblemFormatError) as e:
        print(f"Error loading problem: {e}", file=sys.stderr)
        return 1

    if debug >= 2:
        problem.print_summary()

    # ── 2. Configure ─────────────────────────────────────────────────────

    try:
        options = PlannerOptions(
            single_ended=args.singleEnded,
            ratio=args.ratio,
            unit_in_goal_to_assume=args.unitInGoal2Assume,
            solve_before_goal_clauses=args.intermediateSolveStep,
            non_incremental=args.nonIncrementalSolving,
            clean_literal=args.cleanLiteral,
            solver_like_output=args.outputSolverLike,
            helper_position=(HelperVariablePosition.ALL_BEFORE
                             if args.icaps2017
                             else HelperVariablePosition.SINGLE_AFTER),
            max_time_points=args.maxmakespan + 2,
            linear_step_size=args.linearStepSize,
            exponential_step_basis=args.exponentialStepBasis,
            exponential_step_offset=args.exponentialStepOffset,
            max_makespan=args.maxmakespan,
            max_steps=args.maxsteps,
        )
        should_terminate = None
        if args.maxglobalsec > 0:
            def should_terminate() -> bool:
                return time_mod.time() - global_start > args.maxglobalsec

        planner = IncrementalPlanner(
            problem,
            options,
            solver_spec=SolverSpec(solver_name=args.solver, maxsec=args.maxsec),
            scramble=args.scramble,
            scramble_seed=args.seed,
            should_terminate=should_terminate,
            printflag=PrintCNF if args.printcnf else 0,
            debug=debug,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # ── 3. Search for plan ───────────────────────────────────────────────

    if debug >= 1:
        print(f"  Solver: {planner.solver.signature()}")
    solved = planner.solve()
    planner.print_solution(args.output)
    if not solved:
        print("Did not get a solution within the maximal makespan.",
              file=sys.stderr)

    # ── 4. Print timing ──────────────────────────────────────────────────

    if debug >= 1:
        elapsed = time_mod.time() - global_start
        timing = planner.get_timing_stats()
        print()
        print(f"Total time: {elapsed:.2f} seconds")
        print("Timing breakdown:")
        print(f"  CNF generation: {timing['encode_sec']:.3f}s "
              f"({timing['clauses']} clauses)")
        print(f"  SAT solve:      {timing['solve_sec']:.3f}s "
              f"({timing['solve_calls']} calls)")
    return 0


if __name__ == '__main__':
    sys.exit(main())
