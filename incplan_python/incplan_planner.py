"""
incplan_planner.py - Incremental planning loop over a growing timeline.

One incremental SAT solver is kept for the whole search. Every round grows
the timeline up to the round's target makespan, asserts the goal (single
ended) or links the two halves of the timeline (double ended) under an
activation literal of the time point inserted last, and solves with that
activation literal assumed. Clauses of failed rounds stay in the solver; their
activation literal is simply not assumed any more.
"""

from __future__ import annotations
import sys
import time as time_mod
from typing import Callable, Optional

from data_structures import (
    Sat, Unsat, Timeout, Failure, STATUS_NAMES, PrintCNF,
    ACTIVATION_LITERAL, HELPER_LITERALS_PER_TIME_STEP,
    PlannerOptions, SolverSpec, TopElementOption, HelperVariablePosition,
)
from problem import PlanningProblem, iter_clauses
from sat_interface import IncrementalSATSolver, PrintingSATSolver
from scrambler import ScrambledSATSolver
from slot_mapping import VariableAddressMapper
from time_points import TimePoint, TimePointManager, make_time_point_manager, walk


class IncrementalPlanner:
    """Finds a plan of minimal makespan with respect to the step schedule."""

    def __init__(self,
                 problem: PlanningProblem,
                 options: Optional[PlannerOptions] = None,
                 solver=None,
                 solver_spec: Optional[SolverSpec] = None,
                 scramble_seed: Optional[int] = None,
                 scramble: bool = False,
                 should_terminate: Optional[Callable[[], bool]] = None,
                 printflag: int = 0,
                 debug: int = 0):
        self.problem = problem
        self.options = options if options is not None else PlannerOptions()
        self.printflag = printflag
        self.debug = debug

        if solver is None:
            spec = solver_spec if solver_spec is not None else SolverSpec()
            solver = IncrementalSATSolver(spec.solver_name, maxsec=spec.maxsec,
                                          debug=debug)
        if scramble or scramble_seed is not None:
            solver = ScrambledSATSolver(solver, seed=scramble_seed, debug=debug)
        if printflag & PrintCNF:
            solver = PrintingSATSolver(solver)
        self.solver = solver

        self.should_terminate = should_terminate
        if should_terminate is not None:
            self.solver.set_terminate(should_terminate)

        self.mapper = VariableAddressMapper(
            problem.literals_per_time_step,
            HELPER_LITERALS_PER_TIME_STEP,
            self.options.helper_position,
            self.options.max_time_points,
        )
        self.time_points: Optional[TimePointManager] = None

        # Search state
        self.makespan: int = 0
        self.final_makespan: Optional[int] = None
        self.solve_result: int = Unsat
        self.plan_found: bool = False
        self.solves: list[dict] = []

        # Timing
        self._encode_sec: float = 0.0
        self._solve_sec: float = 0.0
        self._num_clauses: int = 0

    # ── Main search ──────────────────────────────────────────────────────

    def solve(self) -> bool:
        """Run rounds until SAT or a ceiling is reached. True if a plan was found."""
        if self.debug >= 1:
            print("Start solving")
        opts = self.options
        result = Unsat
        step = 0
        last = self._initialize()

        while True:
            if opts.max_steps and step >= opts.max_steps:
                break
            target = opts.step_to_makespan(step)
            if target > opts.max_makespan:
                break
            if not self._fits_helper_headroom(target):
                if self.debug >= 1:
                    print(f"  Makespan {target} exceeds the {opts.max_time_points} "
                          f"reserved helper blocks, stopping")
                break

            if opts.non_incremental and step > 0:
                last = self._initialize()

            t0 = time_mod.time()
            while self.makespan < target:
                last = self._extend()
            self._encode_sec += time_mod.time() - t0

            if opts.solve_before_goal_clauses:
                self._timed_solve('intermediate')

            t0 = time_mod.time()
            self._finalize(last)
            self._encode_sec += time_mod.time() - t0

            if self.debug >= 1:
                print(f"Solving makespan {self.makespan}")
            result = self._timed_solve('solve')

            if result == Sat:
                break
            if result == Failure:
                print(f"  Solver failed at makespan {self.makespan}",
                      file=sys.stderr)
                break
            if result == Timeout and self._terminate_requested():
                break

            # a round that keeps the makespan reuses the activation literal of last
            if (opts.clean_literal
                    and opts.step_to_makespan(step + 1) > self.makespan):
                if self.debug >= 1:
                    print("  Cleaning helper literal.")
                self._add_clause([self.mapper.helper_literal(
                    -ACTIVATION_LITERAL, last)])
            step += 1

        self.solve_result = result
        self.plan_found = result == Sat
        if self.plan_found:
            self.final_makespan = self.makespan
        if self.debug >= 1:
            print(f"Final makespan: {self.makespan}")
        return self.plan_found

    def _fits_helper_headroom(self, makespan: int) -> bool:
        """ALL_BEFORE reserves helper blocks for max_time_points slots only."""
        opts = self.options
        if opts.helper_position != HelperVariablePosition.ALL_BEFORE:
            return True
        slots = makespan + (1 if opts.single_ended else 2)
        return slots <= opts.max_time_points

    def _terminate_requested(self) -> bool:
        return self.should_terminate is not None and bool(self.should_terminate())

    def _timed_solve(self, kind: str) -> int:
        t0 = time_mod.time()
        result = self.solver.solve()
        elapsed = time_mod.time() - t0
        self._solve_sec += elapsed
        self.solves.append({
            'kind': kind,
            'makespan': self.makespan,
            'result': STATUS_NAMES.get(result, str(result)),
            'time': elapsed,
        })
        if self.debug >= 1:
            print(f"  {kind}: {STATUS_NAMES.get(result, result)} "
                  f"in {elapsed:.3f}s")
        return result

    # ── Timeline growth ──────────────────────────────────────────────────

    def _initialize(self) -> TimePoint:
        """Start a fresh timeline on an empty solver; return the last point."""
        opts = self.options
        self.solver.reset()
        self.mapper.reset()
        self.time_points = make_time_point_manager(
            opts.single_ended, opts.ratio, TopElementOption.DUPLICATED)
        self.makespan = 0

        t0 = self.time_points.acquire_next()
        self._add_template(self.problem.initial, t0)
        self._add_template(self.problem.invariant, t0)
        if opts.single_ended:
            return t0

        tn = self.time_points.acquire_next()
        self._add_template(self.problem.goal, tn)
        self._add_template(self.problem.invariant, tn)
        return tn

    def _extend(self) -> TimePoint:
        tp = self.time_points
        t = tp.acquire_next()
        self._add_template(self.problem.invariant, t)
        if tp.is_on_forward_branch(t):
            self._add_transfer(tp.predecessor(t), t)
        else:
            self._add_transfer(t, tp.successor(t))
        self.makespan += 1
        if self.debug >= 2:
            print(f"  Added time point {t} (makespan {self.makespan}, "
                  f"{self._num_clauses} clauses, "
                  f"{self.mapper.num_variables} variables)")
        return t

    def _finalize(self, last: TimePoint):
        tp = self.time_points
        if self.options.single_ended:
            self._add_goal(last, guarded=True)
        else:
            if last == tp.last():
                source, destination = tp.first(), tp.last()
            elif tp.is_on_forward_branch(last):
                source = last
                destination = tp.successor(tp.predecessor(last))
            else:
                source = tp.predecessor(tp.successor(last))
                destination = last
            self._add_link(source, destination, last)
        self.solver.assume(self.mapper.helper_literal(ACTIVATION_LITERAL, last))

    # ── Clause generators ────────────────────────────────────────────────

    def _add_clause(self, clause: list[int]):
        self.solver.add_clause(clause)
        self._num_clauses += 1

    def _add_template(self, template: tuple[int, ...], t: TimePoint):
        for clause in iter_clauses(template):
            self._add_clause([self.mapper.problem_literal(lit, t)
                              for lit in clause])

    def _add_transfer(self, source: TimePoint, destination: TimePoint):
        P = self.problem.literals_per_time_step
        for clause in iter_clauses(self.problem.transfer):
            mapped = []
            for lit in clause:
                if abs(lit) <= P:
                    mapped.append(self.mapper.problem_literal(lit, source))
                else:
                    lit = lit - P if lit > 0 else lit + P
                    mapped.append(self.mapper.problem_literal(lit, destination))
            self._add_clause(mapped)

    def _add_goal(self, t: TimePoint, guarded: bool = False):
        assume_units = self.options.unit_in_goal_to_assume
        for clause in iter_clauses(self.problem.goal):
            if assume_units and len(clause) == 1:
                self.solver.assume(self.mapper.problem_literal(clause[0], t))
                continue
            mapped = [self.mapper.problem_literal(lit, t) for lit in clause]
            if guarded:
                mapped.append(self.mapper.helper_literal(-ACTIVATION_LITERAL, t))
            self._add_clause(mapped)

    def _add_link(self, a: TimePoint, b: TimePoint, binding: TimePoint):
        """Under the activation literal of *binding*, state *a* equals state *b*."""
        guard = self.mapper.helper_literal(-ACTIVATION_LITERAL, binding)
        for i in range(1, self.problem.literals_per_time_step + 1):
            self._add_clause([guard,
                              self.mapper.problem_literal(-i, a),
                              self.mapper.problem_literal(i, b)])
            self._add_clause([guard,
                              self.mapper.problem_literal(i, a),
                              self.mapper.problem_literal(-i, b)])

    # ── Solution ─────────────────────────────────────────────────────────

    def value_problem_literal(self, lit: int, t: TimePoint) -> int:
        """Return *lit*, ``-lit`` or 0 (don't care) for the last SAT model."""
        value = self.solver.val(self.mapper.problem_literal(lit, t))
        if value == 0:
            return 0
        return lit if value > 0 else -lit

    def extract_trace(self) -> list[list[int]]:
        """Values of all problem literals, one list per plan step."""
        if not self.plan_found:
            return []
        P = self.problem.literals_per_time_step
        return [[self.value_problem_literal(j, t) for j in range(1, P + 1)]
                for t in walk(self.time_points)]

    def format_solution(self) -> list[str]:
        if not self.plan_found:
            return ["no solution"]
        P = self.problem.literals_per_time_step
        lines = [f"solution {P} {self.final_makespan + 1}"]
        trace = self.extract_trace()
        if not self.options.solver_like_output:
            lines.extend(' '.join(str(v) for v in step) for step in trace)
            return lines

        shifted: list[str] = []
        for time, step in enumerate(trace):
            for v in step:
                if v != 0:
                    v += time * P if v > 0 else -time * P
                shifted.append(str(v))
        lines.append(' '.join(shifted))
        return lines

    def print_solution(self, output_file: Optional[str] = None):
        output = '\n'.join(self.format_solution())
        print(output)
        if output_file:
            with open(output_file, 'w') as fh:
                fh.write(output + '\n')

    def get_timing_stats(self) -> dict:
        return {
            'encode_sec': self._encode_sec,
            'solve_sec': self._solve_sec,
            'solve_calls': len(self.solves),
            'clauses': self._num_clauses,
        }
