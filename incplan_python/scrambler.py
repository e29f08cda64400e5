"""
scrambler.py - Solver wrapper that randomizes variable ids and clause order.

Planning results must not depend on which ids the solver sees or in which
order clauses arrive. ScrambledSATSolver holds back all clauses and
assumptions until solve() is called, then

  1. gives every variable seen for the first time a random, never reused id
     in the wrapped solver (once mapped, a variable keeps its id),
  2. shuffles the clauses, the literals of each clause and the assumptions,
  3. forwards everything and solves.

val(), failed() and learned clauses are translated back, so callers only ever
see their own variables.
"""

from __future__ import annotations
import random
from typing import Callable, Optional


class ScrambledSATSolver:
    """Randomizing wrapper around any solver following the sat_interface
    contract."""

    def __init__(self, solver, seed: Optional[int] = None, debug: int = 0):
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 32)
        self.solver = solver
        self.seed = seed
        self.debug = debug
        self.rng = random.Random(seed)
        if self.debug >= 1:
            print(f"  [scrambler] seed: {seed}")

        self._clauses: list[list[int]] = []
        self._clause: list[int] = []
        self._assumptions: list[int] = []
        self._to_solver: dict[int, int] = {}
        self._from_solver: list[int] = [0]
        self._learn: Optional[Callable[[list[int]], None]] = None

    def signature(self) -> str:
        return f"scrambled({self.solver.signature()})"

    # ── Buffered input ───────────────────────────────────────────────────

    def add(self, lit_or_zero: int):
        if lit_or_zero == 0:
            self._clauses.append(self._clause)
            self._clause = []
        else:
            self._clause.append(lit_or_zero)

    def add_clause(self, clause: list[int]):
        for lit in clause:
            self.add(lit)
        self.add(0)

    def assume(self, lit: int):
        self._assumptions.append(lit)

    # ── Solving ──────────────────────────────────────────────────────────

    def solve(self) -> int:
        self._scramble_variables()
        self._scramble_clauses()

        for clause in self._clauses:
            for lit in clause:
                self.solver.add(self._map(lit))
            self.solver.add(0)
        self._clauses = []

        for lit in self._assumptions:
            self.solver.assume(self._map(lit))
        self._assumptions = []

        return self.solver.solve()

    def _scramble_variables(self):
        new_vars: list[int] = []
        seen: set[int] = set()
        for clause in self._clauses + [self._assumptions]:
            for lit in clause:
                var = abs(lit)
                if var not in self._to_solver and var not in seen:
                    seen.add(var)
                    new_vars.append(var)

        self.rng.shuffle(new_vars)
        for var in new_vars:
            self._to_solver[var] = len(self._from_solver)
            self._from_solver.append(var)

    def _scramble_clauses(self):
        self.rng.shuffle(self._clauses)
        for clause in self._clauses:
            self.rng.shuffle(clause)
        self.rng.shuffle(self._assumptions)

    # ── Mapping ──────────────────────────────────────────────────────────

    def _map(self, lit: int) -> int:
        var = self._to_solver[abs(lit)]
        return var if lit > 0 else -var

    def _unmap(self, lit: int) -> int:
        if lit == 0:
            return 0
        var = self._from_solver[abs(lit)]
        return var if lit > 0 else -var

    # ── Queries ──────────────────────────────────────────────────────────

    def val(self, lit: int) -> int:
        if abs(lit) not in self._to_solver:
            # never part of a clause, any value will do
            return 0
        return self._unmap(self.solver.val(self._map(lit)))

    def failed(self, lit: int) -> bool:
        if abs(lit) not in self._to_solver:
            return False
        return bool(self.solver.failed(self._map(lit)))

    def set_terminate(self, callback):
        self.solver.set_terminate(callback)

    def set_learn(self, max_length: int,
                  callback: Optional[Callable[[list[int]], None]]):
        self._learn = callback
        if callback is None:
            self.solver.set_learn(max_length, None)
        else:
            self.solver.set_learn(max_length, self._mapping_callback)

    def _mapping_callback(self, clause: list[int]):
        self._learn([self._unmap(lit) for lit in clause if lit != 0])

    # ── Lifecycle ────────────────────────────────────────────────────────

    def reset(self):
        self.solver.reset()
        self._clauses = []
        self._clause = []
        self._assumptions = []
        self._to_solver = {}
        self._from_solver = [0]

    def delete(self):
        self.solver.delete()
