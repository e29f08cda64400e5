"""
sat_interface.py - Incremental SAT solver contract, backed by PySAT.

The planner talks to its solver only through these operations:

    add(lit_or_zero)      extend the current clause, 0 terminates it
    add_clause(clause)    add() for every literal, then add(0)
    assume(lit)           assumption for the next solve() only
    solve()               Sat / Unsat / Timeout (interrupted) / Failure
    val(lit)              lit, -lit or 0 (don't care); state SAT only
    failed(lit)           assumption used in the UNSAT proof; state UNSAT only
    set_terminate(pred)   polled during solve(), True interrupts the search
    set_learn(n, cb)      learned clause hook (best effort)
    reset()               drop every clause, like a fresh solver

Clauses can never be removed. Removable clauses are simulated with
activation literals and assumptions.

Available solvers:
  - cadical  (CaDiCaL 1.9.5) - default
  - glucose  (Glucose 4.2)
  - maple    (MapleChrono)
  - minisat  (MinisatGH)

Install: pip install python-sat
"""

from __future__ import annotations
import sys
import threading
import time as time_mod
from typing import Callable, Optional, TextIO

from pysat.solvers import Cadical195, Glucose42, MapleChrono, MinisatGH

from data_structures import Sat, Unsat, Timeout, Failure


# ── Solver dispatch ──────────────────────────────────────────────────────────

SOLVER_CLASSES = {
    'cadical': Cadical195,
    'cd195': Cadical195,
    'glucose': Glucose42,
    'g42': Glucose42,
    'maple': MapleChrono,
    'mcb': MapleChrono,
    'minisat': MinisatGH,
    'mgh': MinisatGH,
}

DEFAULT_SOLVER = 'cadical'

# Seconds between two polls of the termination callback.
POLL_INTERVAL = 0.05

INPUT = 'INPUT'
SAT = 'SAT'
UNSAT = 'UNSAT'


class SolverStateError(RuntimeError):
    """A query was issued in a solver state that does not allow it."""


class IncrementalSATSolver:
    """Stateful incremental SAT session backed by a PySAT solver instance."""

    def __init__(self, solver_name: str = DEFAULT_SOLVER, maxsec: int = 0,
                 debug: int = 0):
        key = (solver_name or DEFAULT_SOLVER).lower()
        solver_cls = SOLVER_CLASSES.get(key)
        if solver_cls is None:
            raise ValueError(f"Unknown solver '{solver_name}'")
        self.solver_name = key
        self.solver_cls = solver_cls
        self.maxsec = maxsec
        self.debug = debug
        self.solver = solver_cls()

        self._clause: list[int] = []
        self._assumptions: list[int] = []
        self._state = INPUT
        self._model: dict[int, bool] = {}
        self._core: set[int] = set()
        self._terminate: Optional[Callable[[], bool]] = None
        self._learn: Optional[Callable[[list[int]], None]] = None
        self._learn_max_length = 0

    def signature(self) -> str:
        return f"pysat-{self.solver_name}"

    # ── Input ────────────────────────────────────────────────────────────

    def add(self, lit_or_zero: int):
        self._state = INPUT
        if lit_or_zero == 0:
            self.solver.add_clause(self._clause)
            self._clause = []
        else:
            self._clause.append(lit_or_zero)

    def add_clause(self, clause: list[int]):
        for lit in clause:
            self.add(lit)
        self.add(0)

    def add_clauses(self, clauses: list[list[int]]):
        for clause in clauses:
            self.add_clause(clause)

    def assume(self, lit: int):
        self._state = INPUT
        self._assumptions.append(lit)

    def set_terminate(self, callback: Optional[Callable[[], bool]]):
        self._terminate = callback

    def set_learn(self, max_length: int,
                  callback: Optional[Callable[[list[int]], None]]):
        # PySAT gives no access to learned clauses of these backends, so the
        # callback is kept for wrappers but never invoked from here.
        self._learn_max_length = max_length
        self._learn = callback

    # ── Solving ──────────────────────────────────────────────────────────

    def solve(self) -> int:
        """Solve under the pending assumptions, which are cleared afterwards."""
        assumptions = self._assumptions
        self._assumptions = []
        self._model = {}
        self._core = set()
        self._state = INPUT

        try:
            before = None
            if self.debug >= 1 and hasattr(self.solver, 'accum_stats'):
                before = self.solver.accum_stats().copy()
            if self._terminate is not None or self.maxsec > 0:
                result = self._solve_interruptible(assumptions)
            else:
                result = self.solver.solve(assumptions=assumptions)
            self._print_search_stats(before)
        except Exception as e:
            print(f"  SAT solver error: {e}", file=sys.stderr)
            return Failure

        if result is True:
            self._state = SAT
            for lit in self.solver.get_model() or []:
                self._model[abs(lit)] = lit > 0
            return Sat
        if result is False:
            self._state = UNSAT
            self._core = set(self.solver.get_core() or [])
            return Unsat
        return Timeout

    def _solve_interruptible(self, assumptions: list[int]):
        done = threading.Event()
        watcher = threading.Thread(target=self._watch, args=(done,),
                                   daemon=True)
        watcher.start()
        try:
            return self.solver.solve_limited(assumptions=assumptions,
                                             expect_interrupt=True)
        finally:
            done.set()
            watcher.join()
            self.solver.clear_interrupt()

    def _watch(self, done: threading.Event):
        start = time_mod.time()
        while not done.wait(POLL_INTERVAL):
            expired = (self.maxsec > 0
                       and time_mod.time() - start >= self.maxsec)
            if expired or (self._terminate is not None and self._terminate()):
                if self.debug >= 1:
                    print("  SAT search interrupted")
                self.solver.interrupt()
                return

    def _print_search_stats(self, before: Optional[dict]):
        if self.debug < 1 or before is None:
            return
        after = self.solver.accum_stats().copy()
        delta = {k: int(after.get(k, 0)) - int(before.get(k, 0))
                 for k in after.keys()}
        print("  SAT search: "
              f"decisions={delta.get('decisions', 0)} "
              f"conflicts={delta.get('conflicts', 0)} "
              f"propagations={delta.get('propagations', 0)}")

    # ── Queries ──────────────────────────────────────────────────────────

    def val(self, lit: int) -> int:
        if self._state != SAT:
            raise SolverStateError("val() requires the SAT state")
        value = self._model.get(abs(lit))
        if value is None:
            return 0
        return lit if value == (lit > 0) else -lit

    def failed(self, lit: int) -> bool:
        if self._state != UNSAT:
            raise SolverStateError("failed() requires the UNSAT state")
        return lit in self._core

    # ── Lifecycle ────────────────────────────────────────────────────────

    def reset(self):
        """Drop all clauses and recreate the underlying SAT solver."""
        self.delete()
        self.solver = self.solver_cls()
        self._clause = []
        self._assumptions = []
        self._state = INPUT
        self._model = {}
        self._core = set()

    def delete(self):
        if self.solver is not None:
            try:
                self.solver.delete()
            finally:
                self.solver = None


# ── Printing wrapper ─────────────────────────────────────────────────────────

class PrintingSATSolver:
    """Echo every clause and assumption before handing it to *solver*."""

    def __init__(self, solver, stream: Optional[TextIO] = None):
        self.solver = solver
        self.stream = stream if stream is not None else sys.stdout

    def signature(self) -> str:
        return f"printing({self.solver.signature()})"

    def add(self, lit_or_zero: int):
        if lit_or_zero == 0:
            self.stream.write("0\n")
        else:
            self.stream.write(f"{lit_or_zero} ")
        self.solver.add(lit_or_zero)

    def add_clause(self, clause: list[int]):
        for lit in clause:
            self.add(lit)
        self.add(0)

    def assume(self, lit: int):
        self.stream.write(f"a{lit}\n")
        self.solver.assume(lit)

    def solve(self) -> int:
        self.stream.write("c solve\n")
        return self.solver.solve()

    def val(self, lit: int) -> int:
        return self.solver.val(lit)

    def failed(self, lit: int) -> bool:
        return self.solver.failed(lit)

    def set_terminate(self, callback):
        self.solver.set_terminate(callback)

    def set_learn(self, max_length: int, callback):
        self.solver.set_learn(max_length, callback)

    def reset(self):
        self.stream.write("c reset\n")
        self.solver.reset()

    def delete(self):
        self.solver.delete()

