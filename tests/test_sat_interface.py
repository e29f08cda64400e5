import io
import time

import pytest
from pysat.examples.genhard import PHP

from data_structures import Sat, Unsat, Timeout
from sat_interface import (
    IncrementalSATSolver, PrintingSATSolver, SolverStateError, SOLVER_CLASSES,
)

SOLVERS = ['cadical', 'glucose', 'maple', 'minisat']


@pytest.fixture(params=SOLVERS)
def solver(request):
    s = IncrementalSATSolver(request.param)
    yield s
    s.delete()


def test_sat_and_values(solver):
    solver.add_clause([1, 2])
    solver.add_clause([-1])
    assert solver.solve() == Sat
    assert solver.val(1) == -1
    assert solver.val(-1) == 1
    assert solver.val(2) == 2
    assert solver.val(-2) == -2
    # never part of a clause
    assert solver.val(42) == 0


def test_literal_wise_input(solver):
    for lit in (1, -2, 0, 2, 0, -1, 0):
        solver.add(lit)
    assert solver.solve() == Unsat


def test_assumptions_hold_for_one_solve(solver):
    solver.add_clauses([[-1, 2], [-2, 3]])
    solver.assume(1)
    solver.assume(-3)
    assert solver.solve() == Unsat
    assert solver.failed(1)
    assert solver.failed(-3)
    assert not solver.failed(2)

    # assumptions are dropped after solve()
    assert solver.solve() == Sat


def test_state_errors(solver):
    with pytest.raises(SolverStateError):
        solver.val(1)
    with pytest.raises(SolverStateError):
        solver.failed(1)

    solver.add_clause([1])
    assert solver.solve() == Sat
    with pytest.raises(SolverStateError):
        solver.failed(1)

    # new input leaves the SAT state
    solver.add_clause([2])
    with pytest.raises(SolverStateError):
        solver.val(1)


def test_reset_drops_clauses(solver):
    solver.add_clause([-1])
    solver.assume(1)
    assert solver.solve() == Unsat
    solver.reset()
    solver.add_clause([1])
    assert solver.solve() == Sat
    assert solver.val(1) == 1


@pytest.mark.parametrize('name', ['minisat', 'glucose'])
def test_interruptible_solve_completes(name):
    solver = IncrementalSATSolver(name)
    solver.set_terminate(lambda: False)
    solver.add_clauses([[1, 2], [-1, 2], [-2, 3]])
    assert solver.solve() == Sat
    assert solver.val(3) == 3
    solver.delete()


def test_set_learn_is_accepted():
    solver = IncrementalSATSolver()
    learned = []
    solver.set_learn(4, learned.append)
    solver.add_clause([1])
    assert solver.solve() == Sat
    solver.delete()


def test_unknown_solver():
    with pytest.raises(ValueError, match="Unknown solver"):
        IncrementalSATSolver('lingeling')


def test_solver_aliases():
    assert SOLVER_CLASSES['cd195'] is SOLVER_CLASSES['cadical']
    assert IncrementalSATSolver('MiniSat').signature() == 'pysat-minisat'


def test_printing_solver_echoes_input():
    stream = io.StringIO()
    solver = PrintingSATSolver(IncrementalSATSolver(), stream)

    solver.add_clause([1, -2])
    solver.assume(2)
    assert solver.solve() == Sat
    assert solver.val(1) == 1
    solver.reset()

    assert stream.getvalue() == "1 -2 0\na2\nc solve\nc reset\n"
    assert solver.signature() == "printing(pysat-cadical)"
    solver.delete()


@pytest.fixture
def pigeonhole():
    # 13 pigeons, 12 holes: far beyond what any backend refutes in seconds
    return PHP(12).clauses


def test_terminate_interrupts_search(pigeonhole):
    solver = IncrementalSATSolver()
    solver.add_clauses(pigeonhole)
    solver.set_terminate(lambda: True)

    start = time.time()
    assert solver.solve() == Timeout
    assert time.time() - start < 10
    with pytest.raises(SolverStateError):
        solver.val(1)
    solver.delete()


def test_maxsec_interrupts_search(pigeonhole):
    solver = IncrementalSATSolver(maxsec=1)
    solver.add_clauses(pigeonhole)

    start = time.time()
    assert solver.solve() == Timeout
    assert 0.9 <= time.time() - start < 10
    solver.delete()
