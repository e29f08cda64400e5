"""
problem.py - Transition system description read from an i/u/g/t CNF file.

Input format::

    c optional comment lines
    i cnf <literals> <clauses>      initial state
    ...integers, 0 ends a clause...
    u cnf <literals> <clauses>      invariant, holds at every time point
    ...
    g cnf <literals> <clauses>      goal
    ...
    t cnf <2*literals> <clauses>    transfer relation between two time points
    ...

Literals ``1..P`` of the transfer section address the current time point,
literals ``P+1..2P`` the following one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, TextIO

SECTION_ORDER = ('i', 'u', 'g', 't')
SECTION_NAMES = {
    'i': 'initial',
    'u': 'invariant',
    'g': 'goal',
    't': 'transfer',
}


class ProblemFormatError(ValueError):
    """The problem file does not follow the i/u/g/t CNF format."""


def iter_clauses(template: tuple[int, ...]) -> Iterator[list[int]]:
    """Split a 0-terminated literal template into clauses."""
    clause: list[int] = []
    for lit in template:
        if lit == 0:
            yield clause
            clause = []
        else:
            clause.append(lit)
    if clause:
        yield clause


@dataclass(frozen=True)
class PlanningProblem:
    """Initial state, invariant, goal and transfer templates of one problem."""
    literals_per_time_step: int
    initial: tuple[int, ...] = ()
    invariant: tuple[int, ...] = ()
    goal: tuple[int, ...] = ()
    transfer: tuple[int, ...] = ()
    clause_counts: dict = field(default_factory=dict, compare=False)

    # ── Reading ──────────────────────────────────────────────────────────

    @classmethod
    def read(cls, path: str) -> 'PlanningProblem':
        with open(path) as fh:
            return cls.from_stream(fh)

    @classmethod
    def from_stream(cls, stream: TextIO) -> 'PlanningProblem':
        return cls.parse(stream.read())

    @classmethod
    def parse(cls, text: str) -> 'PlanningProblem':
        lines = text.splitlines()
        start = 0
        while start < len(lines):
            stripped = lines[start].strip()
            if stripped and not stripped.startswith('c'):
                break
            start += 1
        tokens = ' '.join(lines[start:]).split()
        if not tokens:
            raise ProblemFormatError(
                "Expected [iugt] cnf [0-9*] [0-9*] but got nothing "
                "(file empty or only comments)")

        literals_per_time = 0
        sections: dict[str, list[int]] = {}
        clause_counts: dict[str, int] = {}
        pos = 0
        for expected in SECTION_ORDER:
            header = tokens[pos:pos + 4]
            if len(header) < 4 or header[1] != 'cnf':
                raise ProblemFormatError(
                    "Expected [iugt] cnf [0-9*] [0-9*] but got: "
                    + ' '.join(header))
            tag = header[0]
            if tag not in SECTION_NAMES:
                raise ProblemFormatError(
                    f"Expected type i, u, g or t but got {tag}")
            if tag != expected:
                raise ProblemFormatError(
                    f"Expected type {expected} but got: {tag}")
            try:
                literals = int(header[2])
                clause_counts[tag] = int(header[3])
            except ValueError:
                raise ProblemFormatError(
                    "Expected [iugt] cnf [0-9*] [0-9*] but got: "
                    + ' '.join(header)) from None
            if literals < 0 or clause_counts[tag] < 0:
                raise ProblemFormatError(
                    f"Negative count in header: {' '.join(header)}")

            if literals_per_time == 0:
                literals_per_time = literals
            elif literals != literals_per_time and not (
                    tag == 't' and literals == 2 * literals_per_time):
                raise ProblemFormatError(
                    f"Wrong number of literals in section {tag}: "
                    f"{literals} (expected {literals_per_time})")
            pos += 4

            body: list[int] = []
            while pos < len(tokens) and tokens[pos] not in SECTION_NAMES:
                try:
                    body.append(int(tokens[pos]))
                except ValueError:
                    raise ProblemFormatError(
                        f"Expected an integer in section {tag} but got: "
                        f"{tokens[pos]}") from None
                pos += 1
            if body and body[-1] != 0:
                raise ProblemFormatError(
                    f"Last clause of section {tag} is not terminated by 0")
            sections[tag] = body

        if pos != len(tokens):
            raise ProblemFormatError(
                f"Unexpected trailing input: {' '.join(tokens[pos:pos + 4])}")

        problem = cls(
            literals_per_time_step=literals_per_time,
            initial=tuple(sections['i']),
            invariant=tuple(sections['u']),
            goal=tuple(sections['g']),
            transfer=tuple(sections['t']),
            clause_counts=clause_counts,
        )
        problem._check_ranges()
        return problem

    def _check_ranges(self):
        P = self.literals_per_time_step
        for tag, limit in (('i', P), ('u', P), ('g', P), ('t', 2 * P)):
            for lit in getattr(self, SECTION_NAMES[tag]):
                if abs(lit) > limit:
                    raise ProblemFormatError(
                        f"Literal {lit} of section {tag} exceeds {limit}")

    # ── Derived information ──────────────────────────────────────────────

    def clauses(self, section: str) -> list[list[int]]:
        """Return the clauses of *section* ('initial', 'goal', ... or i/u/g/t)."""
        name = SECTION_NAMES.get(section, section)
        return list(iter_clauses(getattr(self, name)))

    def state_variables(self) -> list[int]:
        """Variables fixed by the initial state."""
        return sorted({abs(lit) for lit in self.initial if lit != 0})

    def _current_var(self, lit: int) -> tuple[int, bool]:
        var = abs(lit)
        if var > self.literals_per_time_step:
            return var - self.literals_per_time_step, True
        return var, False

    def action_variables(self) -> list[int]:
        """Guess action variables: non-state variables sharing a transfer
        clause with a state variable."""
        state = set(self.state_variables())
        candidates: set[int] = set()
        for clause in iter_clauses(self.transfer):
            current = [self._current_var(lit)[0] for lit in clause]
            if any(var in state for var in current):
                candidates.update(current)
        return sorted(candidates - state)

    def support(self) -> dict[int, list[int]]:
        """For each state variable of the following time point, the action
        variables of the transfer clauses mentioning it."""
        state = set(self.state_variables())
        actions = set(self.action_variables())
        support: dict[int, set[int]] = {}
        for clause in iter_clauses(self.transfer):
            clause_actions: list[int] = []
            future_state: list[int] = []
            for lit in clause:
                var, is_next = self._current_var(lit)
                if is_next and var in state:
                    future_state.append(var)
                if not is_next and var in actions:
                    clause_actions.append(var)
            for var in future_state:
                support.setdefault(var, set()).update(clause_actions)
        return {var: sorted(acts) for var, acts in sorted(support.items())}

    def print_summary(self):
        print(f"  Literals per time step: {self.literals_per_time_step}")
        for tag in SECTION_ORDER:
            name = SECTION_NAMES[tag]
            print(f"  {name.capitalize():<10} {len(self.clauses(tag)):>6} clauses")
        state = self.state_variables()
        actions = self.action_variables()
        print(f"  State variables:  {len(state)}")
        print(f"  Action variables: {len(actions)}")
        support = self.support()
        unsupported = [var for var in state if not support.get(var)]
        if unsupported:
            print(f"  State variables without supporting action: {unsupported}")
