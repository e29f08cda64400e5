"""
data_structures.py - Status codes, policy enums and planner configuration.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum

# SAT solver return values
Unsat = 0
Sat = 1
Timeout = 2   # interrupted by the termination callback or -maxsec
Failure = 3

STATUS_NAMES = {
    Unsat: 'UNSAT',
    Sat: 'SAT',
    Timeout: 'INTERRUPTED',
    Failure: 'FAILURE',
}

# Print masks
PrintCNF = 2


class HelperVariablePosition(Enum):
    """Where the helper block of a time slot lives in the solver namespace."""
    ALL_BEFORE = 'all-before'         # every helper block ahead of all problem blocks
    SINGLE_BEFORE = 'single-before'   # helper block directly in front of its problem block
    SINGLE_AFTER = 'single-after'     # helper block directly behind its problem block


class TopElementOption(Enum):
    """How the two stacks of a double-ended timeline meet."""
    UNIQUE = 'unique'
    DUPLICATED = 'duplicated'


# Helper variables per time slot. Helper literal 0 is the clause terminator,
# so the activation literal is helper literal 1.
ACTIVATION_LITERAL = 1
HELPER_LITERALS_PER_TIME_STEP = 1


@dataclass
class SolverSpec:
    """Solver specification."""
    solver_name: str = "cadical"
    maxsec: int = 0


@dataclass(frozen=True)
class PlannerOptions:
    """Immutable configuration of one planning attempt.

    The makespan schedule is ``l*n + floor(e ** (n + o))`` when the
    exponential basis ``e`` is non-zero, ``l*n`` otherwise.
    """
    single_ended: bool = False
    ratio: float = 0.5
    unit_in_goal_to_assume: bool = False
    solve_before_goal_clauses: bool = False
    non_incremental: bool = False
    clean_literal: bool = False
    solver_like_output: bool = False
    helper_position: HelperVariablePosition = HelperVariablePosition.SINGLE_AFTER
    max_time_points: int = 1000
    linear_step_size: int = 1
    exponential_step_basis: float = 0.0
    exponential_step_offset: float = 0.0
    max_makespan: int = 1000
    max_steps: int = 0    # 0 = unlimited

    def __post_init__(self):
        if not 0.0 <= self.ratio <= 1.0:
            raise ValueError(f"ratio must be within [0, 1], got {self.ratio}")
        if self.unit_in_goal_to_assume and not self.single_ended:
            raise ValueError("unit goal assumptions are only supported "
                             "with the single ended encoding")
        if self.linear_step_size < 0:
            raise ValueError("linear step size must not be negative")
        if self.linear_step_size == 0 and self.exponential_step_basis <= 1:
            raise ValueError("makespan schedule never grows: use a linear "
                             "step size > 0 or an exponential basis > 1")
        if self.max_makespan < 0 or self.max_steps < 0:
            raise ValueError("makespan and step ceilings must not be negative")
        if self.max_time_points < 1:
            raise ValueError("max_time_points must be positive")

    def step_to_makespan(self, step: int) -> int:
        """Return the target makespan of round *step*."""
        target = self.linear_step_size * step
        if self.exponential_step_basis != 0:
            target += math.floor(
                self.exponential_step_basis
                ** (step + self.exponential_step_offset))
        return target
