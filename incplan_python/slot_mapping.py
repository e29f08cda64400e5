"""
slot_mapping.py - Map (template literal, time point) pairs to solver variables.

Every time point owns a slot: a block of ``literals_per_time_step`` problem
variables and ``helper_literals_per_time_step`` helper variables. Slots are
numbered in the order time points are first seen, so the solver variables of
a time point never change once assigned, no matter in which order the
timeline grows.

Layouts (P = problem block width, H = helper block width, s = slot index):

    ALL_BEFORE     helper  s*H                  problem  s*P + max_time_points*H
    SINGLE_BEFORE  helper  s*(P+H)              problem  s*(P+H) + H
    SINGLE_AFTER   problem s*(P+H)              helper   s*(P+H) + P
"""

from __future__ import annotations

from data_structures import HelperVariablePosition
from time_points import TimePoint


class SlotOverflowError(OverflowError):
    """More time points than the reserved helper headroom of ALL_BEFORE."""


class VariableAddressMapper:
    """Translate template literals of a time point into solver literals."""

    def __init__(self, literals_per_time_step: int,
                 helper_literals_per_time_step: int,
                 helper_position: HelperVariablePosition
                 = HelperVariablePosition.SINGLE_AFTER,
                 max_time_points: int = 1000):
        if literals_per_time_step < 0 or helper_literals_per_time_step < 0:
            raise ValueError("block widths must not be negative")
        self.literals_per_time_step = literals_per_time_step
        self.helper_literals_per_time_step = helper_literals_per_time_step
        self.helper_position = helper_position
        self.max_time_points = max_time_points
        self._slots: dict[TimePoint, int] = {}

    def reset(self):
        self._slots.clear()

    def __len__(self) -> int:
        return len(self._slots)

    def slot_of(self, t: TimePoint) -> int:
        """Return the slot of *t*, assigning the next free one on first use."""
        slot = self._slots.get(t)
        if slot is None:
            slot = len(self._slots)
            self._slots[t] = slot
        return slot

    @property
    def num_variables(self) -> int:
        """Highest solver variable reserved by the slots seen so far."""
        P = self.literals_per_time_step
        H = self.helper_literals_per_time_step
        n = len(self._slots)
        if self.helper_position == HelperVariablePosition.ALL_BEFORE:
            if n == 0:
                return 0
            return self.max_time_points * H + n * P
        return n * (P + H)

    def literal_to_variable(self, literal: int, t: TimePoint,
                            is_helper: bool = False) -> int:
        """Return the signed solver literal of template *literal* at *t*."""
        if literal == 0:
            return 0
        width = (self.helper_literals_per_time_step if is_helper
                 else self.literals_per_time_step)
        if abs(literal) > width:
            kind = 'helper' if is_helper else 'problem'
            raise ValueError(f"{kind} literal {literal} outside of block "
                             f"width {width}")
        offset = self._offset(self.slot_of(t), is_helper)
        if literal < 0:
            return -(offset - literal)
        return offset + literal

    def problem_literal(self, literal: int, t: TimePoint) -> int:
        return self.literal_to_variable(literal, t, is_helper=False)

    def helper_literal(self, literal: int, t: TimePoint) -> int:
        return self.literal_to_variable(literal, t, is_helper=True)

    def _offset(self, slot: int, is_helper: bool) -> int:
        P = self.literals_per_time_step
        H = self.helper_literals_per_time_step

        if self.helper_position == HelperVariablePosition.ALL_BEFORE:
            if is_helper:
                if slot >= self.max_time_points:
                    raise SlotOverflowError(
                        f"slot {slot} exceeds the {self.max_time_points} "
                        f"helper blocks reserved ahead of the problem blocks")
                return slot * H
            return slot * P + self.max_time_points * H

        offset = slot * (P + H)
        if self.helper_position == HelperVariablePosition.SINGLE_BEFORE:
            if not is_helper:
                offset += H
        elif is_helper:
            offset += P
        return offset
