"""
time_points.py - Allocation and addressing of abstract time points.

A time point is a ``(direction, index)`` pair. The single ended manager only
grows forward from the initial state. The double ended manager grows two
stacks, one from the initial state (``FROM_BEGIN``) and one from the goal
(``FROM_END``); the begin stack is read forward, the end stack backward, and
the two tops are where the stacks meet.

Both managers offer the same operations:

    acquire_next()          allocate one more time point
    successor(t)            chronologically next time point
    predecessor(t)          chronologically previous time point
    is_on_forward_branch(t) True if t was grown from the initial state
    first() / last()        the initial state and the goal time point
"""

from __future__ import annotations
from typing import NamedTuple, Union

from data_structures import TopElementOption

FROM_BEGIN = 0
FROM_END = 1


class TimePoint(NamedTuple):
    direction: int
    index: int

    def __str__(self) -> str:
        side = 'B' if self.direction == FROM_BEGIN else 'E'
        return f"{side}{self.index}"


class InvalidTimePoint(ValueError):
    """The time point was never handed out by this manager."""


class TimePointOutOfRange(IndexError):
    """The requested neighbour of a valid time point does not exist (yet)."""


# ── Single ended ─────────────────────────────────────────────────────────────

class SingleEndedTimePointManager:
    """Monotonically growing timeline starting at the initial state."""

    def __init__(self):
        self._next = 0

    def __len__(self) -> int:
        return self._next

    def acquire_next(self) -> TimePoint:
        t = TimePoint(FROM_BEGIN, self._next)
        self._next += 1
        return t

    def is_valid(self, t: TimePoint) -> bool:
        return t.direction == FROM_BEGIN and 0 <= t.index < self._next

    def successor(self, t: TimePoint) -> TimePoint:
        self._check(t)
        if t.index + 1 >= self._next:
            raise TimePointOutOfRange(f"{t} has no successor")
        return TimePoint(FROM_BEGIN, t.index + 1)

    def predecessor(self, t: TimePoint) -> TimePoint:
        self._check(t)
        if t.index == 0:
            raise TimePointOutOfRange(f"{t} has no predecessor")
        return TimePoint(FROM_BEGIN, t.index - 1)

    def is_on_forward_branch(self, t: TimePoint) -> bool:
        return True

    def first(self) -> TimePoint:
        return TimePoint(FROM_BEGIN, 0)

    def last(self) -> TimePoint:
        return TimePoint(FROM_BEGIN, self._next - 1)

    def is_same_point(self, a: TimePoint, b: TimePoint) -> bool:
        return a == b

    def _check(self, t: TimePoint):
        if not self.is_valid(t):
            raise InvalidTimePoint(f"Invalid time point {t!r}")


# ── Double ended ─────────────────────────────────────────────────────────────

class DoubleEndedTimePointManager:
    """Timeline grown from both the initial state and the goal.

    *ratio* is the targeted share of time points on the begin stack. With
    ``TopElementOption.UNIQUE`` the two stack tops are distinct, adjacent time
    points. With ``TopElementOption.DUPLICATED`` they denote one and the same
    time point, so the begin top is skipped when walking forward and the end
    top is skipped when walking backward.
    """

    def __init__(self, ratio: float = 1.0,
                 top_element_option: TopElementOption = TopElementOption.UNIQUE):
        if not 0.0 <= ratio <= 1.0:
            raise ValueError(f"ratio must be within [0, 1], got {ratio}")
        self.ratio = ratio
        self.top_element_option = top_element_option
        self.begin_top = -1
        self.end_top = -1

    def __len__(self) -> int:
        return self.begin_top + self.end_top + 2

    def acquire_next(self) -> TimePoint:
        if self.begin_top == -1:
            self.begin_top += 1
            return TimePoint(FROM_BEGIN, self.begin_top)
        if self.end_top == -1:
            self.end_top += 1
            return TimePoint(FROM_END, self.end_top)

        count_begin = self.begin_top + 1
        count_all = self.begin_top + self.end_top + 2
        if count_begin / count_all <= self.ratio:
            self.begin_top += 1
            return TimePoint(FROM_BEGIN, self.begin_top)
        self.end_top += 1
        return TimePoint(FROM_END, self.end_top)

    def is_valid(self, t: TimePoint) -> bool:
        if t.index < 0:
            return False
        if t.direction == FROM_BEGIN:
            return t.index <= self.begin_top
        if t.direction == FROM_END:
            return t.index <= self.end_top
        return False

    def successor(self, t: TimePoint) -> TimePoint:
        self._check(t)
        if t.direction == FROM_BEGIN:
            result = TimePoint(FROM_BEGIN, t.index + 1)
        else:
            result = TimePoint(FROM_END, t.index - 1)

        if result.direction == FROM_BEGIN:
            if self.top_element_option == TopElementOption.DUPLICATED:
                if result.index == self.begin_top:
                    result = TimePoint(FROM_END, self.end_top)
                elif result.index == self.begin_top + 1:
                    # the begin top is the end top, continue behind it
                    result = TimePoint(FROM_END, self.end_top - 1)
            elif result.index > self.begin_top:
                result = TimePoint(FROM_END, self.end_top)

        if not self.is_valid(result):
            raise TimePointOutOfRange(f"{t} has no successor")
        return result

    def predecessor(self, t: TimePoint) -> TimePoint:
        self._check(t)
        if t.direction == FROM_BEGIN:
            result = TimePoint(FROM_BEGIN, t.index - 1)
        else:
            result = TimePoint(FROM_END, t.index + 1)

        if result.direction == FROM_END:
            if self.top_element_option == TopElementOption.DUPLICATED:
                if result.index == self.end_top:
                    result = TimePoint(FROM_BEGIN, self.begin_top)
                elif result.index == self.end_top + 1:
                    result = TimePoint(FROM_BEGIN, self.begin_top - 1)
            elif result.index > self.end_top:
                result = TimePoint(FROM_BEGIN, self.begin_top)

        if not self.is_valid(result):
            raise TimePointOutOfRange(f"{t} has no predecessor")
        return result

    def is_on_forward_branch(self, t: TimePoint) -> bool:
        return t.direction == FROM_BEGIN

    def first(self) -> TimePoint:
        return TimePoint(FROM_BEGIN, 0)

    def last(self) -> TimePoint:
        return TimePoint(FROM_END, 0)

    def begin_top_point(self) -> TimePoint:
        return TimePoint(FROM_BEGIN, self.begin_top)

    def end_top_point(self) -> TimePoint:
        return TimePoint(FROM_END, self.end_top)

    def is_same_point(self, a: TimePoint, b: TimePoint) -> bool:
        """True if *a* and *b* name the same point of the plan."""
        if a == b:
            return True
        if self.top_element_option != TopElementOption.DUPLICATED:
            return False
        tops = {self.begin_top_point(), self.end_top_point()}
        return {a, b} == tops

    def _check(self, t: TimePoint):
        if not self.is_valid(t):
            raise InvalidTimePoint(f"Invalid time point {t!r}")


TimePointManager = Union[SingleEndedTimePointManager, DoubleEndedTimePointManager]


def make_time_point_manager(single_ended: bool, ratio: float = 0.5,
                            top_element_option: TopElementOption
                            = TopElementOption.DUPLICATED) -> TimePointManager:
    """Create the manager used by the planner for one planning attempt."""
    if single_ended:
        return SingleEndedTimePointManager()
    return DoubleEndedTimePointManager(ratio, top_element_option)


def walk(manager: TimePointManager) -> list[TimePoint]:
    """Return the time points from ``first()`` to ``last()`` in plan order."""
    t = manager.first()
    points = [t]
    end = manager.last()
    while not manager.is_same_point(t, end):
        t = manager.successor(t)
        points.append(t)
    return points
