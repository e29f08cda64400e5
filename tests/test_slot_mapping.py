import pytest
from hypothesis import given, strategies as st

from data_structures import HelperVariablePosition
from slot_mapping import VariableAddressMapper, SlotOverflowError
from time_points import FROM_BEGIN, FROM_END, TimePoint, SingleEndedTimePointManager

t0 = TimePoint(FROM_BEGIN, 0)
t1 = TimePoint(FROM_BEGIN, 1)

POSITIONS = list(HelperVariablePosition)

time_points = st.builds(TimePoint,
                        st.sampled_from([FROM_BEGIN, FROM_END]),
                        st.integers(min_value=0, max_value=50))


def test_single_after_layout():
    mapper = VariableAddressMapper(2, 1)

    assert mapper.problem_literal(1, t0) == 1
    assert mapper.problem_literal(1, t1) == 4
    assert mapper.problem_literal(-1, t0) == -1
    assert mapper.problem_literal(-1, t1) == -4
    assert mapper.helper_literal(1, t0) == 3
    assert mapper.helper_literal(1, t1) == 6
    assert mapper.helper_literal(-1, t1) == -6


def test_interleaved_requests_keep_slots():
    mapper = VariableAddressMapper(2, 1)
    seen = [
        mapper.problem_literal(1, t0),
        mapper.problem_literal(2, t0),
        mapper.helper_literal(1, t0),
        mapper.problem_literal(1, t1),
        mapper.problem_literal(-2, t1),
        mapper.helper_literal(-1, t1),
        mapper.problem_literal(1, t0),
    ]
    assert seen == [1, 2, 3, 4, -5, -6, 1]


def test_single_before_layout():
    mapper = VariableAddressMapper(2, 1, HelperVariablePosition.SINGLE_BEFORE)

    assert mapper.helper_literal(1, t0) == 1
    assert mapper.problem_literal(1, t0) == 2
    assert mapper.problem_literal(2, t0) == 3
    assert mapper.helper_literal(1, t1) == 4
    assert mapper.problem_literal(-2, t1) == -6


def test_all_before_layout():
    mapper = VariableAddressMapper(2, 1, HelperVariablePosition.ALL_BEFORE,
                                   max_time_points=10)

    assert mapper.helper_literal(1, t0) == 1
    assert mapper.helper_literal(1, t1) == 2
    assert mapper.problem_literal(1, t0) == 11
    assert mapper.problem_literal(2, t1) == 14
    assert mapper.num_variables == 14


def test_all_before_overflow():
    mapper = VariableAddressMapper(1, 1, HelperVariablePosition.ALL_BEFORE,
                                   max_time_points=2)
    tpm = SingleEndedTimePointManager()
    for _ in range(2):
        mapper.helper_literal(1, tpm.acquire_next())
    extra = tpm.acquire_next()
    # problem variables above the reserved helper blocks stay usable
    assert mapper.problem_literal(1, extra) == 2 + 3
    with pytest.raises(SlotOverflowError):
        mapper.helper_literal(1, extra)


def test_zero_is_terminator():
    for position in POSITIONS:
        mapper = VariableAddressMapper(3, 2, position)
        assert mapper.literal_to_variable(0, t1) == 0
        assert mapper.literal_to_variable(0, t1, True) == 0


def test_literal_out_of_block():
    mapper = VariableAddressMapper(2, 1)
    with pytest.raises(ValueError):
        mapper.problem_literal(3, t0)
    with pytest.raises(ValueError):
        mapper.helper_literal(-2, t0)


def test_reset_forgets_slots():
    mapper = VariableAddressMapper(2, 1)
    mapper.problem_literal(1, t1)
    assert mapper.slot_of(t1) == 0
    mapper.reset()
    assert len(mapper) == 0
    mapper.problem_literal(1, t0)
    assert mapper.slot_of(t0) == 0
    assert mapper.slot_of(t1) == 1


@given(st.sampled_from(POSITIONS), st.integers(min_value=1, max_value=5),
       time_points, st.booleans(), st.data())
def test_negation_commutes(position, width, t, is_helper, data):
    mapper = VariableAddressMapper(width, width, position)
    lit = data.draw(st.integers(min_value=1, max_value=width))
    positive = mapper.literal_to_variable(lit, t, is_helper)
    negative = mapper.literal_to_variable(-lit, t, is_helper)
    assert positive > 0
    assert negative == -positive


@given(st.sampled_from(POSITIONS), st.lists(time_points, min_size=1, max_size=30))
def test_slots_are_stable_and_distinct(position, points):
    mapper = VariableAddressMapper(3, 1, position)
    slots = {t: mapper.slot_of(t) for t in points}
    assert len(set(slots.values())) == len(slots)
    for t in reversed(points):
        assert mapper.slot_of(t) == slots[t]


@given(st.sampled_from(POSITIONS), st.lists(time_points, min_size=1, max_size=20,
                                            unique=True))
def test_blocks_are_disjoint(position, points):
    P, H = 3, 2
    mapper = VariableAddressMapper(P, H, position)
    variables = set()
    for t in points:
        for lit in range(1, P + 1):
            variables.add(mapper.problem_literal(lit, t))
        for lit in range(1, H + 1):
            variables.add(mapper.helper_literal(lit, t))
    assert len(variables) == len(points) * (P + H)
    assert min(variables) >= 1
