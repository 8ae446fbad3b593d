import random

import pytest

from conftest import build_catalog, lab, theory
from timetabler.core.exceptions import IncompleteCoverage
from timetabler.schemas.timetable import Guidelines, ScheduleParameters
from timetabler.services.commitments import FacultyCommitmentMatrix
from timetabler.services.lab_planner import LabPlacementPlanner
from timetabler.services.planning import PlanningState
from timetabler.services.theory_planner import TheoryDistributionPlanner

DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def _state(catalog, periods_per_day=6, busy=None, **guidelines):
    parameters = ScheduleParameters(
        periods_per_day=periods_per_day,
        working_days=DAYS,
        guidelines=Guidelines(**guidelines),
    )
    return PlanningState(parameters=parameters, catalog=catalog, commitments=FacultyCommitmentMatrix(busy or {}))


def _plan(state, seed=11):
    rng = random.Random(seed)
    LabPlacementPlanner(state, rng=rng).plan()
    return TheoryDistributionPlanner(state, rng=rng).plan()


def _four_theory_catalog():
    return build_catalog(
        [lab("s-lab", 2), theory("s-math"), theory("s-phy"), theory("s-chem"), theory("s-eng")],
        [("f-lab", "s-lab"), ("f-math", "s-math"), ("f-phy", "s-phy"), ("f-chem", "s-chem"), ("f-eng", "s-eng")],
    )


def test_weekly_targets_share_remaining_slots():
    state = _state(_four_theory_catalog())
    LabPlacementPlanner(state, rng=random.Random(1)).plan()

    targets = TheoryDistributionPlanner(state, rng=random.Random(1)).weekly_targets()

    assert targets == {"s-math": 8, "s-phy": 8, "s-chem": 8, "s-eng": 8}


def test_weekly_target_never_drops_below_three():
    subjects = [theory(f"s-{index}") for index in range(20)]
    catalog = build_catalog(subjects, [(f"f-{index}", f"s-{index}") for index in range(20)])

    targets = TheoryDistributionPlanner(_state(catalog), rng=random.Random(1)).weekly_targets()

    assert set(targets.values()) == {3}


@pytest.mark.parametrize("seed", [1, 2, 3, 99])
def test_fills_every_slot_and_records_same_day_repeats(seed):
    state = _state(_four_theory_catalog())

    relaxed = _plan(state, seed)
    schedule = state.to_schedule()

    assert state.missing_slots() == []
    assert sum(len(entries) for entries in schedule.values()) == 36

    relaxed_by_day = {}
    for slot in relaxed:
        relaxed_by_day.setdefault(slot.day, []).append(slot.subject_id)

    for day, entries in schedule.items():
        assert [entry.period for entry in entries] == [1, 2, 3, 4, 5, 6]
        theory_ids = [entry.subject_id for entry in entries if not entry.is_lab]
        repeats = len(theory_ids) - len(set(theory_ids))
        assert repeats == len(relaxed_by_day.get(day, []))
        for previous, current in zip(entries, entries[1:]):
            if not current.is_lab:
                assert previous.subject_id != current.subject_id


def test_enough_subjects_means_no_same_day_repeats():
    subjects = [lab("s-lab", 2)] + [theory(f"s-{index}") for index in range(6)]
    assignments = [("f-lab", "s-lab")] + [(f"f-{index}", f"s-{index}") for index in range(6)]
    state = _state(build_catalog(subjects, assignments))

    relaxed = _plan(state)

    assert relaxed == []
    for entries in state.to_schedule().values():
        theory_ids = [entry.subject_id for entry in entries if not entry.is_lab]
        assert len(theory_ids) == len(set(theory_ids))


def test_sports_is_pinned_to_last_period_on_friday():
    catalog = build_catalog(
        [lab("s-lab", 2), theory("s-math"), theory("s-phy"), theory("s-pe", name="Sports & Games")],
        [("f-lab", "s-lab"), ("f-math", "s-math"), ("f-phy", "s-phy"), ("f-pe", "s-pe")],
    )
    state = _state(catalog)

    _plan(state)

    assert state.subject_at("friday", 6) == "s-pe"
    assert state.grid["friday"][6].faculty_id == "f-pe"


def test_pinning_can_be_switched_off():
    catalog = build_catalog([theory("s-pe", name="Sports")], [("f-pe", "s-pe")])
    state = _state(catalog, sports_last_period_predefined_day="")
    planner = TheoryDistributionPlanner(state, rng=random.Random(1))
    planner.remaining = planner.weekly_targets()

    planner._apply_pinned_slot()

    assert state.occupied_count() == 0


def test_pinned_slot_skipped_when_faculty_busy_elsewhere():
    catalog = build_catalog([theory("s-pe", name="Sports"), theory("s-math")], [("f-pe", "s-pe"), ("f-math", "s-math")])
    state = _state(catalog, busy={("friday", 6): frozenset({"f-pe"})})

    _plan(state)

    assert state.subject_at("friday", 6) == "s-math"


def test_opting_out_of_fallback_leaves_gaps():
    state = _state(_four_theory_catalog(), allow_same_day_repeat_fallback=False)

    with pytest.raises(IncompleteCoverage) as exc_info:
        _plan(state)

    assert exc_info.value.missing_slots
    assert exc_info.value.status_code == 422


def test_repeats_allowed_when_guideline_is_off():
    state = _state(_four_theory_catalog(), no_same_class_subject_repeat_day=False)

    relaxed = _plan(state)

    assert relaxed == []
    assert state.missing_slots() == []


def test_busy_faculty_is_never_placed():
    catalog = build_catalog([theory("s-math"), theory("s-phy")], [("f-math", "s-math"), ("f-phy", "s-phy")])
    state = _state(catalog, busy={("monday", 3): frozenset({"f-math"})})

    _plan(state)

    assert state.grid["monday"][3].faculty_id == "f-phy"


def test_faculty_free_in_previous_period_is_preferred():
    catalog = build_catalog([theory("s-math"), theory("s-phy")], [("f-1", "s-math"), ("f-2", "s-math"), ("f-3", "s-phy")])
    state = _state(catalog)
    state.place("monday", 1, "s-math", "f-1", is_lab=False)
    planner = TheoryDistributionPlanner(state, rng=random.Random(1))

    assert planner._choose_faculty("s-math", "monday", 2) == "f-2"


def test_faculty_busy_in_another_class_previous_period_sorts_last():
    catalog = build_catalog([theory("s-math")], [("f-1", "s-math"), ("f-2", "s-math")])
    state = _state(catalog, busy={("monday", 1): frozenset({"f-1"})})
    planner = TheoryDistributionPlanner(state, rng=random.Random(1))

    assert planner._choose_faculty("s-math", "monday", 2) == "f-2"


def test_back_to_back_allowed_when_guideline_is_off():
    catalog = build_catalog([theory("s-math")], [("f-1", "s-math"), ("f-2", "s-math")])
    state = _state(catalog, minimize_consecutive_faculty_periods=False)
    state.place("monday", 1, "s-math", "f-1", is_lab=False)
    planner = TheoryDistributionPlanner(state, rng=random.Random(1))

    assert planner._choose_faculty("s-math", "monday", 2) == "f-1"
