import pytest

from ski_manager.engine import (
    DEFAULT_BALANCE,
    Athlete,
    AthleteCondition,
    AthleteStats,
    Contract,
    Pacing,
    RaceCourse,
    RaceInput,
    RacePrep,
    RaceSegment,
    RaceSimulator,
    RaceStartState,
    Role,
    SnapshotTimeline,
    compute_groups,
    continue_race,
    simulate_race,
)
from ski_manager.reference_data import DEFAULT_REFERENCE_REGISTRY

SMALL_COURSE = RaceCourse(
    course_id="small",
    name="Small Loop",
    total_distance=1000.0,
    segments=(
        RaceSegment(distance=400, gradient=1, difficulty=2),
        RaceSegment(distance=300, gradient=4, difficulty=3, is_climb=True),
        RaceSegment(distance=300, gradient=-2, difficulty=1, is_sprint=True),
    ),
)


def _athlete(athlete_id: str, role: Role = Role.DOMESTIQUE, fatigue: float = 20, **stats) -> Athlete:
    base = dict(endurance=80, climbing=78, flat=75, sprint=70, technique=74, race_iq=70)
    base.update(stats)
    return Athlete(
        athlete_id=athlete_id,
        name=f"Skier {athlete_id}",
        age=27,
        potential=85,
        role=role,
        base_stats=AthleteStats(**base),
        state=AthleteCondition(form=0, fatigue=fatigue, morale=70),
        contract=Contract(salary_per_week=1000, weeks_remaining=10),
        team_id="team-a",
    )


def _field(count: int = 6):
    return [_athlete(f"a{i}", endurance=70 + i * 3, flat=70 + i * 2) for i in range(count)]


def test_small_race_reaches_the_finish():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=[_athlete("solo")]))

    assert len(snapshots) > 1
    assert snapshots[-1].athletes[0].distance >= 999


def test_snapshot_times_strictly_increase():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=_field()))
    times = [s.t for s in snapshots]
    assert times[0] == 0.0
    assert all(b > a for a, b in zip(times, times[1:]))


def test_every_athlete_finishes_in_the_closing_snapshot():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=_field()))
    assert all(a.distance >= SMALL_COURSE.total_distance for a in snapshots[-1].athletes)
    assert len(snapshots[-1].athletes) == 6


def test_energy_stays_in_bounds_and_distance_never_decreases():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=_field()))
    last = {}
    for snapshot in snapshots:
        for athlete in snapshot.athletes:
            assert 0.0 <= athlete.energy <= 100.0
            assert athlete.distance <= SMALL_COURSE.total_distance
            assert athlete.distance >= last.get(athlete.athlete_id, 0.0)
            last[athlete.athlete_id] = athlete.distance


def test_snapshots_carry_groups_and_lanes():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=_field(3)))
    first = snapshots[0]
    assert [a.lane_offset for a in first.athletes] == [-0.6, 0.0, 0.6]
    assert all(a.group_id == 1 for a in first.athletes)


def test_identical_inputs_produce_identical_snapshots():
    race_input = RaceInput(course=SMALL_COURSE, athletes=_field())
    assert simulate_race(race_input) == simulate_race(race_input)


def test_better_climber_leads_on_a_climbing_course():
    course = RaceCourse(
        course_id="wall",
        name="The Wall",
        total_distance=1500.0,
        segments=(RaceSegment(distance=1500, gradient=4, difficulty=2, is_climb=True),),
    )
    strong = _athlete("strong", role=Role.CAPTAIN, fatigue=0, climbing=95)
    weak = _athlete("weak", role=Role.CAPTAIN, fatigue=0, climbing=70)
    snapshots = simulate_race(RaceInput(course=course, athletes=[strong, weak]))

    compared = 0
    for snapshot in snapshots:
        s = snapshot.athlete("strong")
        w = snapshot.athlete("weak")
        if snapshot.t == 0 or s.distance >= course.total_distance or w.distance >= course.total_distance:
            continue
        assert s.distance > w.distance
        compared += 1
    assert compared > 10


def test_aggressive_pacing_spends_more_energy():
    steady = simulate_race(RaceInput(course=SMALL_COURSE, athletes=[_athlete("solo")]))
    aggressive = simulate_race(
        RaceInput(
            course=SMALL_COURSE,
            athletes=[_athlete("solo")],
            prep=RacePrep(race_id="r", pacing=Pacing.AGGRESSIVE),
        )
    )
    assert aggressive[1].athletes[0].energy < steady[1].athletes[0].energy
    assert aggressive[-1].t < steady[-1].t


def test_duplicate_and_missing_athletes_are_filtered():
    solo = _athlete("solo")
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=[solo, None, solo]))
    assert [a.athlete_id for a in snapshots[0].athletes] == ["solo"]


def test_empty_roster_yields_single_snapshot():
    snapshots = simulate_race(RaceInput(course=SMALL_COURSE, athletes=[]))
    assert len(snapshots) == 1
    assert snapshots[0].t == 0.0
    assert snapshots[0].athletes == ()


def test_zero_distance_course_yields_single_snapshot():
    course = RaceCourse(course_id="none", name="None", total_distance=0.0)
    snapshots = simulate_race(RaceInput(course=course, athletes=_field(2)))
    assert len(snapshots) == 1


def test_tick_cap_stops_the_race_and_warns(capsys):
    simulator = RaceSimulator(RaceInput(course=SMALL_COURSE, athletes=_field(2)))
    snapshots = simulator.run_until_finished(max_ticks=3)

    assert len(snapshots) == 4
    assert "exceeded max ticks" in capsys.readouterr().out
    assert snapshots[-1].athletes[0].distance < SMALL_COURSE.total_distance


def test_simulator_records_into_supplied_timeline():
    timeline = SnapshotTimeline()
    simulator = RaceSimulator(RaceInput(course=SMALL_COURSE, athletes=_field(2)), timeline=timeline)
    snapshot = simulator.tick()

    assert len(timeline) == 1
    assert timeline[0] == snapshot
    assert all(state.distance > 0 for state in simulator.states)


def test_continue_race_resumes_from_state():
    athletes = [_athlete("a"), _athlete("b"), _athlete("c")]
    start_state = [
        RaceStartState(athlete_id="a", distance=500.0, energy=80.0, lane_offset=0.0),
        RaceStartState(athlete_id="b", distance=480.0, energy=75.0, lane_offset=0.6),
        RaceStartState(athlete_id="ghost", distance=900.0, energy=50.0),
    ]
    snapshots = continue_race(RaceInput(course=SMALL_COURSE, athletes=athletes), start_state, start_time=120.0)

    first = snapshots[0]
    assert first.t == 120.0
    assert first.athlete("a").distance == 500.0
    assert first.athlete("a").energy == 80.0
    assert first.athlete("c").distance == 0.0
    assert first.athlete("ghost") is None
    assert all(a.distance >= SMALL_COURSE.total_distance for a in snapshots[-1].athletes)


def test_tick_budget_covers_a_race_at_the_speed_floor():
    marathon = RaceCourse(
        course_id="long",
        name="Long Haul",
        total_distance=90000.0,
        segments=(RaceSegment(distance=90000, gradient=0, difficulty=2),),
    )
    floor_ticks = 90000.0 / (DEFAULT_BALANCE.speed_floor * DEFAULT_BALANCE.tick_seconds)

    budget = RaceSimulator(RaceInput(course=marathon, athletes=[_athlete("solo")])).tick_budget()
    assert budget > floor_ticks
    assert budget > DEFAULT_BALANCE.max_ticks

    short = RaceSimulator(RaceInput(course=SMALL_COURSE, athletes=[_athlete("solo")]))
    assert short.tick_budget() == DEFAULT_BALANCE.max_ticks


@pytest.mark.parametrize("course_id", sorted(DEFAULT_REFERENCE_REGISTRY.courses()))
def test_every_reference_course_finishes_without_the_cap(course_id, capsys):
    registry = DEFAULT_REFERENCE_REGISTRY
    course = registry.course(course_id)
    snapshots = simulate_race(
        RaceInput(
            course=course,
            athletes=registry.athletes(),
            conditions=registry.conditions_for(course_id),
            equipment=registry.equipment(),
        )
    )

    assert "exceeded max ticks" not in capsys.readouterr().out
    final = snapshots[-1]
    assert len(final.athletes) == len(registry.athletes())
    assert all(a.distance >= course.total_distance for a in final.athletes)


def test_same_lane_runners_keep_their_gap_through_a_race():
    flat = RaceCourse(
        course_id="flat3k",
        name="Flat 3k",
        total_distance=3000.0,
        segments=(RaceSegment(distance=3000, gradient=0, difficulty=2),),
    )
    simulator = RaceSimulator(RaceInput(course=flat, athletes=_field(12)))
    gap = DEFAULT_BALANCE.min_lane_gap
    nudge = DEFAULT_BALANCE.min_blocked_progress

    checked = 0
    while not simulator.is_finished():
        groups = compute_groups(simulator.states, DEFAULT_BALANCE.group_gap, DEFAULT_BALANCE.lane_offsets)
        before = {state.athlete_id: state.distance for state in simulator.states}
        simulator.tick()
        after = {state.athlete_id: state.distance for state in simulator.states}

        for athlete_id, ahead in groups.lane_ahead.items():
            # The gap is kept to where the runner ahead stood when the tick began,
            # except that a boxed-in runner still moves forward by the minimum nudge.
            limit = max(before[athlete_id] + nudge, ahead - gap)
            assert after[athlete_id] <= limit + 1e-9
            if before[athlete_id] + nudge <= ahead - gap:
                assert ahead - after[athlete_id] >= gap - 1e-9
            checked += 1

    assert checked > 100
