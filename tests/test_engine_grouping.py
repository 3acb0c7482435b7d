from ski_manager.engine import (
    Athlete,
    AthleteCondition,
    AthleteRuntime,
    AthleteStats,
    Contract,
    Role,
    compute_groups,
)


def _runtime(athlete_id: str, distance: float) -> AthleteRuntime:
    athlete = Athlete(
        athlete_id=athlete_id,
        name=f"Skier {athlete_id}",
        age=27,
        potential=80,
        role=Role.DOMESTIQUE,
        base_stats=AthleteStats(70, 70, 70, 70, 70, 70),
        state=AthleteCondition(),
        contract=Contract(salary_per_week=1000, weeks_remaining=10),
        team_id="team-a",
    )
    return AthleteRuntime(athlete=athlete, distance=distance)


def test_gap_between_consecutive_runners_splits_groups():
    runners = [_runtime("a", 100), _runtime("b", 95), _runtime("c", 88), _runtime("d", 70)]
    grouping = compute_groups(runners)

    # a-b gap 5, b-c gap 7, c-d gap 18
    assert grouping.group_of == {"a": 1, "b": 1, "c": 1, "d": 2}
    assert grouping.info[1].leader == "a"
    assert grouping.info[1].size == 3
    assert grouping.info[2].leader == "d"
    assert grouping.info[2].size == 1


def test_every_runner_belongs_to_exactly_one_group():
    runners = [_runtime(str(i), i * 5.0) for i in range(12)]
    grouping = compute_groups(runners)
    assert set(grouping.group_of) == {r.athlete_id for r in runners}
    assert sum(info.size for info in grouping.info.values()) == len(runners)


def test_lanes_round_robin_within_each_group():
    runners = [_runtime("a", 50), _runtime("b", 49), _runtime("c", 48), _runtime("d", 47), _runtime("e", 10)]
    grouping = compute_groups(runners)

    assert grouping.lanes["a"] == -0.6
    assert grouping.lanes["b"] == 0.0
    assert grouping.lanes["c"] == 0.6
    assert grouping.lanes["d"] == -0.6
    # New group restarts the rotation
    assert grouping.lanes["e"] == -0.6


def test_lane_ahead_tracks_previous_runner_in_same_lane():
    runners = [_runtime("a", 50), _runtime("b", 49), _runtime("c", 48), _runtime("d", 47), _runtime("e", 10)]
    grouping = compute_groups(runners)

    assert grouping.lane_ahead == {"d": 50}


def test_equal_distances_keep_insertion_order():
    runners = [_runtime("z", 0), _runtime("m", 0), _runtime("a", 0)]
    grouping = compute_groups(runners)

    assert grouping.info[1].leader == "z"
    assert grouping.lanes["z"] == -0.6
    assert grouping.lanes["m"] == 0.0
    assert grouping.lanes["a"] == 0.6
    assert grouping.members(1) == ["z", "m", "a"]


def test_empty_field_produces_empty_grouping():
    grouping = compute_groups([])
    assert grouping.group_of == {}
    assert grouping.info == {}
