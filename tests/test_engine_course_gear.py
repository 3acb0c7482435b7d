import pytest

from ski_manager.engine import (
    EquipmentInventory,
    EquipmentItem,
    EquipmentType,
    RaceCourse,
    RaceSegment,
    elevation_profile,
    resolve_gear,
    segment_at,
)
from ski_manager.engine.course import NEUTRAL_SEGMENT


def _course() -> RaceCourse:
    return RaceCourse(
        course_id="test",
        name="Test Loop",
        total_distance=1000.0,
        segments=(
            RaceSegment(distance=400, gradient=1, difficulty=2),
            RaceSegment(distance=300, gradient=4, difficulty=3, is_climb=True),
            RaceSegment(distance=300, gradient=-2, difficulty=1, is_sprint=True),
        ),
    )


def test_segment_lookup_uses_cumulative_bounds():
    course = _course()
    assert segment_at(course, 0).gradient == 1
    assert segment_at(course, 400).gradient == 1
    assert segment_at(course, 400.1).gradient == 4
    assert segment_at(course, 700).gradient == 4
    assert segment_at(course, 850).is_sprint


def test_segment_lookup_past_the_end_returns_last_segment():
    course = _course()
    assert segment_at(course, 5000) == course.segments[-1]


def test_course_without_segments_yields_neutral_flat_segment():
    course = RaceCourse(course_id="flat", name="Flat", total_distance=500.0)
    segment = segment_at(course, 250)
    assert segment is NEUTRAL_SEGMENT
    assert segment.gradient == 0
    assert segment.difficulty == 1


def test_elevation_profile_accumulates_gradients():
    points = elevation_profile(_course())
    assert points[0] == (0.0, 0.0)
    assert points[1] == pytest.approx((400.0, 4.0))
    assert points[2] == pytest.approx((700.0, 16.0))
    assert points[3] == pytest.approx((1000.0, 10.0))


def _inventory() -> EquipmentInventory:
    return EquipmentInventory(
        items=(
            EquipmentItem("ski-fast", "Fast", EquipmentType.SKI, grip=60, glide=100),
            EquipmentItem("wax-fast", "Fast Wax", EquipmentType.WAX, grip=60, glide=100),
            EquipmentItem("ski-grip", "Grippy", EquipmentType.SKI, grip=90, glide=40),
        )
    )


def test_missing_equipment_falls_back_to_neutral_gear():
    gear = resolve_gear(None)
    assert gear.grip_mod == pytest.approx(0.0)
    assert gear.glide_mod == pytest.approx(1.04)

    unknown = resolve_gear(_inventory(), "nope", "also-nope")
    assert unknown == gear


def test_gear_modifiers_follow_grip_and_glide():
    gear = resolve_gear(_inventory(), "ski-grip", None)
    # grip 90 + 70, glide 40 + 70
    assert gear.grip_mod == pytest.approx((140 - 160) / 500)
    assert gear.glide_mod == pytest.approx(0.9 + (110 / 200) * 0.2)


def test_glide_modifier_is_clamped():
    gear = resolve_gear(_inventory(), "ski-fast", "wax-fast")
    assert gear.glide_mod == pytest.approx(1.1)
    assert gear.grip_mod == pytest.approx(20 / 500)
