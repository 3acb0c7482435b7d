from __future__ import annotations

from typing import List, Tuple

from .data_models import RaceCourse, RaceSegment

# Used when a course ships without segments
NEUTRAL_SEGMENT = RaceSegment(distance=0.0, gradient=0.0, difficulty=1.0)


def segment_at(course: RaceCourse, distance: float) -> RaceSegment:
    """
    Returns the segment covering the given cumulative distance.

    Distances past the end of the course resolve to the last segment.
    """
    if not course.segments:
        return NEUTRAL_SEGMENT

    covered = 0.0
    for segment in course.segments:
        if distance <= covered + segment.distance:
            return segment
        covered += segment.distance
    return course.segments[-1]


def elevation_profile(course: RaceCourse) -> List[Tuple[float, float]]:
    """Cumulative (distance, elevation) points, starting at the gun."""
    points = [(0.0, 0.0)]
    distance = 0.0
    elevation = 0.0
    for segment in course.segments:
        distance += segment.distance
        elevation += (segment.gradient / 100.0) * segment.distance
        points.append((distance, elevation))
    return points
