# utils/overlap.py
from __future__ import annotations

from typing import Sequence

from errors import InvalidSegment
from utils.segments import Segment, route_waypoints


def waypoint_index(waypoints: Sequence[str], name: str) -> int:
    try:
        return list(waypoints).index(name)
    except ValueError:
        raise InvalidSegment(f"'{name}' is not a waypoint of this route", waypoint=name) from None


def segment_interval(waypoints: Sequence[str], segment: Segment) -> tuple[int, int]:
    """Half-open index interval [start, end) of a segment in waypoint order."""
    a = waypoint_index(waypoints, segment.origin)
    b = waypoint_index(waypoints, segment.destination)
    return (a, b) if a <= b else (b, a)


def intervals_overlap(a: tuple[int, int], b: tuple[int, int]) -> bool:
    if a[0] == a[1] or b[0] == b[1]:
        return False
    # strict: [A,B) and [B,D) only touch at B
    return a[0] < b[1] and b[0] < a[1]


def overlaps(route, a: Segment, b: Segment) -> bool:
    W = route_waypoints(route)
    return intervals_overlap(segment_interval(W, a), segment_interval(W, b))
