# utils/segments.py
"""
Sellable origin→destination pairs of a route.

A route's waypoints are ``[origin, *stops, destination]``; any ordered pair
i < j is a candidate segment, except pairs that stay inside one city
("Acapulco - Centro" → "Acapulco - Terminal"), which carry a rider nowhere.
"""
from __future__ import annotations

from typing import Callable, Iterable, NamedTuple, Sequence

DEFAULT_CITY_SEPARATOR = " - "


class Segment(NamedTuple):
    origin: str
    destination: str


def city_of(waypoint: str, separator: str = DEFAULT_CITY_SEPARATOR) -> str:
    """'Acapulco - Centro' -> 'Acapulco'; names without the separator are their own city."""
    name = (waypoint or "").strip()
    if separator and separator in name:
        return name.split(separator, 1)[0].strip()
    return name


def same_city(a: str, b: str, separator: str = DEFAULT_CITY_SEPARATOR) -> bool:
    return city_of(a, separator) == city_of(b, separator)


def city_matcher(separator: str) -> Callable[[str, str], bool]:
    """same_city bound to a configured separator."""
    def _match(a: str, b: str) -> bool:
        return same_city(a, b, separator)
    return _match


def route_waypoints(route) -> list[str]:
    """Accepts a Route model or anything with origin/stops/destination."""
    waypoints = getattr(route, "waypoints", None)
    if waypoints is not None:
        return list(waypoints)
    return [route.origin, *(route.stops or []), route.destination]


def generate_segments(
    route,
    same_place: Callable[[str, str], bool] = same_city,
) -> list[Segment]:
    W = route_waypoints(route)
    out: list[Segment] = []
    for i in range(len(W)):
        for j in range(i + 1, len(W)):
            if same_place(W[i], W[j]):
                continue
            out.append(Segment(W[i], W[j]))

    # degenerate route: still sell the direct run
    if not out:
        out.append(Segment(route.origin, route.destination))
    return out


def group_segments_by_city(
    segments: Iterable[Segment],
    separator: str = DEFAULT_CITY_SEPARATOR,
) -> list[dict]:
    """
    Group segments by (origin city, destination city), keeping first-seen order:
      [{"origin_city": ..., "destination_city": ..., "segments": [Segment, ...]}, ...]
    """
    groups: dict[tuple[str, str], list[Segment]] = {}
    for seg in segments:
        key = (city_of(seg.origin, separator), city_of(seg.destination, separator))
        groups.setdefault(key, []).append(seg)
    return [
        {"origin_city": o, "destination_city": d, "segments": segs}
        for (o, d), segs in groups.items()
    ]


def find_segment(segments: Sequence[Segment], origin: str, destination: str) -> Segment | None:
    for seg in segments:
        if seg.origin == origin and seg.destination == destination:
            return seg
    return None
