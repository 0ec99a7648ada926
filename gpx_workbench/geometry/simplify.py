"""Douglas-Peucker polyline simplification in the ECEF frame."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
from numpy.typing import NDArray

from ..errors import ValidationError
from ..models import Waypoint
from .kernel import MetricArray, to_ecef_array


def chord_distances(
    points: MetricArray, start: NDArray[np.float64], end: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Distance from each row of ``points`` to the segment ``start``-``end``."""

    chord = end - start
    length_sq = float(np.dot(chord, chord))
    offsets = points - start
    if length_sq == 0.0:
        return np.linalg.norm(offsets, axis=1)
    t = np.clip(offsets @ chord / length_sq, 0.0, 1.0)
    projections = start + np.outer(t, chord)
    return np.linalg.norm(points - projections, axis=1)


def simplify_indices(coords: MetricArray, tolerance: float) -> List[int]:
    """Indices of the points Douglas-Peucker keeps, in ascending order.

    Runs on an explicit stack of ``(first, last)`` index ranges so very long,
    nearly collinear inputs cannot exhaust the interpreter's recursion limit.
    """

    count = len(coords)
    if count <= 2:
        return list(range(count))
    keep = np.zeros(count, dtype=bool)
    keep[0] = True
    keep[-1] = True
    stack = [(0, count - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue
        distances = chord_distances(coords[first + 1 : last], coords[first], coords[last])
        # argmax returns the first maximum, so ties go to the earliest point.
        offset = int(np.argmax(distances))
        if distances[offset] > tolerance:
            split = first + 1 + offset
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))
    return [int(i) for i in np.flatnonzero(keep)]


def simplify_points(points: Sequence[Waypoint], tolerance: float) -> List[Waypoint]:
    """Reduce ``points`` so no dropped point deviates more than ``tolerance`` m.

    The first and last points are always kept. The returned list holds the
    input objects; callers that store the result must copy them.
    """

    if tolerance < 0:
        raise ValidationError("Simplification tolerance must not be negative")
    if len(points) <= 2:
        return list(points)
    coords = to_ecef_array(points)
    return [points[i] for i in simplify_indices(coords, tolerance)]


__all__ = ["chord_distances", "simplify_indices", "simplify_points"]
