"""Triangulation of planar profile loops.

We delegate to ``mapbox-earcut`` (the fast ear clipping implementation
used by Mapbox GL). The helpers here normalise a loop of 2D points into
the format earcut expects and hand back triangle indices into the cleaned
loop, so callers can lift the same indices onto caps in 3D.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import mapbox_earcut as _earcut
import numpy as np

from .errors import GeomError, GeomErrorKind

EPSILON = 1e-9

Point2D = Tuple[float, float]


def triangulate_loop(points: Sequence[Sequence[float]]) -> Tuple[np.ndarray, np.ndarray]:
    """Triangulate a simple polygon.

    Returns ``(loop, triangles)``: ``loop`` is the (K, 2) counter-clockwise
    loop with repeated points removed, ``triangles`` is (T, 3) indices into
    it, each triangle counter-clockwise.
    """

    loop = prepare_loop(points, want_ccw=True)
    if len(loop) < 3:
        raise GeomError(GeomErrorKind.INVALID_INPUT,
                        "profile has fewer than 3 distinct points")

    vertices = np.asarray(loop, dtype=np.float64)
    rings = np.asarray([len(loop)], dtype=np.uint32)
    indices = np.asarray(_earcut.triangulate_float64(vertices, rings), dtype=np.int64)
    if len(indices) == 0:
        raise GeomError(GeomErrorKind.INVALID_INPUT,
                        "profile could not be triangulated (self-intersecting or degenerate)")
    triangles = indices.reshape(-1, 3)

    # earcut does not promise a winding; make every triangle CCW
    a, b, c = vertices[triangles[:, 0]], vertices[triangles[:, 1]], vertices[triangles[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    flip = cross < 0
    triangles[flip] = triangles[flip][:, ::-1]
    return vertices, triangles


def prepare_loop(points: Sequence[Sequence[float]], *, want_ccw: bool) -> List[Point2D]:
    loop: List[Point2D] = []
    for pt in points:
        x, y = float(pt[0]), float(pt[1])
        if loop and _near(loop[-1], (x, y)):
            continue
        loop.append((x, y))
    if loop and _near(loop[0], loop[-1]):
        loop.pop()
    if len(loop) < 3:
        return loop
    area = signed_area(loop)
    if want_ccw and area < 0:
        loop.reverse()
    elif not want_ccw and area > 0:
        loop.reverse()
    return loop


def _near(p1: Point2D, p2: Point2D) -> bool:
    return abs(p1[0] - p2[0]) <= EPSILON and abs(p1[1] - p2[1]) <= EPSILON


def signed_area(loop: Sequence[Point2D]) -> float:
    total = 0.0
    for i, (x0, y0) in enumerate(loop):
        x1, y1 = loop[(i + 1) % len(loop)]
        total += x0 * y1 - x1 * y0
    return total / 2.0
