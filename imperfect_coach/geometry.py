"""
Planar joint geometry used by readiness checks and rep processors.
Points are (x, y) in image pixel coordinates (y grows downward).
"""
from __future__ import annotations

import math
from typing import Iterable, Optional

Point = tuple[float, float]

# Arms shorter than this (px) are treated as zero-length.
_EPS = 1e-9


def angle_deg(a: Point, b: Point, c: Point) -> float:
    """
    Angle ABC at vertex b, in degrees within [0, 180].

    The cosine is clamped to [-1, 1] before acos so near-collinear points
    never produce NaN. If either arm (b->a or b->c) has zero length the
    angle is undefined; 0.0 is returned by convention.
    """
    ba = (a[0] - b[0], a[1] - b[1])
    bc = (c[0] - b[0], c[1] - b[1])
    norm_ba = math.hypot(ba[0], ba[1])
    norm_bc = math.hypot(bc[0], bc[1])
    denom = norm_ba * norm_bc
    if denom < _EPS:
        return 0.0
    cos_val = (ba[0] * bc[0] + ba[1] * bc[1]) / denom
    cos_val = max(-1.0, min(1.0, cos_val))
    return math.degrees(math.acos(cos_val))


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def mean(values: Iterable[float]) -> Optional[float]:
    vals = list(values)
    if not vals:
        return None
    return sum(vals) / len(vals)
