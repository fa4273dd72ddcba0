"""
Synthetic pose frames on a 640x480 canvas.

Pull-up frames face the camera with the left side on the image left; elbow
angles are built exactly by rotating the elbow->shoulder direction. Jump
landing frames place hip, knee and ankle so the knee angle is exact.
"""
from __future__ import annotations

import math
import random

import pytest

from imperfect_coach.keypoints import Keypoint, PoseFrame

WIDTH, HEIGHT = 640, 480
GROUND_Y = 460.0
SHIN = 80.0


def make_frame(points: dict, timestamp=None, score: float = 0.9) -> PoseFrame:
    return PoseFrame(
        keypoints=tuple(Keypoint(name, float(x), float(y), score) for name, (x, y) in points.items()),
        width=WIDTH,
        height=HEIGHT,
        timestamp=timestamp,
    )


def _mirror(p):
    return (WIDTH - p[0], p[1])


def _wrist(shoulder, elbow, angle, length, sign):
    """Wrist whose elbow angle is exactly `angle`, rotated by sign*angle from elbow->shoulder."""
    ux, uy = shoulder[0] - elbow[0], shoulder[1] - elbow[1]
    n = math.hypot(ux, uy)
    ux, uy = ux / n, uy / n
    t = math.radians(sign * angle)
    dx = ux * math.cos(t) - uy * math.sin(t)
    dy = ux * math.sin(t) + uy * math.cos(t)
    return (elbow[0] + length * dx, elbow[1] + length * dy)


def _sides(body: dict, left_angle, right_angle, shoulder, elbow, length, sign) -> dict:
    pts = dict(body)
    lw = _wrist(shoulder, elbow, left_angle, length, sign)
    rw = _mirror(_wrist(shoulder, elbow, right_angle, length, sign))
    pts.update(
        left_shoulder=shoulder,
        right_shoulder=_mirror(shoulder),
        left_elbow=elbow,
        right_elbow=_mirror(elbow),
        left_wrist=lw,
        right_wrist=rw,
    )
    return pts


def hanging_points(left_elbow: float = 170.0, right_elbow: float = 170.0) -> dict:
    body = {
        "nose": (320, 170),
        "left_hip": (290, 320), "right_hip": (350, 320),
        "left_knee": (290, 400), "right_knee": (350, 400),
        "left_ankle": (290, 470), "right_ankle": (350, 470),
    }
    return _sides(body, left_elbow, right_elbow, (280, 200), (280, 140), 60.0, -1)


def top_points(left_elbow: float = 60.0, right_elbow: float = 60.0, chin_over: bool = True) -> dict:
    body = {
        "nose": (320, 50) if chin_over else (320, 90),
        "left_hip": (290, 220), "right_hip": (350, 220),
        "left_knee": (290, 300), "right_knee": (350, 300),
        "left_ankle": (290, 380), "right_ankle": (350, 380),
    }
    return _sides(body, left_elbow, right_elbow, (280, 100), (225, 125), 65.0, -1)


def standing_under_bar_points() -> dict:
    pts = hanging_points()
    pts.update(
        left_elbow=(270, 260), right_elbow=(370, 260),
        left_wrist=(265, 320), right_wrist=(375, 320),
    )
    return pts


def standing_points(lift: float = 0.0) -> dict:
    """Upright jumper; lift moves the whole body up by that many pixels."""
    pts = {
        "nose": (320, 150),
        "left_shoulder": (280, 180), "right_shoulder": (360, 180),
        "left_hip": (290, 300), "right_hip": (350, 300),
        "left_knee": (290, 380), "right_knee": (350, 380),
        "left_ankle": (290, GROUND_Y), "right_ankle": (350, GROUND_Y),
    }
    return {k: (x, y - lift) for k, (x, y) in pts.items()}


def landing_points(left_knee: float = 110.0, right_knee: float = 110.0) -> dict:
    def leg(x, angle, outward):
        half = math.radians(angle / 2.0)
        ankle = (x, GROUND_Y)
        knee = (x + outward * SHIN * math.cos(half), GROUND_Y - SHIN * math.sin(half))
        hip = (x, GROUND_Y - 2 * SHIN * math.sin(half))
        return hip, knee, ankle

    lh, lk, la = leg(290, left_knee, -1)
    rh, rk, ra = leg(350, right_knee, 1)
    hip_y = min(lh[1], rh[1])
    return {
        "nose": (320, hip_y - 150),
        "left_shoulder": (280, hip_y - 120), "right_shoulder": (360, hip_y - 120),
        "left_hip": lh, "right_hip": rh,
        "left_knee": lk, "right_knee": rk,
        "left_ankle": la, "right_ankle": ra,
    }


def without(points: dict, *names: str) -> dict:
    return {k: v for k, v in points.items() if k not in names}


class Frames:
    """Builder namespace handed to tests through the `frames` fixture."""

    make = staticmethod(make_frame)
    without = staticmethod(without)
    hanging_points = staticmethod(hanging_points)
    standing_points = staticmethod(standing_points)

    @staticmethod
    def hanging(left_elbow=170.0, right_elbow=170.0, timestamp=None):
        return make_frame(hanging_points(left_elbow, right_elbow), timestamp)

    @staticmethod
    def top(left_elbow=60.0, right_elbow=60.0, chin_over=True, timestamp=None):
        return make_frame(top_points(left_elbow, right_elbow, chin_over), timestamp)

    @staticmethod
    def under_bar(timestamp=None):
        return make_frame(standing_under_bar_points(), timestamp)

    @staticmethod
    def standing(lift=0.0, timestamp=None):
        return make_frame(standing_points(lift), timestamp)

    @staticmethod
    def landing(left_knee=110.0, right_knee=110.0, timestamp=None):
        return make_frame(landing_points(left_knee, right_knee), timestamp)


@pytest.fixture
def frames():
    return Frames


@pytest.fixture
def rng():
    return random.Random(1234)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
