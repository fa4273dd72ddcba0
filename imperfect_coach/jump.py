"""
Jump rep state machine: GROUNDED -> AIRBORNE -> GROUNDED.
Airborne when the ankles rise a fixed pixel margin above the calibrated
ground level; the rep is scored on landing from peak height and knee bend.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .geometry import angle_deg
from .keypoints import KeypointName as K, PoseFrame
from .results import JumpPhase, ProcessorResult, RepResult, dedupe

logger = logging.getLogger(__name__)

JUMP_KEYPOINTS = (
    K.LEFT_HIP, K.RIGHT_HIP,
    K.LEFT_KNEE, K.RIGHT_KNEE,
    K.LEFT_ANKLE, K.RIGHT_ANKLE,
)

# Rough scale at a typical camera distance.
PIXELS_TO_CM = 0.5

FEEDBACK_NOT_VISIBLE = "Make sure your full body is in view!"
FEEDBACK_CALIBRATING = "Calibrating jump height..."
FEEDBACK_TAKEOFF = "Exploding upward! Keep going!"


@dataclass(frozen=True)
class JumpThresholds:
    min_confidence: float = 0.5
    # Ankles must rise this many px above ground level to count as airborne.
    airborne_px: float = 30.0
    # (min height px, score) from best to worst; below the last bucket scores low_jump_score.
    height_buckets: tuple[tuple[float, int], ...] = ((80.0, 100), (60.0, 85), (40.0, 70), (25.0, 50))
    low_jump_score: int = 25
    # Heights under this are tagged low_jump.
    low_jump_px: float = 40.0
    # (max avg knee angle, score); straighter landings fall through to stiff_landing_score.
    landing_buckets: tuple[tuple[float, int], ...] = ((120.0, 100), (140.0, 85), (160.0, 60))
    stiff_landing_score: int = 30
    landing_asymmetry_deg: float = 20.0
    landing_asymmetry_penalty: int = 20
    landing_score_floor: int = 30
    power_bonus: int = 10
    power_bonus_min_reps: int = 3
    power_bonus_min_px: float = 50.0
    strong_jump_px: float = 60.0
    height_weight: float = 0.6
    landing_weight: float = 0.35


def convert_height(pixels: float, unit: str = "cm") -> float:
    cm = pixels * PIXELS_TO_CM
    if unit == "meters":
        return cm / 100.0
    if unit == "inches":
        return cm / 2.54
    if unit == "feet":
        return cm / 30.48
    return cm


def format_height(pixels: float, unit: str = "cm") -> str:
    value = convert_height(pixels, unit)
    if unit == "meters":
        return f"{value:.2f}m"
    if unit == "inches":
        return f'{value:.1f}"'
    if unit == "feet":
        feet = math.floor(value)
        inches = (value - feet) * 12
        return f"{feet}'{inches:.1f}\"" if feet > 0 else f'{inches:.1f}"'
    return f"{round(value)}cm"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _height_phrase(score: int) -> str:
    if score >= 100:
        return "Incredible height!"
    if score >= 85:
        return "Great jump height!"
    if score >= 70:
        return "Good height!"
    if score >= 50:
        return "Decent jump!"
    return "Try to jump higher!"


def _landing_phrase(score: int) -> str:
    if score >= 100:
        return "Perfect soft landing!"
    if score >= 85:
        return "Good landing technique!"
    if score >= 60:
        return "Bend your knees more on landing."
    return "Much softer landing needed!"


def score_jump(
    jump_height: float,
    left_knee_angle: float,
    right_knee_angle: float,
    internal_reps: int,
    thresholds: Optional[JumpThresholds] = None,
) -> tuple[int, tuple[str, ...], str, dict[str, float]]:
    """
    Score one landed jump. internal_reps is the number of reps completed
    before this one. Returns (score, issues, feedback, details).
    """
    t = thresholds or JumpThresholds()
    issues: list[str] = []

    height_score = t.low_jump_score
    for min_px, bucket_score in t.height_buckets:
        if jump_height >= min_px:
            height_score = bucket_score
            break
    if jump_height < t.low_jump_px:
        issues.append("low_jump")
    height_feedback = _height_phrase(height_score)

    avg_knee = (left_knee_angle + right_knee_angle) / 2.0
    knee_asymmetry = abs(left_knee_angle - right_knee_angle)
    landing_score = t.stiff_landing_score
    for max_angle, bucket_score in t.landing_buckets:
        if avg_knee < max_angle:
            landing_score = bucket_score
            break
    if landing_score == t.stiff_landing_score:
        issues.append("stiff_landing")
    landing_feedback = _landing_phrase(landing_score)

    if knee_asymmetry > t.landing_asymmetry_deg:
        landing_score = max(t.landing_score_floor, landing_score - t.landing_asymmetry_penalty)
        landing_feedback += " Keep both legs even."
        issues.append("asymmetric_landing")

    power_bonus = 0
    if internal_reps >= t.power_bonus_min_reps and jump_height >= t.power_bonus_min_px:
        power_bonus = t.power_bonus
        height_feedback += " Great power endurance!"

    if jump_height >= t.strong_jump_px:
        feedback = height_feedback + (f" {landing_feedback}" if landing_score < 70 else "")
    elif landing_score >= 85:
        feedback = f"{landing_feedback} {height_feedback}"
    else:
        feedback = f"{height_feedback} {landing_feedback}"

    raw = height_score * t.height_weight + landing_score * t.landing_weight + power_bonus
    score = max(0, min(100, _round_half_up(raw)))
    details = {
        "jump_height_px": jump_height,
        "jump_height_cm": convert_height(jump_height, "cm"),
        "landing_knee_angle": avg_knee,
        "asymmetry": knee_asymmetry,
        "height_score": float(height_score),
        "landing_score": float(landing_score),
        "power_bonus": float(power_bonus),
    }
    return score, dedupe(issues), feedback, details


class JumpProcessor:
    initial_phase = JumpPhase.GROUNDED

    def __init__(self, thresholds: Optional[JumpThresholds] = None, ground_level: Optional[float] = None):
        self.thresholds = thresholds or JumpThresholds()
        self.reset()
        self.ground_level = ground_level

    def reset(self) -> None:
        self.phase = JumpPhase.GROUNDED
        self.reps_completed = 0
        self.ground_level: Optional[float] = None
        self.peak_ankle_y: Optional[float] = None

    @property
    def mid_rep(self) -> bool:
        return self.phase is not JumpPhase.GROUNDED

    def process(self, frame: PoseFrame) -> ProcessorResult:
        t = self.thresholds
        if frame.missing(JUMP_KEYPOINTS, t.min_confidence):
            return ProcessorResult.message(FEEDBACK_NOT_VISIBLE)
        if self.ground_level is None:
            return ProcessorResult.message(FEEDBACK_CALIBRATING)

        p = {name: frame.get(name).xy for name in JUMP_KEYPOINTS}
        left_knee = angle_deg(p[K.LEFT_HIP], p[K.LEFT_KNEE], p[K.LEFT_ANKLE])
        right_knee = angle_deg(p[K.RIGHT_HIP], p[K.RIGHT_KNEE], p[K.RIGHT_ANKLE])
        angles = {"left_knee": left_knee, "right_knee": right_knee}

        avg_ankle_y = (p[K.LEFT_ANKLE][1] + p[K.RIGHT_ANKLE][1]) / 2.0
        airborne = avg_ankle_y < self.ground_level - t.airborne_px

        if self.phase is JumpPhase.GROUNDED:
            if not airborne:
                return ProcessorResult.message(None, angles)
            self.phase = JumpPhase.AIRBORNE
            self.peak_ankle_y = avg_ankle_y
            logger.debug("jump: GROUNDED -> AIRBORNE (ankle_y=%.1f ground=%.1f)", avg_ankle_y, self.ground_level)
            return ProcessorResult.transition(JumpPhase.AIRBORNE, FEEDBACK_TAKEOFF, angles)

        if airborne:
            self.peak_ankle_y = min(self.peak_ankle_y if self.peak_ankle_y is not None else avg_ankle_y, avg_ankle_y)
            height = self.ground_level - self.peak_ankle_y
            return ProcessorResult.message(f"Nice height: {format_height(height)}!", angles)

        jump_height = self.ground_level - (self.peak_ankle_y if self.peak_ankle_y is not None else avg_ankle_y)
        score, issues, feedback, details = score_jump(
            jump_height, left_knee, right_knee, self.reps_completed, t
        )
        rep = RepResult(score=score, issues=issues, details=details, timestamp=frame.timestamp)
        self.reps_completed += 1
        self.phase = JumpPhase.GROUNDED
        self.peak_ankle_y = None
        logger.info(
            "jump: rep %s score=%s height_px=%.1f issues=%s",
            self.reps_completed, score, jump_height, list(issues),
        )
        return ProcessorResult.completed(JumpPhase.GROUNDED, rep, feedback, angles)
