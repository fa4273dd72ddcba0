"""
Pull-up rep state machine: HANGING -> PULLED_UP -> HANGING.
A rep counts only when the chin clears the wrists at the top and both arms
re-extend at the bottom; it is scored at the bottom transition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .geometry import angle_deg
from .keypoints import KeypointName as K, PoseFrame
from .results import ProcessorResult, PullupPhase, RepResult, SpeakHint, dedupe

logger = logging.getLogger(__name__)

PULLUP_KEYPOINTS = (
    K.NOSE,
    K.LEFT_WRIST, K.RIGHT_WRIST,
    K.LEFT_ELBOW, K.RIGHT_ELBOW,
    K.LEFT_SHOULDER, K.RIGHT_SHOULDER,
    K.LEFT_HIP, K.RIGHT_HIP,
    K.LEFT_KNEE, K.RIGHT_KNEE,
    K.LEFT_ANKLE, K.RIGHT_ANKLE,
)

# Spoken names for groups of keypoints, in head-to-toe order.
_BODY_PARTS = (
    ("head", (K.NOSE,)),
    ("hands", (K.LEFT_WRIST, K.RIGHT_WRIST)),
    ("elbows", (K.LEFT_ELBOW, K.RIGHT_ELBOW)),
    ("shoulders", (K.LEFT_SHOULDER, K.RIGHT_SHOULDER)),
    ("hips", (K.LEFT_HIP, K.RIGHT_HIP)),
    ("knees", (K.LEFT_KNEE, K.RIGHT_KNEE)),
    ("feet", (K.LEFT_ANKLE, K.RIGHT_ANKLE)),
)

FEEDBACK_CHIN = "Get your chin over the bar!"
FEEDBACK_EVEN = "Pull evenly with both arms!"
FEEDBACK_EXTEND = "Full extension at the bottom!"
FEEDBACK_FIRST_REP = "Great first pull-up! You're building strength!"
FEEDBACK_LEARNING_REP = "Excellent! Nice effort!"


@dataclass(frozen=True)
class PullupThresholds:
    min_confidence: float = 0.5
    # Top position: both shoulder (hip-shoulder-elbow) and elbow angles below these.
    top_shoulder_angle: float = 85.0
    top_elbow_angle: float = 130.0
    # Bottom position: both elbows above this completes the rep.
    extended_elbow_angle: float = 150.0
    # Either elbow below this at the bottom is a partial range of motion.
    full_extension_angle: float = 155.0
    asymmetry_deg: float = 30.0
    asymmetry_penalty: int = 30
    partial_bottom_penalty: int = 25
    # Reps during which corrective cues are held back; 0 disables.
    learning_reps: int = 0


def _visibility_feedback(missing: list[str]) -> str:
    parts = [label for label, names in _BODY_PARTS if any(n in missing for n in names)]
    if len(parts) > 2 or not parts:
        return "Step back. Make sure you're fully in view."
    return f"Can't see your {' & '.join(parts)}. Make sure you're fully in view."


def pullup_angles(frame: PoseFrame) -> dict[str, float]:
    """Joint angles for the pull-up; caller guarantees all PULLUP_KEYPOINTS exist."""
    p = {name: frame.get(name).xy for name in PULLUP_KEYPOINTS}
    return {
        "left_elbow": angle_deg(p[K.LEFT_SHOULDER], p[K.LEFT_ELBOW], p[K.LEFT_WRIST]),
        "right_elbow": angle_deg(p[K.RIGHT_SHOULDER], p[K.RIGHT_ELBOW], p[K.RIGHT_WRIST]),
        "left_shoulder": angle_deg(p[K.LEFT_HIP], p[K.LEFT_SHOULDER], p[K.LEFT_ELBOW]),
        "right_shoulder": angle_deg(p[K.RIGHT_HIP], p[K.RIGHT_SHOULDER], p[K.RIGHT_ELBOW]),
        "left_hip": angle_deg(p[K.LEFT_SHOULDER], p[K.LEFT_HIP], p[K.LEFT_KNEE]),
        "right_hip": angle_deg(p[K.RIGHT_SHOULDER], p[K.RIGHT_HIP], p[K.RIGHT_KNEE]),
        "left_knee": angle_deg(p[K.LEFT_HIP], p[K.LEFT_KNEE], p[K.LEFT_ANKLE]),
        "right_knee": angle_deg(p[K.RIGHT_HIP], p[K.RIGHT_KNEE], p[K.RIGHT_ANKLE]),
    }


class PullupProcessor:
    initial_phase = PullupPhase.HANGING

    def __init__(self, thresholds: Optional[PullupThresholds] = None):
        self.thresholds = thresholds or PullupThresholds()
        self.reset()

    def reset(self) -> None:
        self.phase = PullupPhase.HANGING
        self.reps_completed = 0
        self._rep_asymmetry = 0.0
        self._rep_min_elbow: Optional[float] = None

    @property
    def mid_rep(self) -> bool:
        return self.phase is not PullupPhase.HANGING

    def process(self, frame: PoseFrame) -> ProcessorResult:
        t = self.thresholds
        lw, rw = frame.get(K.LEFT_WRIST), frame.get(K.RIGHT_WRIST)
        ls, rs = frame.get(K.LEFT_SHOULDER), frame.get(K.RIGHT_SHOULDER)
        if lw is None or rw is None or ls is None or rs is None:
            return ProcessorResult.message(_visibility_feedback(frame.missing(PULLUP_KEYPOINTS, t.min_confidence)))

        avg_wrist_y = (lw.y + rw.y) / 2.0
        avg_shoulder_y = (ls.y + rs.y) / 2.0
        if avg_wrist_y >= avg_shoulder_y:
            if self.phase is PullupPhase.PULLED_UP:
                logger.debug("pullup: left the bar mid-rep, rep discarded")
            self._abandon_rep()
            return ProcessorResult.not_applicable()

        missing = frame.missing(PULLUP_KEYPOINTS, t.min_confidence)
        if missing:
            return ProcessorResult.message(_visibility_feedback(missing))

        angles = pullup_angles(frame)
        left_elbow, right_elbow = angles["left_elbow"], angles["right_elbow"]
        learning = self.reps_completed < t.learning_reps

        chin_over = frame.get(K.NOSE).y < avg_wrist_y
        pulled_up = (
            angles["left_shoulder"] < t.top_shoulder_angle
            and angles["right_shoulder"] < t.top_shoulder_angle
            and left_elbow < t.top_elbow_angle
            and right_elbow < t.top_elbow_angle
        )

        if self.phase is PullupPhase.HANGING:
            # Asymmetry counts on the way up, through the transition frame.
            asymmetry = abs(left_elbow - right_elbow)
            self._rep_asymmetry = max(self._rep_asymmetry, asymmetry)
            feedback: Optional[str] = None
            speak: Optional[SpeakHint] = None
            if asymmetry > t.asymmetry_deg and not learning:
                feedback = FEEDBACK_EVEN
                speak = SpeakHint("asymmetry", "Pull evenly")
            if not pulled_up:
                return ProcessorResult.message(feedback, angles, speak)
            if not chin_over:
                # partial_top_rom is cued but carries no score penalty.
                return ProcessorResult.message(FEEDBACK_CHIN, angles, SpeakHint("partial_top_rom", "Higher"))
            self.phase = PullupPhase.PULLED_UP
            self._rep_min_elbow = min(left_elbow, right_elbow)
            logger.debug("pullup: HANGING -> PULLED_UP (elbows %.1f/%.1f)", left_elbow, right_elbow)
            return ProcessorResult.transition(PullupPhase.PULLED_UP, feedback, angles, speak)

        low = min(left_elbow, right_elbow)
        self._rep_min_elbow = low if self._rep_min_elbow is None else min(self._rep_min_elbow, low)
        if left_elbow > t.extended_elbow_angle and right_elbow > t.extended_elbow_angle:
            return self._complete(frame, angles, learning)
        return ProcessorResult.message(None, angles)

    def _abandon_rep(self) -> None:
        self.phase = PullupPhase.HANGING
        self._rep_asymmetry = 0.0
        self._rep_min_elbow = None

    def _complete(
        self,
        frame: PoseFrame,
        angles: dict[str, float],
        learning: bool,
    ) -> ProcessorResult:
        t = self.thresholds
        left_elbow, right_elbow = angles["left_elbow"], angles["right_elbow"]
        issues: list[str] = []
        if self._rep_asymmetry > t.asymmetry_deg:
            issues.append("asymmetry")
        partial_bottom = left_elbow < t.full_extension_angle or right_elbow < t.full_extension_angle
        if partial_bottom:
            issues.append("partial_bottom_rom")

        score = 100
        if "asymmetry" in issues:
            score -= t.asymmetry_penalty
        if partial_bottom:
            score -= t.partial_bottom_penalty
        score = max(0, score)

        rep = RepResult(
            score=score,
            issues=dedupe(issues),
            details={
                "peak_elbow_flexion": self._rep_min_elbow if self._rep_min_elbow is not None else min(left_elbow, right_elbow),
                "bottom_elbow_extension": max(left_elbow, right_elbow),
                "asymmetry": self._rep_asymmetry,
            },
            timestamp=frame.timestamp,
        )
        self.reps_completed += 1
        self._abandon_rep()
        logger.info("pullup: rep %s score=%s issues=%s", self.reps_completed, score, list(rep.issues))

        feedback: Optional[str] = None
        speak: Optional[SpeakHint] = None
        if self.reps_completed == 1:
            feedback = FEEDBACK_FIRST_REP
        elif learning:
            feedback = FEEDBACK_LEARNING_REP
        elif partial_bottom:
            feedback = FEEDBACK_EXTEND
            speak = SpeakHint("partial_bottom_rom", "Full extension")
        return ProcessorResult.completed(PullupPhase.HANGING, rep, feedback, angles, speak)
