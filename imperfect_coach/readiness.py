"""
Per-frame readiness: is the user visible, framed and posed well enough to start counting?
Scores 0..100 from weighted issue penalties and keeps the jump ground-level calibration.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .geometry import angle_deg, mean, midpoint
from .keypoints import MIN_KEYPOINT_SCORE, KeypointName as K, PoseFrame
from .results import Exercise

logger = logging.getLogger(__name__)


class IssueCategory(str, Enum):
    VISIBILITY = "VISIBILITY"
    POSITIONING = "POSITIONING"
    STABILITY = "STABILITY"
    POSTURE = "POSTURE"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ReadinessLevel(str, Enum):
    POOR = "POOR"
    FAIR = "FAIR"
    GOOD = "GOOD"
    EXCELLENT = "EXCELLENT"


SEVERITY_PENALTY = {Severity.HIGH: 35, Severity.MEDIUM: 15, Severity.LOW: 5}
_SEVERITY_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}

EXCELLENT_SCORE = 90
GOOD_SCORE = 75
FAIR_SCORE = 55

# Issue categories that break a calibration hold.
_CALIBRATION_BLOCKERS = (IssueCategory.VISIBILITY, IssueCategory.POSTURE, IssueCategory.STABILITY)

PULLUP_REQUIRED = (
    K.LEFT_WRIST, K.RIGHT_WRIST,
    K.LEFT_ELBOW, K.RIGHT_ELBOW,
    K.LEFT_SHOULDER, K.RIGHT_SHOULDER,
)
JUMP_REQUIRED = (
    K.LEFT_HIP, K.RIGHT_HIP,
    K.LEFT_KNEE, K.RIGHT_KNEE,
    K.LEFT_ANKLE, K.RIGHT_ANKLE,
    K.LEFT_SHOULDER, K.RIGHT_SHOULDER,
)


@dataclass(frozen=True)
class ReadinessConfig:
    exercise: Exercise
    required_keypoints: tuple[str, ...]
    min_confidence: float = MIN_KEYPOINT_SCORE
    # Max horizontal offset of body centre from frame centre, as a fraction of width.
    center_tolerance: float = 0.2
    # Vertical extent of visible keypoints, as a fraction of frame height.
    min_body_height: float = 0.3
    max_body_height: float = 0.95
    straight_knee_angle: float = 165.0
    # Ankle spread relative to shoulder width.
    feet_width_range: tuple[float, float] = (0.6, 1.4)
    hang_elbow_angle: float = 140.0
    calibration_frames: int = 30
    min_score: int = FAIR_SCORE
    calibrate_ground: bool = False

    @classmethod
    def for_pullups(cls) -> "ReadinessConfig":
        return cls(exercise=Exercise.PULLUPS, required_keypoints=PULLUP_REQUIRED)

    @classmethod
    def for_jumps(cls) -> "ReadinessConfig":
        return cls(
            exercise=Exercise.JUMPS,
            required_keypoints=JUMP_REQUIRED,
            min_body_height=0.5,
            calibrate_ground=True,
        )

    @classmethod
    def for_exercise(cls, exercise: Exercise) -> "ReadinessConfig":
        if exercise is Exercise.JUMPS:
            return cls.for_jumps()
        return cls.for_pullups()


@dataclass(frozen=True)
class ReadinessIssue:
    category: IssueCategory
    severity: Severity
    message: str
    suggestion: str


@dataclass(frozen=True)
class ReadinessAssessment:
    level: ReadinessLevel
    score: int
    issues: tuple[ReadinessIssue, ...] = field(default_factory=tuple)
    summary: str = ""
    can_proceed: bool = False
    calibrated: bool = False
    calibration_progress: float = 0.0
    ground_level: Optional[float] = None

    def has_severity(self, severity: Severity) -> bool:
        return any(i.severity is severity for i in self.issues)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "issues": [
                {
                    "category": i.category.value,
                    "severity": i.severity.value,
                    "message": i.message,
                    "suggestion": i.suggestion,
                }
                for i in self.issues
            ],
            "summary": self.summary,
            "can_proceed": self.can_proceed,
            "calibrated": self.calibrated,
            "calibration_progress": round(self.calibration_progress, 3),
            "ground_level": self.ground_level,
        }


def score_to_level(score: float) -> ReadinessLevel:
    if score >= EXCELLENT_SCORE:
        return ReadinessLevel.EXCELLENT
    if score >= GOOD_SCORE:
        return ReadinessLevel.GOOD
    if score >= FAIR_SCORE:
        return ReadinessLevel.FAIR
    return ReadinessLevel.POOR


def _visibility_severity(missing: int, required: int) -> Severity:
    if missing <= 1:
        return Severity.LOW
    if missing <= required // 2:
        return Severity.MEDIUM
    return Severity.HIGH


def _visibility_suggestion(part: str, confidence: float) -> str:
    if confidence < 0.1:
        return f"Make sure your {part} is clearly visible and not blocked"
    if confidence < 0.3:
        return f"Improve lighting or adjust position to see your {part} better"
    return f"Slight adjustment needed for {part} visibility"


class ReadinessEvaluator:
    """
    Evaluates one PoseFrame at a time. Stateless apart from the jump
    ground-level calibration, which needs `calibration_frames` consecutive
    valid standing frames and then stays fixed until reset().
    """

    def __init__(self, config: ReadinessConfig):
        self.config = config
        self._calibration_count = 0
        self.ground_level: Optional[float] = None

    @property
    def calibrated(self) -> bool:
        return self.ground_level is not None

    def reset(self) -> None:
        self._calibration_count = 0
        self.ground_level = None

    def evaluate(self, frame: PoseFrame) -> ReadinessAssessment:
        if not frame.keypoints:
            if not self.calibrated:
                self._calibration_count = 0
            issue = ReadinessIssue(
                IssueCategory.VISIBILITY,
                Severity.HIGH,
                "No body detected",
                "Step in front of the camera so your whole body is visible",
            )
            return self._assessment([issue], score=0, summary=issue.suggestion)

        issues: list[ReadinessIssue] = []
        issues.extend(self._visibility_issues(frame))
        issues.extend(self._framing_issues(frame))
        if self.config.exercise is Exercise.JUMPS:
            issues.extend(self._jump_posture_issues(frame))
        else:
            issues.extend(self._pullup_posture_issues(frame))

        just_calibrated = self._update_calibration(frame, issues)

        penalty = sum(SEVERITY_PENALTY[i.severity] for i in issues)
        score = max(0, min(100, 100 - penalty))
        summary = self._summary(score, issues, just_calibrated)
        return self._assessment(issues, score=score, summary=summary)

    def _assessment(self, issues: list[ReadinessIssue], score: int, summary: str) -> ReadinessAssessment:
        ordered = sorted(issues, key=lambda i: _SEVERITY_RANK[i.severity], reverse=True)
        has_high = any(i.severity is Severity.HIGH for i in ordered)
        calibration_ok = self.calibrated or not self.config.calibrate_ground
        can_proceed = (not has_high) and score >= self.config.min_score and calibration_ok
        return ReadinessAssessment(
            level=score_to_level(score),
            score=int(score),
            issues=tuple(ordered),
            summary=summary,
            can_proceed=can_proceed,
            calibrated=self.calibrated,
            calibration_progress=self._calibration_progress(),
            ground_level=self.ground_level,
        )

    def _calibration_progress(self) -> float:
        if not self.config.calibrate_ground or self.calibrated:
            return 1.0
        return min(1.0, self._calibration_count / max(1, self.config.calibration_frames))

    def _visibility_issues(self, frame: PoseFrame) -> list[ReadinessIssue]:
        cfg = self.config
        missing = frame.missing(cfg.required_keypoints, cfg.min_confidence)
        if not missing:
            return []
        severity = _visibility_severity(len(missing), len(cfg.required_keypoints))
        issues = []
        for name in missing:
            kp = frame.get(name)
            confidence = kp.score if kp is not None else 0.0
            part = name.replace("_", " ")
            issues.append(
                ReadinessIssue(
                    IssueCategory.VISIBILITY,
                    severity,
                    f"{part} not clearly visible",
                    _visibility_suggestion(part, confidence),
                )
            )
        return issues

    def _framing_issues(self, frame: PoseFrame) -> list[ReadinessIssue]:
        cfg = self.config
        if frame.width <= 0 or frame.height <= 0:
            return []
        pts = [kp for kp in frame.keypoints if kp.score >= cfg.min_confidence]
        if not pts:
            return []
        issues = []
        ls = frame.visible(K.LEFT_SHOULDER, cfg.min_confidence)
        rs = frame.visible(K.RIGHT_SHOULDER, cfg.min_confidence)
        if ls is not None and rs is not None:
            center_x = midpoint(ls.xy, rs.xy)[0]
        else:
            xs = [kp.x for kp in pts]
            center_x = (min(xs) + max(xs)) / 2.0
        frame_center_x = frame.width / 2.0
        if abs(center_x - frame_center_x) > cfg.center_tolerance * frame.width:
            direction = "right" if center_x < frame_center_x else "left"
            issues.append(
                ReadinessIssue(
                    IssueCategory.POSITIONING,
                    Severity.MEDIUM,
                    "You need to be more centered in the frame",
                    f"Move {direction} to center yourself",
                )
            )
        ys = [kp.y for kp in pts]
        extent_ratio = (max(ys) - min(ys)) / frame.height
        if extent_ratio < cfg.min_body_height:
            issues.append(
                ReadinessIssue(
                    IssueCategory.POSITIONING,
                    Severity.MEDIUM,
                    "You appear too small in the frame",
                    "Move closer to the camera",
                )
            )
        elif extent_ratio > cfg.max_body_height:
            issues.append(
                ReadinessIssue(
                    IssueCategory.POSITIONING,
                    Severity.LOW,
                    "You appear too close to the camera",
                    "Step back so your full body is visible",
                )
            )
        return issues

    def _jump_posture_issues(self, frame: PoseFrame) -> list[ReadinessIssue]:
        cfg = self.config
        if self.calibrated:
            # Crouching is expected once the ground level is known.
            return []
        pts = {name: frame.visible(name, cfg.min_confidence) for name in JUMP_REQUIRED}
        if any(p is None for p in pts.values()):
            return []
        issues = []
        left_knee = angle_deg(pts[K.LEFT_HIP].xy, pts[K.LEFT_KNEE].xy, pts[K.LEFT_ANKLE].xy)
        right_knee = angle_deg(pts[K.RIGHT_HIP].xy, pts[K.RIGHT_KNEE].xy, pts[K.RIGHT_ANKLE].xy)
        if (left_knee + right_knee) / 2.0 < cfg.straight_knee_angle:
            issues.append(
                ReadinessIssue(
                    IssueCategory.POSTURE,
                    Severity.MEDIUM,
                    "Legs are bent",
                    "Stand up straighter to calibrate your starting position",
                )
            )
        foot_width = abs(pts[K.LEFT_ANKLE].x - pts[K.RIGHT_ANKLE].x)
        shoulder_width = abs(pts[K.LEFT_SHOULDER].x - pts[K.RIGHT_SHOULDER].x)
        lo, hi = cfg.feet_width_range
        if shoulder_width > 0 and not (lo * shoulder_width <= foot_width <= hi * shoulder_width):
            issues.append(
                ReadinessIssue(
                    IssueCategory.STABILITY,
                    Severity.MEDIUM,
                    "Stance is too narrow or too wide",
                    "Place your feet about shoulder-width apart",
                )
            )
        return issues

    def _pullup_posture_issues(self, frame: PoseFrame) -> list[ReadinessIssue]:
        cfg = self.config
        lw = frame.visible(K.LEFT_WRIST, cfg.min_confidence)
        rw = frame.visible(K.RIGHT_WRIST, cfg.min_confidence)
        ls = frame.visible(K.LEFT_SHOULDER, cfg.min_confidence)
        rs = frame.visible(K.RIGHT_SHOULDER, cfg.min_confidence)
        if lw is None or rw is None or ls is None or rs is None:
            return []
        if (lw.y + rw.y) / 2.0 >= (ls.y + rs.y) / 2.0:
            return [
                ReadinessIssue(
                    IssueCategory.POSTURE,
                    Severity.MEDIUM,
                    "Arms are not overhead",
                    "Grab the bar and hang with your arms overhead",
                )
            ]
        le = frame.visible(K.LEFT_ELBOW, cfg.min_confidence)
        re = frame.visible(K.RIGHT_ELBOW, cfg.min_confidence)
        if le is None or re is None:
            return []
        left = angle_deg(ls.xy, le.xy, lw.xy)
        right = angle_deg(rs.xy, re.xy, rw.xy)
        if left <= cfg.hang_elbow_angle or right <= cfg.hang_elbow_angle:
            return [
                ReadinessIssue(
                    IssueCategory.POSTURE,
                    Severity.LOW,
                    "Arms are bent",
                    "Hang from the bar with arms fully extended to start",
                )
            ]
        return []

    def _update_calibration(self, frame: PoseFrame, issues: list[ReadinessIssue]) -> bool:
        """Advance or reset the ground calibration hold. True on the frame that completes it."""
        cfg = self.config
        if not cfg.calibrate_ground or self.calibrated:
            return False
        if any(i.category in _CALIBRATION_BLOCKERS for i in issues):
            self._calibration_count = 0
            return False
        la = frame.visible(K.LEFT_ANKLE, cfg.min_confidence)
        ra = frame.visible(K.RIGHT_ANKLE, cfg.min_confidence)
        if la is None or ra is None:
            self._calibration_count = 0
            return False
        self._calibration_count += 1
        if self._calibration_count < cfg.calibration_frames:
            return False
        self.ground_level = mean([la.y, ra.y])
        logger.info("readiness: ground level calibrated at y=%.1f", self.ground_level)
        return True

    def _summary(self, score: int, issues: list[ReadinessIssue], just_calibrated: bool) -> str:
        for severity in (Severity.HIGH, Severity.MEDIUM):
            for issue in issues:
                if issue.severity is severity:
                    return issue.suggestion
        if just_calibrated:
            return "Calibrated! Crouch down and explode up!"
        if self.config.calibrate_ground and not self.calibrated:
            pct = round(self._calibration_progress() * 100)
            return f"Hold still... Calibrating: {pct}%"
        if score >= EXCELLENT_SCORE:
            return "Excellent! You're ready to start your workout."
        if score >= self.config.min_score:
            return "Almost ready! Make small adjustments and you'll be set."
        return "Let's get you set up properly. Follow the suggestions above."
