"""
Draw skeleton and coach state on frames, in-place.
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .coach import CoachUpdate
from .keypoints import KeypointName as K, MIN_KEYPOINT_SCORE, PoseFrame

SKELETON = (
    (K.LEFT_SHOULDER, K.RIGHT_SHOULDER),
    (K.LEFT_SHOULDER, K.LEFT_ELBOW), (K.LEFT_ELBOW, K.LEFT_WRIST),
    (K.RIGHT_SHOULDER, K.RIGHT_ELBOW), (K.RIGHT_ELBOW, K.RIGHT_WRIST),
    (K.LEFT_SHOULDER, K.LEFT_HIP), (K.RIGHT_SHOULDER, K.RIGHT_HIP),
    (K.LEFT_HIP, K.RIGHT_HIP),
    (K.LEFT_HIP, K.LEFT_KNEE), (K.LEFT_KNEE, K.LEFT_ANKLE),
    (K.RIGHT_HIP, K.RIGHT_KNEE), (K.RIGHT_KNEE, K.RIGHT_ANKLE),
)

_WHITE = (255, 255, 255)
_CUE = (0, 200, 255)


def _pt(p: tuple[float, float]) -> tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))


def _score_color(score: float) -> tuple[int, int, int]:
    if score >= 85:
        return (0, 255, 0)
    if score >= 60:
        return (0, 200, 255)
    return (0, 0, 255)


def draw_skeleton(
    frame: np.ndarray,
    pose: PoseFrame,
    color: tuple[int, int, int] = (0, 255, 0),
    thickness: int = 2,
    min_score: float = MIN_KEYPOINT_SCORE,
) -> None:
    """Draw visible bones and joints; low-confidence keypoints are skipped."""
    for a, b in SKELETON:
        ka, kb = pose.visible(a, min_score), pose.visible(b, min_score)
        if ka is not None and kb is not None:
            cv2.line(frame, _pt(ka.xy), _pt(kb.xy), color, thickness)
    for kp in pose.keypoints:
        if kp.score >= min_score:
            cv2.circle(frame, _pt(kp.xy), 3, color, -1)


def draw_coach_overlay(
    frame: np.ndarray,
    pose: Optional[PoseFrame],
    update: Optional[CoachUpdate],
    message: Optional[str] = None,
) -> None:
    """
    Realtime overlay: skeleton, then a translucent panel with rep count,
    phase, last rep score, readiness and the current coaching line.
    """
    h, w = frame.shape[:2]
    if pose is not None and pose.keypoints:
        draw_skeleton(frame, pose)

    panel_h = 150
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    y0, dy = 28, 28

    def put(line: str, y: int, color: tuple[int, int, int] = _WHITE) -> None:
        cv2.putText(frame, line, (12, y), font, 0.6, color, 2, cv2.LINE_AA)

    if update is None:
        put("Waiting for pose...", y0)
    else:
        put(f"Reps: {update.rep_count}   Phase: {update.phase.value}", y0)
        rep = update.result.rep
        if rep is not None:
            put(f"Last rep: {rep.score}", y0 + dy, _score_color(rep.score))
        if update.readiness is not None:
            r = update.readiness
            put(f"Readiness: {r.level.value} ({r.score})", y0 + 2 * dy, _score_color(r.score))
        if update.feedback:
            text = update.feedback.replace("\n", " ").strip()
            if len(text) > 64:
                text = text[:61] + "..."
            put(text, y0 + 3 * dy, _CUE)
        if update.speak is not None:
            put(f"Cue: {update.speak.phrase}", y0 + 4 * dy, _CUE)

    if message:
        cv2.putText(frame, message, (w // 2 - 120, h // 2), font, 0.8, _CUE, 2, cv2.LINE_AA)
