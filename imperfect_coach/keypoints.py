"""
Keypoint and per-frame pose containers consumed by the coaching core.
Names follow the 17-point COCO vocabulary used by MoveNet/BlazePose exports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .geometry import Point


class KeypointName:
    NOSE = "nose"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


# Default confidence below which a keypoint counts as not visible.
MIN_KEYPOINT_SCORE = 0.5


@dataclass(frozen=True)
class Keypoint:
    name: str
    x: float
    y: float
    score: float = 1.0

    @property
    def xy(self) -> Point:
        return (self.x, self.y)


@dataclass(frozen=True)
class PoseFrame:
    """All keypoints of one video frame plus its pixel dimensions."""

    keypoints: tuple[Keypoint, ...] = field(default_factory=tuple)
    width: float = 0.0
    height: float = 0.0
    # Milliseconds; None lets the session clock stamp reps instead.
    timestamp: Optional[float] = None

    def get(self, name: str) -> Optional[Keypoint]:
        for kp in self.keypoints:
            if kp.name == name:
                return kp
        return None

    def visible(self, name: str, min_score: float = MIN_KEYPOINT_SCORE) -> Optional[Keypoint]:
        """Keypoint if present with score >= min_score, else None."""
        kp = self.get(name)
        if kp is None or kp.score < min_score:
            return None
        return kp

    def missing(self, names: Iterable[str], min_score: float = MIN_KEYPOINT_SCORE) -> list[str]:
        return [n for n in names if self.visible(n, min_score) is None]

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PoseFrame":
        """
        Parse the JSON wire form:
        {"width": .., "height": .., "timestamp": .., "keypoints": [{"name", "x", "y", "score"}]}
        Raises ValueError on malformed input.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("frame payload must be an object")
        raw = payload.get("keypoints") or []
        if not isinstance(raw, list):
            raise ValueError("keypoints must be a list")
        keypoints = []
        for item in raw:
            if not isinstance(item, Mapping) or "name" not in item:
                raise ValueError(f"invalid keypoint: {item!r}")
            try:
                keypoints.append(
                    Keypoint(
                        name=str(item["name"]),
                        x=float(item["x"]),
                        y=float(item["y"]),
                        score=float(item.get("score", 1.0)),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"invalid keypoint {item.get('name')!r}: {e}") from e
        timestamp = payload.get("timestamp")
        try:
            return cls(
                keypoints=tuple(keypoints),
                width=float(payload.get("width", 0.0)),
                height=float(payload.get("height", 0.0)),
                timestamp=float(timestamp) if timestamp is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid frame dimensions: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "timestamp": self.timestamp,
            "keypoints": [
                {"name": k.name, "x": round(k.x, 4), "y": round(k.y, 4), "score": round(k.score, 4)}
                for k in self.keypoints
            ],
        }


def smooth_keypoints_ema(
    current: PoseFrame,
    previous: Optional[PoseFrame],
    alpha: float = 0.4,
) -> PoseFrame:
    """One-step EMA smoothing of keypoint positions, matched by name."""
    if previous is None:
        return current
    smoothed = []
    for kp in current.keypoints:
        prev = previous.get(kp.name)
        if prev is None:
            smoothed.append(kp)
            continue
        smoothed.append(
            Keypoint(
                name=kp.name,
                x=alpha * kp.x + (1 - alpha) * prev.x,
                y=alpha * kp.y + (1 - alpha) * prev.y,
                score=kp.score,
            )
        )
    return PoseFrame(
        keypoints=tuple(smoothed),
        width=current.width,
        height=current.height,
        timestamp=current.timestamp,
    )
