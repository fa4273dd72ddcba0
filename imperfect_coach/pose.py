"""
MediaPipe Pose estimation adapter. Turns a BGR frame into a PoseFrame with
named keypoints in pixel coordinates; landmark visibility becomes the score.
Uses the Pose Landmarker task (MediaPipe 0.10+), CPU-only.
"""
from __future__ import annotations

import logging
import os
import urllib.request
from typing import Optional

import cv2
import numpy as np

from .keypoints import Keypoint, KeypointName as K, PoseFrame

logger = logging.getLogger(__name__)


# MediaPipe Pose landmark indices for the names the coach uses.
LANDMARK_NAMES = {
    0: K.NOSE,
    11: K.LEFT_SHOULDER,
    12: K.RIGHT_SHOULDER,
    13: K.LEFT_ELBOW,
    14: K.RIGHT_ELBOW,
    15: K.LEFT_WRIST,
    16: K.RIGHT_WRIST,
    23: K.LEFT_HIP,
    24: K.RIGHT_HIP,
    25: K.LEFT_KNEE,
    26: K.RIGHT_KNEE,
    27: K.LEFT_ANKLE,
    28: K.RIGHT_ANKLE,
}

# Pose Landmarker model URL (lite = faster, CPU-friendly)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to the landmarker model, downloading it on first use."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "outputs")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        logger.info("Downloading pose model to %s", path)
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def create_pose_detector(min_confidence: float = 0.5, cache_dir: Optional[str] = None):
    """Create a single-person PoseLandmarker in IMAGE mode."""
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    options = PoseLandmarkerOptions(
        base_options=base_options.BaseOptions(model_asset_path=_get_model_path(cache_dir)),
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_confidence,
        min_pose_presence_confidence=min_confidence,
        min_tracking_confidence=min_confidence,
    )
    return PoseLandmarker.create_from_options(options)


def landmarks_to_frame(
    landmarks,
    width: int,
    height: int,
    timestamp: Optional[float] = None,
) -> PoseFrame:
    """Map normalized MediaPipe landmarks to a PoseFrame in pixel space."""
    keypoints = []
    for idx, name in LANDMARK_NAMES.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        score = getattr(lm, "visibility", None)
        keypoints.append(
            Keypoint(
                name=name,
                x=float(lm.x) * width,
                y=float(lm.y) * height,
                score=float(score) if score is not None else 1.0,
            )
        )
    return PoseFrame(keypoints=tuple(keypoints), width=float(width), height=float(height), timestamp=timestamp)


def process_frame(
    frame_bgr: np.ndarray,
    detector,
    timestamp: Optional[float] = None,
) -> PoseFrame:
    """
    Run pose estimation on one BGR frame.
    Returns an empty PoseFrame (dimensions kept) when no person is found.
    """
    h, w = frame_bgr.shape[:2]
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    from mediapipe.tasks.python.vision.core import image as mp_image

    result = detector.detect(mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb))
    if not result.pose_landmarks:
        return PoseFrame(width=float(w), height=float(h), timestamp=timestamp)
    return landmarks_to_frame(result.pose_landmarks[0], w, h, timestamp)
