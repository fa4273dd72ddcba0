"""
Frame generators for a video file or webcam.
Yield (frame_bgr, frame_idx, timestamp_ms) and release the capture on exit.
"""
from __future__ import annotations

import time
from typing import Generator

import cv2
import numpy as np


def video_frames(video_path: str) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield frames from a video file. Timestamps come from the frame index
    and the container fps so offline runs are reproducible.
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"Cannot open video: {video_path}")
    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, idx * 1000.0 / fps)
            idx += 1
    finally:
        cap.release()


def video_fps(video_path: str) -> float:
    cap = cv2.VideoCapture(video_path)
    try:
        return cap.get(cv2.CAP_PROP_FPS) or 30.0
    finally:
        cap.release()


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = 20,
) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """Yield webcam frames stamped with wall-clock milliseconds."""
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, time.time() * 1000.0)
            idx += 1
    finally:
        cap.release()
