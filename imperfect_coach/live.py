"""
Live and offline pipelines: frames -> pose -> WorkoutCoach -> overlay.
Live mode shows a window (q=quit, r=reset, s=snapshot); both save session
metrics and generate the report on exit.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Optional

import cv2
import numpy as np

from .coach import CoachMode, CoachUpdate, WorkoutCoach
from .io_stream import video_fps, video_frames, webcam_frames
from .keypoints import Keypoint, PoseFrame, smooth_keypoints_ema
from .overlay import draw_coach_overlay
from .pose import create_pose_detector, process_frame
from .report import run_report, save_metrics

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0
# EMA alpha for keypoint smoothing
SMOOTH_ALPHA = 0.4


def _resize_for_inference(frame_bgr: np.ndarray) -> tuple[np.ndarray, float]:
    h, w = frame_bgr.shape[:2]
    if w <= LIVE_RESIZE_WIDTH:
        return frame_bgr, 1.0
    scale = LIVE_RESIZE_WIDTH / w
    return cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale)))), scale


def _detect(frame_bgr: np.ndarray, detector, timestamp: float) -> PoseFrame:
    """Pose on a downscaled copy, mapped back to full-frame pixels."""
    small, scale = _resize_for_inference(frame_bgr)
    pose = process_frame(small, detector, timestamp)
    if scale == 1.0:
        return pose
    h, w = frame_bgr.shape[:2]
    return PoseFrame(
        keypoints=tuple(Keypoint(k.name, k.x / scale, k.y / scale, k.score) for k in pose.keypoints),
        width=float(w),
        height=float(h),
        timestamp=timestamp,
    )


def _finish(coach: WorkoutCoach, output_dir: str, source: str) -> str:
    metrics_path = save_metrics(coach.summary(), output_dir, f"{source}_metrics.json")
    return run_report(metrics_path, output_dir, source=source)


def run_live_pipeline(
    exercise: str = "pullups",
    camera_id: int = 0,
    target_fps: float = 20,
    record: bool = False,
    output_dir: str = "outputs",
    mode: str = CoachMode.TRAINING.value,
) -> str:
    """Run the webcam loop until q is pressed; returns the report path."""
    os.makedirs(output_dir, exist_ok=True)
    detector = create_pose_detector()
    coach = WorkoutCoach(exercise, mode=mode)

    prev_pose: Optional[PoseFrame] = None
    last_pose_time = time.perf_counter()
    update: Optional[CoachUpdate] = None
    message: Optional[str] = None
    video_writer: Optional[cv2.VideoWriter] = None
    win_name = f"Imperfect Coach: {coach.exercise.value} (q=quit, r=reset, s=snapshot)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)
    try:
        for frame_bgr, frame_idx, ts in webcam_frames(camera_id, target_fps=target_fps):
            pose = _detect(frame_bgr, detector, ts)
            if pose.keypoints:
                last_pose_time = time.perf_counter()
                pose = smooth_keypoints_ema(pose, prev_pose, SMOOTH_ALPHA)
                prev_pose = pose

            update = coach.process(pose)
            if update.result.rep is not None:
                logger.info("rep %s: %s", update.rep_count, update.feedback)

            if time.perf_counter() - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif message == "Move into frame":
                message = None

            out_frame = frame_bgr.copy()
            draw_coach_overlay(out_frame, pose, update, message)

            if record and video_writer is None:
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                video_writer = cv2.VideoWriter(
                    os.path.join(output_dir, "live_recording.mp4"),
                    fourcc,
                    max(1, int(target_fps)),
                    (out_frame.shape[1], out_frame.shape[0]),
                )
            if video_writer is not None:
                video_writer.write(out_frame)

            cv2.imshow(win_name, out_frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                coach.reset()
                prev_pose = None
                message = None
            if key == ord("s"):
                cv2.imwrite(os.path.join(output_dir, f"snapshot_{frame_idx}.jpg"), out_frame)
                message = "Saved snapshot"
    finally:
        cv2.destroyAllWindows()
        if video_writer is not None:
            video_writer.release()

    return _finish(coach, output_dir, "live")


def run_video_pipeline(
    video_path: str,
    exercise: str = "pullups",
    output_dir: str = "outputs",
    mode: str = CoachMode.TRAINING.value,
    annotate: bool = True,
) -> str:
    """Offline analysis of a video file; writes an annotated copy when annotate is set."""
    os.makedirs(output_dir, exist_ok=True)
    detector = create_pose_detector()
    # Offline timestamps are video time, so the session clock follows them too.
    video_clock = [0.0]
    coach = WorkoutCoach(exercise, mode=mode, clock=lambda: video_clock[0])
    writer: Optional[cv2.VideoWriter] = None
    prev_pose: Optional[PoseFrame] = None
    fps = video_fps(video_path)
    try:
        for frame_bgr, frame_idx, ts in video_frames(video_path):
            video_clock[0] = ts / 1000.0
            pose = _detect(frame_bgr, detector, ts)
            if pose.keypoints:
                pose = smooth_keypoints_ema(pose, prev_pose, SMOOTH_ALPHA)
                prev_pose = pose
            update = coach.process(pose)
            if update.result.rep is not None:
                logger.info("frame %s: rep %s score=%s", frame_idx, update.rep_count, update.result.rep.score)
            if annotate:
                if writer is None:
                    writer = cv2.VideoWriter(
                        os.path.join(output_dir, "annotated.mp4"),
                        cv2.VideoWriter_fourcc(*"mp4v"),
                        max(1, int(fps)),
                        (frame_bgr.shape[1], frame_bgr.shape[0]),
                    )
                draw_coach_overlay(frame_bgr, pose, update)
                writer.write(frame_bgr)
    finally:
        if writer is not None:
            writer.release()

    return _finish(coach, output_dir, "video")
