import pytest

from imperfect_coach.keypoints import PoseFrame
from imperfect_coach.readiness import (
    IssueCategory,
    ReadinessConfig,
    ReadinessEvaluator,
    ReadinessLevel,
    Severity,
    score_to_level,
)
from imperfect_coach.results import Exercise


@pytest.fixture
def pullups():
    return ReadinessEvaluator(ReadinessConfig.for_pullups())


@pytest.fixture
def jumps():
    return ReadinessEvaluator(ReadinessConfig.for_jumps())


def test_empty_frame_is_worst_case(pullups):
    a = pullups.evaluate(PoseFrame(width=640, height=480))
    assert a.score == 0
    assert a.level is ReadinessLevel.POOR
    assert not a.can_proceed
    assert a.has_severity(Severity.HIGH)
    assert a.issues[0].category is IssueCategory.VISIBILITY


def test_hanging_pose_is_ready(pullups, frames):
    a = pullups.evaluate(frames.hanging())
    assert a.score == 100
    assert a.level is ReadinessLevel.EXCELLENT
    assert a.can_proceed
    assert a.issues == ()
    assert a.summary == "Excellent! You're ready to start your workout."


def test_single_missing_keypoint_is_low_severity(pullups, frames):
    a = pullups.evaluate(frames.make(frames.without(frames.hanging_points(), "left_wrist")))
    assert [i.severity for i in a.issues] == [Severity.LOW]
    assert a.score == 95
    assert a.can_proceed


def test_many_missing_keypoints_block_progress(pullups, frames):
    pts = frames.without(frames.hanging_points(), "left_wrist", "right_wrist", "left_elbow", "right_elbow")
    a = pullups.evaluate(frames.make(pts))
    assert all(i.severity is Severity.HIGH for i in a.issues if i.category is IssueCategory.VISIBILITY)
    assert 0 <= a.score <= 100
    assert not a.can_proceed


def test_off_center_subject_is_told_which_way_to_move(pullups, frames):
    shifted = {k: (x - 200, y) for k, (x, y) in frames.hanging_points().items()}
    a = pullups.evaluate(frames.make(shifted))
    assert any(i.category is IssueCategory.POSITIONING for i in a.issues)
    assert a.summary == "Move right to center yourself"


def test_arms_down_is_a_posture_issue(pullups, frames):
    a = pullups.evaluate(frames.under_bar())
    assert [i.category for i in a.issues] == [IssueCategory.POSTURE]
    assert a.summary == "Grab the bar and hang with your arms overhead"


def test_bent_arms_while_hanging_is_minor(pullups, frames):
    a = pullups.evaluate(frames.hanging(120, 120))
    assert [i.severity for i in a.issues] == [Severity.LOW]
    assert a.can_proceed


def test_issues_sorted_by_severity(pullups, frames):
    pts = frames.without(frames.hanging_points(), "left_wrist", "right_wrist", "left_elbow", "right_elbow")
    shifted = {k: (x - 200, y) for k, (x, y) in pts.items()}
    a = pullups.evaluate(frames.make(shifted))
    ranks = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}
    values = [ranks[i.severity] for i in a.issues]
    assert values == sorted(values, reverse=True)


def test_evaluate_is_idempotent_without_calibration(pullups, frames):
    f = frames.hanging(150, 165)
    assert pullups.evaluate(f) == pullups.evaluate(f)


def test_jump_calibration_needs_consecutive_frames(jumps, frames):
    first = jumps.evaluate(frames.standing())
    assert first.summary == "Hold still... Calibrating: 3%"
    assert not first.can_proceed
    for _ in range(28):
        a = jumps.evaluate(frames.standing())
    assert not a.calibrated
    done = jumps.evaluate(frames.standing())
    assert done.calibrated
    assert done.ground_level == pytest.approx(460.0)
    assert done.summary == "Calibrated! Crouch down and explode up!"
    assert done.can_proceed


def test_bent_knees_reset_calibration(jumps, frames):
    for _ in range(20):
        jumps.evaluate(frames.standing())
    a = jumps.evaluate(frames.landing(120, 120))
    assert a.summary == "Stand up straighter to calibrate your starting position"
    assert a.calibration_progress == 0.0
    for _ in range(29):
        jumps.evaluate(frames.standing())
    assert not jumps.calibrated
    assert jumps.evaluate(frames.standing()).calibrated


def test_narrow_stance_blocks_calibration(jumps, frames):
    pts = frames.standing_points()
    for side, x in (("left", 315), ("right", 325)):
        for joint in ("hip", "knee", "ankle"):
            pts[f"{side}_{joint}"] = (x, pts[f"{side}_{joint}"][1])
    a = jumps.evaluate(frames.make(pts))
    assert any(i.category is IssueCategory.STABILITY for i in a.issues)
    assert a.summary == "Place your feet about shoulder-width apart"
    assert a.calibration_progress == 0.0


def test_ground_level_fixed_until_reset(jumps, frames):
    for _ in range(30):
        jumps.evaluate(frames.standing())
    jumps.evaluate(frames.standing(lift=50))
    assert jumps.ground_level == pytest.approx(460.0)
    jumps.reset()
    assert jumps.ground_level is None


def test_config_for_exercise():
    assert ReadinessConfig.for_exercise(Exercise.JUMPS).calibrate_ground
    assert not ReadinessConfig.for_exercise(Exercise.PULLUPS).calibrate_ground


@pytest.mark.parametrize(
    "score, level",
    [(100, ReadinessLevel.EXCELLENT), (90, ReadinessLevel.EXCELLENT), (75, ReadinessLevel.GOOD),
     (55, ReadinessLevel.FAIR), (54, ReadinessLevel.POOR), (0, ReadinessLevel.POOR)],
)
def test_score_buckets(score, level):
    assert score_to_level(score) is level
