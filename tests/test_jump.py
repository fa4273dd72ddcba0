import pytest

from imperfect_coach.jump import (
    FEEDBACK_CALIBRATING,
    FEEDBACK_NOT_VISIBLE,
    FEEDBACK_TAKEOFF,
    JumpProcessor,
    convert_height,
    format_height,
    score_jump,
)
from imperfect_coach.results import JumpPhase, ResultKind

GROUND = 460.0


@pytest.fixture
def proc():
    return JumpProcessor(ground_level=GROUND)


def jump(proc, frames, height=65.0, knees=(110.0, 110.0)):
    proc.process(frames.standing())
    proc.process(frames.standing(lift=40))
    proc.process(frames.standing(lift=height))
    return proc.process(frames.landing(*knees, timestamp=5000.0))


def test_reference_score_with_power_bonus():
    score, issues, feedback, details = score_jump(65, 112.5, 107.5, internal_reps=4)
    assert score == 96
    assert issues == ()
    assert details["height_score"] == 85
    assert details["landing_score"] == 100
    assert details["power_bonus"] == 10
    assert "Great power endurance!" in feedback


@pytest.mark.parametrize(
    "height, expected",
    [(80, 100), (79.9, 85), (60, 85), (40, 70), (25, 50), (10, 25)],
)
def test_height_buckets(height, expected):
    _, _, _, details = score_jump(height, 100, 100, internal_reps=0)
    assert details["height_score"] == expected


@pytest.mark.parametrize(
    "knee, expected",
    [(100, 100), (130, 85), (150, 60), (170, 30)],
)
def test_landing_buckets(knee, expected):
    _, _, _, details = score_jump(85, knee, knee, internal_reps=0)
    assert details["landing_score"] == expected


def test_issue_tags():
    _, issues, _, _ = score_jump(30, 170, 170, internal_reps=0)
    assert issues == ("low_jump", "stiff_landing")
    _, issues, feedback, details = score_jump(45, 100, 130, internal_reps=0)
    assert issues == ("asymmetric_landing",)
    assert details["landing_score"] == 80
    assert "Keep both legs even." in feedback


def test_asymmetry_penalty_floors_at_30():
    _, _, _, details = score_jump(85, 150, 175, internal_reps=0)
    assert details["landing_score"] == 30


def test_score_rounds_half_up():
    # 50 * 0.6 + 85 * 0.35 = 59.75 -> 60; 70 * 0.6 + 30 * 0.35 = 52.5 -> 53
    assert score_jump(30, 130, 130, internal_reps=0)[0] == 60
    assert score_jump(45, 170, 170, internal_reps=0)[0] == 53


def test_feedback_composition():
    # Strong jump leads with height; landing note only when landing < 70.
    assert score_jump(85, 100, 100, 0)[2] == "Incredible height!"
    assert score_jump(85, 150, 150, 0)[2] == "Incredible height! Bend your knees more on landing."
    # Otherwise a strong landing leads.
    assert score_jump(45, 100, 100, 0)[2] == "Perfect soft landing! Good height!"
    assert score_jump(45, 170, 170, 0)[2] == "Good height! Much softer landing needed!"


def test_no_bonus_before_fourth_rep():
    assert score_jump(65, 110, 110, internal_reps=2)[0] == 86


def test_requires_lower_body(proc, frames):
    pts = frames.without(frames.standing_points(), "left_ankle")
    res = proc.process(frames.make(pts))
    assert res.feedback == FEEDBACK_NOT_VISIBLE
    assert proc.phase is JumpPhase.GROUNDED


def test_waits_for_calibration(frames):
    proc = JumpProcessor()
    res = proc.process(frames.standing(lift=80))
    assert res.feedback == FEEDBACK_CALIBRATING
    assert proc.phase is JumpPhase.GROUNDED


def test_small_hop_is_not_airborne(proc, frames):
    res = proc.process(frames.standing(lift=20))
    assert res.kind is ResultKind.FEEDBACK
    assert proc.phase is JumpPhase.GROUNDED


def test_full_jump_cycle(proc, frames):
    proc.process(frames.standing())
    off = proc.process(frames.standing(lift=40))
    assert off.kind is ResultKind.PHASE_TRANSITION
    assert off.new_phase is JumpPhase.AIRBORNE
    assert off.feedback == FEEDBACK_TAKEOFF
    peak = proc.process(frames.standing(lift=80))
    assert peak.feedback == "Nice height: 40cm!"
    proc.process(frames.standing(lift=50))
    land = proc.process(frames.landing(110, 110, timestamp=5000.0))
    assert land.rep_completed
    assert land.new_phase is JumpPhase.GROUNDED
    assert land.rep.details["jump_height_px"] == pytest.approx(80.0)
    assert land.rep.score == 95
    assert land.rep.timestamp == 5000.0
    assert proc.reps_completed == 1


def test_power_bonus_from_fourth_jump(proc, frames):
    scores = [jump(proc, frames).rep.score for _ in range(4)]
    assert scores == [86, 86, 86, 96]


def test_height_conversion():
    assert convert_height(100) == 50.0
    assert convert_height(100, "meters") == pytest.approx(0.5)
    assert convert_height(127, "inches") == pytest.approx(25.0)
    assert convert_height(200, "feet") == pytest.approx(100 / 30.48)
    assert format_height(100) == "50cm"
    assert format_height(100, "meters") == "0.50m"
    assert format_height(250, "feet") == "4'1.2\""
