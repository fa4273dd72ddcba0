import numpy as np
import pytest

from imperfect_coach.results import RepResult
from imperfect_coach.session import SessionAggregator, format_duration


@pytest.fixture
def session(clock):
    return SessionAggregator(clock)


def test_empty_and_single_rep_stats(session):
    assert session.timing_stats() == (0.0, 0.0)
    session.add(RepResult(score=90, timestamp=0.0))
    assert session.timings() == []
    assert session.timing_stats() == (0.0, 0.0)


def test_timing_stats_reference(session):
    for ts in (0.0, 1000.0, 3000.0):
        session.add(RepResult(score=90, timestamp=ts))
    assert session.timings() == pytest.approx([1.0, 2.0])
    avg, std = session.timing_stats()
    assert avg == pytest.approx(1.5, rel=1e-9)
    assert std == pytest.approx(0.5, rel=1e-9)


def test_std_matches_population_two_pass(session):
    stamps = [0.0, 900.0, 2300.0, 3100.0, 4800.0, 5200.0]
    for ts in stamps:
        session.add(RepResult(score=80, timestamp=ts))
    t = np.diff(stamps) / 1000.0
    ref = (sum((x - t.mean()) ** 2 for x in t) / len(t)) ** 0.5
    assert session.timing_stats()[1] == pytest.approx(ref, rel=1e-9)


def test_reps_without_timestamp_use_clock(session, clock):
    session.add(RepResult(score=90))
    clock.advance(2.5)
    session.add(RepResult(score=90))
    assert session.timings() == pytest.approx([2.5])


def test_duration_formatting(session, clock):
    assert session.duration() == "00:00"
    session.start()
    clock.advance(125.4)
    assert session.elapsed() == pytest.approx(125.4)
    assert session.duration() == "02:05"
    assert format_duration(3599) == "59:59"
    assert format_duration(-3) == "00:00"


def test_rolling_score_and_streak(session):
    assert session.rolling_score() == 100.0
    for s in (100, 90, 80, 70, 60, 50):
        session.add(RepResult(score=s, timestamp=0.0))
    assert session.rolling_score() == pytest.approx(70.0)
    assert session.streak == 0
    assert session.best_streak == 5


def test_streak_counts_good_form_only(session):
    for s in (70, 50, 80, 90):
        session.add(RepResult(score=s))
    assert session.streak == 2
    assert session.best_streak == 2


def test_achievements_unlock_once(session):
    assert session.add(RepResult(score=80)) == ["first_rep"]
    assert session.add(RepResult(score=100)) == ["perfect_form_rep"]
    assert session.add(RepResult(score=100)) == []
    assert session.unlocked == ["first_rep", "perfect_form_rep"]


def test_great_form_session_after_six_strong_reps(session):
    unlocked = []
    for _ in range(6):
        unlocked.extend(session.add(RepResult(score=96)))
    assert unlocked == ["first_rep", "great_form_session"]


def test_ten_reps_and_consistent_performer(session):
    unlocked = []
    for i in range(11):
        unlocked.append(session.add(RepResult(score=50, timestamp=i * 2000.0)))
    assert unlocked[9] == ["ten_reps"]
    assert unlocked[10] == ["consistent_performer"]


def test_uneven_tempo_is_not_consistent(session):
    for ts in (0, 1000, 5000, 6000, 11000, 12000, 18000, 19000, 25000, 26000, 33000):
        session.add(RepResult(score=50, timestamp=float(ts)))
    assert "consistent_performer" not in session.unlocked


def test_summary_and_reset(session):
    session.add(RepResult(score=75, issues=("asymmetry",), timestamp=0.0))
    session.add(RepResult(score=100, timestamp=1500.0))
    summary = session.summary()
    assert summary["rep_count"] == 2
    assert summary["average_score"] == 87.5
    assert summary["issue_counts"] == {"asymmetry": 1}
    assert summary["timing_avg_s"] == pytest.approx(1.5)
    assert len(summary["reps"]) == 2
    session.reset()
    assert session.rep_count == 0
    assert session.unlocked == []
    assert session.duration() == "00:00"
