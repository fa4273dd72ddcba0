"""
Per-session aggregation: rep history, rep timing statistics, duration,
rolling form score, good-form streak and achievements.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np

from .results import RepResult

logger = logging.getLogger(__name__)

ROLLING_WINDOW = 5
GOOD_FORM_SCORE = 60


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str


ACHIEVEMENTS: dict[str, Achievement] = {
    a.id: a
    for a in (
        Achievement("first_rep", "First Rep!", "You completed your first rep. The journey begins!"),
        Achievement("ten_reps", "10 Rep Club", "You completed 10 reps in a single session."),
        Achievement("perfect_form_rep", "Perfect Form", "You completed a rep with a perfect score of 100."),
        Achievement(
            "great_form_session",
            "Form Virtuoso",
            "Maintained an average form score above 95% after 5 reps.",
        ),
        Achievement(
            "consistent_performer",
            "Mr. Consistent",
            "Kept a steady rhythm with low rep time deviation over 10 reps.",
        ),
    )
}


def format_duration(seconds: float) -> str:
    seconds = max(0.0, seconds)
    return f"{int(seconds // 60):02d}:{int(seconds % 60):02d}"


class SessionAggregator:
    """
    Owns the append-only rep history of one workout. clock returns seconds
    and is used for the session start and for reps without a timestamp.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        self.reps: list[RepResult] = []
        self.started_at: Optional[float] = None
        self.streak = 0
        self.best_streak = 0
        self.unlocked: list[str] = []

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = self.clock()

    @property
    def rep_count(self) -> int:
        return len(self.reps)

    def add(self, rep: RepResult) -> list[str]:
        """Append a completed rep; returns the ids of achievements it unlocked."""
        self.start()
        if rep.timestamp is None:
            rep = RepResult(
                score=rep.score,
                issues=rep.issues,
                details=rep.details,
                timestamp=self.clock() * 1000.0,
            )
        self.reps.append(rep)

        if rep.score >= GOOD_FORM_SCORE:
            self.streak += 1
            self.best_streak = max(self.best_streak, self.streak)
        else:
            self.streak = 0

        new = [a for a in self._earned() if a not in self.unlocked]
        self.unlocked.extend(new)
        for a in new:
            logger.info("achievement unlocked: %s", ACHIEVEMENTS[a].name)
        return new

    def _earned(self) -> list[str]:
        n = self.rep_count
        earned = []
        if n >= 1:
            earned.append("first_rep")
        if n >= 10:
            earned.append("ten_reps")
        if any(r.score == 100 for r in self.reps):
            earned.append("perfect_form_rep")
        if n > 5 and self.rolling_score() >= 95:
            earned.append("great_form_session")
        if n > 10 and self.timing_stats()[1] < 1.5:
            earned.append("consistent_performer")
        return earned

    def timings(self) -> list[float]:
        """Seconds between successive reps."""
        if len(self.reps) < 2:
            return []
        stamps = np.array([r.timestamp for r in self.reps], dtype=float)
        return (np.diff(stamps) / 1000.0).tolist()

    def timing_stats(self) -> tuple[float, float]:
        """(mean, population std-dev) of rep timings; (0, 0) with fewer than two reps."""
        t = self.timings()
        if not t:
            return 0.0, 0.0
        arr = np.asarray(t, dtype=float)
        avg = float(arr.mean())
        std = float(np.sqrt(np.mean((arr - avg) ** 2)))
        return avg, std

    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, self.clock() - self.started_at)

    def duration(self) -> str:
        return format_duration(self.elapsed())

    def rolling_score(self, window: int = ROLLING_WINDOW) -> float:
        if not self.reps:
            return 100.0
        return float(np.mean([r.score for r in self.reps[-window:]]))

    def average_score(self) -> float:
        if not self.reps:
            return 0.0
        return float(np.mean([r.score for r in self.reps]))

    def issue_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.reps:
            for issue in r.issues:
                counts[issue] = counts.get(issue, 0) + 1
        return counts

    def summary(self) -> dict[str, Any]:
        avg, std = self.timing_stats()
        return {
            "rep_count": self.rep_count,
            "duration": self.duration(),
            "elapsed_s": round(self.elapsed(), 2),
            "average_score": round(self.average_score(), 2),
            "rolling_score": round(self.rolling_score(), 2),
            "timing_avg_s": avg,
            "timing_std_s": std,
            "streak": self.streak,
            "best_streak": self.best_streak,
            "issue_counts": self.issue_counts(),
            "achievements": list(self.unlocked),
            "reps": [r.to_dict() for r in self.reps],
        }
