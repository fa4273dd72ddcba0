"""
Rep-level coaching phrases keyed by issue tag.
"""
from __future__ import annotations

import random
from typing import Iterable, Mapping, Optional, Sequence

GENERAL = "general"

PHRASES: Mapping[str, tuple[str, ...]] = {
    "asymmetry": (
        "Try to pull up with both arms equally.",
        "Keep your body balanced during the pull-up.",
        "Focus on an even pull.",
    ),
    "partial_top_rom": (
        "Get that chin over the bar!",
        "A little higher next time.",
        "Almost there, pull all the way up!",
    ),
    "partial_bottom_rom": (
        "Go all the way down for a full rep.",
        "Make sure to fully extend your arms at the bottom.",
        "Full range of motion is key!",
    ),
    "stiff_landing": (
        "Softer landing next time!",
        "Bend your knees to absorb the impact.",
        "Try to land more quietly.",
    ),
    "low_jump": (
        "Explode upwards!",
        "Try to jump higher.",
        "Push the ground away!",
        "Drive through your legs!",
    ),
    "asymmetric_landing": (
        "Land with both feet evenly.",
        "Keep your landing balanced.",
        "Focus on symmetrical form.",
    ),
    "power_endurance": (
        "Maintain that power!",
        "Keep the intensity up!",
        "Strong finish!",
    ),
    GENERAL: (
        "Keep up the great work!",
        "Nice form!",
        "You're doing great!",
    ),
}


class FeedbackSelector:
    """
    Picks one phrase for a completed rep: a random known issue among the
    rep's tags (or the general pool), then a random phrase from it, never
    the same phrase twice in a row when the pool has alternatives.
    Pass a seeded random.Random for reproducible draws.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        phrases: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.rng = rng or random.Random()
        self.phrases = phrases or PHRASES
        self.last_phrase: Optional[str] = None

    def reset(self) -> None:
        self.last_phrase = None

    def pick_issue(self, issues: Iterable[str]) -> str:
        known = [i for i in dict.fromkeys(issues) if i in self.phrases]
        if not known:
            return GENERAL
        return self.rng.choice(known)

    def select(self, issues: Iterable[str]) -> str:
        pool = list(self.phrases.get(self.pick_issue(issues)) or self.phrases[GENERAL])
        if len(pool) > 1 and self.last_phrase in pool:
            pool.remove(self.last_phrase)
        phrase = self.rng.choice(pool)
        self.last_phrase = phrase
        return phrase
