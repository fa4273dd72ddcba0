"""
Phases and per-frame results shared by the exercise processors.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union


class Exercise(str, Enum):
    PULLUPS = "pullups"
    JUMPS = "jumps"


class PullupPhase(str, Enum):
    HANGING = "HANGING"
    PULLED_UP = "PULLED_UP"


class JumpPhase(str, Enum):
    GROUNDED = "GROUNDED"
    AIRBORNE = "AIRBORNE"


RepPhase = Union[PullupPhase, JumpPhase]


class ResultKind(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    FEEDBACK = "feedback"
    PHASE_TRANSITION = "phase_transition"
    REP_COMPLETED = "rep_completed"


@dataclass(frozen=True)
class SpeakHint:
    """Short cue the UI may speak immediately, tagged with the issue it addresses."""

    issue: str
    phrase: str


@dataclass(frozen=True)
class RepResult:
    score: int
    issues: tuple[str, ...] = ()
    details: Mapping[str, float] = field(default_factory=dict)
    timestamp: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "issues": list(self.issues),
            "details": dict(self.details),
            "timestamp": self.timestamp,
        }


def dedupe(issues: list[str]) -> tuple[str, ...]:
    """Drop repeated issue tags, keeping first-seen order."""
    return tuple(dict.fromkeys(issues))


@dataclass(frozen=True)
class ProcessorResult:
    """
    Outcome of one frame. kind tells which fields are meaningful:
    NOT_APPLICABLE defers to readiness feedback, FEEDBACK carries text only,
    PHASE_TRANSITION sets new_phase, REP_COMPLETED sets new_phase and rep.
    """

    kind: ResultKind
    feedback: Optional[str] = None
    new_phase: Optional[RepPhase] = None
    rep: Optional[RepResult] = None
    angles: Mapping[str, float] = field(default_factory=dict)
    speak: Optional[SpeakHint] = None

    @property
    def rep_completed(self) -> bool:
        return self.kind is ResultKind.REP_COMPLETED

    @classmethod
    def not_applicable(cls) -> "ProcessorResult":
        return cls(kind=ResultKind.NOT_APPLICABLE)

    @classmethod
    def message(
        cls,
        feedback: Optional[str],
        angles: Optional[Mapping[str, float]] = None,
        speak: Optional[SpeakHint] = None,
    ) -> "ProcessorResult":
        return cls(kind=ResultKind.FEEDBACK, feedback=feedback, angles=angles or {}, speak=speak)

    @classmethod
    def transition(
        cls,
        phase: RepPhase,
        feedback: Optional[str] = None,
        angles: Optional[Mapping[str, float]] = None,
        speak: Optional[SpeakHint] = None,
    ) -> "ProcessorResult":
        return cls(
            kind=ResultKind.PHASE_TRANSITION,
            feedback=feedback,
            new_phase=phase,
            angles=angles or {},
            speak=speak,
        )

    @classmethod
    def completed(
        cls,
        phase: RepPhase,
        rep: RepResult,
        feedback: Optional[str] = None,
        angles: Optional[Mapping[str, float]] = None,
        speak: Optional[SpeakHint] = None,
    ) -> "ProcessorResult":
        return cls(
            kind=ResultKind.REP_COMPLETED,
            feedback=feedback,
            new_phase=phase,
            rep=rep,
            angles=angles or {},
            speak=speak,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "feedback": self.feedback,
            "new_phase": self.new_phase.value if self.new_phase is not None else None,
            "rep_completed": self.rep_completed,
            "rep": self.rep.to_dict() if self.rep is not None else None,
            "angles": {k: round(v, 2) for k, v in self.angles.items()},
            "speak": {"issue": self.speak.issue, "phrase": self.speak.phrase} if self.speak else None,
        }
