"""
Per-frame orchestration: readiness -> exercise processor -> feedback -> session.
One WorkoutCoach per workout; frames must be fed one at a time in order.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from .feedback import FeedbackSelector
from .jump import JumpProcessor, JumpThresholds
from .keypoints import PoseFrame
from .pullup import PullupProcessor, PullupThresholds
from .readiness import ReadinessAssessment, ReadinessConfig, ReadinessEvaluator
from .results import Exercise, ProcessorResult, RepPhase, ResultKind, SpeakHint
from .session import SessionAggregator

logger = logging.getLogger(__name__)


class CoachMode(str, Enum):
    TRAINING = "training"
    # Counts and scores reps without surfacing form cues.
    ASSESSMENT = "assessment"


@dataclass(frozen=True)
class CoachUpdate:
    result: ProcessorResult
    readiness: Optional[ReadinessAssessment]
    feedback: Optional[str]
    speak: Optional[SpeakHint]
    phase: RepPhase
    rep_count: int
    achievements: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "readiness": self.readiness.to_dict() if self.readiness is not None else None,
            "feedback": self.feedback,
            "speak": {"issue": self.speak.issue, "phrase": self.speak.phrase} if self.speak else None,
            "phase": self.phase.value,
            "rep_count": self.rep_count,
            "achievements": list(self.achievements),
        }


class WorkoutCoach:
    def __init__(
        self,
        exercise: Union[Exercise, str],
        mode: Union[CoachMode, str] = CoachMode.TRAINING,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        readiness_config: Optional[ReadinessConfig] = None,
        pullup_thresholds: Optional[PullupThresholds] = None,
        jump_thresholds: Optional[JumpThresholds] = None,
    ):
        self.exercise = Exercise(exercise)
        self.mode = CoachMode(mode)
        self.readiness = ReadinessEvaluator(readiness_config or ReadinessConfig.for_exercise(self.exercise))
        if self.exercise is Exercise.JUMPS:
            self.processor: Union[PullupProcessor, JumpProcessor] = JumpProcessor(jump_thresholds)
        else:
            self.processor = PullupProcessor(pullup_thresholds)
        self.selector = FeedbackSelector(rng)
        self.session = SessionAggregator(clock)
        self._previous_issues: tuple[str, ...] = ()

    @property
    def phase(self) -> RepPhase:
        return self.processor.phase

    @property
    def rep_count(self) -> int:
        return self.session.rep_count

    def reset(self) -> None:
        self.readiness.reset()
        self.processor.reset()
        self.selector.reset()
        self.session.reset()
        self._previous_issues = ()
        logger.info("coach: %s session reset", self.exercise.value)

    def process(self, frame: PoseFrame) -> CoachUpdate:
        readiness: Optional[ReadinessAssessment] = None
        if not self.processor.mid_rep:
            readiness = self._evaluate_readiness(frame)

        result = self.processor.process(frame)
        if result.kind is ResultKind.NOT_APPLICABLE and readiness is None:
            readiness = self._evaluate_readiness(frame)

        feedback = result.feedback
        speak = result.speak
        setup_cue = result.kind is ResultKind.NOT_APPLICABLE or (
            result.kind is ResultKind.FEEDBACK and readiness is not None and not readiness.can_proceed
        )
        if setup_cue:
            feedback = readiness.summary
        elif result.kind is ResultKind.PHASE_TRANSITION:
            self.session.start()

        achievements: list[str] = []
        if result.rep is not None:
            achievements = self.session.add(result.rep)
            if feedback is None and self.mode is CoachMode.TRAINING:
                feedback = self.selector.select(result.rep.issues)

        if speak is not None and speak.issue in self._previous_issues:
            speak = None
        if result.rep is not None:
            self._previous_issues = result.rep.issues

        if self.mode is CoachMode.ASSESSMENT:
            speak = None
            if not setup_cue:
                feedback = None

        return CoachUpdate(
            result=result,
            readiness=readiness,
            feedback=feedback,
            speak=speak,
            phase=self.processor.phase,
            rep_count=self.session.rep_count,
            achievements=tuple(achievements),
        )

    def _evaluate_readiness(self, frame: PoseFrame) -> ReadinessAssessment:
        assessment = self.readiness.evaluate(frame)
        if isinstance(self.processor, JumpProcessor) and self.processor.ground_level is None:
            self.processor.ground_level = assessment.ground_level
        return assessment

    def summary(self) -> dict[str, Any]:
        out = {"exercise": self.exercise.value, "mode": self.mode.value}
        out.update(self.session.summary())
        return out
