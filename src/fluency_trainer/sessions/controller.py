"""Exercise session controller.

Drives one run of an exercise mode through its stages::

    ready -> listen -> [memorize] -> speak -> result -> listen ... -> done

and ``abandoned`` when the user leaves early. Speech output, speech capture
and timers all report back through callbacks; every callback carries the
generation (stage epoch) it was created in and is dropped once the
controller has moved on.
"""

import asyncio
import math
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

import structlog

from fluency_trainer.assessment.scorer import assess
from fluency_trainer.content.prompts import PromptSource
from fluency_trainer.models.progress import UserProgress
from fluency_trainer.models.session import CaptureStatus, PromptOutcome, Session, SessionStage
from fluency_trainer.sessions.modes import ListenAdvance, ModeConfig, PhraseCredit
from fluency_trainer.speech.capabilities import SpeechCapture, SpeechOutput, StopHandle
from fluency_trainer.storage.progress import ProgressStore

logger = structlog.get_logger()

FINAL_STAGES = (SessionStage.DONE, SessionStage.ABANDONED)


class InvalidTransitionError(Exception):
    """Raised when a trigger is not valid in the current stage."""


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later`` signature."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any: ...


class _CaptureBinding:
    """One speech-capture handle owned by the controller."""

    def __init__(self, generation: int):
        self.generation = generation
        self.stop_handle: StopHandle | None = None
        self.result_received = False
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.stop_handle is not None:
            self.stop_handle()


class SessionController:
    """Runs a single exercise session.

    Args:
        mode: Mode definition (target count, timings, capture on/off).
        prompts: Source of prompts for this session.
        speech_output: Text-to-speech capability.
        speech_capture: Speech-to-text capability.
        store: Progress store updated once when the session completes.
        scheduler: Timer provider; defaults to the running asyncio loop.
        clock: Monotonic clock in seconds, for elapsed time.
        on_change: Called with the controller after every stage change.
    """

    def __init__(
        self,
        mode: ModeConfig,
        prompts: PromptSource,
        speech_output: SpeechOutput,
        speech_capture: SpeechCapture,
        store: ProgressStore,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[["SessionController"], None] | None = None,
    ):
        self.mode = mode
        self.session = Session(session_id=str(uuid.uuid4()), mode=mode.name, target=mode.target)
        self.progress: UserProgress | None = None
        self.credited_phrases: int | None = None
        self.capture_status: CaptureStatus | None = None
        self._prompts = prompts
        self._output = speech_output
        self._capture_device = speech_capture
        self._store = store
        self._scheduler = scheduler
        self._clock = clock
        self._on_change = on_change
        self._generation = 0
        self._capture: _CaptureBinding | None = None
        self._timer: Any = None
        self._started_at: float | None = None

    @property
    def stage(self) -> SessionStage:
        return self.session.stage

    @property
    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        return int(self._clock() - self._started_at)

    # -- user triggers -------------------------------------------------

    def start(self) -> None:
        """Leave ``ready`` and present the first prompt."""
        self._require(SessionStage.READY)
        self._started_at = self._clock()
        self.session.started_at = datetime.now()
        logger.info(
            "session_started",
            session_id=self.session.session_id,
            mode=self.mode.name,
            target=self.mode.target,
        )
        self._present_next()

    def finish_speaking(self, starter: str | None = None) -> None:
        """Manual "I said it" / "I started talking": stop capturing and show the result.

        Args:
            starter: Sentence starter the user picked, one of the prompt's
                ``starters``.

        Raises:
            InvalidTransitionError: Outside the speak stage.
            ValueError: If ``starter`` is not offered by the current prompt.
        """
        self._require(SessionStage.SPEAK)
        outcome = self.session.current
        if starter is not None and starter not in outcome.prompt.starters:
            raise ValueError(f"Unknown starter: {starter!r}")
        outcome.responded = True
        outcome.starter = starter
        logger.debug(
            "speaking_finished_manually",
            session_id=self.session.session_id,
            starter=starter,
        )
        self._enter_result()

    def advance(self) -> None:
        """Move on from the result screen to the next prompt or finish."""
        self._require(SessionStage.RESULT)
        self._output.stop()
        self.session.completed += 1
        if self.session.completed >= self.session.target:
            self._finish()
        else:
            self._present_next()

    def cancel(self) -> None:
        """Abandon the session. Nothing is recorded."""
        if self.stage in FINAL_STAGES:
            return
        self._set_stage(SessionStage.ABANDONED)
        self._output.stop()
        logger.info(
            "session_abandoned",
            session_id=self.session.session_id,
            mode=self.mode.name,
            completed=self.session.completed,
        )

    # -- stage flow ----------------------------------------------------

    def _present_next(self) -> None:
        prompt = self._prompts.next_prompt()
        self.session.outcomes.append(PromptOutcome(prompt=prompt))
        self.capture_status = None
        generation = self._set_stage(SessionStage.LISTEN)

        if self.mode.listen_advance is ListenAdvance.PLAYBACK:
            self._output.speak(prompt.text, lambda: self._on_playback_complete(generation))
        else:
            self._output.speak(prompt.text)
            self._schedule(self.mode.listen_seconds, self._after_listen, generation)

    def _on_playback_complete(self, generation: int) -> None:
        if self._is_stale(generation):
            logger.debug("stale_playback_callback_ignored")
            return
        self._schedule(self.mode.listen_seconds, self._after_listen, generation)

    def _after_listen(self, generation: int) -> None:
        if self._is_stale(generation):
            return
        if self.mode.memorize_seconds:
            memorize = self._set_stage(SessionStage.MEMORIZE)
            self._schedule(self.mode.memorize_seconds, self._begin_speak, memorize)
        else:
            self._begin_speak(generation)

    def _begin_speak(self, generation: int) -> None:
        if self._is_stale(generation):
            return
        speak = self._set_stage(SessionStage.SPEAK)
        if self.mode.response_seconds is not None:
            self._schedule(self.mode.response_seconds, self._on_response_window_expired, speak)
        if self.mode.capture:
            self._start_capture(speak)

    def _on_response_window_expired(self, generation: int) -> None:
        if self._is_stale(generation):
            return
        logger.info("response_window_expired", session_id=self.session.session_id)
        self.session.current.timed_out = True
        self._enter_result()
        if self.mode.auto_finish:
            self.advance()

    def _enter_result(self) -> None:
        outcome = self.session.current
        if self.mode.capture and outcome is not None and outcome.assessment is None:
            target = outcome.prompt.text if self.mode.score_against_prompt else None
            outcome.assessment = assess(outcome.transcript, target)
        self._set_stage(SessionStage.RESULT)

    def _finish(self) -> None:
        elapsed = self.elapsed_seconds
        if self.mode.credit is PhraseCredit.MINUTES:
            phrases = math.floor(elapsed / 60 + 0.5)
        else:
            phrases = self.session.completed
        self.credited_phrases = phrases
        try:
            self.progress = self._store.record_session(phrases, elapsed, self.mode.name)
        except OSError:
            logger.exception("progress_save_failed", session_id=self.session.session_id)
        logger.info(
            "session_completed",
            session_id=self.session.session_id,
            mode=self.mode.name,
            phrases=phrases,
            seconds=elapsed,
        )
        self._set_stage(SessionStage.DONE)

    # -- speech capture ------------------------------------------------

    def _start_capture(self, generation: int) -> None:
        self._stop_capture()
        binding = _CaptureBinding(generation)
        self._capture = binding
        handle = self._capture_device.start_capture(
            lambda transcript, confidence: self._on_capture_result(binding, transcript, confidence),
            lambda status: self._on_capture_status(binding, status),
        )
        binding.stop_handle = handle
        # The capture may have finished synchronously (e.g. unsupported)
        if binding.closed and handle is not None:
            handle()

    def _stop_capture(self) -> None:
        if self._capture is not None:
            self._capture.close()
            self._capture = None

    def _is_current_capture(self, binding: _CaptureBinding) -> bool:
        return (
            binding is self._capture
            and not binding.closed
            and binding.generation == self._generation
        )

    def _on_capture_result(
        self, binding: _CaptureBinding, transcript: str, confidence: float | None
    ) -> None:
        if not self._is_current_capture(binding) or binding.result_received:
            logger.debug("stale_capture_result_ignored")
            return
        binding.result_received = True
        outcome = self.session.current
        outcome.transcript = transcript or ""
        outcome.confidence = confidence
        outcome.responded = bool(outcome.transcript.strip())
        logger.debug("capture_result", transcript=outcome.transcript[:80], confidence=confidence)
        self._enter_result()

    def _on_capture_status(self, binding: _CaptureBinding, status: CaptureStatus) -> None:
        if not self._is_current_capture(binding) or binding.result_received:
            return
        self.capture_status = status
        if not status.is_terminal:
            self._notify()
            return

        self.session.current.capture_status = status
        if status is CaptureStatus.ERROR:
            logger.warning("capture_failed", session_id=self.session.session_id)
        else:
            logger.info("capture_ended_without_speech", status=status.value)
        self._enter_result()

    # -- plumbing ------------------------------------------------------

    def _set_stage(self, stage: SessionStage) -> int:
        """Switch stage, invalidating timers and capture from the old one."""
        self._cancel_timer()
        self._stop_capture()
        self._generation += 1
        self.session.stage = stage
        logger.debug("session_stage", session_id=self.session.session_id, stage=stage.value)
        self._notify()
        return self._generation

    def _require(self, *stages: SessionStage) -> None:
        if self.stage not in stages:
            raise InvalidTransitionError(
                f"Cannot do that in stage {self.stage.value!r} "
                f"(expected {', '.join(s.value for s in stages)})"
            )

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _schedule(self, delay: float, callback: Callable[[int], None], generation: int) -> None:
        self._cancel_timer()
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(max(delay, 0.0), callback, generation)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
