"""Shared fakes for the speech capabilities and timers."""

import pytest

from fluency_trainer.models.prompt import Prompt
from fluency_trainer.models.session import CaptureStatus


class FakeSpeechOutput:
    def __init__(self):
        self.spoken: list[str] = []
        self.stops = 0
        self.pending = None

    def speak(self, text, on_complete=None):
        if self.pending is not None:
            callback, self.pending = self.pending, None
            callback()
        self.spoken.append(text)
        self.pending = on_complete

    def stop(self):
        self.stops += 1
        self.pending = None

    def finish(self):
        callback, self.pending = self.pending, None
        if callback is not None:
            callback()


class FakeCaptureHandle:
    def __init__(self, on_result, on_status):
        self.on_result = on_result
        self.on_status = on_status
        self.stopped = False

    def stop(self):
        self.stopped = True

    def result(self, transcript, confidence=0.9):
        self.on_result(transcript, confidence)

    def status(self, status: CaptureStatus):
        self.on_status(status)


class FakeSpeechCapture:
    def __init__(self, immediate_status: CaptureStatus | None = None):
        self.handles: list[FakeCaptureHandle] = []
        self.immediate_status = immediate_status

    @property
    def current(self) -> FakeCaptureHandle:
        return self.handles[-1]

    @property
    def active_count(self) -> int:
        return sum(1 for h in self.handles if not h.stopped)

    def start_capture(self, on_result, on_status):
        handle = FakeCaptureHandle(on_result, on_status)
        self.handles.append(handle)
        if self.immediate_status is not None:
            on_status(self.immediate_status)
        return handle.stop


class FakeTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock driving call_later timers."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def clock(self) -> float:
        return self.now

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and t.when is not None]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self.pending if t.when <= target), key=lambda t: t.when
            )
            if not due:
                break
            timer = due[0]
            self.now = max(self.now, timer.when)
            timer.when = None
            timer.callback(*timer.args)
        self.now = target


class FixedPrompts:
    def __init__(self, texts):
        self.prompts = [Prompt(text=t, category="test") for t in texts]
        self.index = 0

    def next_prompt(self):
        prompt = self.prompts[self.index % len(self.prompts)]
        self.index += 1
        return prompt


@pytest.fixture
def speech_output():
    return FakeSpeechOutput()


@pytest.fixture
def speech_capture():
    return FakeSpeechCapture()


@pytest.fixture
def scheduler():
    return FakeScheduler()
