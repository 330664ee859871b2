"""Speech capabilities consumed by the session controller.

Any runtime (browser, OS speech APIs, a cloud service) plugs in by
implementing these two protocols.
"""

from collections.abc import Callable
from typing import Protocol

from fluency_trainer.models.session import CaptureStatus

OnResult = Callable[[str, float | None], None]
OnStatus = Callable[[CaptureStatus], None]
StopHandle = Callable[[], None]


class SpeechOutput(Protocol):
    """Text-to-speech in the target language."""

    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        """Start rendering ``text``.

        ``on_complete`` fires exactly once, when playback ends or when a
        newer ``speak`` call supersedes it.
        """
        ...

    def stop(self) -> None:
        """Cancel any in-flight rendering."""
        ...


class SpeechCapture(Protocol):
    """Speech-to-text capture."""

    def start_capture(self, on_result: OnResult, on_status: OnStatus) -> StopHandle:
        """Start one capture.

        Delivers a single ``on_result(transcript, confidence)`` or a terminal
        status, possibly preceded by transient ``listening``/``idle``
        statuses. Calling the returned handle cancels the capture and
        suppresses any further callbacks from it.
        """
        ...
