"""Browser WebSocket handler - the browser provides speech in and out."""

import asyncio
from collections.abc import Callable
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, PositiveFloat, ValidationError

from fluency_trainer.config import Settings
from fluency_trainer.content.prompts import make_source
from fluency_trainer.models.session import CaptureStatus, SessionStage
from fluency_trainer.progress.ledger import level_title
from fluency_trainer.sessions.controller import InvalidTransitionError, SessionController
from fluency_trainer.sessions.modes import build_modes
from fluency_trainer.speech.capabilities import OnResult, OnStatus, StopHandle
from fluency_trainer.storage.progress import ProgressStore, get_progress_store

logger = structlog.get_logger()

Send = Callable[[dict], None]

# Sentinel that stops the outbox sender
_STOP = None

_PROMPT_STAGES = (SessionStage.LISTEN, SessionStage.MEMORIZE, SessionStage.SPEAK, SessionStage.RESULT)


class BrowserMessage(BaseModel):
    """Any message the browser sends; fields not used by ``type`` are ignored."""

    model_config = ConfigDict(extra="ignore")

    type: str
    mode: str = "fluency"
    duration: PositiveFloat | None = None
    utterance_id: int = 0
    capture_id: int = 0
    transcript: str = ""
    confidence: float | None = None
    status: str = ""
    starter: str | None = None


class BrowserSpeechOutput:
    """Speech output rendered by the browser's speech synthesis."""

    def __init__(self, send: Send):
        self._send = send
        self._utterance_id = 0
        self._on_complete: Callable[[], None] | None = None

    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        # A new utterance supersedes the previous one, which counts as complete
        previous, self._on_complete = self._on_complete, None
        if previous is not None:
            previous()
        self._utterance_id += 1
        self._on_complete = on_complete
        self._send({"type": "speak", "utterance_id": self._utterance_id, "text": text})

    def stop(self) -> None:
        self._on_complete = None
        self._send({"type": "stop_speaking"})

    def handle_done(self, utterance_id: int) -> None:
        if utterance_id != self._utterance_id:
            logger.debug("stale_speech_done_ignored", utterance_id=utterance_id)
            return
        callback, self._on_complete = self._on_complete, None
        if callback is not None:
            callback()


class _ActiveCapture:
    def __init__(self, capture_id: int, on_result: OnResult, on_status: OnStatus):
        self.capture_id = capture_id
        self.on_result = on_result
        self.on_status = on_status


class BrowserSpeechCapture:
    """Speech capture performed by the browser's speech recognition.

    Only one capture is live per connection; starting a new one stops the
    previous one and detaches its callbacks.
    """

    def __init__(self, send: Send):
        self._send = send
        self._capture_id = 0
        self._active: _ActiveCapture | None = None

    def start_capture(self, on_result: OnResult, on_status: OnStatus) -> StopHandle:
        if self._active is not None:
            self._stop(self._active.capture_id)
        self._capture_id += 1
        capture_id = self._capture_id
        self._active = _ActiveCapture(capture_id, on_result, on_status)
        self._send({"type": "start_capture", "capture_id": capture_id})
        return lambda: self._stop(capture_id)

    def _stop(self, capture_id: int) -> None:
        if self._active is None or self._active.capture_id != capture_id:
            return
        self._active = None
        self._send({"type": "stop_capture", "capture_id": capture_id})

    def _lookup(self, capture_id: int) -> _ActiveCapture | None:
        if self._active is None or self._active.capture_id != capture_id:
            logger.debug("stale_capture_message_ignored", capture_id=capture_id)
            return None
        return self._active

    def handle_result(self, capture_id: int, transcript: str, confidence: float | None) -> None:
        active = self._lookup(capture_id)
        if active is not None:
            active.on_result(transcript, confidence)

    def handle_status(self, capture_id: int, status: str) -> None:
        try:
            parsed = CaptureStatus(status)
        except ValueError:
            logger.warning("unknown_capture_status", status=status)
            return
        active = self._lookup(capture_id)
        if active is not None:
            active.on_status(parsed)


class SessionManager:
    """Runs exercise sessions for one browser connection.

    Args:
        settings: Application settings.
        browser_ws: WebSocket connection to the browser.
        store: Progress store (defaults to the configured record).
    """

    def __init__(self, settings: Settings, browser_ws: WebSocket, store: ProgressStore | None = None):
        self.settings = settings
        self.browser_ws = browser_ws
        self.store = store or get_progress_store(settings)
        self.modes = build_modes(settings)
        self.speech_output = BrowserSpeechOutput(self._enqueue)
        self.speech_capture = BrowserSpeechCapture(self._enqueue)
        self.controller: SessionController | None = None
        self._outbox: asyncio.Queue[dict | None] = asyncio.Queue()
        self._sender: asyncio.Task | None = None

    async def open(self) -> None:
        self._sender = asyncio.create_task(self._send_loop())

    async def close(self) -> None:
        """Abandon any running session and flush pending messages."""
        if self.controller is not None:
            self.controller.cancel()
        if self._sender is not None:
            self._outbox.put_nowait(_STOP)
            await self._sender
            self._sender = None

    def handle_message(self, data: Any) -> None:
        """Dispatch one browser message.

        Raises:
            ValidationError: The message does not have the expected shape.
            InvalidTransitionError: The message is not valid in the current stage.
        """
        message = BrowserMessage.model_validate(data)
        msg_type = message.type

        if msg_type == "start_session":
            self.start_session(message.mode, message.duration)
        elif msg_type == "speech_done":
            self.speech_output.handle_done(message.utterance_id)
        elif msg_type == "capture_result":
            self.speech_capture.handle_result(
                message.capture_id, message.transcript, message.confidence
            )
        elif msg_type == "capture_status":
            self.speech_capture.handle_status(message.capture_id, message.status)
        elif msg_type == "finish_speaking":
            self._require_controller().finish_speaking(message.starter)
        elif msg_type == "next":
            self._require_controller().advance()
        elif msg_type == "stop_session":
            if self.controller is not None:
                self.controller.cancel()
                self.controller = None
        else:
            logger.warning("unknown_browser_message", msg_type=msg_type)

    def start_session(self, mode_name: str, duration: float | None = None) -> None:
        mode = self.modes.get(mode_name)
        if mode is None:
            self.send_error(f"Unknown mode: {mode_name}")
            return
        if duration is not None:
            mode = mode.with_response_seconds(duration)
        if self.controller is not None:
            self.controller.cancel()
        self.controller = SessionController(
            mode=mode,
            prompts=make_source(mode.bank, self.settings.prompt_selection),
            speech_output=self.speech_output,
            speech_capture=self.speech_capture,
            store=self.store,
            on_change=self._on_change,
        )
        self.controller.start()

    def send_error(self, message: str) -> None:
        self._enqueue({"type": "error", "message": message})

    def _require_controller(self) -> SessionController:
        if self.controller is None:
            raise InvalidTransitionError("No session is running")
        return self.controller

    def _on_change(self, controller: SessionController) -> None:
        session = controller.session
        state: dict = {
            "type": "session_state",
            "session_id": session.session_id,
            "mode": session.mode,
            "stage": session.stage.value,
            "completed": session.completed,
            "target": session.target,
            "capture_status": controller.capture_status.value if controller.capture_status else None,
            "elapsed_seconds": controller.elapsed_seconds,
        }
        outcome = session.current
        if outcome is not None and session.stage in _PROMPT_STAGES:
            state["prompt"] = outcome.prompt.model_dump()
        self._enqueue(state)

        if session.stage is SessionStage.RESULT and outcome is not None:
            self._enqueue({
                "type": "prompt_result",
                "session_id": session.session_id,
                "transcript": outcome.transcript,
                "capture_status": outcome.capture_status.value if outcome.capture_status else None,
                "responded": outcome.responded,
                "timed_out": outcome.timed_out,
                "starter": outcome.starter,
                "assessment": outcome.assessment.model_dump(mode="json") if outcome.assessment else None,
            })
        elif session.stage is SessionStage.DONE:
            progress = controller.progress
            self._enqueue({
                "type": "session_complete",
                "session_id": session.session_id,
                "phrases": controller.credited_phrases,
                "clean_responses": session.clean_responses,
                "target": session.target,
                "seconds": controller.elapsed_seconds,
                "progress": progress.model_dump(mode="json") if progress else None,
                "level_title": level_title(progress.level) if progress else None,
            })

    def _enqueue(self, data: dict) -> None:
        self._outbox.put_nowait(data)

    async def _send_loop(self) -> None:
        """Deliver queued messages to the browser in order."""
        while True:
            data = await self._outbox.get()
            if data is _STOP:
                break
            await self._send_to_browser(data)

    async def _send_to_browser(self, data: dict) -> None:
        """Send a message to the browser WebSocket."""
        try:
            await self.browser_ws.send_json(data)
        except Exception:
            logger.warning("browser_send_failed", msg_type=data.get("type"))


async def handle_browser_websocket(
    websocket: WebSocket, settings: Settings
) -> None:
    """Handle a browser WebSocket connection."""
    await websocket.accept()
    manager = SessionManager(settings, websocket)
    await manager.open()

    try:
        while True:
            try:
                data = await websocket.receive_json()
                manager.handle_message(data)
            except ValidationError as e:
                logger.warning("malformed_browser_message", errors=e.error_count())
                manager.send_error(f"Malformed message: {e.errors()[0]['msg']}")
            except (InvalidTransitionError, ValueError) as e:
                manager.send_error(str(e))

    except WebSocketDisconnect:
        logger.info("browser_disconnected")
    except Exception:
        logger.exception("websocket_handler_error")
    finally:
        await manager.close()
