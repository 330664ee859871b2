"""REST API routes for scoring, detection and progress."""

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from fluency_trainer.assessment import interference, similarity
from fluency_trainer.config import get_settings
from fluency_trainer.content.prompts import get_bank
from fluency_trainer.models.assessment import InterferenceResult
from fluency_trainer.models.prompt import Prompt
from fluency_trainer.progress.ledger import level_title, today_record
from fluency_trainer.sessions.modes import ModeConfig, build_modes
from fluency_trainer.storage.progress import get_progress_store

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class ScoreRequest(BaseModel):
    transcript: str = ""
    target: str


class InterferenceRequest(BaseModel):
    transcript: str = ""


class SessionRecordRequest(BaseModel):
    phrases_completed: int = Field(ge=0)
    seconds_elapsed: int = Field(ge=0)
    mode: str


def _progress_payload(progress) -> dict:
    record = today_record(progress)
    return {
        "progress": progress.model_dump(mode="json"),
        "level_title": level_title(progress.level),
        "today": record.model_dump(mode="json") if record else None,
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/progress")
async def get_progress() -> dict:
    """Current progress with level title and today's activity."""
    store = get_progress_store(get_settings())
    return _progress_payload(store.load())


@router.post("/progress/sessions")
async def record_session(request: SessionRecordRequest) -> dict:
    """Record a session completed by a client-driven exercise."""
    settings = get_settings()
    if request.mode not in build_modes(settings):
        raise HTTPException(status_code=404, detail=f"Unknown mode: {request.mode}")
    store = get_progress_store(settings)
    progress = store.record_session(request.phrases_completed, request.seconds_elapsed, request.mode)
    return _progress_payload(progress)


@router.post("/score")
async def score_transcript(request: ScoreRequest) -> dict:
    """Similarity between a transcript and its target phrase."""
    return {"score": similarity.score(request.transcript, request.target)}


@router.post("/interference")
async def detect_interference(request: InterferenceRequest) -> InterferenceResult:
    """Spanish words detected in a transcript."""
    return interference.detect(request.transcript)


@router.get("/modes")
async def list_modes() -> list[ModeConfig]:
    """Exercise modes and their session shape."""
    return list(build_modes(get_settings()).values())


@router.get("/prompts/{bank}")
async def list_prompts(bank: str) -> list[Prompt]:
    """All prompts of a bank (fluency, reaction, fillers, topics)."""
    try:
        return get_bank(bank)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown prompt bank: {bank}")
