"""Prompt content model."""

from pydantic import BaseModel, Field


class Prompt(BaseModel):
    """A phrase, question or topic presented to the user."""

    text: str
    category: str = ""
    tip: str | None = None
    starters: list[str] = Field(default_factory=list)
    translation: str | None = None
