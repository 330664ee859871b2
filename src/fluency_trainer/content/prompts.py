"""Prompt banks and selection policies."""

import random
from functools import lru_cache
from typing import Protocol

import structlog

from fluency_trainer.config import load_prompt_bank
from fluency_trainer.models.prompt import Prompt

logger = structlog.get_logger()


class PromptSource(Protocol):
    def next_prompt(self) -> Prompt: ...


class RandomPicker:
    """Uniform random choice; the same prompt may come up twice in a row."""

    def __init__(self, prompts: list[Prompt], rng: random.Random | None = None):
        if not prompts:
            raise ValueError("RandomPicker needs at least one prompt")
        self.prompts = prompts
        self._rng = rng or random.Random()

    def next_prompt(self) -> Prompt:
        return self._rng.choice(self.prompts)


class ShuffledQueue:
    """Walks a shuffled copy of the bank; reshuffles once it runs out.

    A reshuffle never starts with the prompt that was just shown.
    """

    def __init__(self, prompts: list[Prompt], rng: random.Random | None = None):
        if not prompts:
            raise ValueError("ShuffledQueue needs at least one prompt")
        self.prompts = prompts
        self._rng = rng or random.Random()
        self._queue: list[Prompt] = []
        self._last: Prompt | None = None

    def _refill(self) -> None:
        self._queue = list(self.prompts)
        self._rng.shuffle(self._queue)
        if len(self._queue) > 1 and self._queue[-1] is self._last:
            self._queue[0], self._queue[-1] = self._queue[-1], self._queue[0]

    def next_prompt(self) -> Prompt:
        if not self._queue:
            self._refill()
        self._last = self._queue.pop()
        return self._last


@lru_cache(maxsize=1)
def load_banks() -> dict[str, list[Prompt]]:
    """Load every prompt bank from config/prompts/phrases.yaml."""
    data = load_prompt_bank()
    banks = {
        name: [Prompt.model_validate(item) for item in items or []]
        for name, items in data.items()
    }
    logger.debug("prompt_banks_loaded", banks={k: len(v) for k, v in banks.items()})
    return banks


def get_bank(name: str) -> list[Prompt]:
    banks = load_banks()
    if name not in banks:
        raise KeyError(f"Unknown prompt bank: {name}")
    return banks[name]


def make_source(bank: str, selection: str = "shuffled", rng: random.Random | None = None) -> PromptSource:
    """Build a prompt source over a named bank with the given policy."""
    prompts = get_bank(bank)
    if selection == "random":
        return RandomPicker(prompts, rng)
    return ShuffledQueue(prompts, rng)
