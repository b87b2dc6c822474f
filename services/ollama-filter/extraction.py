"""Turn a completion response into embryos within a wall-clock deadline.

CPU-only; the deadline bounds this loop, not the completion call.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable

from models import Embryo

logger = logging.getLogger(__name__)

SOURCE_KEY = "url"
SOURCE_MARKER = "ollama_test"
CONTENT_KEY = "resume"

Clock = Callable[[], float]


@dataclass(frozen=True)
class Deadline:
    """Cooperative cutoff, checked by the caller before each unit of work."""

    start: float
    timeout: float
    clock: Clock = time.monotonic

    @classmethod
    def starting_now(cls, timeout: float, clock: Clock = time.monotonic) -> "Deadline":
        return cls(start=clock(), timeout=timeout, clock=clock)

    def elapsed(self) -> float:
        return self.clock() - self.start

    def expired(self) -> bool:
        return self.elapsed() >= self.timeout


def extract_embryos(
    raw_body: str,
    timeout_seconds: float,
    clock: Clock = time.monotonic,
) -> list[Embryo]:
    """Build one embryo per completion choice, in order, until the deadline.

    A body that is not JSON, or has no ``choices`` list, yields no embryos.
    """
    try:
        parsed = json.loads(raw_body)
    except (json.JSONDecodeError, RecursionError):
        logger.warning("Completion response is not JSON: %s", raw_body[:200])
        return []

    choices = parsed.get("choices") if isinstance(parsed, dict) else None
    if not isinstance(choices, list):
        return []

    embryos: list[Embryo] = []
    deadline = Deadline.starting_now(timeout_seconds, clock)

    for choice in choices:
        if deadline.expired():
            logger.info(
                "Extraction deadline of %.1fs reached after %d/%d choices",
                timeout_seconds, len(embryos), len(choices),
            )
            return embryos

        embryo = Embryo(properties={
            SOURCE_KEY: SOURCE_MARKER,
            CONTENT_KEY: _choice_text(choice),
        })
        logger.debug("Embryo: %s", embryo.properties)
        embryos.append(embryo)

    return embryos


def _choice_text(choice: object) -> str:
    if not isinstance(choice, dict):
        return ""
    text = choice.get("text")
    return text if isinstance(text, str) else ""
