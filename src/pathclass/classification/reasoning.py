"""Reasoning service client and reply parser.

The client owns retries and backoff; the backend only performs one chat completion.
Replies are free text following a ``Pathway:/Class:/Subclass:`` block grammar that
:func:`parse_response` recovers defensively.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import dspy

from pathclass.config.models import LLMSettings

from .errors import ServiceFailure
from .models import UNKNOWN, ParsedClassification
from .prompts import PromptBuilder

LOGGER = logging.getLogger(__name__)

Message = Dict[str, str]
CompletionBackend = Callable[[List[Message]], Awaitable[str]]
Sleep = Callable[[float], Awaitable[None]]

_BLOCK_SEPARATOR = re.compile(r"\n[ \t\f\v]*\n")
_PREFIXES = {"Pathway:": "pathway", "Class:": "class_name", "Subclass:": "subclass"}


@dataclass
class CompletionResult:
    """Outcome of one reasoning call, including every retry.

    Attributes:
        text: Reply text when an attempt succeeded.
        failure: Error describing the last failed attempt when none succeeded.
        attempt_count: Number of attempts made.
        duration_ms: Wall-clock time spent, backoff included.
    """

    text: Optional[str] = None
    failure: Optional[ServiceFailure] = None
    attempt_count: int = 0
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None

    def unwrap(self) -> str:
        """Return the reply text or raise the recorded failure."""
        if self.failure is not None:
            raise self.failure
        if self.text is None:
            raise ServiceFailure("Reasoning service returned no reply", attempts=self.attempt_count)
        return self.text


class DSPyCompletionBackend:
    """Send chat messages through a ``dspy.LM`` configured from LLM settings."""

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self._settings = settings or LLMSettings()
        self._lm = self._configure_language_model()

    def _configure_language_model(self) -> "dspy.LM":
        settings = self._settings
        model = settings.model
        if settings.provider and "/" not in model:
            model = f"{settings.provider}/{model}"

        lm_kwargs: dict[str, object] = {
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
            "cache": False,
            "num_retries": 0,
            "timeout": settings.timeout_seconds,
        }
        if settings.api_base_url:
            lm_kwargs["api_base"] = settings.api_base_url
        if settings.api_key is not None:
            lm_kwargs["api_key"] = settings.api_key

        try:
            return dspy.LM(model, **lm_kwargs)
        except Exception as exc:
            raise RuntimeError(
                "Unable to configure the DSPy language model. Verify the `llm` section of "
                "your configuration."
            ) from exc

    async def __call__(self, messages: List[Message]) -> str:
        outputs = await asyncio.wait_for(
            asyncio.to_thread(self._lm, messages=messages),
            timeout=self._settings.timeout_seconds,
        )
        if not outputs:
            return ""
        first = outputs[0]
        if isinstance(first, dict):
            return str(first.get("text") or "")
        return str(first)


class ReasoningClient:
    """Call the reasoning service for one batch with bounded retries.

    Args:
        backend: Coroutine function performing a single chat completion.
        prompt_builder: Renders the per-batch user instruction.
        max_attempts: Total attempts per call, first attempt included.
        retry_delay_seconds: Backoff unit; the k-th retry waits ``k`` units.
        sleep: Awaitable used for backoff waits.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        prompt_builder: PromptBuilder,
        *,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._prompts = prompt_builder
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay_seconds
        self._sleep = sleep

    async def complete(
        self,
        names: Sequence[str],
        species: Sequence[str] = (),
        *,
        system_prompt: str = "",
    ) -> CompletionResult:
        """Classify ``names`` in a single service request.

        Returns:
            CompletionResult: Reply text, or the failure after every attempt failed.
        """
        messages: List[Message] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": self._prompts.user_prompt(names, species)})

        started = time.perf_counter()
        remaining = self._max_attempts
        attempts = 0
        last_error: Optional[BaseException] = None
        while remaining > 0:
            attempts += 1
            remaining -= 1
            try:
                text = await self._backend(messages)
            except Exception as exc:
                last_error = exc
                if remaining == 0:
                    break
                delay = (self._max_attempts - remaining) * self._retry_delay
                LOGGER.warning(
                    "Reasoning call failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempts,
                    self._max_attempts,
                    exc,
                    delay,
                )
                await self._sleep(delay)
                continue
            return CompletionResult(
                text=text,
                attempt_count=attempts,
                duration_ms=_elapsed_ms(started),
            )

        failure = ServiceFailure(
            f"Reasoning service failed after {attempts} attempts: {last_error}",
            attempts=attempts,
        )
        failure.__cause__ = last_error
        return CompletionResult(
            failure=failure,
            attempt_count=attempts,
            duration_ms=_elapsed_ms(started),
        )


def parse_response(text: str) -> List[ParsedClassification]:
    """Recover classification blocks from a reply.

    Blocks are separated by blank (or whitespace-only) lines. Inside a block the first
    line per prefix wins; absent or empty class fields become the ``Unknown`` sentinel
    and an absent pathway line leaves the pathway empty.
    """
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    parsed: List[ParsedClassification] = []
    for block in _BLOCK_SEPARATOR.split(normalized):
        fields: Dict[str, str] = {}
        for raw_line in block.split("\n"):
            line = raw_line.strip()
            for prefix, field_name in _PREFIXES.items():
                if line.startswith(prefix) and field_name not in fields:
                    fields[field_name] = line[len(prefix) :].strip()
                    break
        if not fields:
            continue
        parsed.append(
            ParsedClassification(
                pathway=fields.get("pathway", ""),
                class_name=fields.get("class_name") or UNKNOWN,
                subclass=fields.get("subclass") or UNKNOWN,
            )
        )
    return parsed


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = [
    "CompletionBackend",
    "CompletionResult",
    "DSPyCompletionBackend",
    "ReasoningClient",
    "parse_response",
]
