"""Shared fakes for classification tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from pathclass.classification import (
    ClassificationCache,
    ClassificationOrchestrator,
    PromptBuilder,
    ReasoningClient,
)
from pathclass.config.models import ClassificationOptions

DEFAULT_ANSWER = ("Signal Transduction", "MAPK family signaling cascades")


class FakeDurableStore:
    """In-memory durable tier with a switch that makes every call fail."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = False
        self.reads = 0
        self.write_batches: List[List[str]] = []

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("durable store offline")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        self.reads += 1
        return self.data.get(key)

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        self._check()
        self.reads += 1
        return [self.data.get(key) for key in keys]

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def set_many(self, entries: Mapping[str, str], ttl_seconds: int) -> None:
        self._check()
        self.write_batches.append(list(entries))
        for key, value in entries.items():
            self.data[key] = value
            self.ttls[key] = ttl_seconds


class ScriptedBackend:
    """Completion backend answering each ``Pathway:`` line of the user message.

    Args:
        answers: Class/subclass per pathway name; other names get ``DEFAULT_ANSWER``.
        failures: Number of leading calls that raise before answering.
        reply: Fixed reply text, or a callable producing it from the requested names.
    """

    def __init__(
        self,
        answers: Optional[Dict[str, Tuple[str, str]]] = None,
        *,
        failures: int = 0,
        reply: Optional[str | Callable[[List[str]], str]] = None,
    ) -> None:
        self.answers = answers or {}
        self.failures = failures
        self.reply = reply
        self.calls: List[List[Dict[str, str]]] = []

    @property
    def requested_names(self) -> List[List[str]]:
        return [self.names_in(messages) for messages in self.calls]

    @staticmethod
    def names_in(messages: List[Dict[str, str]]) -> List[str]:
        user = messages[-1]["content"]
        return [
            line[len("Pathway: ") :]
            for line in user.splitlines()
            if line.startswith("Pathway: ")
        ]

    async def __call__(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(messages)
        if self.failures < 0 or len(self.calls) <= self.failures:
            raise RuntimeError("service unavailable")
        names = self.names_in(messages)
        if callable(self.reply):
            return self.reply(names)
        if self.reply is not None:
            return self.reply
        blocks = []
        for name in names:
            class_name, subclass = self.answers.get(name, DEFAULT_ANSWER)
            blocks.append(f"Pathway: {name}\nClass: {class_name}\nSubclass: {subclass}")
        return "\n\n".join(blocks)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def fake_store() -> FakeDurableStore:
    return FakeDurableStore()


@pytest.fixture
def scripted_backend() -> type[ScriptedBackend]:
    return ScriptedBackend


@pytest.fixture
def make_orchestrator() -> Callable[..., ClassificationOrchestrator]:
    """Return a factory wiring an orchestrator around a backend and optional store."""

    def _factory(
        backend: ScriptedBackend,
        *,
        store: Optional[FakeDurableStore] = None,
        cache: Optional[ClassificationCache] = None,
        batch_size: int = 50,
        concurrency: int = 5,
        max_attempts: int = 3,
    ) -> ClassificationOrchestrator:
        prompts = PromptBuilder()
        client = ReasoningClient(
            backend,
            prompts,
            max_attempts=max_attempts,
            retry_delay_seconds=1.0,
            sleep=no_sleep,
        )
        return ClassificationOrchestrator(
            cache or ClassificationCache(store),
            client,
            prompt_builder=prompts,
            options=ClassificationOptions(batch_size=batch_size, concurrency=concurrency),
        )

    return _factory
