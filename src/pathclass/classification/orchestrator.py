"""Batched, cached classification of pathway records.

The orchestrator splits trusted records from records that need classifying, groups
the latter into batches and lets a fixed pool of workers resolve them. Each distinct
pathway name is owned by the first batch that claims it; other batches containing
the same name await that batch's answer, so one run never classifies a name twice.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from pathclass.config.models import ClassificationOptions

from .cache import ClassificationCache
from .errors import InvalidInputError
from .fallback import FallbackClassifier
from .models import (
    Classification,
    ClassificationRun,
    ClassifiedRecord,
    PathwayRecord,
    ProgressEvent,
    Resolution,
    is_resolved,
)
from .progress import ProgressChannel
from .prompts import PromptBuilder
from .reasoning import ReasoningClient, parse_response

LOGGER = logging.getLogger(__name__)

INVALID_INPUT_MESSAGE = "Invalid or empty pathways data"

Resolved = Tuple[Classification, Resolution]
IndexedRecord = Tuple[int, PathwayRecord]


@dataclass
class _RunState:
    """Mutable bookkeeping shared by the workers of one run."""

    total: int
    batch_count: int
    force_refresh: bool
    system_prompt: str
    channel: Optional[ProgressChannel]
    registry: Dict[str, "asyncio.Future[Resolved]"] = field(default_factory=dict)
    results: Dict[int, ClassifiedRecord] = field(default_factory=dict)
    processed: int = 0
    service_calls: int = 0
    failed_batches: int = 0

    def claim(self, batch: Sequence[IndexedRecord]) -> Dict[str, PathwayRecord]:
        """Register futures for names no other batch owns yet.

        Returns:
            dict[str, PathwayRecord]: Newly owned names mapped to their first record.
        """
        loop = asyncio.get_running_loop()
        owned: Dict[str, PathwayRecord] = {}
        for _, record in batch:
            key = record.cache_key
            if key in self.registry:
                continue
            self.registry[key] = loop.create_future()
            owned[key] = record
        return owned

    def resolve(self, key: str, value: Resolved) -> None:
        future = self.registry[key]
        if not future.done():
            future.set_result(value)


def _coerce_records(records: Any) -> List[PathwayRecord]:
    if not isinstance(records, (list, tuple)) or not records:
        raise InvalidInputError(INVALID_INPUT_MESSAGE)

    coerced: List[PathwayRecord] = []
    for item in records:
        if isinstance(item, PathwayRecord):
            coerced.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidInputError(INVALID_INPUT_MESSAGE)
        try:
            coerced.append(PathwayRecord.model_validate(dict(item)))
        except ValidationError as exc:
            raise InvalidInputError(f"{INVALID_INPUT_MESSAGE}: {exc}") from exc
    return coerced


def _batched(items: Sequence[IndexedRecord], size: int) -> List[List[IndexedRecord]]:
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


class ClassificationOrchestrator:
    """Resolve classifications for a list of pathway records.

    Args:
        cache: Injected classification cache.
        client: Reasoning client used for cache misses.
        fallback: Deterministic classifier closing any gap the service leaves.
        prompt_builder: Builds the per-run system instruction.
        options: Batch size, concurrency and trusted source settings.
    """

    def __init__(
        self,
        cache: ClassificationCache,
        client: ReasoningClient,
        *,
        fallback: Optional[FallbackClassifier] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        options: Optional[ClassificationOptions] = None,
    ) -> None:
        self._options = options or ClassificationOptions()
        self._cache = cache
        self._client = client
        self._fallback = fallback or FallbackClassifier()
        self._prompts = prompt_builder or PromptBuilder(max_examples=self._options.max_examples)

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    @property
    def fallback(self) -> FallbackClassifier:
        return self._fallback

    async def run(
        self,
        records: Sequence[PathwayRecord | Mapping[str, Any]],
        *,
        force_refresh: bool = False,
        channel: Optional[ProgressChannel] = None,
    ) -> ClassificationRun:
        """Classify ``records`` and return the annotated run.

        Args:
            records: Non-empty list of records or mappings with pathway columns.
            force_refresh: Skip cache reads for this run; results are still written.
            channel: Optional receiver of progress events.

        Returns:
            ClassificationRun: Classified records plus run counters.

        Raises:
            InvalidInputError: If ``records`` is empty or not a list of records.
        """
        pathway_records = _coerce_records(records)
        started = time.perf_counter()

        trusted_source = self._options.trusted_source
        trusted = [record for record in pathway_records if record.source == trusted_source]
        others: List[IndexedRecord] = [
            (index, record)
            for index, record in enumerate(
                record for record in pathway_records if record.source != trusted_source
            )
        ]

        if force_refresh:
            self._cache.clear_fast_tier()

        batches = _batched(others, max(1, self._options.batch_size))
        examples = self._prompts.select_examples(pathway_records, trusted_source)
        state = _RunState(
            total=len(pathway_records),
            batch_count=len(batches),
            force_refresh=force_refresh,
            system_prompt=self._prompts.system_prompt(examples),
            channel=channel,
        )

        await self._publish(
            state,
            ProgressEvent.build("Starting pathway classification...", 0, state.total),
        )

        queue: asyncio.Queue[Tuple[int, List[IndexedRecord]]] = asyncio.Queue()
        for number, batch in enumerate(batches, start=1):
            queue.put_nowait((number, batch))
        worker_count = min(max(1, self._options.concurrency), len(batches))
        await asyncio.gather(*(self._worker(state, queue) for _ in range(worker_count)))

        classified_others = [state.results[index] for index, _ in others]
        classified_trusted = [self._pass_through(record) for record in trusted]

        await self._publish(
            state,
            ProgressEvent.build("Classification complete", state.total, state.total),
        )

        run = ClassificationRun(
            classified_others=classified_others,
            classified_trusted=classified_trusted,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            service_calls=state.service_calls,
            cache_hits=sum(1 for item in classified_others if item.resolution == "cache"),
            fallbacks=sum(
                1
                for item in [*classified_others, *classified_trusted]
                if item.resolution in ("fallback", "partial_fallback")
            ),
            failed_batches=state.failed_batches,
        )
        LOGGER.info(
            "Classified %d pathways (%d trusted) in %d ms: %d service calls, %d cache hits, "
            "%d fallbacks, %d failed batches",
            state.total,
            len(classified_trusted),
            run.processing_time_ms,
            run.service_calls,
            run.cache_hits,
            run.fallbacks,
            run.failed_batches,
        )
        return run

    # ------------------------------------------------------------------ #
    # Workers                                                            #
    # ------------------------------------------------------------------ #

    async def _worker(
        self, state: _RunState, queue: "asyncio.Queue[Tuple[int, List[IndexedRecord]]]"
    ) -> None:
        while True:
            try:
                number, batch = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._publish(
                state,
                ProgressEvent.build(
                    f"Processing batch {number}/{state.batch_count}",
                    state.processed,
                    state.total,
                ),
            )
            await self._process_batch(state, number, batch)
            state.processed += len(batch)
            queue.task_done()

    async def _process_batch(
        self, state: _RunState, number: int, batch: List[IndexedRecord]
    ) -> None:
        owned = state.claim(batch)
        try:
            await self._resolve_owned(state, number, owned)
        except Exception:
            LOGGER.exception("Batch %d failed unexpectedly; using fallback", number)
        finally:
            for key, record in owned.items():
                if not state.registry[key].done():
                    fallback = self._fallback.classify(record.pathway_name, record.species)
                    state.resolve(key, (fallback, "fallback"))

        for index, record in batch:
            classification, resolution = await state.registry[record.cache_key]
            state.results[index] = ClassifiedRecord(
                record=record,
                assigned_class=classification.class_name,
                assigned_subclass=classification.subclass,
                resolution=resolution,
            )

    async def _resolve_owned(
        self, state: _RunState, number: int, owned: Dict[str, PathwayRecord]
    ) -> None:
        if not owned:
            return

        misses: Dict[str, PathwayRecord] = dict(owned)
        if not state.force_refresh:
            hits = await self._cache.get_many(owned)
            for key, value in hits.items():
                if value is not None and key in misses:
                    state.resolve(key, (value, "cache"))
                    del misses[key]

        if not misses:
            LOGGER.debug("Batch %d fully served from cache", number)
            return

        state.service_calls += 1
        result = await self._client.complete(
            list(misses),
            _distinct(record.species for record in misses.values()),
            system_prompt=state.system_prompt,
        )

        if not result.ok:
            state.failed_batches += 1
            LOGGER.error(
                "Batch %d: reasoning service failed after %d attempts; %d pathways use "
                "the fallback classifier",
                number,
                result.attempt_count,
                len(misses),
            )
            for key, record in misses.items():
                state.resolve(
                    key, (self._fallback.classify(record.pathway_name, record.species), "fallback")
                )
            return

        answers: Dict[str, Tuple[str, str]] = {}
        for parsed in parse_response(result.text or ""):
            name = parsed.pathway.strip()
            if name and name not in answers:
                answers[name] = (parsed.class_name, parsed.subclass)

        resolved: List[Tuple[str, Classification]] = []
        for key, record in misses.items():
            class_name, subclass = answers.get(key, (None, None))
            classification, used_fallback = self._fallback.complete(
                record.pathway_name, record.species, class_name, subclass
            )
            resolution: Resolution = "service"
            if used_fallback:
                partial = is_resolved(class_name) or is_resolved(subclass)
                resolution = "partial_fallback" if partial else "fallback"
            state.resolve(key, (classification, resolution))
            resolved.append((key, classification))

        await self._cache.set_many(resolved)

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _pass_through(self, record: PathwayRecord) -> ClassifiedRecord:
        classification, used_fallback = self._fallback.complete(
            record.pathway_name, record.species, record.original_class, record.original_subclass
        )
        resolution: Resolution = "trusted"
        if used_fallback:
            partial = is_resolved(record.original_class) or is_resolved(record.original_subclass)
            resolution = "partial_fallback" if partial else "fallback"
        return ClassifiedRecord(
            record=record,
            assigned_class=classification.class_name,
            assigned_subclass=classification.subclass,
            resolution=resolution,
        )

    async def _publish(self, state: _RunState, event: ProgressEvent) -> None:
        if state.channel is None:
            return
        try:
            await state.channel.publish(event.model_dump())
        except Exception as exc:  # progress delivery never fails a run
            LOGGER.debug("Dropping progress event: %s", exc)


def _distinct(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


__all__ = ["ClassificationOrchestrator", "INVALID_INPUT_MESSAGE"]
