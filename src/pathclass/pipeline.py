"""End-to-end classification pipeline shared by the CLI and the HTTP API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pathclass.classification import (
    ClassificationCache,
    ClassificationOrchestrator,
    ClassificationRun,
    CompletionBackend,
    DSPyCompletionBackend,
    FallbackClassifier,
    PathwayRecord,
    ProgressChannel,
    PromptBuilder,
    ReasoningClient,
    RedisDurableStore,
)
from pathclass.config.models import PathclassConfig
from pathclass.tabular import ResultAssembler

LOGGER = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    """Assembled output of one pipeline run.

    Attributes:
        rows: Sorted output rows keyed by output column.
        tsv: Tab-separated rendering of ``rows``.
        preview: Rows for interactive display (no external id column).
        processing_time: Elapsed seconds with two decimals.
        total_pathways: Number of output rows.
        run: Orchestrator counters for the run.
    """

    rows: List[Dict[str, str]]
    tsv: str
    preview: List[Dict[str, str]]
    processing_time: str
    total_pathways: int
    run: ClassificationRun = field(default_factory=ClassificationRun)

    def to_payload(self) -> Dict[str, Any]:
        """Return the response body shared by both HTTP endpoints."""
        return {
            "preview": self.preview,
            "tsv": self.tsv,
            "processingTime": self.processing_time,
            "totalPathways": self.total_pathways,
        }


class ClassificationPipeline:
    """Run the orchestrator and assemble its output.

    Args:
        orchestrator: Configured classification orchestrator.
        assembler: Result assembler; a default instance is created when omitted.
    """

    def __init__(
        self,
        orchestrator: ClassificationOrchestrator,
        *,
        assembler: Optional[ResultAssembler] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._assembler = assembler or ResultAssembler()

    @classmethod
    def from_config(
        cls,
        config: PathclassConfig,
        *,
        backend: Optional[CompletionBackend] = None,
        cache: Optional[ClassificationCache] = None,
    ) -> "ClassificationPipeline":
        """Wire a pipeline from configuration.

        Args:
            config: Resolved configuration.
            backend: Completion backend override; defaults to DSPy.
            cache: Cache override; defaults to the configured two-tier cache.
        """
        options = config.classification
        prompts = PromptBuilder(max_examples=options.max_examples)
        client = ReasoningClient(
            backend or DSPyCompletionBackend(config.llm),
            prompts,
            max_attempts=options.max_attempts,
            retry_delay_seconds=options.retry_delay_seconds,
        )
        orchestrator = ClassificationOrchestrator(
            cache or ClassificationCache.from_settings(config.cache),
            client,
            fallback=FallbackClassifier(),
            prompt_builder=prompts,
            options=options,
        )
        return cls(orchestrator)

    @property
    def orchestrator(self) -> ClassificationOrchestrator:
        return self._orchestrator

    async def process(
        self,
        records: Sequence[PathwayRecord | Mapping[str, Any]],
        *,
        reset_cache: bool = False,
        channel: Optional[ProgressChannel] = None,
    ) -> PipelineReport:
        """Classify ``records`` and return the assembled report.

        Raises:
            InvalidInputError: If ``records`` is empty or malformed.
        """
        started = time.perf_counter()
        run = await self._orchestrator.run(records, force_refresh=reset_cache, channel=channel)
        assembled = self._assembler.assemble(run.classified_others, run.classified_trusted)
        elapsed = time.perf_counter() - started
        return PipelineReport(
            rows=assembled.rows,
            tsv=assembled.tsv,
            preview=assembled.preview_rows(),
            processing_time=f"{elapsed:.2f}",
            total_pathways=len(assembled.rows),
            run=run,
        )

    async def aclose(self) -> None:
        """Release the durable cache connection when one is open."""
        durable = self._orchestrator.cache.durable
        if isinstance(durable, RedisDurableStore):
            await durable.close()


__all__ = ["ClassificationPipeline", "PipelineReport"]
