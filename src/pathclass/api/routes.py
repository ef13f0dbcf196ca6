"""Pathway assignment endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Set

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from pathclass.classification.errors import InvalidInputError
from pathclass.classification.orchestrator import INVALID_INPUT_MESSAGE
from pathclass.classification.progress import BufferedProgressChannel, StreamingProgressChannel
from pathclass.pipeline import ClassificationPipeline

from .exception_handlers import INTERNAL_ERROR_MESSAGE
from .schemas import AssignRequest, AssignResponse, ErrorResponse

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _pipeline(request: Request) -> ClassificationPipeline:
    provider = request.app.state.pipeline_provider
    return provider()


async def _parse_body(request: Request) -> AssignRequest:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInputError(INVALID_INPUT_MESSAGE) from exc
    if not isinstance(payload, dict):
        raise InvalidInputError(INVALID_INPUT_MESSAGE)
    try:
        return AssignRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInputError(INVALID_INPUT_MESSAGE) from exc


def format_sse_event(data: Dict[str, Any]) -> str:
    """Format ``data`` as one server-sent event."""
    return f"data: {json.dumps(data)}\n\n"


@router.post(
    "/pathways-assign",
    response_model=AssignResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
)
async def assign_pathways(request: Request) -> Dict[str, Any]:
    """Classify every pathway and return the sorted table in one response.

    Progress events are buffered and logged; the response carries only the final table.
    """
    body = await _parse_body(request)
    channel = BufferedProgressChannel()
    report = await _pipeline(request).process(
        body.pathways, reset_cache=body.reset_cache, channel=channel
    )
    LOGGER.debug(
        "Buffered %d progress events for %d pathways",
        len(channel.events),
        report.total_pathways,
    )
    return report.to_payload()


@router.post(
    "/pathways-assign-stream",
    responses={200: {"description": "SSE stream of progress events", "content": {"text/event-stream": {}}}},
)
async def assign_pathways_stream(request: Request) -> StreamingResponse:
    """Classify every pathway, streaming progress events before the final result.

    Each event is a ``data: <json>`` line followed by a blank line. The stream ends
    after a ``complete`` event or a single ``error`` event. The run continues in the
    background when the client disconnects so cache write-back still happens.
    """
    background: Set[asyncio.Task[None]] = request.app.state.background_runs
    channel = StreamingProgressChannel()

    try:
        body = await _parse_body(request)
    except InvalidInputError:
        await channel.publish({"error": INVALID_INPUT_MESSAGE})
        channel.close()
    else:
        pipeline = _pipeline(request)

        async def produce() -> None:
            try:
                report = await pipeline.process(
                    body.pathways, reset_cache=body.reset_cache, channel=channel
                )
                await channel.publish({"type": "complete", **report.to_payload()})
            except InvalidInputError:
                await channel.publish({"error": INVALID_INPUT_MESSAGE})
            except Exception as exc:
                LOGGER.exception("Streaming classification failed: %s", exc)
                await channel.publish({"error": INTERNAL_ERROR_MESSAGE})
            finally:
                channel.close()

        task = asyncio.create_task(produce())
        background.add(task)
        task.add_done_callback(background.discard)

    async def event_stream() -> AsyncIterator[str]:
        async for event in channel:
            yield format_sse_event(event)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


__all__ = ["router", "format_sse_event"]
