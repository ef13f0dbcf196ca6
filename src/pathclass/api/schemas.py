"""Request and response bodies for the pathway assignment endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class AssignRequest(BaseModel):
    """Body accepted by both assignment endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    pathways: List[Dict[str, Any]] = Field(min_length=1)
    reset_cache: bool = Field(default=False, alias="resetCache")


class AssignResponse(BaseModel):
    """Consolidated result of the synchronous endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    preview: List[Dict[str, str]]
    tsv: str
    processing_time: str = Field(alias="processingTime")
    total_pathways: int = Field(alias="totalPathways")


class ErrorResponse(BaseModel):
    error: str


__all__ = ["AssignRequest", "AssignResponse", "ErrorResponse"]
