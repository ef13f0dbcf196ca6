"""Data models for pathway classification runs."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN = "Unknown"

Resolution = Literal["trusted", "cache", "service", "fallback", "partial_fallback"]


def is_resolved(value: Optional[str]) -> bool:
    """Return True when ``value`` is a usable, non-sentinel classification field."""
    return bool(value and value.strip() and value.strip() != UNKNOWN)


class PathwayRecord(BaseModel):
    """One input row as read from the pathway table.

    External column names are accepted as aliases so rows parsed from TSV files or
    JSON request bodies validate directly.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    pathway_name: str = Field(alias="Pathway")
    original_class: Optional[str] = Field(default=None, alias="Pathway Class")
    original_subclass: Optional[str] = Field(default=None, alias="Subclass")
    species: str = Field(default="", alias="Species")
    source: str = Field(default="", alias="Source")
    url: str = Field(default="", alias="URL")
    external_ids: str = Field(default="", alias="UniProt IDS")

    @field_validator("*", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("pathway_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Pathway name must not be empty")
        return value

    @field_validator("species", "source", "url", "external_ids", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("original_class", "original_subclass", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def cache_key(self) -> str:
        """Key used for cache lookups and in-run deduplication."""
        return self.pathway_name.strip()


class Classification(BaseModel):
    """Class/subclass pair stored in the cache and attached to records."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    class_name: str = Field(alias="class")
    subclass: str

    @property
    def is_complete(self) -> bool:
        """Return True when neither field is missing or the sentinel."""
        return is_resolved(self.class_name) and is_resolved(self.subclass)


class ParsedClassification(BaseModel):
    """One block recovered from a reasoning service reply.

    Attributes:
        pathway: Pathway name echoed by the service; empty when the block had none.
        class_name: Class value, or the sentinel when missing.
        subclass: Subclass value, or the sentinel when missing.
    """

    pathway: str = ""
    class_name: str = UNKNOWN
    subclass: str = UNKNOWN


class ClassifiedRecord(BaseModel):
    """An input record annotated with its assigned classification."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    record: PathwayRecord
    assigned_class: str = Field(alias="AI Class Assigned")
    assigned_subclass: str = Field(alias="AI Subclass Assigned")
    resolution: Resolution = "service"

    @property
    def sort_key(self) -> tuple[str, str]:
        """Key used to order assembled output."""
        return (self.assigned_class, self.assigned_subclass)


class ProgressEvent(BaseModel):
    """Observational progress notification emitted during a run."""

    type: Literal["progress"] = "progress"
    message: str
    processed: int
    total: int
    percentage: int

    @classmethod
    def build(cls, message: str, processed: int, total: int) -> "ProgressEvent":
        """Create an event, deriving the rounded percentage from the counts."""
        percentage = 100 if total <= 0 else round(processed * 100 / total)
        return cls(message=message, processed=processed, total=total, percentage=percentage)


class ClassificationRun(BaseModel):
    """Outcome of one orchestrator run.

    Attributes:
        classified_others: Non-trusted records in input order.
        classified_trusted: Trusted pass-through records in input order.
        processing_time_ms: Wall-clock duration of the run.
        service_calls: Number of batches that reached the reasoning service.
        cache_hits: Number of records resolved from the cache.
        fallbacks: Number of records with at least one field filled by the fallback.
        failed_batches: Number of batches whose service call failed on every attempt.
    """

    classified_others: List[ClassifiedRecord] = Field(default_factory=list)
    classified_trusted: List[ClassifiedRecord] = Field(default_factory=list)
    processing_time_ms: int = 0
    service_calls: int = 0
    cache_hits: int = 0
    fallbacks: int = 0
    failed_batches: int = 0

    @property
    def records(self) -> List[ClassifiedRecord]:
        """Return non-trusted records followed by trusted records."""
        return [*self.classified_others, *self.classified_trusted]


__all__ = [
    "UNKNOWN",
    "Resolution",
    "is_resolved",
    "PathwayRecord",
    "Classification",
    "ParsedClassification",
    "ClassifiedRecord",
    "ProgressEvent",
    "ClassificationRun",
]
