"""Configuration models describing pathclass settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PathclassBaseModel(BaseModel):
    """Shared configuration for pathclass Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class LLMSettings(PathclassBaseModel):
    """Reasoning service configuration.

    Attributes:
        provider: Identifier for the language-model provider.
        model: Model name to target when issuing requests.
        temperature: Sampling temperature for generative calls.
        max_tokens: Maximum number of tokens in responses.
        api_key: Optional credential for hosted providers.
        api_base_url: Optional base URL for self-hosted or proxy endpoints.
        timeout_seconds: Upper bound on one completion call; a slower call counts as a
            failed attempt.
    """

    provider: str = "openai"
    model: str = "gpt-4o"
    temperature: float = 0.3
    max_tokens: int = 4_000
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None
    timeout_seconds: float = Field(default=120.0, gt=0)


class ClassificationOptions(PathclassBaseModel):
    """Settings that govern batching and retries for classification runs.

    Attributes:
        batch_size: Maximum number of pathways sent in one service request.
        concurrency: Number of batches processed at the same time.
        max_attempts: Service attempts per batch before falling back.
        retry_delay_seconds: Backoff unit between failed attempts.
        trusted_source: Source whose rows already carry an authoritative classification.
        max_examples: Maximum trusted rows quoted as examples in the system prompt.
    """

    batch_size: int = Field(default=50, ge=1)
    concurrency: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    trusted_source: str = "Reactome"
    max_examples: int = Field(default=5, ge=0)


class CacheSettings(PathclassBaseModel):
    """Durable classification cache settings.

    Attributes:
        enabled: Whether the durable (Redis) tier is used at all.
        redis_url: Connection URL for the durable tier.
        key_prefix: Namespace prepended to every durable key.
        ttl_seconds: Expiry applied to durable writes.
        socket_timeout_seconds: Socket timeout for Redis commands.
        retry_after_seconds: Cool-down after a connection failure before retrying Redis.
    """

    enabled: bool = True
    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "pathway:cls:v1:"
    ttl_seconds: int = Field(default=60 * 60 * 24 * 30, ge=1)
    socket_timeout_seconds: float = 2.0
    retry_after_seconds: float = 30.0


class ServerSettings(PathclassBaseModel):
    """HTTP server settings.

    Attributes:
        host: Interface the API binds to.
        port: TCP port the API listens on.
        max_body_mb: Largest accepted request body in megabytes.
    """

    host: str = "127.0.0.1"
    port: int = 8000
    max_body_mb: int = 20


class LoggingSettings(PathclassBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: str = "WARNING"


class PathclassConfig(PathclassBaseModel):
    """Top-level configuration struct for pathclass.

    Attributes:
        llm: Reasoning service settings.
        classification: Batching and retry settings.
        cache: Durable cache settings.
        server: HTTP server settings.
        logging: Logging configuration.
    """

    llm: LLMSettings = Field(default_factory=LLMSettings)
    classification: ClassificationOptions = Field(default_factory=ClassificationOptions)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "PathclassBaseModel",
    "LLMSettings",
    "ClassificationOptions",
    "CacheSettings",
    "ServerSettings",
    "LoggingSettings",
    "PathclassConfig",
]
