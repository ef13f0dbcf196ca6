"""Classification components: cache, prompts, reasoning client and orchestrator."""

from .cache import ClassificationCache, DurableStore, RedisDurableStore
from .errors import InvalidInputError, PathclassError, ServiceFailure
from .fallback import DEFAULT_RULES, FallbackClassifier, KeywordRule
from .models import (
    UNKNOWN,
    Classification,
    ClassificationRun,
    ClassifiedRecord,
    ParsedClassification,
    PathwayRecord,
    ProgressEvent,
)
from .orchestrator import ClassificationOrchestrator
from .progress import BufferedProgressChannel, ProgressChannel, StreamingProgressChannel
from .prompts import PromptBuilder
from .reasoning import (
    CompletionBackend,
    CompletionResult,
    DSPyCompletionBackend,
    ReasoningClient,
    parse_response,
)

__all__ = [
    "UNKNOWN",
    "BufferedProgressChannel",
    "Classification",
    "ClassificationCache",
    "ClassificationOrchestrator",
    "ClassificationRun",
    "ClassifiedRecord",
    "CompletionBackend",
    "CompletionResult",
    "DEFAULT_RULES",
    "DSPyCompletionBackend",
    "DurableStore",
    "FallbackClassifier",
    "InvalidInputError",
    "KeywordRule",
    "ParsedClassification",
    "PathclassError",
    "PathwayRecord",
    "ProgressChannel",
    "ProgressEvent",
    "PromptBuilder",
    "ReasoningClient",
    "RedisDurableStore",
    "ServiceFailure",
    "StreamingProgressChannel",
    "parse_response",
]
