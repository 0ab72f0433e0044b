"""Schemas for the application."""

from .analysis import NON_CODE_CHANGE_TYPES, ChangeAnalysis, ChangeType, SkipDecision
from .events import ChangeEvent, EventKind, RepositoryRef
from .files import ContentSnapshot, FileChange, FileEntry, FileStatus
from .generation import (
    GeneratedTestResult,
    GenerateTestsRequest,
    GenerateTestsResponse,
    GenerationMode,
    GenerationOutput,
    GenerationRequest,
)
from .outcomes import BatchResult, FileOutcome, FileState

__all__ = [
    "BatchResult",
    "ChangeAnalysis",
    "ChangeEvent",
    "ChangeType",
    "ContentSnapshot",
    "EventKind",
    "FileChange",
    "FileEntry",
    "FileOutcome",
    "FileState",
    "FileStatus",
    "GenerateTestsRequest",
    "GenerateTestsResponse",
    "GeneratedTestResult",
    "GenerationMode",
    "GenerationOutput",
    "GenerationRequest",
    "NON_CODE_CHANGE_TYPES",
    "RepositoryRef",
    "SkipDecision",
]
