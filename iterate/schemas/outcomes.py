from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class FileState(str, Enum):
    """Terminal state of one file in the test lifecycle."""

    SKIPPED = "skipped"
    CLEANUP_ONLY = "cleanup-only"
    GENERATED_NEW = "generated-new"
    UPDATED = "updated"
    REGENERATED_COMPLETE = "regenerated-complete"
    FAILED = "failed"


class FileOutcome(BaseModel):
    file_path: str
    state: FileState
    test_file_path: Optional[str] = None
    pruned: bool = False
    detail: str = ""
    transitions: List[FileState] = []

    @property
    def succeeded(self) -> bool:
        return self.state != FileState.FAILED


class BatchResult(BaseModel):
    """Per-event summary returned to the webhook caller."""

    message: str
    processed: int = 0
    total: int = 0
    ignored: bool = False
    reason: Optional[str] = None
    outcomes: List[FileOutcome] = []

    @classmethod
    def ignored_event(cls, message: str, reason: str) -> "BatchResult":
        return cls(message=message, ignored=True, reason=reason)

    @classmethod
    def from_outcomes(cls, outcomes: List[FileOutcome]) -> "BatchResult":
        return cls(
            message="Webhook processed successfully",
            processed=sum(1 for outcome in outcomes if outcome.succeeded),
            total=len(outcomes),
            outcomes=outcomes,
        )
