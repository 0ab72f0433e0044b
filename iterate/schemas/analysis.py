from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict


class ChangeType(str, Enum):
    """Coarse nature of a source file change."""

    NO_CHANGE = "no-change"
    COMMENT_ONLY = "comment-only"
    WHITESPACE_ONLY = "whitespace-only"
    FUNCTION_ADDITION = "function-addition"
    FUNCTION_REMOVAL = "function-removal"
    FUNCTION_MODIFICATION = "function-modification"
    MIXED = "mixed"
    NEW_FILE = "new-file"
    UNKNOWN = "unknown"


# Change types that never need generated tests
NON_CODE_CHANGE_TYPES = frozenset(
    {ChangeType.NO_CHANGE, ChangeType.COMMENT_ONLY, ChangeType.WHITESPACE_ONLY}
)


class ChangeAnalysis(BaseModel):
    """Classification result for one changed file."""

    model_config = ConfigDict(frozen=True)

    change_type: ChangeType
    has_code_changes: bool
    has_function_removals: bool = False
    has_function_additions: bool = False
    has_function_modifications: bool = False
    added_functions: List[str] = []
    removed_functions: List[str] = []
    modified_functions: List[str] = []

    @classmethod
    def unknown(cls) -> "ChangeAnalysis":
        """Conservative result used when classification fails."""
        return cls(change_type=ChangeType.UNKNOWN, has_code_changes=True)


class SkipDecision(BaseModel):
    """Outcome of scanning trigger text for the skip directive."""

    model_config = ConfigDict(frozen=True)

    should_skip: bool
    cleanup_removed_functions: bool = True
    reason: str = ""
