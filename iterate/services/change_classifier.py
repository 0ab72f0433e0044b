"""
Heuristic, text-level classification of source file changes.

The classifier looks at unified-diff lines (or, without a patch, at the two
full snapshots) and recognises three declaration styles:

    function name(...)                   optionally export / async
    const name = (...) => / function     also let / var
    name: (...) => / function            object and property shorthand

Declarations written any other way are not recognised. Such changes degrade
to ``function-modification`` or ``mixed``, which still lead to generation.
Nothing in here raises to the caller; on an internal fault the result is
``unknown`` with ``has_code_changes`` set.
"""

import logging
import re
from typing import Iterable, List, Optional, Set

from ..exceptions import ClassificationDegraded
from ..schemas import ChangeAnalysis, ChangeType

logger = logging.getLogger(__name__)

FUNCTION_PATTERN = re.compile(
    r"(?<![\w$])(?:export\s+(?:default\s+)?)?(?:async\s+)?"
    r"(?:function(?:\s*\*\s*|\s+)([A-Za-z_$][\w$]*)"
    r"|(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?"
    r"(?:\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>|function)"
    r"|([A-Za-z_$][\w$]*)\s*:\s*(?:async\s+)?(?:\([^)]*\)\s*=>|function))"
)

BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
WHITESPACE = re.compile(r"\s+")

COMMENT_PREFIXES = ("//", "/*", "*")
DIFF_FILE_HEADERS = ("+++ ", "--- ")


def _function_name(match: "re.Match[str]") -> Optional[str]:
    return match.group(1) or match.group(2) or match.group(3)


def find_functions(text: str) -> List[str]:
    """All recognised function names in ``text``, in order of appearance."""
    names = (_function_name(match) for match in FUNCTION_PATTERN.finditer(text))
    return list(dict.fromkeys(name for name in names if name))


def normalize_code(code: str) -> str:
    """Strip comments and collapse whitespace for comment-insensitive comparison."""
    code = BLOCK_COMMENT.sub("", code)
    code = LINE_COMMENT.sub("", code)
    return WHITESPACE.sub(" ", code).strip()


def _ordered(names: Iterable[str], exclude: Set[str]) -> List[str]:
    return [name for name in dict.fromkeys(names) if name not in exclude]


def _build(
    added: List[str],
    removed: List[str],
    modified: List[str],
    has_code_changes: bool = True,
    fallback: ChangeType = ChangeType.FUNCTION_MODIFICATION,
) -> ChangeAnalysis:
    if removed and not added:
        change_type = ChangeType.FUNCTION_REMOVAL
    elif added and not removed:
        change_type = ChangeType.FUNCTION_ADDITION
    elif added or removed:
        change_type = ChangeType.MIXED
    else:
        change_type = fallback

    return ChangeAnalysis(
        change_type=change_type,
        has_code_changes=has_code_changes,
        has_function_removals=bool(removed),
        has_function_additions=bool(added),
        has_function_modifications=(
            change_type == ChangeType.FUNCTION_MODIFICATION or bool(modified)
        ),
        added_functions=added,
        removed_functions=removed,
        modified_functions=modified,
    )


class ChangeClassifier:
    """Classifies a file change from its patch, falling back to full contents."""

    def classify(
        self,
        patch: Optional[str],
        current_content: Optional[str],
        base_content: Optional[str],
    ) -> ChangeAnalysis:
        try:
            if patch:
                try:
                    return self.classify_patch(patch)
                except ClassificationDegraded as e:
                    logger.warning(f"Falling back to content comparison: {e}")
            return self.classify_contents(current_content or "", base_content)
        except Exception:
            logger.exception("Error analyzing code changes")
            return ChangeAnalysis.unknown()

    def classify_patch(self, patch: str) -> ChangeAnalysis:
        has_code_changes = False
        has_comment_changes = False
        has_whitespace_changes = False
        added: List[str] = []
        removed: List[str] = []

        try:
            for line in patch.splitlines():
                if line.startswith(DIFF_FILE_HEADERS):
                    continue
                if not line.startswith(("+", "-")):
                    continue

                content = line[1:]
                stripped = content.strip()

                if stripped.startswith(COMMENT_PREFIXES):
                    has_comment_changes = True
                    continue

                if not stripped:
                    has_whitespace_changes = True
                    continue

                match = FUNCTION_PATTERN.search(content)
                name = _function_name(match) if match else None
                if name:
                    (added if line.startswith("+") else removed).append(name)

                has_code_changes = True
        except (AttributeError, TypeError, re.error) as e:
            raise ClassificationDegraded(f"could not scan patch: {e}") from e

        if not has_code_changes:
            if has_comment_changes:
                return ChangeAnalysis(
                    change_type=ChangeType.COMMENT_ONLY, has_code_changes=False
                )
            if has_whitespace_changes:
                return ChangeAnalysis(
                    change_type=ChangeType.WHITESPACE_ONLY, has_code_changes=False
                )
            return ChangeAnalysis(change_type=ChangeType.NO_CHANGE, has_code_changes=False)

        # A name on both sides is a changed signature, not a removal.
        both = set(added) & set(removed)
        modified = [name for name in dict.fromkeys(removed + added) if name in both]
        return _build(_ordered(added, both), _ordered(removed, both), modified)

    def classify_contents(
        self, current_content: str, base_content: Optional[str]
    ) -> ChangeAnalysis:
        if base_content is None:
            return ChangeAnalysis(
                change_type=ChangeType.NEW_FILE,
                has_code_changes=True,
                has_function_additions=bool(find_functions(current_content)),
                added_functions=find_functions(current_content),
            )

        if current_content == base_content:
            return ChangeAnalysis(change_type=ChangeType.NO_CHANGE, has_code_changes=False)

        if normalize_code(current_content) == normalize_code(base_content):
            return ChangeAnalysis(
                change_type=ChangeType.COMMENT_ONLY, has_code_changes=False
            )

        current_functions = find_functions(current_content)
        base_functions = find_functions(base_content)
        removed = [name for name in base_functions if name not in current_functions]
        added = [name for name in current_functions if name not in base_functions]
        return _build(added, removed, [])
