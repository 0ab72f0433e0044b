import logging
import re
from typing import Iterable, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

EXCESS_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")
QUOTES = "'\"`"


class PruneResult(NamedTuple):
    content: str
    changed: bool


def _describe_pattern(function_name: str) -> "re.Pattern[str]":
    # Label is the bare name, the name followed by a non-identifier
    # character ("foo()", "foo - edge cases"), or "Owner.foo".
    name = re.escape(function_name)
    return re.compile(
        r"(?<![\w$.])describe(?:\.(?:only|skip))?\s*\(\s*"
        r"(?P<quote>['\"`])"
        r"(?:[A-Za-z_$][\w$]*[.#])?" + name + r"(?![\w$])"
        r"(?:(?!(?P=quote)).)*(?P=quote)",
        re.DOTALL,
    )


def _skip_string(text: str, start: int) -> int:
    """Index just past the string literal opening at ``start``."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        if char == "\n" and quote != "`":
            return i + 1
        i += 1
    return len(text)


def find_closing_paren(text: str, open_index: int) -> Optional[int]:
    """Index of the ``)`` balancing the ``(`` at ``open_index``.

    String literals and comments are skipped, so parentheses inside them
    do not count.
    """
    depth = 0
    i = open_index
    while i < len(text):
        char = text[i]
        if char in QUOTES:
            i = _skip_string(text, i)
            continue
        if text.startswith("//", i):
            newline = text.find("\n", i)
            i = len(text) if newline < 0 else newline
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end < 0 else end + 2
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _block_span(text: str, match: "re.Match[str]") -> Optional[Tuple[int, int]]:
    open_index = text.index("(", match.start())
    close_index = find_closing_paren(text, open_index)
    if close_index is None:
        return None

    start = match.start()
    line_start = text.rfind("\n", 0, start) + 1
    if not text[line_start:start].strip():
        start = line_start

    end = close_index + 1
    while end < len(text) and text[end] in " \t":
        end += 1
    if end < len(text) and text[end] == ";":
        end += 1
    while end < len(text) and text[end] in " \t":
        end += 1
    if end < len(text) and text[end] == "\n":
        end += 1
    return start, end


def remove_describe_blocks(text: str, function_name: str) -> Tuple[str, int]:
    """Remove every ``describe`` block labelled with ``function_name``."""
    pattern = _describe_pattern(function_name)
    removed = 0
    position = 0
    while True:
        match = pattern.search(text, position)
        if match is None:
            break
        span = _block_span(text, match)
        if span is None:
            # Unbalanced block stays in place.
            logger.warning(f"Unbalanced describe block for {function_name}, skipped")
            position = match.end()
            continue
        start, end = span
        text = text[:start] + text[end:]
        position = start
        removed += 1
    return text, removed


class StaleTestPruner:
    """Deletes test groups whose subject function no longer exists."""

    def prune(
        self, existing_test_content: str, removed_function_names: Iterable[str]
    ) -> PruneResult:
        updated = existing_test_content
        changed = False

        for function_name in removed_function_names:
            updated, count = remove_describe_blocks(updated, function_name)
            if count:
                changed = True
                logger.info(f"Removed test block for function: {function_name}")

        if not changed:
            return PruneResult(existing_test_content, False)

        updated = EXCESS_BLANK_LINES.sub("\n\n", updated).strip()
        return PruneResult(updated, True)
