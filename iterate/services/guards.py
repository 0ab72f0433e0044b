"""Event-level filters applied before any file is touched."""

from typing import List


def parse_branch_patterns(pattern_config: str) -> List[str]:
    return [part.strip() for part in (pattern_config or "").split(",") if part.strip()]


def is_branch_allowed(branch_name: str, pattern_config: str) -> bool:
    """Check a branch against a comma-separated list of names and ``prefix*`` patterns.

    ``"*"`` (and an empty configuration) allows every branch.
    """
    patterns = parse_branch_patterns(pattern_config)
    if not patterns:
        return True
    return any(_matches(branch_name, pattern) for pattern in patterns)


def _matches(branch_name: str, pattern: str) -> bool:
    if pattern == "*":
        return True
    if pattern.endswith("*"):
        return branch_name.startswith(pattern[:-1])
    return branch_name == pattern


def is_own_commit(text: str, bot_marker: str) -> bool:
    """True when ``text`` carries the marker this service puts on its own commits."""
    return bool(bot_marker) and bot_marker in (text or "")
