"""Turns raw webhook payloads into ``ChangeEvent`` values."""

import json
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from ..exceptions import InvalidEventPayload
from ..schemas import ChangeEvent, EventKind, RepositoryRef

NULL_SHA = "0" * 40
BRANCH_REF_PREFIX = "refs/heads/"
PULL_REQUEST_ACTIONS = ("opened", "synchronize", "reopened")


def load_payload(body: Union[bytes, str]) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidEventPayload(f"Webhook body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidEventPayload("Webhook body must be a JSON object")
    return payload


def is_null_revision(sha: Optional[str]) -> bool:
    return not sha or set(sha) == {"0"}


def _repository(payload: Dict[str, Any]) -> RepositoryRef:
    repository = payload["repository"]
    owner = repository["owner"]
    return RepositoryRef(
        owner=owner.get("login") or owner["name"], name=repository["name"]
    )


def _push_trigger_text(payload: Dict[str, Any]) -> str:
    head_commit = payload.get("head_commit") or {}
    if head_commit.get("message"):
        return head_commit["message"]
    return "\n".join(
        commit.get("message", "") for commit in payload.get("commits") or []
    )


def _parse_push(
    payload: Dict[str, Any], signature: str
) -> Tuple[Optional[ChangeEvent], str]:
    ref = payload["ref"]
    if not ref.startswith(BRANCH_REF_PREFIX):
        return None, f"Ignoring push to non-branch ref {ref}"
    if payload.get("deleted"):
        return None, f"Ignoring deletion of {ref}"

    event = ChangeEvent(
        kind=EventKind.PUSH,
        repository=_repository(payload),
        before=payload.get("before") or NULL_SHA,
        after=payload["after"],
        branch=ref[len(BRANCH_REF_PREFIX) :],
        trigger_text=_push_trigger_text(payload),
        signature=signature,
    )
    return event, ""


def _parse_pull_request(
    payload: Dict[str, Any], signature: str
) -> Tuple[Optional[ChangeEvent], str]:
    action = payload.get("action")
    if action not in PULL_REQUEST_ACTIONS:
        return None, f"Ignoring PR action: {action}"

    pull_request = payload["pull_request"]
    title = pull_request.get("title") or ""
    body = pull_request.get("body") or ""
    event = ChangeEvent(
        kind=EventKind.PULL_REQUEST,
        repository=_repository(payload),
        before=pull_request["base"]["sha"],
        after=pull_request["head"]["sha"],
        branch=pull_request["head"]["ref"],
        trigger_text=f"{title}\n{body}".strip(),
        signature=signature,
    )
    return event, ""


def parse_change_event(
    event_type: str, payload: Dict[str, Any], signature: str = ""
) -> Tuple[Optional[ChangeEvent], str]:
    """Build a ``ChangeEvent``, or return ``(None, reason)`` for events we ignore.

    Raises ``InvalidEventPayload`` when a push or pull_request payload lacks
    the fields needed to process it.
    """
    try:
        if event_type == EventKind.PUSH.value:
            return _parse_push(payload, signature)
        if event_type == EventKind.PULL_REQUEST.value:
            return _parse_pull_request(payload, signature)
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        raise InvalidEventPayload(f"Malformed {event_type} payload: missing {e}") from e
    return None, f"Ignoring non-push/pull_request event: {event_type}"
