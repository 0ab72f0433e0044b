from enum import Enum

from pydantic import BaseModel, ConfigDict


class EventKind(str, Enum):
    """Repository events that can trigger test synchronization."""

    PUSH = "push"
    PULL_REQUEST = "pull_request"


class RepositoryRef(BaseModel):
    """Owner/name coordinates of a hosted repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class ChangeEvent(BaseModel):
    """One trigger occurrence, built from a verified webhook payload."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    repository: RepositoryRef
    before: str
    after: str
    branch: str
    trigger_text: str = ""
    signature: str = ""
