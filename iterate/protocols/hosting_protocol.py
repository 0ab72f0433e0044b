"""Hosting collaborator protocol interface."""

from typing import List, Optional, Protocol, runtime_checkable

from ..schemas import FileChange, FileEntry, RepositoryRef


@runtime_checkable
class HostingProtocol(Protocol):
    """Content and diff store behind a repository event.

    Reads resolve a missing path or a directory to ``None``. Anything else
    that goes wrong is raised as ``CollaboratorUnavailable``.
    """

    async def list_changed_files(
        self, repository: RepositoryRef, base: str, head: str
    ) -> List[FileChange]:
        """List files changed between two revisions, with patches where available."""
        ...

    async def get_file_content(
        self, repository: RepositoryRef, path: str, ref: str
    ) -> Optional[str]:
        """Get decoded text of a file at a revision."""
        ...

    async def get_file_entry(
        self, repository: RepositoryRef, path: str, ref: str
    ) -> Optional[FileEntry]:
        """Get a file together with its revision marker."""
        ...

    async def create_or_update_file(
        self,
        repository: RepositoryRef,
        path: str,
        content: str,
        branch: str,
        message: str,
        sha: Optional[str] = None,
    ) -> bool:
        """Commit a file. ``sha`` must be the current marker when updating.

        Raises ``WriteConflict`` when the marker no longer matches.
        """
        ...

    async def get_diff_patch(
        self, repository: RepositoryRef, base: str, head: str, path: str
    ) -> Optional[str]:
        """Get the unified diff of a single file between two revisions."""
        ...

    async def get_parent_revision(
        self, repository: RepositoryRef, ref: str
    ) -> Optional[str]:
        """Get the first parent of a commit, or None for a root commit."""
        ...

    async def aclose(self) -> None:
        ...
