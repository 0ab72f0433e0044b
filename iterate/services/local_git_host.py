import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from git import Repo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from ..exceptions import CollaboratorUnavailable, ConfigurationError, WriteConflict
from ..schemas import FileChange, FileEntry, FileStatus, RepositoryRef

logger = logging.getLogger(__name__)


class LocalGitHost:
    """Hosting collaborator over a local clone, for development and self-hosted runners.

    The repository coordinates of each call are ignored; everything happens in
    the clone at ``local_path``. Writes are committed on the checked-out
    branch and the revision marker of a file is its blob sha.
    """

    def __init__(self, local_path: str):
        self.local_path = Path(local_path)
        try:
            self.repo = Repo(self.local_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise ConfigurationError(
                f"LOCAL_REPO_PATH is not a git repository: {self.local_path}"
            ) from e
        self._write_lock = asyncio.Lock()

    def _commit(self, ref: str):
        try:
            return self.repo.commit(ref)
        except (BadName, BadObject, ValueError, GitCommandError) as e:
            raise CollaboratorUnavailable(f"Unknown revision {ref}: {e}") from e

    def _read_entry(self, path: str, ref: str) -> Optional[FileEntry]:
        commit = self._commit(ref)
        try:
            obj = commit.tree / path
        except KeyError:
            return None
        if obj.type != "blob":
            return None  # Directory or submodule
        content = obj.data_stream.read().decode("utf-8")
        return FileEntry(path=path, content=content, sha=obj.hexsha)

    def _list_changes(self, base: str, head: str) -> List[FileChange]:
        changes = []
        for item in self._commit(base).diff(self._commit(head), create_patch=True):
            patch = item.diff.decode("utf-8", "replace") if item.diff else None
            lines = patch.splitlines() if patch else []
            additions = sum(
                1 for line in lines if line.startswith("+") and not line.startswith("+++ ")
            )
            deletions = sum(
                1 for line in lines if line.startswith("-") and not line.startswith("--- ")
            )

            if item.new_file:
                status = FileStatus.ADDED
            elif item.deleted_file:
                status = FileStatus.REMOVED
            elif item.renamed_file:
                status = FileStatus.RENAMED
            else:
                status = FileStatus.MODIFIED

            changes.append(
                FileChange(
                    file_path=item.b_path or item.a_path,
                    status=status,
                    additions=additions,
                    deletions=deletions,
                    changes=additions + deletions,
                    patch=patch or None,
                    old_file_path=item.a_path if item.renamed_file else None,
                )
            )
        return changes

    def _write(
        self, path: str, content: str, branch: str, message: str, sha: Optional[str]
    ) -> bool:
        if self.repo.head.is_detached or self.repo.active_branch.name != branch:
            raise CollaboratorUnavailable(
                f"Local backend only writes to the checked-out branch, not {branch}"
            )

        current = self._read_entry(path, "HEAD")
        if (current.sha if current else None) != sha:
            raise WriteConflict(path)

        target = self.local_path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self.repo.index.add([path])
        self.repo.index.commit(message)

        logger.info(f"Committed {path} on {branch}")
        return True

    async def list_changed_files(
        self, repository: RepositoryRef, base: str, head: str
    ) -> List[FileChange]:
        return await asyncio.to_thread(self._list_changes, base, head)

    async def get_file_entry(
        self, repository: RepositoryRef, path: str, ref: str
    ) -> Optional[FileEntry]:
        return await asyncio.to_thread(self._read_entry, path, ref)

    async def get_file_content(
        self, repository: RepositoryRef, path: str, ref: str
    ) -> Optional[str]:
        entry = await self.get_file_entry(repository, path, ref)
        return entry.content if entry else None

    async def create_or_update_file(
        self,
        repository: RepositoryRef,
        path: str,
        content: str,
        branch: str,
        message: str,
        sha: Optional[str] = None,
    ) -> bool:
        # The index is shared by all files of the event.
        async with self._write_lock:
            return await asyncio.to_thread(
                self._write, path, content, branch, message, sha
            )

    async def get_diff_patch(
        self, repository: RepositoryRef, base: str, head: str, path: str
    ) -> Optional[str]:
        changes = await self.list_changed_files(repository, base, head)
        for change in changes:
            if change.file_path == path:
                return change.patch
        return None

    async def get_parent_revision(
        self, repository: RepositoryRef, ref: str
    ) -> Optional[str]:
        commit = await asyncio.to_thread(self._commit, ref)
        return commit.parents[0].hexsha if commit.parents else None

    async def aclose(self) -> None:
        self.repo.close()
