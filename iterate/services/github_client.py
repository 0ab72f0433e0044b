import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..exceptions import CollaboratorUnavailable, ConfigurationError, WriteConflict
from ..schemas import FileChange, FileEntry, FileStatus, RepositoryRef

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "added": FileStatus.ADDED,
    "removed": FileStatus.REMOVED,
    "renamed": FileStatus.RENAMED,
    "modified": FileStatus.MODIFIED,
    "changed": FileStatus.MODIFIED,
    "copied": FileStatus.ADDED,
}

RETRY_DELAY_SECONDS = 0.5
RETRY_MAX_DELAY_SECONDS = 8.0
DIFF_MEDIA_TYPE = "application/vnd.github.diff"


class ServerErrorResponse(Exception):
    """A 5xx reply to an idempotent read."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"status {status_code}")


def extract_file_patch(diff: str, path: str) -> Optional[str]:
    """Return the hunks for ``path`` from a multi-file unified diff, or None."""
    header = f"diff --git a/{path} b/"
    for section in diff.split("diff --git ")[1:]:
        section = "diff --git " + section
        if not section.startswith(header):
            continue
        start = section.find("\n@@")
        return section[start + 1 :].rstrip("\n") if start != -1 else None
    return None


class GitHubClient:
    """Hosting collaborator backed by the GitHub REST API."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        read_retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ConfigurationError("GITHUB_TOKEN environment variable is required")
        self.read_retries = max(0, read_retries)
        self.client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "iterate-test-sync",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET with retries on transport errors and 5xx responses."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.read_retries + 1),
            wait=wait_exponential(
                multiplier=RETRY_DELAY_SECONDS, max=RETRY_MAX_DELAY_SECONDS
            ),
            retry=retry_if_exception_type((httpx.HTTPError, ServerErrorResponse)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self.client.get(url, **kwargs)
                    if response.status_code >= 500:
                        raise ServerErrorResponse(response.status_code)
        except (httpx.HTTPError, ServerErrorResponse) as e:
            raise CollaboratorUnavailable(
                f"GET {url} failed: {str(e) or type(e).__name__}"
            ) from e
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.status_code in (403, 429):
            raise CollaboratorUnavailable(f"{action}: rate limited or forbidden")
        if response.status_code >= 400:
            raise CollaboratorUnavailable(f"{action}: status {response.status_code}")

    @staticmethod
    def _contents_url(repository: RepositoryRef, path: str) -> str:
        return f"/repos/{repository.full_name}/contents/{quote(path)}"

    @staticmethod
    def _to_file_change(item: Dict[str, Any]) -> FileChange:
        return FileChange(
            file_path=item["filename"],
            status=STATUS_MAP.get(item.get("status", ""), FileStatus.MODIFIED),
            additions=item.get("additions", 0),
            deletions=item.get("deletions", 0),
            changes=item.get("changes", 0),
            patch=item.get("patch"),
            old_file_path=item.get("previous_filename"),
        )

    async def list_changed_files(
        self, repository: RepositoryRef, base: str, head: str
    ) -> List[FileChange]:
        url = f"/repos/{repository.full_name}/compare/{base}...{head}"
        response = await self._get(url)
        self._raise_for_status(response, f"Compare {base}...{head}")
        files = response.json().get("files") or []
        return [self._to_file_change(item) for item in files]

    async def get_file_entry(
        self, repository: RepositoryRef, path: str, ref: str
    ) -> Optional[FileEntry]:
        url = self._contents_url(repository, path)
        response = await self._get(url, params={"ref": ref})
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Read {path}@{ref}")

        data = response.json()
        if isinstance(data, list):
            return None  # Directory
        if data.get("type") != "file" or "content" not in data:
            return None
        if data.get("encoding") != "base64":
            # Files over 1 MB come back without inline content.
            raise CollaboratorUnavailable(f"Read {path}@{ref}: content not inlined")

        content = base64.b64decode(data["content"]).decode("utf-8")
        return FileEntry(path=path, content=content, sha=data["sha"])

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
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha

        try:
            response = await self.client.put(
                self._contents_url(repository, path), json=body
            )
        except httpx.HTTPError as e:
            raise CollaboratorUnavailable(f"Write {path} failed: {e}") from e

        if response.status_code in (409, 422):
            raise WriteConflict(path)
        self._raise_for_status(response, f"Write {path}")

        logger.info(f"Successfully {'updated' if sha else 'created'} file: {path}")
        return True

    async def get_diff_patch(
        self, repository: RepositoryRef, base: str, head: str, path: str
    ) -> Optional[str]:
        """Read the unified diff of ``path`` from the raw compare diff.

        Used when the compare listing omits a file's patch, which GitHub does
        for large diffs.
        """
        url = f"/repos/{repository.full_name}/compare/{base}...{head}"
        response = await self._get(url, headers={"Accept": DIFF_MEDIA_TYPE})
        self._raise_for_status(response, f"Diff {base}...{head}")
        return extract_file_patch(response.text, path)

    async def get_parent_revision(
        self, repository: RepositoryRef, ref: str
    ) -> Optional[str]:
        response = await self._get(f"/repos/{repository.full_name}/commits/{ref}")
        self._raise_for_status(response, f"Read commit {ref}")
        parents = response.json().get("parents") or []
        return parents[0]["sha"] if parents else None

    async def aclose(self) -> None:
        await self.client.aclose()
