import asyncio
import logging
from typing import Dict, Iterable, Optional

from ..protocols.hosting_protocol import HostingProtocol
from ..schemas import ContentSnapshot, RepositoryRef
from .paths import get_test_file_path

logger = logging.getLogger(__name__)


class ContentPrefetcher:
    """Loads current, base and test content for every changed file up front."""

    def __init__(self, hosting: HostingProtocol):
        self.hosting = hosting

    async def prefetch(
        self,
        repository: RepositoryRef,
        changed_paths: Iterable[str],
        head_revision: str,
        base_revision: Optional[str],
    ) -> Dict[str, ContentSnapshot]:
        paths = list(dict.fromkeys(changed_paths))
        logger.info(f"Pre-fetching file contents for {len(paths)} files...")

        snapshots = await asyncio.gather(
            *(
                self._fetch_one(repository, path, head_revision, base_revision)
                for path in paths
            )
        )
        result = dict(zip(paths, snapshots))

        logger.info(f"Pre-fetched contents for {len(result)} files")
        return result

    async def _fetch_one(
        self,
        repository: RepositoryRef,
        path: str,
        head_revision: str,
        base_revision: Optional[str],
    ) -> ContentSnapshot:
        test_file_path = get_test_file_path(path)
        try:
            current, base, test = await asyncio.gather(
                self.hosting.get_file_content(repository, path, head_revision),
                self._get_base(repository, path, base_revision),
                self.hosting.get_file_content(repository, test_file_path, head_revision),
            )
        except Exception as e:
            logger.error(f"Failed to pre-fetch contents for {path}: {e}")
            return ContentSnapshot(test_file_path=test_file_path)

        return ContentSnapshot(
            test_file_path=test_file_path, current=current, base=base, test=test
        )

    async def _get_base(
        self, repository: RepositoryRef, path: str, base_revision: Optional[str]
    ) -> Optional[str]:
        if not base_revision:
            return None
        return await self.hosting.get_file_content(repository, path, base_revision)
