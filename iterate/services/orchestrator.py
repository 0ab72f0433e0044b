"""
Per-file test lifecycle.

For each changed source file the orchestrator classifies the change, prunes
tests of removed functions, then either stops (skip directive, comment or
whitespace change) or asks the authoring strategy for a new test file and
commits it. Pruning and generation of one file run in that order; different
files run concurrently and a failure in one never reaches the others.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from ..exceptions import CollaboratorUnavailable, IterateError, WriteConflict
from ..protocols.authoring_protocol import AuthoringStrategy
from ..protocols.hosting_protocol import HostingProtocol
from ..schemas import (
    NON_CODE_CHANGE_TYPES,
    ChangeEvent,
    ContentSnapshot,
    FileChange,
    FileOutcome,
    FileState,
    GenerationRequest,
    RepositoryRef,
    SkipDecision,
)
from .change_classifier import ChangeClassifier
from .paths import get_test_file_path
from .pruner import StaleTestPruner

logger = logging.getLogger(__name__)

COMMIT_VERBS = {
    FileState.GENERATED_NEW: "Add",
    FileState.UPDATED: "Update",
    FileState.REGENERATED_COMPLETE: "Regenerate",
}


class LifecycleOrchestrator:
    """Drives every changed file of one event to a terminal ``FileState``."""

    def __init__(
        self,
        hosting: HostingProtocol,
        strategy: AuthoringStrategy,
        classifier: Optional[ChangeClassifier] = None,
        pruner: Optional[StaleTestPruner] = None,
        bot_signature: str = "auto-tests-bot",
        framework: str = "jest",
        cleanup_enabled: bool = True,
        file_timeout: float = 120.0,
        batch_timeout: float = 600.0,
    ):
        self.hosting = hosting
        self.strategy = strategy
        self.classifier = classifier or ChangeClassifier()
        self.pruner = pruner or StaleTestPruner()
        self.bot_signature = bot_signature
        self.framework = framework
        self.cleanup_enabled = cleanup_enabled
        self.file_timeout = file_timeout
        self.batch_timeout = batch_timeout

    def _sign(self, message: str) -> str:
        return f"{message} [{self.bot_signature}]"

    async def process_batch(
        self,
        event: ChangeEvent,
        changes: List[FileChange],
        snapshots: Dict[str, ContentSnapshot],
        skip: SkipDecision,
    ) -> List[FileOutcome]:
        """Process all files concurrently under the batch deadline."""
        if not changes:
            return []

        tasks = [
            asyncio.ensure_future(
                self._process_guarded(event, change, snapshots.get(change.file_path), skip)
            )
            for change in changes
        ]
        _, pending = await asyncio.wait(tasks, timeout=self.batch_timeout)

        outcomes = []
        for change, task in zip(changes, tasks):
            if task in pending:
                task.cancel()
                logger.error(f"Batch deadline exceeded before {change.file_path} finished")
                outcomes.append(
                    self._failed(change.file_path, "deadline exceeded")
                )
            else:
                outcomes.append(task.result())

        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info(f"Processed {succeeded}/{len(outcomes)} files successfully")
        return outcomes

    async def _process_guarded(
        self,
        event: ChangeEvent,
        change: FileChange,
        snapshot: Optional[ContentSnapshot],
        skip: SkipDecision,
    ) -> FileOutcome:
        path = change.file_path
        if snapshot is None:
            snapshot = ContentSnapshot(test_file_path=get_test_file_path(path))

        try:
            return await asyncio.wait_for(
                self.process_file(event, change, snapshot, skip),
                timeout=self.file_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Deadline exceeded while processing {path}")
            return self._failed(path, "deadline exceeded", snapshot.test_file_path)
        except IterateError as e:
            logger.error(f"Error processing {path}: {e}")
            return self._failed(path, str(e), snapshot.test_file_path)
        except Exception as e:
            logger.exception(f"Unexpected error processing {path}")
            return self._failed(path, f"unexpected error: {e}", snapshot.test_file_path)

    async def process_file(
        self,
        event: ChangeEvent,
        change: FileChange,
        snapshot: ContentSnapshot,
        skip: SkipDecision,
    ) -> FileOutcome:
        path = change.file_path
        test_path = snapshot.test_file_path
        logger.info(f"Processing file: {path}")

        if snapshot.current is None:
            logger.warning(f"Could not get content for {path}, skipping")
            return self._failed(path, "could not get file content", test_path)

        analysis = self.classifier.classify(change.patch, snapshot.current, snapshot.base)
        logger.info(
            f"Change analysis for {path}: type={analysis.change_type.value} "
            f"added={analysis.added_functions} removed={analysis.removed_functions}"
        )

        transitions: List[FileState] = []
        existing_tests = snapshot.test
        pruned = False

        if (
            analysis.has_function_removals
            and skip.cleanup_removed_functions
            and self.cleanup_enabled
        ):
            pruned_content = await self._prune(
                event, path, test_path, existing_tests, analysis.removed_functions
            )
            if pruned_content is not None:
                existing_tests = pruned_content
                pruned = True
                transitions.append(FileState.CLEANUP_ONLY)

        if skip.should_skip:
            logger.info(f"Skipping test generation for {path} due to skip keyword")
            return self._done(path, FileState.SKIPPED, test_path, pruned, transitions, skip.reason)

        if analysis.change_type in NON_CODE_CHANGE_TYPES:
            detail = f"only {analysis.change_type.value} changes detected"
            logger.info(f"Skipping test generation for {path} - {detail}")
            return self._done(path, FileState.SKIPPED, test_path, pruned, transitions, detail)

        request = GenerationRequest(
            current_code=snapshot.current,
            previous_code=snapshot.base,
            existing_tests=existing_tests,
            diff_patch=change.patch,
            source_path=path,
            test_path=test_path,
            framework=self.framework,
        )
        result, state = await self.strategy.author(request)
        logger.info(f"Test metadata for {path}: {result.metadata}")

        message = self._sign(f"{COMMIT_VERBS[state]} tests for {path}")
        await self.commit_test_file(event.repository, test_path, result.tests, event.branch, message)

        logger.info(f"Generated tests for {path}")
        return self._done(path, state, test_path, pruned, transitions)

    async def _prune(
        self,
        event: ChangeEvent,
        path: str,
        test_path: str,
        existing_tests: Optional[str],
        removed_functions: List[str],
    ) -> Optional[str]:
        """Commit the test file without blocks for ``removed_functions``.

        Returns the pruned content, or None when nothing had to change.
        """
        names = ", ".join(removed_functions)
        if not existing_tests:
            logger.info(f"No test file found at {test_path} - nothing to cleanup")
            return None

        result = self.pruner.prune(existing_tests, removed_functions)
        if not result.changed:
            logger.info(f"No test cleanup needed - no tests found for removed functions: {names}")
            return None

        message = self._sign(f"Cleanup tests for removed functions: {names}")
        await self.commit_test_file(event.repository, test_path, result.content, event.branch, message)
        logger.info(f"Cleaned up tests for removed functions: {names}")
        return result.content

    async def commit_test_file(
        self,
        repository: RepositoryRef,
        test_path: str,
        content: str,
        branch: str,
        message: str,
    ) -> bool:
        """Create or update ``test_path``, retrying once on a revision conflict."""
        for attempt in range(2):
            entry = await self.hosting.get_file_entry(repository, test_path, branch)
            try:
                ok = await self.hosting.create_or_update_file(
                    repository,
                    test_path,
                    content,
                    branch,
                    message,
                    sha=entry.sha if entry else None,
                )
            except WriteConflict:
                if attempt:
                    raise
                logger.warning(f"Revision conflict on {test_path}, retrying with a fresh marker")
                continue
            if not ok:
                raise CollaboratorUnavailable(f"Hosting service rejected write of {test_path}")
            return True
        return False

    @staticmethod
    def _done(
        path: str,
        state: FileState,
        test_path: str,
        pruned: bool,
        transitions: List[FileState],
        detail: str = "",
    ) -> FileOutcome:
        return FileOutcome(
            file_path=path,
            state=state,
            test_file_path=test_path,
            pruned=pruned,
            detail=detail,
            transitions=transitions + [state],
        )

    @staticmethod
    def _failed(path: str, detail: str, test_path: Optional[str] = None) -> FileOutcome:
        return FileOutcome(
            file_path=path,
            state=FileState.FAILED,
            test_file_path=test_path or get_test_file_path(path),
            detail=detail,
            transitions=[FileState.FAILED],
        )
