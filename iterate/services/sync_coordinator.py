"""Coordinates test synchronization for one repository event."""

import asyncio
import logging
from typing import Iterable, List, Optional, Union

from ..config.settings import Settings
from ..exceptions import AuthenticationError, IterateError
from ..protocols.authoring_protocol import AuthorClientProtocol
from ..protocols.hosting_protocol import HostingProtocol
from ..schemas import BatchResult, ChangeEvent, EventKind, FileChange, FileStatus
from .authoring import create_authoring_strategy
from .content_prefetcher import ContentPrefetcher
from .events import is_null_revision, load_payload, parse_change_event
from .guards import is_branch_allowed, is_own_commit
from .orchestrator import LifecycleOrchestrator
from .paths import DEFAULT_EXTENSIONS, should_process_file
from .signature import SignatureVerifier
from .skip_directive import SkipDirectiveParser

logger = logging.getLogger(__name__)

PING_EVENT = "ping"


class SyncCoordinator:
    """Runs the checks of an inbound event, then hands its files to the orchestrator.

    Signature, feedback-loop and branch checks all complete before any file is
    read. Failures up to that point are request-fatal; failures after it are
    recorded per file.
    """

    def __init__(
        self,
        hosting: HostingProtocol,
        orchestrator: LifecycleOrchestrator,
        verifier: Optional[SignatureVerifier] = None,
        skip_parser: Optional[SkipDirectiveParser] = None,
        bot_signature: str = "auto-tests-bot",
        allowed_branches: str = "*",
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ):
        self.hosting = hosting
        self.orchestrator = orchestrator
        self.verifier = verifier or SignatureVerifier()
        self.skip_parser = skip_parser or SkipDirectiveParser()
        self.prefetcher = ContentPrefetcher(hosting)
        self.bot_signature = bot_signature
        self.allowed_branches = allowed_branches
        self.extensions = tuple(extensions)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        hosting: HostingProtocol,
        author: AuthorClientProtocol,
    ) -> "SyncCoordinator":
        orchestrator = LifecycleOrchestrator(
            hosting=hosting,
            strategy=create_authoring_strategy(settings.GENERATION_STRATEGY, author),
            bot_signature=settings.BOT_SIGNATURE,
            framework=settings.TEST_FRAMEWORK,
            cleanup_enabled=settings.CLEANUP_REMOVED_FUNCTIONS,
            file_timeout=settings.FILE_TIMEOUT,
            batch_timeout=settings.BATCH_TIMEOUT,
        )
        return cls(
            hosting=hosting,
            orchestrator=orchestrator,
            verifier=SignatureVerifier(settings.GITHUB_WEBHOOK_SECRET),
            skip_parser=SkipDirectiveParser(settings.SKIP_DIRECTIVE),
            bot_signature=settings.BOT_SIGNATURE,
            allowed_branches=settings.ALLOWED_BRANCHES,
            extensions=settings.supported_extensions,
        )

    async def handle_webhook(
        self, event_type: str, body: Union[bytes, str], signature: Optional[str]
    ) -> BatchResult:
        """Verify and process one webhook delivery.

        Raises ``AuthenticationError`` for a bad signature and
        ``InvalidEventPayload`` for a body that cannot be processed.
        """
        if not self.verifier.verify(body, signature):
            raise AuthenticationError("Invalid signature")

        if event_type == PING_EVENT:
            return BatchResult.ignored_event("pong", "ping event")

        payload = load_payload(body)
        event, reason = parse_change_event(event_type, payload, signature or "")
        if event is None:
            logger.info(reason)
            if event_type == EventKind.PULL_REQUEST.value:
                message = "Action ignored"
            else:
                message = "Event ignored"
            return BatchResult.ignored_event(message, reason)

        return await self.handle_event(event)

    async def handle_event(self, event: ChangeEvent) -> BatchResult:
        if is_own_commit(event.trigger_text, self.bot_signature):
            logger.info(f"Ignoring bot-originated {event.kind.value} on {event.branch}")
            return BatchResult.ignored_event("Event ignored", "ignored: bot-originated")

        if not is_branch_allowed(event.branch, self.allowed_branches):
            logger.info(f"Ignoring branch {event.branch}: not in ALLOWED_BRANCHES")
            return BatchResult.ignored_event(
                "Event ignored", f"branch {event.branch} is not allowed"
            )

        skip = self.skip_parser.parse(event.trigger_text)
        logger.info(skip.reason)

        base = await self._resolve_base(event)
        if base is None:
            return BatchResult.ignored_event(
                "Event ignored", f"no base revision for {event.after}"
            )

        changes = await self._changed_source_files(event, base)
        logger.info(
            f"Found {len(changes)} files to process: {[c.file_path for c in changes]}"
        )
        if not changes:
            return BatchResult(message="No files to process")

        snapshots = await self.prefetcher.prefetch(
            event.repository, [c.file_path for c in changes], event.after, base
        )
        outcomes = await self.orchestrator.process_batch(event, changes, snapshots, skip)
        return BatchResult.from_outcomes(outcomes)

    async def _resolve_base(self, event: ChangeEvent) -> Optional[str]:
        # A push that creates a branch has no "before"; diff against the parent.
        if not is_null_revision(event.before):
            return event.before
        return await self.hosting.get_parent_revision(event.repository, event.after)

    async def _changed_source_files(
        self, event: ChangeEvent, base: str
    ) -> List[FileChange]:
        listed = await self.hosting.list_changed_files(event.repository, base, event.after)

        changes = {}
        for change in listed:
            if change.status == FileStatus.REMOVED:
                continue
            if not should_process_file(change.file_path, self.extensions):
                continue
            changes.setdefault(change.file_path, change)

        return list(
            await asyncio.gather(
                *(self._with_patch(event, base, change) for change in changes.values())
            )
        )

    async def _with_patch(
        self, event: ChangeEvent, base: str, change: FileChange
    ) -> FileChange:
        if change.patch is not None or change.status != FileStatus.MODIFIED:
            return change
        try:
            patch = await self.hosting.get_diff_patch(
                event.repository, base, event.after, change.file_path
            )
        except IterateError as e:
            logger.warning(f"No diff available for {change.file_path}: {e}")
            return change
        return change.model_copy(update={"patch": patch})
