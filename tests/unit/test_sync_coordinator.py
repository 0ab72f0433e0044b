"""Unit tests for SyncCoordinator."""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest

from iterate.config.settings import Settings
from iterate.exceptions import AuthenticationError, ConfigurationError, InvalidEventPayload
from iterate.schemas import FileChange, FileState, FileStatus
from iterate.services.authoring import IncrementalStrategy, SinglePassStrategy
from iterate.services.orchestrator import LifecycleOrchestrator
from iterate.services.signature import SignatureVerifier
from iterate.services.sync_coordinator import SyncCoordinator
from tests.fakes import FakeAuthor, FakeHosting

SECRET = "webhook-secret"
HEAD = "b" * 40
BASE = "a" * 40

SOURCE_BEFORE = "export function add(a, b) { return a + b; }\n"
SOURCE_AFTER = SOURCE_BEFORE + "export const multiply = (a, b) => a * b;\n"
ADDITION_PATCH = "@@ -1,0 +2,1 @@\n+export const multiply = (a, b) => a * b;"


def sign(body: bytes) -> str:
    return "sha256=" + hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()


def push_body(message="Add multiply", before=BASE, ref="refs/heads/main") -> bytes:
    return json.dumps(
        {
            "ref": ref,
            "before": before,
            "after": HEAD,
            "repository": {"name": "widgets", "owner": {"login": "acme"}},
            "head_commit": {"message": message},
        }
    ).encode()


class TestSyncCoordinator:
    def setup_method(self):
        self.hosting = FakeHosting(
            changes=[
                FileChange(
                    file_path="src/math.ts",
                    status=FileStatus.MODIFIED,
                    patch=ADDITION_PATCH,
                ),
                FileChange(file_path="src/__tests__/math.test.ts", status=FileStatus.MODIFIED),
                FileChange(file_path="README.md", status=FileStatus.MODIFIED),
                FileChange(file_path="src/legacy.ts", status=FileStatus.REMOVED),
            ]
        )
        self.hosting.put("src/math.ts", SOURCE_AFTER, HEAD)
        self.hosting.put("src/math.ts", SOURCE_BEFORE, BASE)
        self.author = FakeAuthor()
        self.orchestrator = LifecycleOrchestrator(
            hosting=self.hosting, strategy=IncrementalStrategy(self.author)
        )
        self.coordinator = SyncCoordinator(
            hosting=self.hosting,
            orchestrator=self.orchestrator,
            verifier=SignatureVerifier(SECRET),
            allowed_branches="main,release/*",
        )

    async def deliver(self, event_type: str, body: bytes):
        return await self.coordinator.handle_webhook(event_type, body, sign(body))

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected(self):
        body = push_body()
        with pytest.raises(AuthenticationError):
            await self.coordinator.handle_webhook("push", body, "sha256=deadbeef")
        assert self.hosting.writes == []

    @pytest.mark.asyncio
    async def test_ping(self):
        result = await self.deliver("ping", b'{"zen": "Keep it logically awesome."}')
        assert result.message == "pong"
        assert result.ignored is True

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        with pytest.raises(InvalidEventPayload):
            await self.deliver("push", b"not json")

    @pytest.mark.asyncio
    async def test_unsupported_event_ignored(self):
        result = await self.deliver("issues", b'{"action": "opened"}')
        assert result.message == "Event ignored"
        assert result.ignored is True

    @pytest.mark.asyncio
    async def test_closed_pull_request_ignored(self):
        result = await self.deliver("pull_request", b'{"action": "closed"}')
        assert result.message == "Action ignored"

    @pytest.mark.asyncio
    async def test_bot_commit_touches_nothing(self):
        self.hosting.list_changed_files = AsyncMock(return_value=[])

        result = await self.deliver(
            "push", push_body("Add tests for src/math.ts [auto-tests-bot]")
        )

        assert result.ignored is True
        assert "bot-originated" in result.reason
        assert result.processed == 0
        self.hosting.list_changed_files.assert_not_awaited()
        assert self.author.calls == []

    @pytest.mark.asyncio
    async def test_branch_not_allowed(self):
        self.hosting.list_changed_files = AsyncMock(return_value=[])

        result = await self.deliver("push", push_body(ref="refs/heads/feature/x"))

        assert result.ignored is True
        assert "feature/x" in result.reason
        self.hosting.list_changed_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_push_processes_eligible_source_files(self):
        result = await self.deliver("push", push_body())

        assert result.message == "Webhook processed successfully"
        assert result.total == 1
        assert result.processed == 1
        assert result.outcomes[0].file_path == "src/math.ts"
        assert result.outcomes[0].state == FileState.GENERATED_NEW
        assert ("main", "src/__tests__/math.test.ts") in self.hosting.files

    @pytest.mark.asyncio
    async def test_no_files_to_process(self):
        self.hosting.changes = [FileChange(file_path="docs/a.md", status=FileStatus.ADDED)]

        result = await self.deliver("push", push_body())

        assert result.message == "No files to process"
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_duplicate_paths_processed_once(self):
        self.hosting.changes = self.hosting.changes[:1] * 2

        result = await self.deliver("push", push_body())

        assert result.total == 1

    @pytest.mark.asyncio
    async def test_new_branch_diffs_against_parent(self):
        self.hosting.parents[HEAD] = BASE
        self.hosting.list_changed_files = AsyncMock(return_value=self.hosting.changes)

        result = await self.deliver("push", push_body(before="0" * 40))

        assert result.processed == 1
        self.hosting.list_changed_files.assert_awaited_once()
        assert self.hosting.list_changed_files.await_args.args[1:] == (BASE, HEAD)

    @pytest.mark.asyncio
    async def test_new_branch_without_parent_ignored(self):
        result = await self.deliver("push", push_body(before="0" * 40))
        assert result.ignored is True
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_missing_patch_is_fetched(self):
        self.hosting.changes = [
            FileChange(file_path="src/math.ts", status=FileStatus.MODIFIED)
        ]
        self.hosting.patches["src/math.ts"] = "@@ -1 +1,2 @@\n+// multiply helper"

        result = await self.deliver("push", push_body())

        assert result.outcomes[0].state == FileState.SKIPPED
        assert self.author.calls == []

    @pytest.mark.asyncio
    async def test_skip_directive_in_commit_message(self):
        result = await self.deliver("push", push_body("Add multiply @iterate skip"))

        assert result.outcomes[0].state == FileState.SKIPPED
        assert result.processed == 1
        assert self.author.calls == []


class TestSyncCoordinatorFromSettings:
    def test_builds_configured_components(self):
        settings = Settings(
            GITHUB_WEBHOOK_SECRET="s3cret",
            BOT_SIGNATURE="my-bot",
            ALLOWED_BRANCHES="main",
            GENERATION_STRATEGY="single-pass",
            SUPPORTED_EXTENSIONS=".ts, .mts",
            FILE_TIMEOUT=5,
        )

        coordinator = SyncCoordinator.from_settings(settings, FakeHosting(), FakeAuthor())

        assert coordinator.verifier.enabled is True
        assert coordinator.bot_signature == "my-bot"
        assert coordinator.allowed_branches == "main"
        assert coordinator.extensions == (".ts", ".mts")
        assert isinstance(coordinator.orchestrator.strategy, SinglePassStrategy)
        assert coordinator.orchestrator.file_timeout == 5

    def test_unknown_strategy(self):
        settings = Settings(GENERATION_STRATEGY="magic")
        with pytest.raises(ConfigurationError):
            SyncCoordinator.from_settings(settings, FakeHosting(), FakeAuthor())
