"""Unit tests for GitHubClient against a mocked transport."""

import base64
import json
from unittest.mock import patch

import httpx
import pytest

from iterate.exceptions import CollaboratorUnavailable, ConfigurationError, WriteConflict
from iterate.schemas import FileStatus
from iterate.services.github_client import GitHubClient, extract_file_patch
from tests.fakes import REPO

RAW_DIFF = """diff --git a/src/a.ts b/src/a.ts
index 1111111..2222222 100644
--- a/src/a.ts
+++ b/src/a.ts
@@ -1 +1,2 @@
 const a = 1;
+const b = 2;
diff --git a/src/big.ts b/src/big.ts
index 3333333..4444444 100644
--- a/src/big.ts
+++ b/src/big.ts
@@ -10 +10 @@
-export function old() {}
+export function renamed() {}
"""


def encoded(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class TestGitHubClient:
    def setup_method(self):
        self.requests = []
        self.responses = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def make_client(self, read_retries: int = 2) -> GitHubClient:
        return GitHubClient(
            token="ghp_test",
            read_retries=read_retries,
            transport=httpx.MockTransport(self.handler),
        )

    def test_token_required(self):
        with pytest.raises(ConfigurationError):
            GitHubClient(token="")

    @pytest.mark.asyncio
    async def test_list_changed_files(self):
        self.responses.append(
            httpx.Response(
                200,
                json={
                    "files": [
                        {
                            "filename": "src/a.ts",
                            "status": "modified",
                            "additions": 1,
                            "deletions": 0,
                            "changes": 1,
                            "patch": "@@ -1 +1,2 @@\n+const b = 2;",
                        },
                        {
                            "filename": "src/c.ts",
                            "status": "renamed",
                            "previous_filename": "src/b.ts",
                        },
                    ]
                },
            )
        )
        client = self.make_client()

        changes = await client.list_changed_files(REPO, "base", "head")

        request = self.requests[0]
        assert request.url.path == "/repos/acme/widgets/compare/base...head"
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert changes[0].status == FileStatus.MODIFIED
        assert changes[0].patch.endswith("+const b = 2;")
        assert changes[1].status == FileStatus.RENAMED
        assert changes[1].old_file_path == "src/b.ts"
        assert changes[1].patch is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_file_entry(self):
        self.responses.append(
            httpx.Response(
                200,
                json={
                    "type": "file",
                    "encoding": "base64",
                    "content": encoded("const a = 1;\n"),
                    "sha": "abc",
                },
            )
        )
        client = self.make_client()

        entry = await client.get_file_entry(REPO, "src/a.ts", "main")

        assert entry.content == "const a = 1;\n"
        assert entry.sha == "abc"
        assert self.requests[0].url.params["ref"] == "main"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_file_and_directory_are_absent(self):
        self.responses.extend(
            [httpx.Response(404, json={}), httpx.Response(200, json=[{"name": "a.ts"}])]
        )
        client = self.make_client()

        assert await client.get_file_content(REPO, "src/none.ts", "main") is None
        assert await client.get_file_content(REPO, "src", "main") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_contents_path_is_url_quoted(self):
        self.responses.extend(
            [
                httpx.Response(
                    200,
                    json={
                        "type": "file",
                        "encoding": "base64",
                        "content": encoded("x"),
                        "sha": "abc",
                    },
                ),
                httpx.Response(201, json={}),
            ]
        )
        client = self.make_client()

        entry = await client.get_file_entry(REPO, "src/#draft?.ts", "main")
        await client.create_or_update_file(
            REPO, "src/__tests__/#draft?.test.ts", "x", "main", "m"
        )

        assert entry.path == "src/#draft?.ts"
        assert self.requests[0].url.raw_path.startswith(
            b"/repos/acme/widgets/contents/src/%23draft%3F.ts?"
        )
        assert self.requests[0].url.params["ref"] == "main"
        assert self.requests[1].url.raw_path == (
            b"/repos/acme/widgets/contents/src/__tests__/%23draft%3F.test.ts"
        )
        await client.aclose()

    @pytest.mark.asyncio
    async def test_content_not_inlined_is_unavailable(self):
        self.responses.append(
            httpx.Response(
                200,
                json={"type": "file", "encoding": "none", "content": "", "sha": "big"},
            )
        )
        client = self.make_client()

        with pytest.raises(CollaboratorUnavailable):
            await client.get_file_entry(REPO, "src/huge.ts", "main")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_reads_retried_on_server_errors(self):
        self.responses.extend(
            [
                httpx.ConnectError("connection refused"),
                httpx.Response(502),
                httpx.Response(200, json={"parents": [{"sha": "parent"}]}),
            ]
        )
        client = self.make_client(read_retries=2)

        with patch("iterate.services.github_client.RETRY_DELAY_SECONDS", 0):
            parent = await client.get_parent_revision(REPO, "head")

        assert parent == "parent"
        assert len(self.requests) == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_reads_give_up_after_retries(self):
        self.responses.extend([httpx.Response(503), httpx.Response(503)])
        client = self.make_client(read_retries=1)

        with patch("iterate.services.github_client.RETRY_DELAY_SECONDS", 0):
            with pytest.raises(CollaboratorUnavailable):
                await client.list_changed_files(REPO, "base", "head")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rate_limit_is_unavailable(self):
        self.responses.append(httpx.Response(429))
        client = self.make_client()

        with pytest.raises(CollaboratorUnavailable):
            await client.get_file_entry(REPO, "src/a.ts", "main")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_create_file(self):
        self.responses.append(httpx.Response(201, json={}))
        client = self.make_client()

        ok = await client.create_or_update_file(
            REPO, "src/__tests__/a.test.ts", "test()", "main", "Add tests [bot]"
        )

        assert ok is True
        request = self.requests[0]
        assert request.method == "PUT"
        body = json.loads(request.content)
        assert body["branch"] == "main"
        assert body["message"] == "Add tests [bot]"
        assert base64.b64decode(body["content"]).decode() == "test()"
        assert "sha" not in body
        await client.aclose()

    @pytest.mark.asyncio
    async def test_update_sends_sha(self):
        self.responses.append(httpx.Response(200, json={}))
        client = self.make_client()

        await client.create_or_update_file(REPO, "t.ts", "x", "main", "m", sha="abc")

        assert json.loads(self.requests[0].content)["sha"] == "abc"
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [409, 422])
    async def test_write_conflict(self, status):
        self.responses.append(httpx.Response(status, json={}))
        client = self.make_client()

        with pytest.raises(WriteConflict) as exc_info:
            await client.create_or_update_file(REPO, "t.ts", "x", "main", "m", sha="old")
        assert exc_info.value.path == "t.ts"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_diff_patch_reads_raw_diff(self):
        self.responses.append(httpx.Response(200, text=RAW_DIFF))
        client = self.make_client()

        patch_text = await client.get_diff_patch(REPO, "base", "head", "src/big.ts")

        assert self.requests[0].headers["Accept"] == "application/vnd.github.diff"
        assert patch_text.startswith("@@ -10 +10 @@")
        assert "+export function renamed() {}" in patch_text
        await client.aclose()


class TestExtractFilePatch:
    def test_first_file(self):
        assert extract_file_patch(RAW_DIFF, "src/a.ts") == (
            "@@ -1 +1,2 @@\n const a = 1;\n+const b = 2;"
        )

    def test_unknown_file(self):
        assert extract_file_patch(RAW_DIFF, "src/other.ts") is None
