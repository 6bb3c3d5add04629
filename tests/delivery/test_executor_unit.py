"""Unit tests for the request executor and status classification.

Covers the credential gate, status code to ErrorKind mapping, transport
failures, body decoding and the Result envelope helpers.
"""

import asyncio

import httpx
import pytest

from src.delivery.github.executor import GitHubRequest, RequestExecutor, classify_status
from src.delivery.github.result import ErrorKind, OperationError, Result
from tests.delivery.fake_github import BASE_URL, FakeGitHub, make_credentials


def run_async(coro):
    return asyncio.run(coro)


def _executor_for(handler, credentials=None) -> RequestExecutor:
    return RequestExecutor(
        credentials or make_credentials(),
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


class TestClassifyStatus:

    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (401, ErrorKind.AUTH),
            (403, ErrorKind.AUTH),
            (404, ErrorKind.NOT_FOUND),
            (409, ErrorKind.CONFLICT),
            (400, ErrorKind.VALIDATION),
            (422, ErrorKind.VALIDATION),
            (429, ErrorKind.REMOTE),
            (500, ErrorKind.REMOTE),
            (502, ErrorKind.REMOTE),
            (503, ErrorKind.REMOTE),
        ],
    )
    def test_status_mapping(self, status_code, expected):
        assert classify_status(status_code) == expected

    def test_rate_limited_forbidden_is_remote(self):
        assert classify_status(403, rate_limited=True) == ErrorKind.REMOTE


class TestCredentialGate:

    @pytest.mark.parametrize(
        "credentials",
        [
            make_credentials(token=""),
            make_credentials(owner=""),
            make_credentials(repository="  "),
        ],
    )
    def test_incomplete_credentials_fail_without_io(self, credentials):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        executor = _executor_for(handler, credentials)
        result = run_async(executor.execute(GitHubRequest.get("/user")))

        assert not result.success
        assert result.error_kind == ErrorKind.AUTH
        assert calls == []

    def test_token_is_sent_as_bearer(self):
        fake = FakeGitHub()
        run_async(fake.executor().execute(GitHubRequest.get("/user")))

        headers = fake.requests[0].headers
        assert headers["authorization"] == "Bearer ghp_test"
        assert headers["accept"] == "application/vnd.github+json"

    def test_token_not_in_credentials_repr(self):
        assert "ghp_test" not in repr(make_credentials())


class TestExecute:

    def test_success_returns_decoded_json(self):
        fake = FakeGitHub()
        result = run_async(fake.executor().execute(GitHubRequest.get("/user")))

        assert result.success
        assert result.value["login"] == "octocat"

    def test_no_content_returns_empty_dict(self):
        executor = _executor_for(lambda request: httpx.Response(204))
        result = run_async(executor.execute(GitHubRequest.put("/x", {})))

        assert result.success
        assert result.value == {}

    def test_non_json_body_returns_text(self):
        executor = _executor_for(lambda request: httpx.Response(200, text="plain"))
        result = run_async(executor.execute(GitHubRequest.get("/x")))

        assert result.success
        assert result.value == "plain"

    def test_warning_header_does_not_fail_success(self):
        executor = _executor_for(
            lambda request: httpx.Response(
                200,
                json={"ok": True},
                headers={"Warning": "299 - deprecated endpoint"},
            )
        )
        result = run_async(executor.execute(GitHubRequest.get("/x")))

        assert result.success
        assert result.value == {"ok": True}

    def test_error_message_includes_status_and_github_message(self):
        executor = _executor_for(
            lambda request: httpx.Response(404, json={"message": "Not Found"})
        )
        result = run_async(executor.execute(GitHubRequest.get("/repos/a/b")))

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.error.status_code == 404
        assert result.error_message == "GitHub API error 404: Not Found"

    def test_error_message_includes_field_errors(self):
        executor = _executor_for(
            lambda request: httpx.Response(
                422,
                json={
                    "message": "Validation Failed",
                    "errors": [{"resource": "PullRequest", "field": "head", "code": "invalid"}],
                },
            )
        )
        result = run_async(executor.execute(GitHubRequest.post("/x", {})))

        assert result.error_kind == ErrorKind.VALIDATION
        assert "Validation Failed" in result.error_message
        assert "head invalid" in result.error_message

    def test_rate_limited_forbidden_is_remote_with_reset(self):
        executor = _executor_for(
            lambda request: httpx.Response(
                403,
                json={"message": "API rate limit exceeded"},
                headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
            )
        )
        result = run_async(executor.execute(GitHubRequest.get("/user")))

        assert result.error_kind == ErrorKind.REMOTE
        assert "1700000000" in result.error_message

    def test_forbidden_with_remaining_quota_is_auth(self):
        executor = _executor_for(
            lambda request: httpx.Response(
                403,
                json={"message": "Resource not accessible by integration"},
                headers={"x-ratelimit-remaining": "4999"},
            )
        )
        result = run_async(executor.execute(GitHubRequest.get("/user")))

        assert result.error_kind == ErrorKind.AUTH

    def test_timeout_is_remote(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = run_async(_executor_for(handler).execute(GitHubRequest.get("/user")))

        assert result.error_kind == ErrorKind.REMOTE
        assert result.error_message.startswith("Request timed out")

    def test_connection_error_is_remote(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = run_async(_executor_for(handler).execute(GitHubRequest.get("/user")))

        assert result.error_kind == ErrorKind.REMOTE
        assert "connection refused" in result.error_message

    def test_close_releases_client(self):
        fake = FakeGitHub()
        executor = fake.executor()

        async def scenario():
            async with executor:
                await executor.execute(GitHubRequest.get("/user"))
            return executor._client

        assert run_async(scenario()) is None


class TestResult:

    def test_map_transforms_success(self):
        assert Result.ok(2).map(lambda v: v * 3).value == 6

    def test_map_keeps_failure(self):
        failed = Result.fail(ErrorKind.NOT_FOUND, "missing", 404)
        mapped = failed.map(lambda v: v["never"])

        assert mapped.error == failed.error

    def test_map_turns_bad_payload_into_remote(self):
        mapped = Result.ok({}).map(lambda v: v["login"])

        assert not mapped.success
        assert mapped.error_kind == ErrorKind.REMOTE
        assert mapped.error_message.startswith("Unexpected response payload")

    def test_map_turns_non_object_payload_into_remote(self):
        mapped = Result.ok("<html>proxy</html>").map(lambda v: v.get("login"))

        assert not mapped.success
        assert mapped.error_kind == ErrorKind.REMOTE

    def test_with_prefix_keeps_kind_and_status(self):
        error = OperationError(ErrorKind.CONFLICT, "exists", 422).with_prefix("Failed to create branch")

        assert error.kind == ErrorKind.CONFLICT
        assert error.status_code == 422
        assert error.message == "Failed to create branch: exists"
