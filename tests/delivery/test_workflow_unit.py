"""Unit tests for the feature delivery workflow.

Uses AsyncMock clients to check step ordering and error wrapping, and the
in-memory GitHub fake for end-to-end deliveries.
"""

import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.delivery.events.emitter import EventEmitter
from src.delivery.events.models import EventType, WorkflowEvent
from src.delivery.github.models import BranchRef, FileChange, PullRequest
from src.delivery.github.mutations import MutationClient
from src.delivery.github.result import ErrorKind, Result
from src.delivery.workflow import FeatureDeliveryWorkflow, WorkflowStep, feature_branch_name
from tests.delivery.fake_github import FakeGitHub


def run_async(coro):
    return asyncio.run(coro)


class RecordingEmitter(EventEmitter):
    def __init__(self):
        self.events: List[WorkflowEvent] = []

    async def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)


class ExplodingEmitter(EventEmitter):
    async def emit(self, event: WorkflowEvent) -> None:
        raise RuntimeError("sink unavailable")


def _pull_request(head: str = "feature/dark-mode") -> PullRequest:
    return PullRequest(
        number=42,
        title="Add dark mode",
        body=None,
        head=head,
        base="main",
        url="https://github.com/acme/widgets/pull/42",
        state="open",
    )


def _mock_mutations() -> MagicMock:
    mutations = MagicMock(spec=MutationClient)
    mutations.create_branch = AsyncMock(
        return_value=Result.ok(BranchRef(name="feature/dark-mode", base_sha="a" * 40))
    )
    mutations.create_file = AsyncMock(
        return_value=Result.ok(
            FileChange(
                path="theme.css",
                content_bytes=b"body{}",
                commit_message="feat: dark-mode",
                target_branch="feature/dark-mode",
            )
        )
    )
    mutations.create_pr = AsyncMock(return_value=Result.ok(_pull_request()))
    return mutations


def _workflow(mutations, emitter=None) -> FeatureDeliveryWorkflow:
    return FeatureDeliveryWorkflow(mutations, repository="acme/widgets", event_emitter=emitter)


class TestFeatureBranchName:

    def test_prefixes_feature(self):
        assert feature_branch_name("dark-mode") == "feature/dark-mode"


class TestCreateFeaturePr:

    def test_runs_steps_in_order_with_derived_names(self):
        mutations = _mock_mutations()
        manager = MagicMock()
        manager.attach_mock(mutations.create_branch, "create_branch")
        manager.attach_mock(mutations.create_file, "create_file")
        manager.attach_mock(mutations.create_pr, "create_pr")

        result = run_async(
            _workflow(mutations).create_feature_pr(
                "dark-mode", "theme.css", "body{}", "Add dark mode", "Dark theme"
            )
        )

        assert result.success
        assert [c[0] for c in manager.mock_calls] == ["create_branch", "create_file", "create_pr"]
        mutations.create_branch.assert_awaited_once_with("feature/dark-mode")
        mutations.create_file.assert_awaited_once_with(
            "theme.css", "body{}", "feat: dark-mode", "feature/dark-mode"
        )
        mutations.create_pr.assert_awaited_once_with(
            "Add dark mode", "Dark theme", "feature/dark-mode"
        )

    def test_success_result(self):
        result = run_async(
            _workflow(_mock_mutations()).create_feature_pr(
                "dark-mode", "theme.css", "body{}", "Add dark mode"
            )
        )

        assert result.value.branch == "feature/dark-mode"
        assert result.value.file == "theme.css"
        assert result.value.pr.number == 42
        assert result.value.pr.url == "https://github.com/acme/widgets/pull/42"

    def test_branch_failure_stops_workflow(self):
        mutations = _mock_mutations()
        mutations.create_branch.return_value = Result.fail(
            ErrorKind.CONFLICT, "GitHub API error 422: Reference already exists", 422
        )

        result = run_async(
            _workflow(mutations).create_feature_pr("dark-mode", "theme.css", "x", "T")
        )

        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_message == (
            "Failed to create branch: GitHub API error 422: Reference already exists"
        )
        mutations.create_file.assert_not_awaited()
        mutations.create_pr.assert_not_awaited()

    def test_file_failure_stops_before_pr(self):
        mutations = _mock_mutations()
        mutations.create_file.return_value = Result.fail(ErrorKind.REMOTE, "boom")

        result = run_async(
            _workflow(mutations).create_feature_pr("dark-mode", "theme.css", "x", "T")
        )

        assert result.error_kind == ErrorKind.REMOTE
        assert result.error_message == "Failed to create file: boom"
        mutations.create_pr.assert_not_awaited()

    def test_pr_failure_is_prefixed(self):
        mutations = _mock_mutations()
        mutations.create_pr.return_value = Result.fail(ErrorKind.VALIDATION, "bad head")

        result = run_async(
            _workflow(mutations).create_feature_pr("dark-mode", "theme.css", "x", "T")
        )

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_message == "Failed to create PR: bad head"

    @pytest.mark.parametrize(
        "args",
        [
            ("", "f.txt", "x", "T"),
            ("feat", "", "x", "T"),
            ("feat", "f.txt", "", "T"),
            ("feat", "f.txt", "x", ""),
        ],
    )
    def test_missing_inputs_are_validation_without_calls(self, args):
        mutations = _mock_mutations()

        result = run_async(_workflow(mutations).create_feature_pr(*args))

        assert result.error_kind == ErrorKind.VALIDATION
        mutations.create_branch.assert_not_awaited()


class TestWorkflowEvents:

    def test_success_emits_step_events_and_completion(self):
        emitter = RecordingEmitter()

        run_async(
            _workflow(_mock_mutations(), emitter).create_feature_pr(
                "dark-mode", "theme.css", "x", "T"
            )
        )

        kinds = [(e.event_type, e.details.get("step")) for e in emitter.events]
        assert kinds == [
            (EventType.STEP_STARTED, "branch"),
            (EventType.STEP_COMPLETED, "branch"),
            (EventType.STEP_STARTED, "file"),
            (EventType.STEP_COMPLETED, "file"),
            (EventType.STEP_STARTED, "pr"),
            (EventType.STEP_COMPLETED, "pr"),
            (EventType.COMPLETION, None),
        ]
        completion = emitter.events[-1]
        assert completion.workflow_id == "feature/dark-mode"
        assert completion.repository == "acme/widgets"
        assert completion.details["pr_number"] == 42

    def test_failure_emits_step_failed_and_failure(self):
        emitter = RecordingEmitter()
        mutations = _mock_mutations()
        mutations.create_file.return_value = Result.fail(ErrorKind.REMOTE, "boom")

        run_async(
            _workflow(mutations, emitter).create_feature_pr("dark-mode", "theme.css", "x", "T")
        )

        failed, failure = emitter.events[-2:]
        assert failed.event_type == EventType.STEP_FAILED
        assert failed.details["step"] == WorkflowStep.FILE.value
        assert failure.event_type == EventType.FAILURE
        assert failure.details["error_message"] == "Failed to create file: boom"
        assert failure.details["error_kind"] == "remote"

    def test_emitter_failure_does_not_change_result(self):
        result = run_async(
            _workflow(_mock_mutations(), ExplodingEmitter()).create_feature_pr(
                "dark-mode", "theme.css", "x", "T"
            )
        )

        assert result.success


class TestAgainstFakeGitHub:

    def test_dark_mode_delivery(self):
        fake = FakeGitHub()
        workflow = _workflow(MutationClient(fake.executor()))

        result = run_async(
            workflow.create_feature_pr(
                "dark-mode", "styles/dark.css", "body { background: #000; }\n", "Add dark mode"
            )
        )

        assert result.success
        assert result.value.pr.url == "https://github.com/acme/widgets/pull/1"
        assert fake.refs["feature/dark-mode"]
        assert fake.file_content("feature/dark-mode", "styles/dark.css") == (
            b"body { background: #000; }\n"
        )
        assert fake.pulls[0]["head"]["ref"] == "feature/dark-mode"
        assert fake.pulls[0]["base"]["ref"] == "main"

    def test_repeat_delivery_conflicts_at_branch_step(self):
        fake = FakeGitHub()
        workflow = _workflow(MutationClient(fake.executor()))

        async def scenario():
            await workflow.create_feature_pr("dark-mode", "a.css", "x", "T")
            return await workflow.create_feature_pr("dark-mode", "a.css", "y", "T")

        result = run_async(scenario())

        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_message.startswith("Failed to create branch")
        assert len(fake.pulls) == 1

    def test_branch_is_left_behind_when_file_step_fails(self):
        fake = FakeGitHub()
        fake.respond_with("PUT", r"/contents/", 500, {"message": "Server Error"})
        workflow = _workflow(MutationClient(fake.executor()))

        result = run_async(workflow.create_feature_pr("dark-mode", "a.css", "x", "T"))

        assert result.error_message.startswith("Failed to create file")
        assert "feature/dark-mode" in fake.refs
        assert fake.pulls == []
