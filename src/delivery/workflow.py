"""Feature delivery workflow: branch, file, pull request.

Drives a small change through three strictly sequential steps, each gated
on the previous one:

1. Create ``feature/{feature_name}`` from the default base branch
2. Commit the file on that branch with message ``feat: {feature_name}``
3. Open a pull request from the branch

The first failing step ends the workflow. Its error is returned with a
prefix naming the step. Completed steps are not undone: a branch created
before a failed file commit stays on the remote.

Source:
- src/delivery/github/mutations.py (MutationClient)
- src/delivery/events/emitter.py (EventEmitter)
"""

import logging
import time
from enum import Enum
from typing import Any, Optional

from src.delivery.events.emitter import EventEmitter, NullEventEmitter
from src.delivery.events.models import EventType, WorkflowEvent
from src.delivery.github.models import FeatureDeliveryResult
from src.delivery.github.mutations import MutationClient
from src.delivery.github.result import ErrorKind, OperationError, Result

logger = logging.getLogger(__name__)

FEATURE_BRANCH_PREFIX = "feature/"
COMMIT_MESSAGE_PREFIX = "feat: "


class WorkflowStep(str, Enum):
    """Steps of the feature delivery workflow, in execution order."""

    BRANCH = "branch"
    FILE = "file"
    PR = "pr"

    @property
    def failure_prefix(self) -> str:
        return {
            WorkflowStep.BRANCH: "Failed to create branch",
            WorkflowStep.FILE: "Failed to create file",
            WorkflowStep.PR: "Failed to create PR",
        }[self]


def feature_branch_name(feature_name: str) -> str:
    return f"{FEATURE_BRANCH_PREFIX}{feature_name}"


class FeatureDeliveryWorkflow:
    """Orchestrates the branch -> file -> pull request saga.

    Accepts its dependencies via constructor injection. Events are emitted
    for every step; emitter failures are logged and never change the
    workflow result.

    Attributes:
        mutations: Client used for every remote write.
        repository: Repository label attached to events ("{owner}/{repo}").
        event_emitter: Emits workflow events for observability.
    """

    def __init__(
        self,
        mutations: MutationClient,
        repository: str,
        event_emitter: Optional[EventEmitter] = None,
    ):
        self.mutations = mutations
        self.repository = repository
        self.event_emitter = event_emitter or NullEventEmitter()

    async def create_feature_pr(
        self,
        feature_name: str,
        file_name: str,
        file_content: str,
        pr_title: str,
        pr_body: Optional[str] = None,
    ) -> Result[FeatureDeliveryResult]:
        """Create a feature branch, commit one file and open a pull request.

        Args:
            feature_name: Feature identifier; the branch is ``feature/{feature_name}``.
                Must be unique: a second delivery with the same name fails
                at the branch step with CONFLICT.
            file_name: Repository path of the file to commit.
            file_content: Content of the file.
            pr_title: Pull request title.
            pr_body: Optional pull request description.

        Returns:
            Result with the FeatureDeliveryResult on full success. On failure
            the error keeps the failing step's kind and its message starts
            with "Failed to create branch", "Failed to create file" or
            "Failed to create PR". Missing required fields fail with
            VALIDATION before any remote call.
        """
        missing = [
            name
            for name, value in (
                ("featureName", feature_name),
                ("fileName", file_name),
                ("fileContent", file_content),
                ("prTitle", pr_title),
            )
            if not value
        ]
        if missing:
            return Result.fail(
                ErrorKind.VALIDATION,
                f"{', '.join(missing)} required",
            )

        branch_name = feature_branch_name(feature_name)
        started = time.monotonic()

        logger.info(
            "Starting feature delivery",
            extra={"workflow_id": branch_name, "repository": self.repository},
        )

        await self._emit_step(EventType.STEP_STARTED, branch_name, WorkflowStep.BRANCH)
        branch_result = await self.mutations.create_branch(branch_name)
        if not branch_result.success:
            return await self._fail(branch_name, WorkflowStep.BRANCH, branch_result.error)
        await self._emit_step(EventType.STEP_COMPLETED, branch_name, WorkflowStep.BRANCH)

        await self._emit_step(EventType.STEP_STARTED, branch_name, WorkflowStep.FILE)
        file_result = await self.mutations.create_file(
            file_name,
            file_content,
            f"{COMMIT_MESSAGE_PREFIX}{feature_name}",
            branch_name,
        )
        if not file_result.success:
            return await self._fail(branch_name, WorkflowStep.FILE, file_result.error)
        await self._emit_step(EventType.STEP_COMPLETED, branch_name, WorkflowStep.FILE)

        await self._emit_step(EventType.STEP_STARTED, branch_name, WorkflowStep.PR)
        pr_result = await self.mutations.create_pr(pr_title, pr_body, branch_name)
        if not pr_result.success:
            return await self._fail(branch_name, WorkflowStep.PR, pr_result.error)
        await self._emit_step(EventType.STEP_COMPLETED, branch_name, WorkflowStep.PR)

        pr = pr_result.value
        await self._emit(
            EventType.COMPLETION,
            branch_name,
            pr_number=pr.number,
            pr_url=pr.url,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Feature delivered",
            extra={"workflow_id": branch_name, "pr_number": pr.number, "pr_url": pr.url},
        )

        return Result.ok(
            FeatureDeliveryResult(branch=branch_name, file=file_name, pr=pr)
        )

    async def _fail(
        self,
        branch_name: str,
        step: WorkflowStep,
        error: OperationError,
    ) -> Result[FeatureDeliveryResult]:
        """Report a failed step and end the workflow.

        Earlier steps keep their remote effects.
        """
        wrapped = error.with_prefix(step.failure_prefix)
        failure = {"error_message": wrapped.message, "error_kind": wrapped.kind.value}
        await self._emit_step(EventType.STEP_FAILED, branch_name, step, **failure)
        await self._emit(EventType.FAILURE, branch_name, step=step.value, **failure)
        return Result.from_error(wrapped)

    async def _emit_step(
        self,
        event_type: EventType,
        branch_name: str,
        step: WorkflowStep,
        **details: Any,
    ) -> None:
        await self._emit(event_type, branch_name, step=step.value, **details)

    async def _emit(self, event_type: EventType, branch_name: str, **details: Any) -> None:
        try:
            event = WorkflowEvent(
                event_type=event_type,
                workflow_id=branch_name,
                repository=self.repository,
                details=details,
            )
            await self.event_emitter.emit(event)
        except Exception:
            logger.exception(
                "Failed to emit workflow event",
                extra={"workflow_id": branch_name, "event_type": event_type.value},
            )
