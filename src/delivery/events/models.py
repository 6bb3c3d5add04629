"""Workflow event models for observability.

This module defines the data models for workflow events, including:
- EventType: Enum of all event types emitted by the delivery workflow
- WorkflowEvent: Structured event with all required metadata

Events are emitted for monitoring and debugging purposes. They provide
visibility into each step of a feature delivery without affecting its
outcome.

The models use Pydantic for validation, consistent with the client's
approach in github/models.py.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the delivery workflow.

    Event Categories:
        STEP_STARTED: A workflow step (branch, file, pr) is about to run.

        STEP_COMPLETED: A workflow step succeeded.

        STEP_FAILED: A workflow step failed; the workflow stops here.

        COMPLETION: Every step succeeded and the pull request is open.

        FAILURE: The workflow ended without opening a pull request.
    """

    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    COMPLETION = "completion"
    FAILURE = "failure"


class WorkflowEvent(BaseModel):
    """Structured event emitted by the delivery workflow.

    Attributes:
        event_type: The category of event.
        workflow_id: Identifier of the workflow run, the feature branch name.
        repository: Full repository path in format "{owner}/{repo}".
        timestamp: When the event occurred (UTC timezone).
        details: Additional context specific to the event type.

    Details Field Conventions:
        For STEP_* events:
            - step: Workflow step name (branch, file, pr)

        For STEP_FAILED and FAILURE events:
            - error_message: Human-readable error description
            - error_kind: Error classification

        For COMPLETION events:
            - pr_number: Created pull request number
            - pr_url: URL to the pull request
            - duration_seconds: Total workflow time
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    workflow_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the workflow run (the feature branch name)",
    )

    repository: str = Field(
        ...,
        min_length=1,
        description='Full repository path in format "{owner}/{repo}"',
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert event to a flat dictionary suitable for structured logging.

        Returns:
            Dict[str, Any]: Flat dictionary representation of the event.
        """
        return {
            "event_type": self.event_type.value,
            "workflow_id": self.workflow_id,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
