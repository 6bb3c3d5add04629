"""HTTP routes exposing the GitHub client operations.

Each route validates required fields, calls one client operation and maps
its Result onto the response contract:

- success: 200 with the domain payload
- domain failure: 4xx with ``{"error": message}``
- transport/API failure: 502, unexpected exception: 500
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Request

from src.delivery.api.models import (
    CommentBody,
    CreateBranchBody,
    CreateFileBody,
    CreatePullRequestBody,
    FeaturePullRequestBody,
    MergeBody,
)
from src.delivery.github.mutations import MutationClient
from src.delivery.github.resources import ResourceClient
from src.delivery.github.result import ErrorKind, Result
from src.delivery.workflow import FeatureDeliveryWorkflow

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_KIND = {
    ErrorKind.AUTH: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.REMOTE: 502,
}


class ApiError(Exception):
    """Raised by route handlers to produce an ``{"error": message}`` response."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


@dataclass
class ServiceContainer:
    """Clients wired at startup and shared by every request."""

    resources: ResourceClient
    mutations: MutationClient
    workflow: FeatureDeliveryWorkflow


def get_services(request: Request) -> ServiceContainer:
    services: Optional[ServiceContainer] = getattr(request.app.state, "services", None)
    if services is None:
        raise ApiError(503, "Service not initialized")
    return services


def _require(**fields: Any) -> None:
    """Raise a 400 ApiError naming the required fields when any is empty."""
    if all(fields.values()):
        return
    names = list(fields)
    if len(names) == 1:
        listed = names[0]
    elif len(names) == 2:
        listed = f"{names[0]} and {names[1]}"
    else:
        listed = f"{', '.join(names[:-1])}, and {names[-1]}"
    verb = "is" if len(names) == 1 else "are"
    raise ApiError(400, f"{listed} {verb} required")


async def _respond(
    operation: Awaitable[Result],
    payload: Callable[[Any], Any],
) -> Any:
    """Await a client operation and convert its Result into a response body."""
    try:
        result = await operation
    except Exception as e:
        logger.exception("Unexpected error while calling GitHub client")
        raise ApiError(500, str(e)) from e

    if not result.success:
        raise ApiError(STATUS_BY_ERROR_KIND[result.error.kind], result.error.message)
    return payload(result.value)


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json", by_alias=True)


router = APIRouter(prefix="/api/github")


@router.get("/user")
async def get_user(services: ServiceContainer = Depends(get_services)):
    """Get authenticated user."""
    return await _respond(services.resources.get_user(), _dump)


@router.get("/repos")
async def list_repos(limit: int = 10, services: ServiceContainer = Depends(get_services)):
    """List user repositories."""
    return await _respond(
        services.resources.list_repos(limit),
        lambda repos: [_dump(r) for r in repos],
    )


@router.get("/repo")
async def get_repo(
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
):
    """Get repository info; owner and repo default to the configured repository."""
    return await _respond(services.resources.get_repo(owner, repo), _dump)


@router.post("/branch")
async def create_branch(
    body: CreateBranchBody,
    services: ServiceContainer = Depends(get_services),
):
    """Create a new branch."""
    _require(branchName=body.branch_name)
    return await _respond(
        services.mutations.create_branch(body.branch_name, body.base_branch),
        lambda branch: {"branch": branch.name},
    )


@router.post("/file")
async def create_file(
    body: CreateFileBody,
    services: ServiceContainer = Depends(get_services),
):
    """Create or update a file."""
    _require(
        filePath=body.file_path,
        content=body.content,
        message=body.message,
        branch=body.branch,
    )
    return await _respond(
        services.mutations.create_file(body.file_path, body.content, body.message, body.branch),
        lambda change: {"file": change.path},
    )


@router.post("/pr")
async def create_pr(
    body: CreatePullRequestBody,
    services: ServiceContainer = Depends(get_services),
):
    """Create a pull request."""
    if not body.title or not body.head:
        raise ApiError(400, "title and head branch are required")
    return await _respond(
        services.mutations.create_pr(body.title, body.body, body.head, body.base),
        _dump,
    )


@router.get("/prs")
async def list_prs(
    state: str = "open",
    limit: int = 10,
    services: ServiceContainer = Depends(get_services),
):
    """List pull requests."""
    return await _respond(
        services.resources.list_prs(state, limit),
        lambda prs: [_dump(pr) for pr in prs],
    )


@router.get("/pr/{number}")
async def get_pr(number: int, services: ServiceContainer = Depends(get_services)):
    """Get pull request details."""
    return await _respond(services.resources.get_pr(number), _dump)


@router.post("/pr/{number}/comment")
async def add_pr_comment(
    number: int,
    body: CommentBody,
    services: ServiceContainer = Depends(get_services),
):
    """Add a comment to a pull request."""
    _require(comment=body.comment)
    return await _respond(
        services.mutations.add_pr_comment(number, body.comment),
        lambda comment: {"success": True, "comment": _dump(comment)},
    )


@router.post("/pr/{number}/merge")
async def merge_pr(
    number: int,
    body: Optional[MergeBody] = None,
    services: ServiceContainer = Depends(get_services),
):
    """Merge a pull request; enables squash auto-merge by default."""
    body = body or MergeBody()
    return await _respond(
        services.mutations.merge_pr(number, method=body.method, auto=body.auto),
        _dump,
    )


@router.post("/feature-pr")
async def create_feature_pr(
    body: FeaturePullRequestBody,
    services: ServiceContainer = Depends(get_services),
):
    """Create a branch, commit a file and open a pull request in one call."""
    _require(
        featureName=body.feature_name,
        fileName=body.file_name,
        fileContent=body.file_content,
        prTitle=body.pr_title,
    )
    return await _respond(
        services.workflow.create_feature_pr(
            body.feature_name,
            body.file_name,
            body.file_content,
            body.pr_title,
            body.pr_body,
        ),
        lambda delivery: {"success": True, **_dump(delivery)},
    )
