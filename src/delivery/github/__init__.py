"""GitHub API client for repository automation.

This package provides an async wrapper around the GitHub API for:
- Executing requests with uniform Result envelopes
- Reading the user, repositories and pull requests
- Creating branches, files, pull requests and comments
- Merging pull requests

No operation raises across the package boundary; failures are returned as
Results carrying an ErrorKind.
"""

from src.delivery.github.executor import GitHubRequest, RequestExecutor, classify_status
from src.delivery.github.models import (
    BranchRef,
    Credentials,
    FeatureDeliveryResult,
    FileChange,
    MergeRequest,
    PullRequest,
    PullRequestComment,
    RepositoryDetail,
    RepositorySummary,
    UserRecord,
)
from src.delivery.github.mutations import MutationClient
from src.delivery.github.resources import ResourceClient
from src.delivery.github.result import ErrorKind, OperationError, Result

__all__ = [
    "BranchRef",
    "Credentials",
    "ErrorKind",
    "FeatureDeliveryResult",
    "FileChange",
    "GitHubRequest",
    "MergeRequest",
    "MutationClient",
    "OperationError",
    "PullRequest",
    "PullRequestComment",
    "RepositoryDetail",
    "RepositorySummary",
    "RequestExecutor",
    "ResourceClient",
    "Result",
    "UserRecord",
    "classify_status",
]
