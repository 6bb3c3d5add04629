"""Read-only GitHub resource queries.

Every query is a fresh remote call; nothing is cached between calls.
Listing operations enforce a positive ``limit`` before any network I/O
and paginate when the limit exceeds one API page.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from src.delivery.github.executor import GitHubRequest, RequestExecutor
from src.delivery.github.models import (
    PullRequest,
    RepositoryDetail,
    RepositorySummary,
    UserRecord,
)
from src.delivery.github.result import ErrorKind, Result


logger = logging.getLogger(__name__)

# GitHub caps per_page at 100 for list endpoints
MAX_PAGE_SIZE = 100

DEFAULT_LIST_LIMIT = 10

PULL_REQUEST_STATES = ("open", "closed", "all")


def validate_limit(limit: Any) -> Optional[str]:
    """Return an error message when ``limit`` is not a positive integer."""
    if isinstance(limit, bool) or not isinstance(limit, int):
        return f"limit must be a positive integer, got {limit!r}"
    if limit < 1:
        return f"limit must be at least 1, got {limit}"
    return None


class ResourceClient:
    """Read-only queries against the configured GitHub repository.

    Attributes:
        executor: Request executor carrying the credentials.
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    @property
    def credentials(self):
        return self.executor.credentials

    async def get_user(self) -> Result[UserRecord]:
        """Get the authenticated user.

        Returns:
            Result with the UserRecord, or an AUTH failure when the token is
            missing, invalid or expired.
        """
        result = await self.executor.execute(GitHubRequest.get("/user"))
        return result.map(UserRecord.from_github_response)

    async def list_repos(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Result[List[RepositorySummary]]:
        """List repositories owned by the authenticated user.

        Repositories are ordered by most recent update. Non-positive limits
        are rejected with VALIDATION before any request is made.

        Args:
            limit: Maximum number of repositories to return.

        Returns:
            Result with at most ``limit`` RepositorySummary entries.
        """
        problem = validate_limit(limit)
        if problem:
            return Result.fail(ErrorKind.VALIDATION, problem)

        result = await self._paginate(
            "/user/repos",
            limit,
            {"affiliation": "owner", "sort": "updated"},
        )
        return result.map(
            lambda items: [RepositorySummary.from_github_response(i) for i in items]
        )

    async def get_repo(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
    ) -> Result[RepositoryDetail]:
        """Get a single repository.

        Args:
            owner: Repository owner. Defaults to the configured owner.
            repo: Repository name. Defaults to the configured repository.

        Returns:
            Result with the RepositoryDetail, or NOT_FOUND when the
            repository does not exist or is not accessible with the token.
        """
        owner = owner or self.credentials.owner
        repo = repo or self.credentials.repository

        result = await self.executor.execute(
            GitHubRequest.get(f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}")
        )
        if result.error_kind == ErrorKind.AUTH and result.error.status_code == 403:
            # Forbidden repositories are reported like missing ones; rate-limited 403s stay REMOTE
            return Result.from_error(result.error.with_kind(ErrorKind.NOT_FOUND))
        return result.map(RepositoryDetail.from_github_response)

    async def list_prs(
        self,
        state: str = "open",
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Result[List[PullRequest]]:
        """List pull requests of the configured repository.

        Args:
            state: One of "open", "closed" or "all".
            limit: Maximum number of pull requests to return.

        Returns:
            Result with at most ``limit`` PullRequest entries, newest first.
        """
        if state not in PULL_REQUEST_STATES:
            return Result.fail(
                ErrorKind.VALIDATION,
                f"Invalid state: {state}. Must be one of {', '.join(PULL_REQUEST_STATES)}",
            )
        problem = validate_limit(limit)
        if problem:
            return Result.fail(ErrorKind.VALIDATION, problem)

        result = await self._paginate(
            f"/repos/{self.credentials.full_name}/pulls",
            limit,
            {"state": state},
        )
        return result.map(
            lambda items: [PullRequest.from_github_response(i) for i in items]
        )

    async def get_pr(self, number: int) -> Result[PullRequest]:
        """Get a pull request of the configured repository by number."""
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            return Result.fail(
                ErrorKind.VALIDATION,
                f"Pull request number must be a positive integer, got {number!r}",
            )

        result = await self.executor.execute(
            GitHubRequest.get(f"/repos/{self.credentials.full_name}/pulls/{number}")
        )
        return result.map(PullRequest.from_github_response)

    async def _paginate(
        self,
        path: str,
        limit: int,
        params: Dict[str, Any],
    ) -> Result[List[Dict[str, Any]]]:
        """Collect up to ``limit`` items from a paginated list endpoint."""
        per_page = min(limit, MAX_PAGE_SIZE)
        items: List[Dict[str, Any]] = []
        page = 1

        while len(items) < limit:
            result = await self.executor.execute(
                GitHubRequest.get(path, per_page=per_page, page=page, **params)
            )
            if not result.success:
                return result
            if not isinstance(result.value, list):
                return Result.fail(
                    ErrorKind.REMOTE,
                    f"Unexpected response payload for {path}: expected a list",
                )

            items.extend(result.value)
            if len(result.value) < per_page:
                break
            page += 1

        logger.debug(
            "Listed GitHub resources",
            extra={"path": path, "count": min(len(items), limit), "pages": page},
        )
        return Result.ok(items[:limit])
