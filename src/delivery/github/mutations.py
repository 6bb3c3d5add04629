"""State-changing GitHub operations.

This module provides the MutationClient, which writes to the configured
repository:

- Creating branches (resolve base head SHA, then create the ref)
- Upserting files (existence lookup for the blob SHA, then one PUT)
- Creating pull requests
- Commenting on pull requests
- Merging pull requests (auto-merge via GraphQL, or immediate squash)

Operations never raise. Two-call protocols abort after the first call when
it fails, so a failed lookup leaves no remote side effect behind.
"""

import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

from src.delivery.github.executor import GitHubRequest, RequestExecutor
from src.delivery.github.models import (
    BranchRef,
    FileChange,
    MergeRequest,
    PullRequest,
    PullRequestComment,
    encode_content,
)
from src.delivery.github.result import ErrorKind, Result


logger = logging.getLogger(__name__)

MERGE_METHODS = ("squash", "merge", "rebase")

# The refs API answers 422 both for a duplicate ref and for an invalid name or SHA
REF_EXISTS_MESSAGE = "Reference already exists"

ENABLE_AUTO_MERGE_MUTATION = """
mutation EnableAutoMerge($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod!) {
  enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
    pullRequest {
      number
      autoMergeRequest {
        mergeMethod
      }
    }
  }
}
"""


def _is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class MutationClient:
    """Write operations against the configured GitHub repository.

    Attributes:
        executor: Request executor carrying the credentials.
        default_base_branch: Base used by create_branch and create_pr when
            no base is given.
        graphql_url: GraphQL endpoint used to enable auto-merge.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        default_base_branch: str = "main",
        graphql_url: Optional[str] = None,
    ):
        self.executor = executor
        self.default_base_branch = default_base_branch
        self.graphql_url = graphql_url or f"{executor.base_url}/graphql"

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.executor.credentials.full_name}"

    async def create_branch(
        self,
        branch_name: str,
        base_branch: Optional[str] = None,
    ) -> Result[BranchRef]:
        """Create a branch from the current head of ``base_branch``.

        Phase 1 resolves the base branch head SHA with a read-only ref
        lookup; when it fails, its error is returned and nothing is created.
        Phase 2 creates ``refs/heads/{branch_name}`` at that SHA.

        Args:
            branch_name: Name of the branch to create.
            base_branch: Branch to start from (default: default_base_branch).

        Returns:
            Result with the BranchRef, or CONFLICT when the branch already
            exists remotely.
        """
        base_branch = base_branch or self.default_base_branch
        if _is_blank(branch_name):
            return Result.fail(ErrorKind.VALIDATION, "branchName is required")

        lookup = await self.executor.execute(
            GitHubRequest.get(f"{self.repo_path}/git/ref/heads/{quote(base_branch)}")
        )
        sha_result = lookup.map(lambda data: data["object"]["sha"])
        if not sha_result.success:
            logger.warning(
                "Could not resolve base branch",
                extra={"base_branch": base_branch, "error": sha_result.error_message},
            )
            return Result.from_error(sha_result.error)

        base_sha = sha_result.value
        created = await self.executor.execute(
            GitHubRequest.post(
                f"{self.repo_path}/git/refs",
                {"ref": f"refs/heads/{branch_name}", "sha": base_sha},
            )
        )
        if not created.success:
            error = created.error
            if error.status_code == 422 and REF_EXISTS_MESSAGE in error.message:
                error = error.with_kind(ErrorKind.CONFLICT)
            return Result.from_error(error)

        logger.info(
            "Branch created",
            extra={"branch": branch_name, "base_branch": base_branch, "base_sha": base_sha},
        )
        return Result.ok(BranchRef(name=branch_name, base_sha=base_sha))

    async def create_file(
        self,
        path: str,
        content: Union[str, bytes],
        message: str,
        branch: str,
    ) -> Result[FileChange]:
        """Create or update a file on a branch.

        Looks the path up on the branch first. When the file exists its blob
        SHA is sent with the write so the API only accepts the overwrite if
        nobody changed the file in between. When the file does not exist, or
        the lookup itself fails, the write is sent without a SHA and the API
        creates the file.

        Args:
            path: Repository path of the file.
            content: File content; text is committed as UTF-8.
            message: Commit message.
            branch: Branch to commit on.

        Returns:
            Result with the FileChange, CONFLICT when the version token no
            longer matches, or REMOTE for any other write failure.
        """
        missing = [
            name
            for name, value in (("filePath", path), ("message", message), ("branch", branch))
            if _is_blank(value)
        ]
        if content is None:
            missing.append("content")
        if missing:
            return Result.fail(ErrorKind.VALIDATION, f"{', '.join(missing)} required")

        content_path = f"{self.repo_path}/contents/{quote(path.lstrip('/'))}"
        existing_sha = await self._lookup_blob_sha(content_path, branch)

        body: Dict[str, Any] = {
            "message": message,
            "content": encode_content(content),
            "branch": branch,
        }
        if existing_sha:
            body["sha"] = existing_sha

        written = await self.executor.execute(GitHubRequest.put(content_path, body))
        if not written.success:
            error = written.error
            if error.kind not in (ErrorKind.AUTH, ErrorKind.CONFLICT):
                error = error.with_kind(ErrorKind.REMOTE)
            return Result.from_error(error)

        payload = written.value if isinstance(written.value, dict) else {}
        change = FileChange(
            path=path,
            content_bytes=content.encode("utf-8") if isinstance(content, str) else content,
            commit_message=message,
            target_branch=branch,
            existing_blob_sha=existing_sha,
            blob_sha=(payload.get("content") or {}).get("sha"),
            commit_sha=(payload.get("commit") or {}).get("sha"),
        )
        logger.info(
            "File committed",
            extra={
                "file_path": path,
                "branch": branch,
                "file_created": change.created,
                "commit_sha": change.commit_sha,
            },
        )
        return Result.ok(change)

    async def _lookup_blob_sha(self, content_path: str, branch: str) -> Optional[str]:
        """Return the current blob SHA of a file, or None when it is absent."""
        lookup = await self.executor.execute(GitHubRequest.get(content_path, ref=branch))
        if not lookup.success:
            if lookup.error_kind != ErrorKind.NOT_FOUND:
                logger.warning(
                    "File lookup failed, writing without a version token",
                    extra={"content_path": content_path, "error": lookup.error_message},
                )
            return None
        if isinstance(lookup.value, dict):
            return lookup.value.get("sha")
        # A directory listing comes back as a list and carries no blob SHA
        return None

    async def create_pr(
        self,
        title: str,
        body: Optional[str],
        head: str,
        base: Optional[str] = None,
    ) -> Result[PullRequest]:
        """Open a pull request from ``head`` into ``base``.

        Args:
            title: Pull request title.
            body: Pull request description (may be None).
            head: Branch containing the changes. Must already exist.
            base: Branch to merge into (default: default_base_branch).

        Returns:
            Result with the PullRequest and its canonical URL, or VALIDATION
            when the head branch does not exist remotely.
        """
        if _is_blank(title) or _is_blank(head):
            return Result.fail(ErrorKind.VALIDATION, "title and head branch are required")

        base = base or self.default_base_branch
        result = await self.executor.execute(
            GitHubRequest.post(
                f"{self.repo_path}/pulls",
                {"title": title, "body": body or "", "head": head, "base": base},
            )
        )
        pr_result = result.map(PullRequest.from_github_response)
        if pr_result.success:
            logger.info(
                "Pull request created",
                extra={
                    "pr_number": pr_result.value.number,
                    "pr_url": pr_result.value.url,
                    "head": head,
                    "base": base,
                },
            )
        return pr_result

    async def add_pr_comment(self, number: int, body: str) -> Result[PullRequestComment]:
        """Append a comment to a pull request conversation."""
        if not _is_positive_int(number):
            return Result.fail(
                ErrorKind.VALIDATION,
                f"Pull request number must be a positive integer, got {number!r}",
            )
        if _is_blank(body):
            return Result.fail(ErrorKind.VALIDATION, "comment is required")

        result = await self.executor.execute(
            GitHubRequest.post(
                f"{self.repo_path}/issues/{number}/comments",
                {"body": body},
            )
        )
        return result.map(PullRequestComment.from_github_response)

    async def merge_pr(
        self,
        number: int,
        method: str = "squash",
        auto: bool = True,
    ) -> Result[MergeRequest]:
        """Request a merge of a pull request.

        With ``auto`` (the default) auto-merge is enabled: the pull request
        is looked up for its node id, then GraphQL enablePullRequestAutoMerge
        is called. Success means the request was accepted; the merge itself
        happens later on the server once checks pass.

        With ``auto=False`` the pull request is merged immediately through
        the REST merge endpoint.

        Args:
            number: Pull request number.
            method: Merge method: "squash", "merge" or "rebase".
            auto: Enable auto-merge instead of merging now.

        Returns:
            Result with the MergeRequest describing what was accepted.
        """
        if not _is_positive_int(number):
            return Result.fail(
                ErrorKind.VALIDATION,
                f"Pull request number must be a positive integer, got {number!r}",
            )
        if method not in MERGE_METHODS:
            return Result.fail(
                ErrorKind.VALIDATION,
                f"Invalid merge method: {method}. Must be one of {', '.join(MERGE_METHODS)}",
            )

        if not auto:
            return await self._merge_now(number, method)

        lookup = await self.executor.execute(
            GitHubRequest.get(f"{self.repo_path}/pulls/{number}")
        )
        node_result = lookup.map(lambda data: data["node_id"])
        if not node_result.success:
            return Result.from_error(node_result.error)

        response = await self.executor.execute(
            GitHubRequest.post(
                self.graphql_url,
                {
                    "query": ENABLE_AUTO_MERGE_MUTATION,
                    "variables": {
                        "pullRequestId": node_result.value,
                        "mergeMethod": method.upper(),
                    },
                },
            )
        )
        if not response.success:
            return Result.from_error(response.error)

        # GraphQL reports rejected mutations in the body of a 200 response
        errors = response.value.get("errors") if isinstance(response.value, dict) else None
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            logger.error(
                "Auto-merge request rejected",
                extra={"pr_number": number, "error": messages},
            )
            return Result.fail(ErrorKind.VALIDATION, f"Auto-merge rejected: {messages}")

        logger.info(
            "Auto-merge enabled",
            extra={"pr_number": number, "merge_method": method},
        )
        return Result.ok(MergeRequest(number=number, method=method, auto=True))

    async def _merge_now(self, number: int, method: str) -> Result[MergeRequest]:
        result = await self.executor.execute(
            GitHubRequest.put(
                f"{self.repo_path}/pulls/{number}/merge",
                {"merge_method": method},
            )
        )
        return result.map(
            lambda data: MergeRequest(
                number=number,
                method=method,
                auto=False,
                merged=bool(data.get("merged")),
                sha=data.get("sha"),
            )
        )
