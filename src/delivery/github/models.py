"""GitHub domain models for the delivery client.

This module defines the records produced by the client operations. Each
record that is built from an API payload exposes a ``from_github_response``
constructor that projects only the fields the client exposes.

The models use Pydantic, consistent with the configuration approach in
config.py. Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``), matching the HTTP adapter's request bodies.
"""

import base64
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DomainModel(BaseModel):
    """Base class for records returned by the client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Credentials(BaseModel):
    """Process-wide GitHub credentials.

    Loaded once at startup and shared by reference; frozen so no operation
    can mutate it. The token is excluded from repr to keep it out of logs.

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        owner: Owner of the configured repository.
        repository: Name of the configured repository.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(default="", repr=False)
    owner: str = ""
    repository: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"

    def is_complete(self) -> bool:
        """True when token, owner and repository are all non-blank."""
        return all(
            value and value.strip()
            for value in (self.token, self.owner, self.repository)
        )


class UserRecord(DomainModel):
    """Sanitized projection of the authenticated account."""

    login: str
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            login=data["login"],
            name=data.get("name"),
            email=data.get("email"),
        )


class RepositorySummary(DomainModel):
    """Repository entry as returned by repository listings."""

    name: str
    description: Optional[str] = None
    url: str

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "RepositorySummary":
        return cls(
            name=data["name"],
            description=data.get("description"),
            url=data["html_url"],
        )


class RepositoryDetail(RepositorySummary):
    """Single repository with its default branch."""

    default_branch: str

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "RepositoryDetail":
        return cls(
            name=data["name"],
            description=data.get("description"),
            url=data["html_url"],
            default_branch=data["default_branch"],
        )


class BranchRef(DomainModel):
    """A branch created from the head commit of a base branch.

    Attributes:
        name: Name of the new branch (without ``refs/heads/``).
        base_sha: Commit the branch points at, resolved from the base branch
            at creation time.
    """

    name: str
    base_sha: str


def encode_content(content: Union[str, bytes]) -> str:
    """Base64-encode file content for the contents API.

    Text is encoded as UTF-8 first so multi-byte characters and embedded
    newlines survive the round trip unchanged.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return base64.b64encode(raw).decode("ascii")


def decode_content(encoded: str) -> bytes:
    """Decode base64 content as returned by the contents API.

    GitHub wraps encoded content at 60 characters; the line breaks are
    discarded by the decoder.
    """
    return base64.b64decode(encoded)


class FileChange(DomainModel):
    """A file written to a branch through the contents API.

    Attributes:
        path: Repository path of the file.
        content_bytes: Exact bytes that were committed.
        commit_message: Message of the commit that wrote the file.
        target_branch: Branch the commit was made on.
        existing_blob_sha: Blob SHA of the previous version; set only when the
            file already existed, in which case the write was an overwrite
            guarded by this version token.
        blob_sha: Blob SHA of the new version, when reported by the API.
        commit_sha: SHA of the created commit, when reported by the API.
    """

    path: str
    content_bytes: bytes = Field(exclude=True)
    commit_message: str
    target_branch: str
    existing_blob_sha: Optional[str] = None
    blob_sha: Optional[str] = None
    commit_sha: Optional[str] = None

    @property
    def created(self) -> bool:
        """True when the write created the file rather than overwriting it."""
        return self.existing_blob_sha is None


class PullRequest(DomainModel):
    """Pull request projection shared by creation, listing and lookup."""

    number: int
    title: str
    body: Optional[str] = None
    head: str
    base: str
    url: str
    state: str
    author: Optional[str] = None
    node_id: Optional[str] = None

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PullRequest":
        user = data.get("user") or {}
        return cls(
            number=data["number"],
            title=data["title"],
            body=data.get("body"),
            head=data["head"]["ref"],
            base=data["base"]["ref"],
            url=data["html_url"],
            state=data["state"],
            author=user.get("login"),
            node_id=data.get("node_id"),
        )


class PullRequestComment(DomainModel):
    """Comment appended to a pull request conversation."""

    id: int
    body: str
    url: str

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PullRequestComment":
        return cls(
            id=data["id"],
            body=data["body"],
            url=data["html_url"],
        )


class MergeRequest(DomainModel):
    """Outcome of a merge request.

    Attributes:
        number: Pull request number.
        method: Merge method requested (squash, merge or rebase).
        auto: True when auto-merge was enabled rather than merging now.
        merged: True only when the pull request was merged synchronously.
            Auto-merge completes later on the server side.
        sha: Merge commit SHA for synchronous merges.
    """

    number: int
    method: str
    auto: bool
    merged: bool = False
    sha: Optional[str] = None


class FeatureDeliveryResult(DomainModel):
    """Outcome of a fully successful feature-delivery workflow."""

    branch: str
    file: str
    pr: PullRequest
