"""Request body models for the HTTP adapter.

Fields are optional at the model level so that missing values reach the
route handlers, which report them as 400 responses naming every required
field. JSON bodies use camelCase keys.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RequestBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateBranchBody(RequestBody):
    branch_name: Optional[str] = None
    base_branch: Optional[str] = None


class CreateFileBody(RequestBody):
    file_path: Optional[str] = None
    content: Optional[str] = None
    message: Optional[str] = None
    branch: Optional[str] = None


class CreatePullRequestBody(RequestBody):
    title: Optional[str] = None
    body: Optional[str] = None
    head: Optional[str] = None
    base: Optional[str] = None


class CommentBody(RequestBody):
    comment: Optional[str] = None


class MergeBody(RequestBody):
    method: str = "squash"
    auto: bool = True


class FeaturePullRequestBody(RequestBody):
    feature_name: Optional[str] = None
    file_name: Optional[str] = None
    file_content: Optional[str] = None
    pr_title: Optional[str] = None
    pr_body: Optional[str] = None
