"""Value objects for a comment batch.

Learn: Comment and TaskResult are plain dataclasses (the dispatcher's
own bookkeeping). IssueComment is a pydantic model because it is
parsed from Jira's JSON response.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from jira_comments.errors import CommentPostError


@dataclass(frozen=True)
class Comment:
    """A comment body bound to the issue it should be posted on."""

    body: str
    issue_key: str


@dataclass(frozen=True)
class TaskResult:
    """Outcome of posting one comment. Exactly one per Comment."""

    issue_key: str
    error: Optional[CommentPostError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "SUCCESS" if self.ok else "FAILED"


class IssueComment(BaseModel):
    """Comment resource returned by POST /rest/api/2/issue/{key}/comment."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    self_url: str = Field(default="", alias="self")
    body: str = ""
    created: Optional[str] = None
    updated: Optional[str] = None
