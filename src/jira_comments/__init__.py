"""jira-comments — post comment batches to Jira issues.

Fans out one REST call per comment, collects every outcome,
and reports a single pass/fail for the whole batch.
"""

__version__ = "0.1.0"

from jira_comments.client import JiraClient, basic_token
from jira_comments.errors import (
    BodyReadError,
    CommentPostError,
    EmptyInputError,
    HTTPStatusError,
    JiraCommentError,
    PartialFailureError,
    RequestBuildError,
    ResponseDecodeError,
    TransportError,
    URLBuildError,
)
from jira_comments.models import Comment, IssueComment, TaskResult

__all__ = [
    "__version__",
    "BodyReadError",
    "Comment",
    "CommentPostError",
    "EmptyInputError",
    "HTTPStatusError",
    "IssueComment",
    "JiraClient",
    "JiraCommentError",
    "PartialFailureError",
    "RequestBuildError",
    "ResponseDecodeError",
    "TaskResult",
    "TransportError",
    "URLBuildError",
    "basic_token",
]
