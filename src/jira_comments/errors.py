"""Error taxonomy for comment posting.

Learn: Two families live here. EmptyInputError and PartialFailureError
are raised to the caller of a batch. Everything under CommentPostError
belongs to a single comment: it is captured into that comment's
TaskResult and never aborts the sibling requests.
"""

from typing import Optional


class JiraCommentError(Exception):
    pass


class EmptyInputError(JiraCommentError):
    def __init__(self, message: str = "no comment has been added"):
        super().__init__(message)


class PartialFailureError(JiraCommentError):
    """At least one comment in the batch failed.

    Carries no per-comment detail. The failing issue keys and their
    errors are only reported through the log stream.
    """

    def __init__(self, message: str = "some comments failed to be posted to Jira"):
        super().__init__(message)


# ─── Per-comment errors ──────────────────────────────────


class CommentPostError(JiraCommentError):
    pass


class URLBuildError(CommentPostError):
    pass


class RequestBuildError(CommentPostError):
    pass


class TransportError(CommentPostError):
    pass


class BodyReadError(CommentPostError):
    pass


class ResponseDecodeError(CommentPostError):
    pass


class HTTPStatusError(CommentPostError):
    """Jira answered with a status outside the accepted range."""

    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Response status: {status_code} - Body: {body}")
