"""Jira REST client — concurrent comment posting.

Learn: post_issue_comments() is a fan-out/fan-in dispatcher:
1. One asyncio task per comment, all created before any is awaited
2. Each task builds, sends and classifies its own request
3. Every task puts exactly one TaskResult on a queue sized to the batch
4. The caller drains exactly N results, then aggregates

Key design decisions:
- Collect-all, not fail-fast — a failed comment never cancels siblings
- No retries, no timeout on the batch as a whole
- Per-comment detail goes to the log stream; the raised
  PartialFailureError is deliberately opaque
- No shared mutable state — the client is read-only after __init__
"""

import asyncio
import base64
import json
from typing import Optional, Sequence, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from jira_comments.errors import (
    BodyReadError,
    CommentPostError,
    EmptyInputError,
    HTTPStatusError,
    PartialFailureError,
    RequestBuildError,
    ResponseDecodeError,
    TransportError,
    URLBuildError,
)
from jira_comments.models import Comment, IssueComment, TaskResult

logger = structlog.get_logger()

API_ENDPOINT = "/rest/api/2/issue/"
COMMENT_ENDPOINT = "/comment"

# Jira's accepted range is inclusive of 300
STATUS_OK_MIN = 200
STATUS_OK_MAX = 300

ModelT = TypeVar("ModelT", bound=BaseModel)


def basic_token(user: str, api_token: str) -> str:
    """Base64 credentials for the `Authorization: Basic` scheme."""
    raw = f"{user}:{api_token}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def join_url(base_url: str, *segments: str) -> str:
    """Join path segments onto base_url, collapsing duplicate slashes.

    Raises URLBuildError if base_url is not an absolute http(s) URL.
    """
    try:
        base = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise URLBuildError(f"invalid base URL {base_url!r}: {exc}") from exc

    if base.scheme not in ("http", "https") or not base.host:
        raise URLBuildError(f"invalid base URL {base_url!r}: expected http(s)://host")

    parts = [p for p in base.path.split("/") if p]
    for segment in segments:
        parts.extend(p for p in segment.split("/") if p)

    path = "/" + "/".join(parts)
    try:
        return str(base.copy_with(path=path))
    except httpx.InvalidURL as exc:
        raise URLBuildError(f"cannot build URL from {base_url!r}: {exc}") from exc


def is_success(status_code: int) -> bool:
    return STATUS_OK_MIN <= status_code <= STATUS_OK_MAX


class JiraClient:
    """Posts comments to Jira issues over one shared httpx.AsyncClient.

    Construction does no I/O. Use as an async context manager, or call
    aclose() when done.
    """

    def __init__(
        self,
        token: str,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_concurrent: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url
        self.headers = {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
        }
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── Batch posting ───────────────────────────────────

    async def post_issue_comments(self, comments: Sequence[Comment]) -> None:
        """Post every comment concurrently.

        Returns None when all succeed. Raises EmptyInputError for an
        empty batch and PartialFailureError if any comment failed.
        """
        results = await self.dispatch(comments)

        failures = [r for r in results if not r.ok]
        if failures:
            logger.info("comment.failures", count=len(failures), total=len(results))
            for result in failures:
                logger.warning(
                    "comment.failed",
                    issue_key=result.issue_key,
                    error=str(result.error),
                )
            raise PartialFailureError()

    async def dispatch(self, comments: Sequence[Comment]) -> list[TaskResult]:
        """Fan out one task per comment and collect every result.

        Results come back in completion order, one per comment. One
        status line is logged per result as it arrives.
        """
        if not comments:
            raise EmptyInputError()

        total = len(comments)
        queue: asyncio.Queue[TaskResult] = asyncio.Queue(maxsize=total)
        semaphore = (
            asyncio.Semaphore(self.max_concurrent) if self.max_concurrent is not None else None
        )

        tasks = [
            asyncio.create_task(self._post_and_report(comment, queue, semaphore))
            for comment in comments
        ]

        results: list[TaskResult] = []
        with structlog.contextvars.bound_contextvars(batch_size=total):
            while len(results) < total:
                result = await queue.get()
                results.append(result)
                logger.info(
                    "comment.status",
                    issue_key=result.issue_key,
                    status=result.status,
                )

        # Every task has reported; let them finish unwinding
        await asyncio.gather(*tasks)
        return results

    async def _post_and_report(
        self,
        comment: Comment,
        queue: "asyncio.Queue[TaskResult]",
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        """Run one comment to completion and report exactly one result."""
        issue_key = comment.issue_key.strip()
        error: Optional[CommentPostError] = None
        try:
            if semaphore is None:
                await self._post(comment)
            else:
                async with semaphore:
                    await self._post(comment)
        except CommentPostError as exc:
            error = exc
        except Exception as exc:
            logger.exception("comment.unexpected_error", issue_key=issue_key)
            error = CommentPostError(f"unexpected error: {exc!r}")
        queue.put_nowait(TaskResult(issue_key=issue_key, error=error))

    # ─── Single request ──────────────────────────────────

    async def post_issue_comment(self, comment: Comment) -> IssueComment:
        """Post one comment and return Jira's parsed comment resource."""
        parsed, _ = await self.perform_request(
            self.build_comment_request(comment), response_model=IssueComment
        )
        return parsed

    async def _post(self, comment: Comment) -> bytes:
        _, body = await self.perform_request(self.build_comment_request(comment))
        return body

    def build_comment_url(self, issue_key: str) -> str:
        key = issue_key.strip()
        if not key:
            raise URLBuildError("empty issue key")
        return join_url(self.base_url, API_ENDPOINT, key, COMMENT_ENDPOINT)

    def build_comment_request(self, comment: Comment) -> httpx.Request:
        url = self.build_comment_url(comment.issue_key)
        return self.create_request("POST", url, {"body": comment.body})

    def create_request(
        self, method: str, url: str, fields: Optional[dict] = None
    ) -> httpx.Request:
        """Build a request carrying the client's fixed headers."""
        content = b""
        if fields:
            try:
                content = json.dumps(fields).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise RequestBuildError(f"failed to encode request body: {exc}") from exc

        try:
            request = self._http.build_request(
                method, url, content=content, headers=self.headers
            )
        except httpx.InvalidURL as exc:
            raise RequestBuildError(f"failed to build request for {url}: {exc}") from exc

        logger.debug(
            "comment.request",
            method=request.method,
            url=str(request.url),
            body=content.decode("utf-8"),
        )
        return request

    async def perform_request(
        self,
        request: httpx.Request,
        response_model: Optional[Type[ModelT]] = None,
    ) -> tuple[Optional[ModelT], bytes]:
        """Send a request, drain the body and classify the status.

        When response_model is given, the body is parsed into it.
        Returns (parsed model or None, raw body).
        """
        try:
            response = await self._http.send(request, stream=True)
        except httpx.DecodingError as exc:
            # Transport decoded the body eagerly
            raise BodyReadError(f"failed to read response body, error: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"failed to perform request, error: {exc}") from exc

        body = await self._drain(response)

        logger.debug(
            "comment.response",
            status_code=response.status_code,
            body=body.decode("utf-8", errors="replace"),
        )

        if not is_success(response.status_code):
            raise HTTPStatusError(
                response.status_code, body.decode("utf-8", errors="replace")
            )

        if response_model is None:
            return None, body

        try:
            parsed = response_model.model_validate_json(body)
        except ValidationError as exc:
            raise ResponseDecodeError(
                f"failed to unmarshal response ({body!r}), error: {exc}"
            ) from exc

        logger.debug("comment.response_parsed", response=parsed.model_dump(mode="json"))
        return parsed, body

    async def _drain(self, response: httpx.Response) -> bytes:
        """Read the whole (decoded) body, then release the stream.

        httpx closes the stream as soon as the last chunk is read, so a
        failure raised once the response is already marked closed is a
        close failure: the body is complete and only a warning is logged.
        """
        chunks: list[bytes] = []
        try:
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
        except httpx.HTTPError as exc:
            if not response.is_closed:
                raise BodyReadError(f"failed to read response body, error: {exc}") from exc
            logger.warning("comment.response_close_failed", error=str(exc))
        finally:
            try:
                await response.aclose()
            except httpx.HTTPError as exc:
                logger.warning("comment.response_close_failed", error=str(exc))
        return b"".join(chunks)
