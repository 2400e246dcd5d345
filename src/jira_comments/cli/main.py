"""jira-comments CLI — post the same comment to a set of Jira issues.

Usage:
    jira-comments post -k "PROJ-1|PROJ-2" -c "Deployed in build 42"
    jira-comments post -k PROJ-1 -k PROJ-2 --comment-file notes.md
    jira-comments --version

Credentials come from JIRA_BASE_URL / JIRA_TOKEN (or JIRA_USER +
JIRA_API_TOKEN), overridable by flags.
"""

from __future__ import annotations

import asyncio
import re
import sys
from typing import Optional

import click
import structlog
from pydantic import ValidationError

from jira_comments import __version__
from jira_comments.client import JiraClient, basic_token
from jira_comments.config import Settings
from jira_comments.errors import EmptyInputError, PartialFailureError
from jira_comments.logs import configure_logging
from jira_comments.models import Comment

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_KEY_SEPARATORS = re.compile(r"[|,]")


def _client(settings: Settings) -> JiraClient:
    """Build a Jira client from resolved settings."""
    return JiraClient(
        settings.token,
        settings.base_url,
        timeout=settings.timeout,
        max_concurrent=settings.max_concurrent,
    )


def _run(coro):
    """Run an async command body from a synchronous Click handler."""
    return asyncio.run(coro)


def parse_issue_keys(values: tuple[str, ...]) -> list[str]:
    """Split `|`/`,` separated keys, drop blanks, keep first-seen order."""
    keys: list[str] = []
    for value in values:
        for key in _KEY_SEPARATORS.split(value):
            key = key.strip()
            if key and key not in keys:
                keys.append(key)
    return keys


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="jira-comments")
def main():
    """jira-comments — post comments to Jira issues in parallel."""


# ---------------------------------------------------------------------------
# jira-comments post
# ---------------------------------------------------------------------------


@main.command()
@click.option("--issue-keys", "-k", multiple=True, help='Issue keys, "|" or "," separated')
@click.option("--comment", "-c", help="Comment text posted to every issue")
@click.option("--comment-file", type=click.File("r", encoding="utf-8"), help="Read comment text from a file")
@click.option("--base-url", help="Jira base URL (or set JIRA_BASE_URL)")
@click.option("--token", help="Basic auth token (or set JIRA_TOKEN)")
@click.option("--user", help="Jira user, combined with --api-token")
@click.option("--api-token", help="Jira API token, combined with --user")
@click.option("--timeout", type=float, help="Per-request timeout in seconds")
@click.option("--max-concurrent", type=click.IntRange(min=1), help="Cap on in-flight requests")
@click.option("--debug", is_flag=True, help="Log requests and responses")
def post(issue_keys: tuple[str, ...], comment: Optional[str], comment_file,
         base_url: Optional[str], token: Optional[str], user: Optional[str],
         api_token: Optional[str], timeout: Optional[float],
         max_concurrent: Optional[int], debug: bool):
    """Post COMMENT to every issue in --issue-keys."""
    overrides = {
        "base_url": base_url,
        "token": token,
        "user": user,
        "api_token": api_token,
        "timeout": timeout,
        "max_concurrent": max_concurrent,
    }
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        _fail(f"invalid settings: {e}")
    if user and api_token and not token:
        # Explicit flags beat a JIRA_TOKEN from the environment
        settings.token = basic_token(user, api_token)

    configure_logging("DEBUG" if debug else settings.log_level, json_logs=settings.log_json)

    try:
        settings.require_credentials()
    except ValueError as e:
        _fail(str(e))

    if comment_file is not None:
        comment = comment_file.read()
    if not comment or not comment.strip():
        _fail("--comment or --comment-file is required")

    comments = [Comment(body=comment, issue_key=key) for key in parse_issue_keys(issue_keys)]

    try:
        _run(_post_impl(settings, comments))
    except EmptyInputError as e:
        _fail(f"{e} (pass at least one issue key with --issue-keys)")
    except PartialFailureError as e:
        _fail(str(e))

    click.secho(f"Posted {len(comments)} comment(s)", fg="green")


async def _post_impl(settings: Settings, comments: list[Comment]):
    async with _client(settings) as client:
        logger.info("comments.posting", count=len(comments), base_url=settings.base_url)
        await client.post_issue_comments(comments)


if __name__ == "__main__":
    main()
