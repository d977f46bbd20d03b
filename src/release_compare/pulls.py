"""Merged pull request search for a repository and merge window.

GitHub's search syntax only supports a lower bound on the merge date
(``merged:>START``), so the upper bound of the window is applied here after
the search returns.

Design notes:
- One GraphQL search per aggregation, ``last: 100``, no pagination. When
  more than 100 PRs were merged after the start date, the excess never
  reaches this module.
- The search client is a Protocol so the aggregator can be exercised with
  ``MockSearchClient`` and no network
- HTTP and transport errors from the search API propagate unchanged; no
  retry, no backoff

GraphQL search docs: https://docs.github.com/en/graphql/reference/queries#search
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from release_compare.config import CompareConfig
from release_compare.exceptions import MalformedPayload
from release_compare.logging_config import get_logger
from release_compare.schemas import PullRequestRecord

logger = get_logger(__name__)

SEARCH_LIMIT = 100

# Author of PRs from deleted accounts, as GitHub displays it.
GHOST_AUTHOR = "ghost"

MERGED_PULL_REQUESTS_QUERY = """
query MergedPullRequests($searchQuery: String!, $last: Int!) {
  search(query: $searchQuery, type: ISSUE, last: $last) {
    edges {
      node {
        ... on PullRequest {
          url
          title
          createdAt
          mergedAt
          author { login }
        }
      }
    }
  }
}
"""


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_search_date(moment: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix, as GitHub search expects."""
    return as_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_search_query(owner: str, repo: str, start: datetime) -> str:
    return f"repo:{owner}/{repo} is:pr is:merged merged:>{format_search_date(start)}"


# ---------------------------------------------------------------------------
# Search clients
# ---------------------------------------------------------------------------


class PullRequestSearchProtocol(Protocol):
    """Anything that can run the merged-PR search for one repository."""

    async def search_merged(
        self, owner: str, repo: str, start: datetime
    ) -> list[dict[str, Any]]:
        """Return the raw search edges (``{"node": {...}}``)."""
        ...


class GitHubSearchClient:
    """Runs the merged-PR search against GitHub's GraphQL API.

    Usage:
        client = GitHubSearchClient(CompareConfig(github_token="ghp_..."))
        edges = await client.search_merged("oclif", "core", start)
    """

    def __init__(
        self,
        config: CompareConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or CompareConfig()
        self._client = client
        self._headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.config.github_token:
            self._headers["authorization"] = f"token {self.config.github_token}"

    async def search_merged(
        self, owner: str, repo: str, start: datetime
    ) -> list[dict[str, Any]]:
        """Run one search and return its edges.

        Raises:
            httpx.HTTPStatusError: If GitHub rejects the request (e.g. 401)
            httpx.TransportError: If the request never completed
            MalformedPayload: If the body carries GraphQL errors or no search
        """
        payload = {
            "query": MERGED_PULL_REQUESTS_QUERY,
            "variables": {
                "searchQuery": build_search_query(owner, repo, start),
                "last": SEARCH_LIMIT,
            },
        }

        if self._client is not None:
            response = await self._client.post(
                self.config.graphql_url, json=payload, headers=self._headers
            )
        else:
            async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                response = await client.post(
                    self.config.graphql_url, json=payload, headers=self._headers
                )
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedPayload(
                f"Search body is not JSON: {exc}", url=self.config.graphql_url
            ) from exc

        if body.get("errors"):
            messages = "; ".join(e.get("message", "") for e in body["errors"])
            raise MalformedPayload(
                f"GraphQL search failed: {messages}", url=self.config.graphql_url
            )

        try:
            return list(body["data"]["search"]["edges"])
        except (KeyError, TypeError) as exc:
            raise MalformedPayload(
                f"Search response missing edges: {exc}", url=self.config.graphql_url
            ) from exc


class MockSearchClient:
    """Search client that returns predefined edges.

    Usage:
        client = MockSearchClient({"oclif/core": [{"node": {...}}]})
    """

    def __init__(self, edges: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._edges = edges or {}
        self.calls: list[tuple[str, str, datetime]] = []

    async def search_merged(
        self, owner: str, repo: str, start: datetime
    ) -> list[dict[str, Any]]:
        self.calls.append((owner, repo, start))
        return list(self._edges.get(f"{owner}/{repo}", []))


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def to_record(node: dict[str, Any]) -> PullRequestRecord | None:
    """Map one search node to a record; None for non-PR (empty) nodes."""
    if not node or "url" not in node:
        return None
    author = (node.get("author") or {}).get("login") or GHOST_AUTHOR
    try:
        return PullRequestRecord(
            title=node["title"],
            url=node["url"],
            created_at=node["createdAt"],
            merged_at=node.get("mergedAt"),
            author=author,
        )
    except (KeyError, ValidationError) as exc:
        raise MalformedPayload(f"Unexpected pull request node: {exc}") from exc


def unique_by_url(records: Iterable[PullRequestRecord]) -> list[PullRequestRecord]:
    """Drop repeated pull requests, keeping the first occurrence of each URL."""
    seen: set[str] = set()
    unique: list[PullRequestRecord] = []
    for record in records:
        if record.url not in seen:
            seen.add(record.url)
            unique.append(record)
    return unique


def sort_by_merged_desc(records: Iterable[PullRequestRecord]) -> list[PullRequestRecord]:
    return sorted(records, key=lambda r: r.merged_at, reverse=True)


class PullRequestAggregator:
    """Fetches, window-filters and orders merged pull requests.

    Usage:
        aggregator = PullRequestAggregator(GitHubSearchClient())
        prs = await aggregator.fetch_merged("oclif", "core", start, end)
    """

    def __init__(self, client: PullRequestSearchProtocol | None = None) -> None:
        self.client = client or GitHubSearchClient()

    async def fetch_merged(
        self,
        owner: str,
        repo: str,
        start: datetime,
        end: datetime,
    ) -> list[PullRequestRecord]:
        """Pull requests merged after ``start`` and no later than ``end``.

        A pull request returned more than once is kept once. Records without
        a merge timestamp cannot be placed in the window and are dropped. The
        result is ordered by merge time, newest first.
        """
        end = as_utc(end)
        logger.info(
            "pull_request_search",
            owner=owner,
            repo=repo,
            start=start.isoformat(),
            end=end.isoformat(),
        )
        edges = await self.client.search_merged(owner, repo, start)

        records = unique_by_url(
            record
            for record in (to_record(edge.get("node") or {}) for edge in edges)
            if record is not None
        )
        in_window = [
            r for r in records if r.merged_at is not None and r.merged_at <= end
        ]

        logger.info(
            "pull_request_search_complete",
            owner=owner,
            repo=repo,
            returned=len(records),
            in_window=len(in_window),
        )
        return sort_by_merged_desc(in_window)


# ---------------------------------------------------------------------------
# Author filter
# ---------------------------------------------------------------------------


def authors_of(records: Iterable[PullRequestRecord]) -> list[str]:
    """Distinct author logins, sorted."""
    return sorted({r.author for r in records})


class AuthorVisibility:
    """Per-author show/hide switches over one pull request set.

    Rebuilt from scratch whenever a new set is loaded; every author starts
    visible and toggling one author never touches another.
    """

    def __init__(self, authors: Iterable[str]) -> None:
        self._visible: dict[str, bool] = {author: True for author in sorted(set(authors))}

    @classmethod
    def from_records(cls, records: Iterable[PullRequestRecord]) -> AuthorVisibility:
        return cls(authors_of(records))

    @property
    def authors(self) -> list[str]:
        return list(self._visible)

    def as_dict(self) -> dict[str, bool]:
        return dict(self._visible)

    def is_visible(self, author: str) -> bool:
        return self._visible.get(author, False)

    def set_visible(self, author: str, visible: bool) -> None:
        if author not in self._visible:
            raise KeyError(f"Unknown author: {author}")
        self._visible[author] = visible

    def toggle(self, author: str) -> bool:
        """Flip one author's switch and return the new state."""
        self.set_visible(author, not self.is_visible(author))
        return self._visible[author]

    def visible_records(
        self, records: Iterable[PullRequestRecord]
    ) -> list[PullRequestRecord]:
        """Records by visible authors, in their original order."""
        return [r for r in records if self.is_visible(r.author)]
