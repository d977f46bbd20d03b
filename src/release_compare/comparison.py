"""Comparison orchestrator.

Ties the components together for one base/compare pair:

1. Fetch both snapshots (concurrently, through the session cache)
2. Overlay the version index's publish times onto them
3. Diff their dependency sets
4. Look up release notes for both versions
5. On demand, per dependency: resolve its repository and fetch the pull
   requests merged between the two publish dates

The comparer holds no per-comparison state; the only shared state is the
metadata store's cache and the loaded release notes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from release_compare.config import CompareConfig
from release_compare.diff import diff_dependencies
from release_compare.exceptions import FetchFailure
from release_compare.logging_config import get_logger
from release_compare.pulls import (
    AuthorVisibility,
    GitHubSearchClient,
    PullRequestAggregator,
)
from release_compare.release_notes import ReleaseNotesChain
from release_compare.repositories import resolve_repository
from release_compare.schemas import (
    ComparisonReport,
    MergeWindow,
    PackageSnapshot,
    PullRequestView,
    ReleaseNote,
    ReleaseSummary,
    VersionIndex,
)
from release_compare.store import MetadataStore

logger = get_logger(__name__)


def merge_window(base: PackageSnapshot, compare: PackageSnapshot) -> MergeWindow:
    """The window between the base and compare publish timestamps.

    Raises:
        ValueError: If either snapshot has no publish time for its version
    """
    start, end = base.published_at, compare.published_at
    if start is None or end is None:
        missing = base.version if start is None else compare.version
        raise ValueError(f"No publish time recorded for version {missing}")
    return MergeWindow(start=start, end=end)


class ReleaseComparer:
    """Builds comparison reports and pull request views.

    Usage:
        comparer = ReleaseComparer()
        index = await comparer.load_index()
        report = await comparer.compare(*index.default_selection())
        view = await comparer.pull_requests("@oclif/core", report.base.version,
                                            report.compare.version)
    """

    def __init__(
        self,
        config: CompareConfig | None = None,
        store: MetadataStore | None = None,
        aggregator: PullRequestAggregator | None = None,
        release_notes: ReleaseNotesChain | None = None,
    ) -> None:
        """Initialize the comparer with its collaborators.

        Args:
            config: Shared configuration. Uses defaults if None.
            store: Snapshot store; owns the session cache.
            aggregator: Pull request aggregator.
            release_notes: Release notes fallback chain.
        """
        self.config = config or CompareConfig()
        self.store = store or MetadataStore(config=self.config)
        self.aggregator = aggregator or PullRequestAggregator(
            GitHubSearchClient(config=self.config)
        )
        self.release_notes = release_notes or ReleaseNotesChain.from_urls(
            self.config.release_notes_urls, timeout=self.config.http_timeout
        )
        self.index: VersionIndex | None = None

    async def load_index(self) -> VersionIndex:
        """Fetch the version index; later calls reuse the first result."""
        if self.index is None:
            self.index = await self.store.get_latest_index()
            logger.info(
                "version_index_loaded",
                package=self.index.name,
                versions=len(self.index.versions),
                dist_tags=self.index.dist_tags,
            )
        return self.index

    async def snapshots(
        self, base: str, compare: str
    ) -> tuple[PackageSnapshot, PackageSnapshot]:
        """Both snapshots, carrying the index's version list and publish times."""
        index, base_snapshot, compare_snapshot = await asyncio.gather(
            self.load_index(),
            self.store.get(base),
            self.store.get(compare),
        )
        return base_snapshot.with_index(index), compare_snapshot.with_index(index)

    async def compare(self, base: str, compare: str) -> ComparisonReport:
        """Build the full report for a base/compare pair."""
        logger.info("comparison_started", base=base, compare=compare)
        (base_snapshot, compare_snapshot), _ = await asyncio.gather(
            self.snapshots(base, compare),
            self._load_release_notes(),
        )

        dependencies = diff_dependencies(base_snapshot, compare_snapshot)
        logger.info(
            "comparison_complete",
            base=base_snapshot.version,
            compare=compare_snapshot.version,
            plugins=len(dependencies.plugins),
            jit_plugins=len(dependencies.jit_plugins),
            non_plugin_dependencies=len(dependencies.non_plugin_dependencies),
        )
        return ComparisonReport(
            base=ReleaseSummary.from_snapshot(base_snapshot),
            compare=ReleaseSummary.from_snapshot(compare_snapshot),
            dependencies=dependencies,
            release_notes=[
                self.release_notes.describe(base_snapshot.version),
                self.release_notes.describe(compare_snapshot.version),
            ],
        )

    async def pull_requests(
        self,
        package: str,
        base: str,
        compare: str,
        hidden_authors: Iterable[str] = (),
    ) -> PullRequestView:
        """Pull requests merged into ``package``'s repository between releases.

        Packages outside the known namespaces produce an unsupported view
        without touching the network. Authors in ``hidden_authors`` are
        switched off in the returned visibility map and their records are
        left out of ``pull_requests``.
        """
        repository = resolve_repository(package)
        if repository is None:
            logger.info("pull_requests_unsupported", package=package)
            return PullRequestView(package=package, supported=False)

        base_snapshot, compare_snapshot = await self.snapshots(base, compare)
        window = merge_window(base_snapshot, compare_snapshot)

        records = await self.aggregator.fetch_merged(
            repository.owner, repository.repo, window.start, window.end
        )
        visibility = AuthorVisibility.from_records(records)
        for author in hidden_authors:
            if author in visibility.authors:
                visibility.set_visible(author, False)

        return PullRequestView(
            package=package,
            supported=True,
            repository=repository,
            window=window,
            pull_requests=visibility.visible_records(records),
            authors=visibility.authors,
            author_visibility=visibility.as_dict(),
        )

    async def release_note(self, version: str) -> ReleaseNote:
        await self._load_release_notes()
        return self.release_notes.describe(version)

    async def _load_release_notes(self) -> None:
        # Notes are auxiliary: a failed source leaves the notes empty for
        # this report and is retried on the next one.
        if self.release_notes.loaded:
            return
        try:
            await self.release_notes.load()
        except FetchFailure as exc:
            logger.warning("release_notes_unavailable", url=exc.url, error=str(exc))
