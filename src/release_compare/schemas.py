"""Pydantic models for everything that flows through the comparison.

These schemas are the single source of truth for:
- Parsing raw registry documents into immutable snapshots
- The dependency diff and pull request records handed between layers
- Response bodies of the HTTP API (and its OpenAPI docs)

Key design decisions:
- Snapshots and records are frozen; a snapshot is built once per version
  and never mutated afterwards
- Raw registry field names (``dist-tags``, ``oclif.jitPlugins``) are
  translated in one place, ``PackageSnapshot.from_registry``
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from release_compare.repositories import RepositoryRef, is_resolvable
from release_compare.versions import (
    build_reference_url,
    bytes_to_mb,
    normalize_git_url,
    sort_descending,
)

NO_RELEASE_NOTES = "No release notes"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse registry/GitHub ISO timestamps (``...Z`` suffix included)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


# ---------------------------------------------------------------------------
# Registry metadata
# ---------------------------------------------------------------------------


class VersionIndex(BaseModel):
    """Full version index of the root package.

    Attributes:
        name: Package name
        versions: Every published version, newest first
        dist_tags: Distribution tags (e.g. latest, latest-rc) -> version
        time: Version -> ISO publish timestamp
    """

    model_config = ConfigDict(frozen=True)

    name: str
    versions: list[str] = Field(default_factory=list)
    dist_tags: dict[str, str] = Field(default_factory=dict)
    time: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_registry(cls, raw: dict[str, Any]) -> VersionIndex:
        return cls(
            name=raw["name"],
            versions=sort_descending(raw.get("versions") or {}),
            dist_tags=raw.get("dist-tags") or {},
            time=raw.get("time") or {},
        )

    def default_selection(self) -> tuple[str, str]:
        """Pick the (base, compare) pair shown when nothing is selected yet.

        ``latest`` against ``latest-rc``; without those tags the newest
        version against the one before it.
        """
        if not self.versions and not self.dist_tags:
            raise ValueError(f"{self.name} has no published versions")

        newest = self.versions[0] if self.versions else None
        second = self.versions[1] if len(self.versions) > 1 else newest
        base = self.dist_tags.get("latest") or newest
        compare = self.dist_tags.get("latest-rc") or second or base
        return base, compare


class PackageSnapshot(BaseModel):
    """Immutable metadata for one published version of the root package.

    Attributes:
        name: Package name
        version: The version this snapshot describes
        versions: Published versions known when the snapshot was taken
        dist_tags: Distribution tag -> version
        dependencies: Dependency name -> declared range (e.g. ``^1.2.3``)
        plugins: Dependency names loaded eagerly as plugins
        jit_plugins: Lazily installed plugin name -> range
        unpacked_size: Unpacked artifact size in bytes
        git_head: Commit the version was published from
        repository_url: Normalized ``https://host/org/repo`` URL
        time: Version -> ISO publish timestamp
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    versions: list[str] = Field(default_factory=list)
    dist_tags: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    plugins: list[str] = Field(default_factory=list)
    jit_plugins: dict[str, str] = Field(default_factory=dict)
    unpacked_size: int = Field(0, ge=0)
    git_head: str = ""
    repository_url: str = ""
    time: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_version_is_published(self) -> PackageSnapshot:
        """The snapshot's own version must be one of its listed versions."""
        if self.version not in self.versions:
            raise ValueError(
                f"Version {self.version} is not among the published versions "
                f"of {self.name}"
            )
        return self

    @classmethod
    def from_registry(cls, raw: dict[str, Any]) -> PackageSnapshot:
        """Build a snapshot from a registry document for one version.

        Per-version documents carry no version list; the snapshot then only
        knows its own version until ``with_index`` is applied.
        """
        oclif = raw.get("oclif") or {}
        repository = raw.get("repository") or ""
        if isinstance(repository, dict):
            repository = repository.get("url", "")

        versions = raw.get("versions") or [raw["version"]]

        return cls(
            name=raw["name"],
            version=raw["version"],
            versions=list(versions),
            dist_tags=raw.get("dist-tags") or {},
            dependencies=raw.get("dependencies") or {},
            plugins=oclif.get("plugins") or [],
            jit_plugins=oclif.get("jitPlugins") or {},
            unpacked_size=(raw.get("dist") or {}).get("unpackedSize") or 0,
            git_head=raw.get("gitHead") or "",
            repository_url=normalize_git_url(repository),
            time=raw.get("time") or {},
        )

    def with_index(self, index: VersionIndex) -> PackageSnapshot:
        """Return a copy carrying the index's version list and publish times."""
        versions = index.versions if self.version in index.versions else self.versions
        return self.model_copy(
            update={"versions": list(versions), "time": dict(index.time)}
        )

    @property
    def published_at(self) -> datetime | None:
        return parse_timestamp(self.time.get(self.version))

    @property
    def size_mb(self) -> str:
        return bytes_to_mb(self.unpacked_size)

    @property
    def short_commit(self) -> str:
        return self.git_head[:7]

    @property
    def commit_url(self) -> str | None:
        if not self.repository_url or not self.git_head:
            return None
        return f"{self.repository_url}/commit/{self.git_head}"


class ReleaseSummary(BaseModel):
    """Headline facts about one side of the comparison."""

    name: str
    version: str
    version_url: str
    published_at: datetime | None = None
    size_mb: str
    commit: str = ""
    commit_url: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: PackageSnapshot) -> ReleaseSummary:
        return cls(
            name=snapshot.name,
            version=snapshot.version,
            version_url=build_reference_url(snapshot.name, snapshot.version),
            published_at=snapshot.published_at,
            size_mb=snapshot.size_mb,
            commit=snapshot.short_commit,
            commit_url=snapshot.commit_url,
        )


# ---------------------------------------------------------------------------
# Dependency diff
# ---------------------------------------------------------------------------


class DependencyDiffEntry(BaseModel):
    """One dependency's declared range on each side of the comparison.

    A missing side means the dependency was added or removed. A plugin that
    is listed but declared as a dependency on neither side has no range at
    all; every other entry has at least one.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    base: str | None = None
    compare: str | None = None

    @property
    def changed(self) -> bool:
        return self.base != self.compare

    @computed_field
    @property
    def base_url(self) -> str | None:
        return build_reference_url(self.name, self.base) if self.base else None

    @computed_field
    @property
    def compare_url(self) -> str | None:
        return build_reference_url(self.name, self.compare) if self.compare else None

    @computed_field
    @property
    def pull_requests_available(self) -> bool:
        return is_resolvable(self.name)


class DependencyDiff(BaseModel):
    """The three disjoint dependency categories, each ordered by name."""

    plugins: dict[str, DependencyDiffEntry] = Field(default_factory=dict)
    jit_plugins: dict[str, DependencyDiffEntry] = Field(default_factory=dict)
    non_plugin_dependencies: dict[str, DependencyDiffEntry] = Field(
        default_factory=dict
    )


# ---------------------------------------------------------------------------
# Pull requests
# ---------------------------------------------------------------------------


class MergeWindow(BaseModel):
    """Publish time of the base release up to that of the compare release."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class PullRequestRecord(BaseModel):
    """A merged pull request as returned by one search."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    created_at: datetime
    merged_at: datetime | None = None
    author: str


class PullRequestView(BaseModel):
    """Pull requests for one dependency within one merge window.

    ``supported`` is False when the dependency has no known repository;
    nothing was searched in that case.
    """

    package: str
    supported: bool
    repository: RepositoryRef | None = None
    window: MergeWindow | None = None
    pull_requests: list[PullRequestRecord] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    author_visibility: dict[str, bool] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Release notes and the full report
# ---------------------------------------------------------------------------


class ReleaseNote(BaseModel):
    version: str
    found: bool
    text: str = NO_RELEASE_NOTES


class ComparisonReport(BaseModel):
    """Everything shown for a base/compare pair, minus pull requests.

    Pull requests are fetched per dependency on demand.
    """

    base: ReleaseSummary
    compare: ReleaseSummary
    dependencies: DependencyDiff
    release_notes: list[ReleaseNote] = Field(default_factory=list)
