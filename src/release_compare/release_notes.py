"""Release notes lookup by version.

Release notes are markdown documents with one level-2 section per release:

    ## 2.30.8 (Feb 22, 2024)
    * Fixed ...

Two documents are consulted: the current one and a legacy one for older
releases. Both implement the same ``lookup`` capability and are combined
in a fallback chain, first hit wins.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from typing import Protocol

import httpx

from release_compare.exceptions import NetworkFailure
from release_compare.logging_config import get_logger
from release_compare.schemas import NO_RELEASE_NOTES, ReleaseNote

logger = get_logger(__name__)

SECTION_MARKER = "## "
SECTION_RE = re.compile(r"^## ", re.MULTILINE)
VERSION_RE = re.compile(r"^(\d+\.\d+\.\d+)")


def parse_release_notes(markdown: str) -> dict[str, str]:
    """Split a release notes document into version -> section text.

    Sections start at lines beginning with ``## ``. The text before the
    first section is ignored, as are sections whose heading does not start
    with a version. Each section keeps its heading.
    """
    _, *sections = SECTION_RE.split(markdown)
    notes: dict[str, str] = {}
    for section in sections:
        match = VERSION_RE.match(section)
        if match:
            notes[match.group(1)] = f"{SECTION_MARKER}{section}"
    return notes


# ---------------------------------------------------------------------------
# Indices
# ---------------------------------------------------------------------------


class ReleaseNotesIndex(Protocol):
    """A version -> section lookup that may need loading first."""

    loaded: bool

    async def load(self) -> None:
        ...

    def lookup(self, version: str) -> str | None:
        ...


class StaticReleaseNotes:
    """Index over an already-available markdown document."""

    def __init__(self, markdown: str = "") -> None:
        self._notes = parse_release_notes(markdown)
        self.loaded = True

    async def load(self) -> None:
        """Nothing to fetch; the document was parsed at construction."""

    def lookup(self, version: str) -> str | None:
        return self._notes.get(version)

    def __len__(self) -> int:
        return len(self._notes)


class RemoteReleaseNotes:
    """Index over a markdown document served at a fixed URL.

    Empty until ``load()`` has completed.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self._client = client
        self._timeout = timeout
        self._notes: dict[str, str] = {}
        self.loaded = False

    async def load(self) -> None:
        """Fetch and parse the document.

        Raises:
            NetworkFailure: If the document cannot be fetched
        """
        logger.info("release_notes_fetch", url=self.url)
        try:
            if self._client is not None:
                response = await self._client.get(self.url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkFailure(
                f"Release notes answered {exc.response.status_code}",
                url=self.url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkFailure(f"Release notes request failed: {exc}", url=self.url) from exc

        self._notes = parse_release_notes(response.text)
        self.loaded = True
        logger.info("release_notes_loaded", url=self.url, versions=len(self._notes))

    def lookup(self, version: str) -> str | None:
        return self._notes.get(version)


class ReleaseNotesChain:
    """Ordered fallback over several indices."""

    def __init__(self, indices: Iterable[ReleaseNotesIndex]) -> None:
        self.indices = list(indices)

    @classmethod
    def from_urls(
        cls,
        urls: Iterable[str],
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> ReleaseNotesChain:
        return cls(RemoteReleaseNotes(url, client=client, timeout=timeout) for url in urls)

    @property
    def loaded(self) -> bool:
        return all(index.loaded for index in self.indices)

    async def load(self) -> None:
        """Load every index that is not loaded yet, concurrently."""
        await asyncio.gather(*(index.load() for index in self.indices if not index.loaded))

    def lookup(self, version: str) -> str | None:
        for index in self.indices:
            text = index.lookup(version)
            if text is not None:
                return text
        return None

    def describe(self, version: str) -> ReleaseNote:
        text = self.lookup(version)
        if text is None:
            return ReleaseNote(version=version, found=False, text=NO_RELEASE_NOTES)
        return ReleaseNote(version=version, found=True, text=text)
