"""Tests for release notes parsing and the fallback chain.

Run with: pytest tests/test_release_notes.py -v
"""

from __future__ import annotations

import pytest
import respx
from httpx import Response

from release_compare.exceptions import NetworkFailure
from release_compare.release_notes import (
    ReleaseNotesChain,
    RemoteReleaseNotes,
    StaticReleaseNotes,
    parse_release_notes,
)
from release_compare.schemas import NO_RELEASE_NOTES

CURRENT_URL = "https://example.com/releasenotes/README.md"
LEGACY_URL = "https://example.com/releasenotes/sf/README.md"

CURRENT = """# Release notes

Intro text that belongs to no release.

## 2.2.0 (Mar 1, 2024)

* Added plugin-deploy.

### Fixes

* Fixed a thing.

## Upcoming

Not a version.

## 2.1.0 (Feb 1, 2024)

* Bumped plugin-auth.
"""

LEGACY = """# Old notes

## 1.0.0 (Jan 1, 2023)

* First release.

## 2.1.0 (Feb 1, 2024)

* Legacy copy that must lose to the current document.
"""


class TestParseReleaseNotes:
    def test_sections_keyed_by_version(self) -> None:
        notes = parse_release_notes(CURRENT)
        assert list(notes) == ["2.2.0", "2.1.0"]

    def test_section_keeps_heading_and_subsections(self) -> None:
        section = parse_release_notes(CURRENT)["2.2.0"]
        assert section.startswith("## 2.2.0 (Mar 1, 2024)")
        assert "### Fixes" in section
        assert "Fixed a thing." in section
        assert "Upcoming" not in section

    def test_unversioned_headings_dropped(self) -> None:
        assert "Upcoming" not in parse_release_notes(CURRENT)

    def test_empty_document(self) -> None:
        assert parse_release_notes("") == {}


class TestReleaseNotesChain:
    @pytest.fixture
    def chain(self) -> ReleaseNotesChain:
        return ReleaseNotesChain([StaticReleaseNotes(CURRENT), StaticReleaseNotes(LEGACY)])

    def test_first_index_wins(self, chain: ReleaseNotesChain) -> None:
        assert "Bumped plugin-auth" in chain.lookup("2.1.0")

    def test_falls_back_to_legacy(self, chain: ReleaseNotesChain) -> None:
        assert "First release." in chain.lookup("1.0.0")

    def test_missing_everywhere(self, chain: ReleaseNotesChain) -> None:
        assert chain.lookup("0.0.1") is None
        note = chain.describe("0.0.1")
        assert note.found is False
        assert note.text == NO_RELEASE_NOTES

    def test_describe_found(self, chain: ReleaseNotesChain) -> None:
        note = chain.describe("2.2.0")
        assert note.found is True
        assert note.text.startswith("## 2.2.0")

    def test_static_indices_start_loaded(self, chain: ReleaseNotesChain) -> None:
        assert chain.loaded is True

    @pytest.mark.asyncio
    async def test_load_only_touches_unloaded_indices(self) -> None:
        class LazyNotes:
            def __init__(self) -> None:
                self.loaded = False
                self.loads = 0

            async def load(self) -> None:
                self.loads += 1
                self.loaded = True

            def lookup(self, version: str) -> str | None:
                return "## 3.0.0" if self.loaded and version == "3.0.0" else None

        lazy = LazyNotes()
        chain = ReleaseNotesChain([StaticReleaseNotes(CURRENT), lazy])

        assert chain.loaded is False
        await chain.load()
        await chain.load()

        assert lazy.loads == 1
        assert chain.loaded is True
        assert chain.lookup("3.0.0") == "## 3.0.0"


class TestRemoteReleaseNotes:
    @pytest.mark.asyncio
    @respx.mock
    async def test_load_fetches_both_sources(self) -> None:
        current = respx.get(CURRENT_URL).mock(return_value=Response(200, text=CURRENT))
        legacy = respx.get(LEGACY_URL).mock(return_value=Response(200, text=LEGACY))
        chain = ReleaseNotesChain.from_urls([CURRENT_URL, LEGACY_URL])

        assert chain.loaded is False
        await chain.load()

        assert chain.loaded is True
        assert current.call_count == 1
        assert legacy.call_count == 1
        assert "First release." in chain.lookup("1.0.0")

    @pytest.mark.asyncio
    @respx.mock
    async def test_lookup_before_load_finds_nothing(self) -> None:
        index = RemoteReleaseNotes(CURRENT_URL)
        assert index.lookup("2.2.0") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_fetch_raises_network_failure(self) -> None:
        respx.get(CURRENT_URL).mock(return_value=Response(500))
        index = RemoteReleaseNotes(CURRENT_URL)

        with pytest.raises(NetworkFailure):
            await index.load()
        assert index.loaded is False
