"""Version string helpers shared by every layer.

Registry ranges look like ``^1.2.3`` or ``~2.0.0``; release tags on GitHub
use the bare version, so links are built from the stripped form.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

import semver

from release_compare.repositories import resolve_repository

RANGE_QUALIFIERS = ("^", "~")


def strip_range_qualifier(version_range: str) -> str:
    """Remove a single leading ``^`` or ``~`` from a dependency range."""
    if version_range[:1] in RANGE_QUALIFIERS:
        return version_range[1:]
    return version_range


def sort_descending(versions: Iterable[str]) -> list[str]:
    """Sort version strings newest first, by semver precedence.

    Prereleases (``2.0.0-nightly.1``, ``1.0.0-0``) sort below their release.
    Duplicates are collapsed. Strings that are not valid semver are kept
    and placed after every parseable one.
    """
    parsed: list[tuple[semver.Version, str]] = []
    unparsed: list[str] = []
    for raw in sorted(set(versions)):
        try:
            parsed.append((semver.Version.parse(raw), raw))
        except ValueError:
            unparsed.append(raw)

    parsed.sort(key=lambda item: item[0], reverse=True)
    return [raw for _, raw in parsed] + sorted(unparsed, reverse=True)


def build_reference_url(package: str, version: str | None = None) -> str:
    """Build the GitHub URL for a package, or a release tag of it.

    Packages outside the known namespaces are returned unchanged, which
    callers treat as "not linkable".
    """
    ref = resolve_repository(package)
    if ref is None:
        return package
    if version is None:
        return ref.url
    return f"{ref.url}/releases/tag/{strip_range_qualifier(version)}"


def is_linkable(url: str) -> bool:
    return url.startswith("https://")


def normalize_git_url(url: str) -> str:
    """``git+https://github.com/org/repo.git`` -> ``https://github.com/org/repo``."""
    if not url:
        return ""
    parsed = urlparse(url)
    path = parsed.path.removesuffix(".git")
    return f"https://{parsed.hostname}{path}"


def bytes_to_mb(size: int, places: int = 2) -> str:
    text = f"{size / 1024 / 1024:.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text}mb"
