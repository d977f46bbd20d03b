"""Shared registry fixtures.

Two releases of the root package: 2.1.0 (base) and 2.2.0 (compare), plus
the full version index that carries their publish times.
"""

from __future__ import annotations

import copy

import pytest

from release_compare.schemas import PackageSnapshot, VersionIndex

BASE_DOC = {
    "name": "@salesforce/cli",
    "version": "2.1.0",
    "dependencies": {
        "@oclif/core": "^3.0.0",
        "@oclif/plugin-help": "^6.0.0",
        "@salesforce/core": "^5.0.0",
        "@salesforce/plugin-auth": "2.8.0",
        "lodash": "^4.17.21",
    },
    "oclif": {
        "plugins": ["@oclif/plugin-help", "@salesforce/plugin-auth"],
        "jitPlugins": {"@salesforce/plugin-community": "2.4.0"},
    },
    "dist": {"unpackedSize": 12939264},
    "gitHead": "abc1234def5678",
    "repository": {"type": "git", "url": "git+https://github.com/salesforcecli/cli.git"},
}

COMPARE_DOC = {
    "name": "@salesforce/cli",
    "version": "2.2.0",
    "dependencies": {
        "@oclif/core": "^3.1.0",
        "@oclif/plugin-help": "^6.0.0",
        "@salesforce/core": "^5.0.0",
        "@salesforce/plugin-auth": "2.9.0",
        "@salesforce/plugin-deploy": "1.0.0",
        "chalk": "^5.0.0",
    },
    "oclif": {
        "plugins": [
            "@oclif/plugin-help",
            "@salesforce/plugin-auth",
            "@salesforce/plugin-deploy",
        ],
        "jitPlugins": {
            "@salesforce/plugin-community": "2.5.0",
            "@salesforce/plugin-packaging": "1.0.0",
        },
    },
    "dist": {"unpackedSize": 13107200},
    "gitHead": "fed9876cba5432",
    "repository": {"type": "git", "url": "git+https://github.com/salesforcecli/cli.git"},
}

INDEX_DOC = {
    "name": "@salesforce/cli",
    "versions": {"2.0.0": {}, "2.1.0": {}, "2.2.0": {}, "2.10.0": {}},
    "dist-tags": {"latest": "2.1.0", "latest-rc": "2.2.0"},
    "time": {
        "created": "2023-12-01T00:00:00.000Z",
        "2.0.0": "2024-01-01T00:00:00.000Z",
        "2.1.0": "2024-02-01T00:00:00.000Z",
        "2.2.0": "2024-03-01T00:00:00.000Z",
        "2.10.0": "2024-04-01T00:00:00.000Z",
    },
}


@pytest.fixture
def base_doc() -> dict:
    return copy.deepcopy(BASE_DOC)


@pytest.fixture
def compare_doc() -> dict:
    return copy.deepcopy(COMPARE_DOC)


@pytest.fixture
def index_doc() -> dict:
    return copy.deepcopy(INDEX_DOC)


@pytest.fixture
def index(index_doc: dict) -> VersionIndex:
    return VersionIndex.from_registry(index_doc)


@pytest.fixture
def base_snapshot(base_doc: dict, index: VersionIndex) -> PackageSnapshot:
    return PackageSnapshot.from_registry(base_doc).with_index(index)


@pytest.fixture
def compare_snapshot(compare_doc: dict, index: VersionIndex) -> PackageSnapshot:
    return PackageSnapshot.from_registry(compare_doc).with_index(index)
