"""Tests for dependency -> repository resolution.

Run with: pytest tests/test_repositories.py -v
"""

from __future__ import annotations

import pytest

from release_compare.repositories import (
    DEFAULT_RULES,
    RepositoryRef,
    RepositoryRule,
    is_resolvable,
    resolve_repository,
)


class TestResolveRepository:
    def test_oclif_namespace(self) -> None:
        assert resolve_repository("@oclif/plugin-help") == RepositoryRef(
            owner="oclif", repo="plugin-help"
        )

    def test_override_table(self) -> None:
        assert resolve_repository("@salesforce/core") == RepositoryRef(
            owner="forcedotcom", repo="sfdx-core"
        )

    def test_salesforce_namespace(self) -> None:
        assert resolve_repository("@salesforce/plugin-foo") == RepositoryRef(
            owner="salesforcecli", repo="plugin-foo"
        )

    @pytest.mark.parametrize("package", ["lodash", "@types/node", "salesforce-core"])
    def test_unknown_packages_resolve_to_none(self, package: str) -> None:
        assert resolve_repository(package) is None
        assert not is_resolvable(package)

    def test_rules_are_evaluated_in_order(self) -> None:
        assert [rule.name for rule in DEFAULT_RULES] == [
            "oclif_namespace",
            "override_table",
            "salesforce_namespace",
        ]

    def test_custom_rule_list(self) -> None:
        catch_all = RepositoryRule(
            name="catch_all",
            matches=lambda package: True,
            resolve=lambda package: RepositoryRef(owner="acme", repo=package),
        )
        assert resolve_repository("lodash", rules=[catch_all]) == RepositoryRef(
            owner="acme", repo="lodash"
        )

    def test_empty_rule_list_resolves_nothing(self) -> None:
        assert resolve_repository("@oclif/core", rules=[]) is None


class TestRepositoryRef:
    def test_full_name_and_url(self) -> None:
        ref = RepositoryRef(owner="oclif", repo="core")
        assert ref.full_name == "oclif/core"
        assert ref.url == "https://github.com/oclif/core"

    def test_is_frozen(self) -> None:
        ref = RepositoryRef(owner="oclif", repo="core")
        with pytest.raises(Exception):
            ref.owner = "someone-else"
