"""Map dependency package names to their source repositories.

Resolution is a pure function over an ordered rule list. Each rule pairs a
predicate with a resolver; the first matching rule wins:

1. ``@oclif/<name>``       -> oclif/<name>
2. known exceptions        -> fixed owner/repo (e.g. @salesforce/core)
3. ``@salesforce/<name>``  -> salesforcecli/<name>

Anything else is outside the namespaces we own, has no repository, and
must not be offered for pull request lookup.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

OCLIF_NAMESPACE = "@oclif/"
SALESFORCE_NAMESPACE = "@salesforce/"


class RepositoryRef(BaseModel):
    """Owner and name of a GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.full_name}"


# Packages published under a name that differs from their source repository.
REPOSITORY_OVERRIDES: dict[str, RepositoryRef] = {
    "@salesforce/core": RepositoryRef(owner="forcedotcom", repo="sfdx-core"),
}


@dataclass(frozen=True)
class RepositoryRule:
    """One step of the resolution chain.

    Attributes:
        name: Identifier used in logs and tests
        matches: Predicate over the package name
        resolve: Builds the RepositoryRef once ``matches`` returned True
    """

    name: str
    matches: Callable[[str], bool]
    resolve: Callable[[str], RepositoryRef]


def _namespace_rule(name: str, namespace: str, owner: str) -> RepositoryRule:
    return RepositoryRule(
        name=name,
        matches=lambda package: package.startswith(namespace),
        resolve=lambda package: RepositoryRef(
            owner=owner, repo=package[len(namespace):]
        ),
    )


DEFAULT_RULES: list[RepositoryRule] = [
    _namespace_rule("oclif_namespace", OCLIF_NAMESPACE, "oclif"),
    RepositoryRule(
        name="override_table",
        matches=lambda package: package in REPOSITORY_OVERRIDES,
        resolve=lambda package: REPOSITORY_OVERRIDES[package],
    ),
    _namespace_rule("salesforce_namespace", SALESFORCE_NAMESPACE, "salesforcecli"),
]


def resolve_repository(
    package: str,
    rules: list[RepositoryRule] | None = None,
) -> RepositoryRef | None:
    """Return the repository that owns ``package``, or None if unknown."""
    for rule in DEFAULT_RULES if rules is None else rules:
        if rule.matches(package):
            return rule.resolve(package)
    return None


def is_resolvable(package: str) -> bool:
    """Whether pull request lookup is possible for ``package``."""
    return resolve_repository(package) is not None
