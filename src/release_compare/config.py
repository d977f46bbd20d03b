"""Runtime configuration for release-compare.

Defaults target ``@salesforce/cli`` on the public npm registry. Any field
can be overridden from a YAML file:

    package_name: "@salesforce/cli"
    registry_url: "https://registry.npmjs.org"
    http_timeout: 15
    release_notes_urls:
      - https://example.com/releasenotes/README.md

The GitHub credential is never read from YAML by default; it falls back
to the GITHUB_TOKEN environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

DEFAULT_RELEASE_NOTES_URLS = [
    "https://raw.githubusercontent.com/forcedotcom/cli/main/releasenotes/README.md",
    "https://raw.githubusercontent.com/forcedotcom/cli/main/releasenotes/sf/README.md",
]


class CompareConfig(BaseModel):
    """Configuration for the comparison service.

    Attributes:
        package_name: Root package whose releases are compared
        registry_url: Base URL of the package registry
        cache_prefix: Key prefix for cached snapshots in the session store
        graphql_url: GitHub GraphQL endpoint used for PR search
        github_token: Opaque credential sent with every search request
        release_notes_urls: Markdown sources, in fallback order
        http_timeout: Per-request timeout in seconds
    """

    package_name: str = "@salesforce/cli"
    registry_url: str = "https://registry.npmjs.org"
    cache_prefix: str = "npm_sf_cli_"
    graphql_url: str = "https://api.github.com/graphql"
    github_token: str | None = None
    release_notes_urls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RELEASE_NOTES_URLS)
    )
    http_timeout: float = Field(30.0, gt=0)

    @model_validator(mode="after")
    def fill_token_from_env(self) -> "CompareConfig":
        if not self.github_token:
            self.github_token = os.environ.get("GITHUB_TOKEN") or None
        return self

    @property
    def package_url(self) -> str:
        return f"{self.registry_url.rstrip('/')}/{self.package_name}"


def load_config(path: str | Path | None = None) -> CompareConfig:
    """Load and validate a YAML config file.

    Args:
        path: Path to the YAML file. Falls back to the
              RELEASE_COMPARE_CONFIG env var, then to pure defaults.

    Returns:
        A validated CompareConfig. Returns defaults if the file doesn't exist.

    Raises:
        ValueError: If the YAML content is invalid or fails validation.
    """
    path = path or os.environ.get("RELEASE_COMPARE_CONFIG")
    if not path:
        return CompareConfig()

    config_path = Path(path)
    if not config_path.exists():
        return CompareConfig()

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    try:
        return CompareConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid config in {path}: {exc}") from exc
