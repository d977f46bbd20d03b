"""Release comparison toolkit for multi-plugin CLI distributions.

Fetches published package metadata for two versions, diffs their plugin and
dependency sets, and gathers the pull requests merged into each affected
repository between the two publish dates, alongside the release notes.
"""

__version__ = "0.1.0"
