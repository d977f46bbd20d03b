"""Dependency diff between two package snapshots.

Three disjoint categories are produced, each keyed and ordered by
dependency name:

- plugins: names in either snapshot's plugin list, ranges read from each
  snapshot's dependency map (a listed plugin with no declared dependency
  simply has no range on that side)
- JIT plugins: keys of either snapshot's jit plugin map
- non-plugin dependencies: keys of either dependency map, minus every name
  listed as a plugin on either side

Only the top-level maps recorded in the snapshots are compared; nothing is
resolved transitively.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from release_compare.schemas import DependencyDiff, DependencyDiffEntry, PackageSnapshot


def _entries(
    names: Iterable[str],
    base: Mapping[str, str],
    compare: Mapping[str, str],
) -> dict[str, DependencyDiffEntry]:
    entries: dict[str, DependencyDiffEntry] = {}
    for name in sorted(set(names)):
        entries[name] = DependencyDiffEntry(
            name=name, base=base.get(name), compare=compare.get(name)
        )
    return entries


def diff_dependencies(base: PackageSnapshot, compare: PackageSnapshot) -> DependencyDiff:
    """Compare the plugin, JIT plugin and dependency sets of two snapshots."""
    plugin_names = set(base.plugins) | set(compare.plugins)

    plugins = _entries(plugin_names, base.dependencies, compare.dependencies)
    jit_plugins = _entries(
        set(base.jit_plugins) | set(compare.jit_plugins),
        base.jit_plugins,
        compare.jit_plugins,
    )
    non_plugin = _entries(
        (set(base.dependencies) | set(compare.dependencies)) - plugin_names,
        base.dependencies,
        compare.dependencies,
    )

    return DependencyDiff(
        plugins=plugins,
        jit_plugins=jit_plugins,
        non_plugin_dependencies=non_plugin,
    )


def changed_only(diff: DependencyDiff) -> DependencyDiff:
    """Drop entries whose range is identical on both sides."""
    return DependencyDiff(
        plugins={k: v for k, v in diff.plugins.items() if v.changed},
        jit_plugins={k: v for k, v in diff.jit_plugins.items() if v.changed},
        non_plugin_dependencies={
            k: v for k, v in diff.non_plugin_dependencies.items() if v.changed
        },
    )
