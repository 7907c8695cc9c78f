"""Version resolution package.

This package resolves the newest published version of a dependency across
package registries and decides which pinned specifiers to rewrite:
- registries.py: registry URL dialects and the priority-ordered lookup
- feeds.py: version list fetchers (JSON indexes, HTML listings, Atom feeds)
- cache.py: write-once version cache
- upgrade.py: the upgrade engine over a dependency map
"""

from .cache import DEFAULT_CACHE, VersionCache
from .models import DependencyMap, PackageInfo, Upgrade, UpgradeOutcome
from .registries import REGISTRIES, RegistryKind, RegistryURL, classify, lookup, resolve
from .upgrade import (
    PACKAGES_TO_CHECK,
    REQUIRED_MIN_VERSIONS,
    pkg_info,
    upgrade_dependencies,
    upgrade_import_map,
)

__all__ = [
    "DEFAULT_CACHE",
    "VersionCache",
    "DependencyMap",
    "PackageInfo",
    "Upgrade",
    "UpgradeOutcome",
    "REGISTRIES",
    "RegistryKind",
    "RegistryURL",
    "classify",
    "lookup",
    "resolve",
    "PACKAGES_TO_CHECK",
    "REQUIRED_MIN_VERSIONS",
    "pkg_info",
    "upgrade_dependencies",
    "upgrade_import_map",
]
