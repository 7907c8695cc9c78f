"""Data models for version lookup and upgrade decisions."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .registries import RegistryURL


# alias -> specifier, e.g. {"@std/path": "jsr:@std/path@^1.0.0"}
DependencyMap = Dict[str, str]

# Line-printing callback used for user-facing upgrade messages.
LogFn = Callable[[str], None]


@dataclass
class PackageInfo:
    """Classified specifier plus its pinned and newest versions."""
    url: RegistryURL
    current: Optional[str]
    latest: Optional[str]


@dataclass
class Upgrade:
    """One rewritten alias."""
    alias: str
    before: Optional[str]
    after: str
    specifier: str


@dataclass
class UpgradeOutcome:
    """Result of an upgrade run over a dependency map."""
    changed: bool
    imports: DependencyMap
    upgrades: List[Upgrade] = field(default_factory=list)
    skipped: List[Tuple[str, Optional[str]]] = field(default_factory=list)
