"""Registry URL dialects and the lookup dispatcher.

Each supported way of pinning a dependency (``jsr:`` and ``npm:``
specifiers, CDN URLs, raw source-forge URLs) is one RegistryKind. A kind's
behaviour lives in a _Dialect entry: the classification pattern plus the
functions that read the package name and version, rewrite the version, and
fetch all published versions.

Classification is order sensitive. Several patterns accept URLs that
belong to a more specific kind (the unscoped unpkg pattern also matches
``https://unpkg.com/@scope/pkg@1.0.0``), so lookup() walks REGISTRIES and
returns the first kind that matches.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional, Pattern, Sequence

from common.errors import ClassificationError, ParseError, RegistryError, VersionNotFoundError
from common.http_client import HttpClient

from . import feeds
from .cache import VersionCache

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, Optional[VersionCache], Optional[HttpClient]], Awaitable[List[str]]]


class RegistryKind(Enum):
    """Supported registry URL dialects."""

    JSR = "jsr"
    DENO_LAND = "deno.land"
    UNPKG_SCOPE = "unpkg-scope"
    UNPKG = "unpkg"
    DENOPKG = "denopkg"
    PAX_DENO_DEV = "pax.deno.dev"
    JSPM = "jspm"
    PIKA_SCOPE = "pika-scope"
    PIKA = "pika"
    SKYPACK_SCOPE = "skypack-scope"
    SKYPACK = "skypack"
    ESM_SH_SCOPE = "esm.sh-scope"
    ESM_SH = "esm.sh"
    GITHUB_RAW = "github-raw"
    GITLAB_RAW = "gitlab-raw"
    JSDELIVR = "jsdelivr"
    NEST_LAND = "nest.land"
    NPM = "npm"


# Scoped kinds precede their unscoped counterparts, npm comes last.
REGISTRIES: Sequence[RegistryKind] = (
    RegistryKind.JSR,
    RegistryKind.DENO_LAND,
    RegistryKind.UNPKG_SCOPE,
    RegistryKind.UNPKG,
    RegistryKind.DENOPKG,
    RegistryKind.PAX_DENO_DEV,
    RegistryKind.JSPM,
    RegistryKind.PIKA_SCOPE,
    RegistryKind.PIKA,
    RegistryKind.SKYPACK_SCOPE,
    RegistryKind.SKYPACK,
    RegistryKind.ESM_SH_SCOPE,
    RegistryKind.ESM_SH,
    RegistryKind.GITHUB_RAW,
    RegistryKind.GITLAB_RAW,
    RegistryKind.JSDELIVR,
    RegistryKind.NEST_LAND,
    RegistryKind.NPM,
)


@dataclass(frozen=True)
class _Dialect:
    pattern: Pattern[str]
    name: Callable[[str], str]
    version: Callable[[str], str]
    at: Callable[[str, str], str]
    fetch: Fetcher


@dataclass(frozen=True)
class RegistryURL:
    """A specifier together with the dialect it was classified as.

    Instances are immutable; at() returns a new instance.
    """

    kind: RegistryKind
    url: str

    @property
    def regexp(self) -> Pattern[str]:
        """Classification pattern of this kind."""
        return _DIALECTS[self.kind].pattern

    def matches(self) -> bool:
        """Check whether the raw string has this kind's shape."""
        return classify(self.kind, self.url)

    def name(self) -> str:
        """Package name (``owner/repo`` for repository hosted kinds).

        Raises:
            ParseError: If the specifier carries no name.
        """
        return _DIALECTS[self.kind].name(self.url)

    def version(self) -> str:
        """Pinned version, without any range operator.

        Raises:
            VersionNotFoundError: If the specifier pins no version.
        """
        return _DIALECTS[self.kind].version(self.url)

    def at(self, version: str) -> "RegistryURL":
        """Same specifier pinned to ``version``, sub-path preserved."""
        return RegistryURL(self.kind, _DIALECTS[self.kind].at(self.url, version))

    async def all(
        self,
        *,
        cache: Optional[VersionCache] = None,
        client: Optional[HttpClient] = None,
    ) -> List[str]:
        """All published versions, newest first.

        Raises:
            NetworkError: If the version source cannot be fetched.
            ParseError: If the source answers with an unexpected document.
        """
        try:
            return await _DIALECTS[self.kind].fetch(self.url, cache, client)
        except RegistryError:
            logger.error("error getting versions for %s", self._label())
            raise

    def _label(self) -> str:
        try:
            return self.name()
        except ParseError:
            return self.url


def classify(kind: RegistryKind, url: str) -> bool:
    """Test ``url`` against the pattern of ``kind``."""
    return _DIALECTS[kind].pattern.search(url) is not None


def lookup(url: str, registries: Sequence[RegistryKind] = REGISTRIES) -> Optional[RegistryURL]:
    """Classify a specifier as the first matching kind in ``registries``.

    Returns:
        The RegistryURL, or None if no kind recognises the specifier.
    """
    for kind in registries:
        if classify(kind, url):
            return RegistryURL(kind, url)
    return None


def resolve(url: str, registries: Sequence[RegistryKind] = REGISTRIES) -> RegistryURL:
    """Like lookup() but raise ClassificationError when nothing matches."""
    found = lookup(url, registries)
    if found is None:
        raise ClassificationError(url)
    return found


# Shared helpers for "<name>@<version>" shaped URLs

_DEFAULT_VERSION = re.compile(r"@([^/]+)")
_DEFAULT_AT = re.compile(r"@(.*?)(/|$)")
_DEFAULT_NAME = re.compile(r"([^/\"']*?)@[^'\"]*")
_RANGE_OPERATOR = re.compile(r"^[\^~]")


def _default_version(url: str) -> str:
    m = _DEFAULT_VERSION.search(url)
    if m is None:
        raise VersionNotFoundError(url)
    return m.group(1)


def _default_at(url: str, version: str) -> str:
    return _DEFAULT_AT.sub(lambda m: f"@{version}{m.group(2)}", url, count=1)


def _default_name(url: str) -> str:
    m = _DEFAULT_NAME.search(url)
    if m is None or not m.group(1):
        raise ParseError(f"Package name not found in {url}")
    return m.group(1)


def _split_range(version: str):
    m = _RANGE_OPERATOR.match(version)
    if m is None:
        return "", version
    return m.group(0), version[1:]


def _unpkg_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.unpkg_versions(_default_name(url), cache=cache, client=client)


# Scoped CDN paths: https://host[/_]/@scope/name@version/sub/path

class _ScopedParts(NamedTuple):
    parts: List[str]
    index: int
    scope: str
    package: str
    version: str


def _scoped_parts(url: str) -> _ScopedParts:
    parts = url.split("/")
    index = next((i for i in range(3, len(parts)) if parts[i].startswith("@")), None)
    if index is None:
        raise ParseError(f"Package scope not found in {url}")
    if index + 1 >= len(parts) or not parts[index + 1] or parts[index + 1].startswith("@"):
        raise ParseError(f"Package name not found in {url}")
    package, sep, version = parts[index + 1].partition("@")
    if not sep or not version:
        raise VersionNotFoundError(url)
    return _ScopedParts(parts, index + 1, parts[index], package, version)


def _scoped_name(url: str) -> str:
    info = _scoped_parts(url)
    return f"{info.scope}/{info.package}"


def _scoped_version(url: str) -> str:
    return _scoped_parts(url).version


def _scoped_at(url: str, version: str) -> str:
    info = _scoped_parts(url)
    parts = list(info.parts)
    parts[info.index] = f"{info.package}@{version}"
    return "/".join(parts)


def _scoped_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.unpkg_versions(_scoped_name(url), cache=cache, client=client)


# jsr: and npm: specifiers

def _specifier_dialect(prefix: str, fetch_name: Callable[..., Awaitable[List[str]]]) -> _Dialect:
    parse = re.compile(rf"^{prefix}:(/?@[^/]+/[^@/]+|/?[^@/]+)(?:@([^/]+))?(.*)")
    pattern = re.compile(rf"{prefix}:(@[^/]+/[^@/]+|[^@/]+)(?:@([^/\"']+))?[^'\"]")

    def _match(url: str):
        m = parse.match(url)
        if m is None:
            raise ParseError(f"Package name not found in {url}")
        return m

    def name(url: str) -> str:
        return _match(url).group(1).lstrip("/")

    def version(url: str) -> str:
        pinned = _match(url).group(2)
        if not pinned:
            raise VersionNotFoundError(url)
        return _split_range(pinned)[1]

    def at(url: str, new_version: str) -> str:
        m = _match(url)
        operator = _split_range(m.group(2) or "")[0]
        if _RANGE_OPERATOR.match(new_version):
            operator = ""
        return f"{prefix}:{m.group(1)}@{operator}{new_version}{m.group(3)}"

    def fetch(url: str, cache, client) -> Awaitable[List[str]]:
        return fetch_name(name(url), cache=cache, client=client)

    return _Dialect(pattern=pattern, name=name, version=version, at=at, fetch=fetch)


# deno.land

_DENO_LAND_NAME = re.compile(r"deno\.land/(?:(std)|x/([^/@]*))")


def _deno_land_name(url: str) -> str:
    m = _DENO_LAND_NAME.search(url)
    if m is None:
        raise ParseError(f"Package name not found in {url}")
    return m.group(1) or m.group(2)


def _deno_land_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.deno_land_versions(_deno_land_name(url), cache=cache, client=client)


# GitHub release backed kinds: denopkg.com/owner/repo@v, pax.deno.dev/owner/repo@v

def _owner_repo_name(url: str) -> str:
    return f"{url.split('/')[3]}/{_default_name(url)}"


def _owner_repo_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.github_releases(url.split("/")[3], _default_name(url), cache=cache, client=client)


# Path segment addressed kinds: raw.githubusercontent.com, gitlab.com raw, jsDelivr

def _segment(url: str, index: int) -> Optional[str]:
    parts = url.split("/")
    if index >= len(parts) or not parts[index]:
        return None
    return parts[index]


def _required_segment(url: str, index: int, field: str) -> str:
    value = _segment(url, index)
    if value is None:
        raise ParseError(f"Package {field} not found in {url}")
    return value


def _segment_version(index: int) -> Callable[[str], str]:
    def version(url: str) -> str:
        value = _segment(url, index)
        if value is None:
            raise VersionNotFoundError(url)
        return value
    return version


def _segment_at(index: int) -> Callable[[str, str], str]:
    def at(url: str, version: str) -> str:
        parts = url.split("/")
        if index >= len(parts):
            raise VersionNotFoundError(url)
        parts[index] = version
        return "/".join(parts)
    return at


def _source_repo_name(url: str) -> str:
    return f"{_required_segment(url, 3, 'owner')}/{_required_segment(url, 4, 'repo')}"


def _github_raw_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.github_releases(
        _required_segment(url, 3, "owner"), _required_segment(url, 4, "repo"), cache=cache, client=client
    )


def _gitlab_raw_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.gitlab_releases(
        _required_segment(url, 3, "owner"), _required_segment(url, 4, "repo"), cache=cache, client=client
    )


def _jsdelivr_parts(url: str):
    owner = _required_segment(url, 4, "owner")
    repo, _, version = _required_segment(url, 5, "repo").partition("@")
    return owner, repo, version


def _jsdelivr_name(url: str) -> str:
    owner, repo, _ = _jsdelivr_parts(url)
    return f"{owner}/{repo}"


def _jsdelivr_version(url: str) -> str:
    _, _, version = _jsdelivr_parts(url)
    if not version:
        raise VersionNotFoundError(url)
    return version


def _jsdelivr_at(url: str, version: str) -> str:
    _, repo, _ = _jsdelivr_parts(url)
    parts = url.split("/")
    parts[5] = f"{repo}@{version}"
    return "/".join(parts)


def _jsdelivr_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    owner, repo, _ = _jsdelivr_parts(url)
    return feeds.github_releases(owner, repo, cache=cache, client=client)


# x.nest.land/name@version/...

def _nest_land_name(url: str) -> str:
    return _required_segment(url, 3, "name").split("@")[0]


def _nest_land_fetch(url: str, cache, client) -> Awaitable[List[str]]:
    return feeds.nestland_releases(_nest_land_name(url), cache=cache, client=client)


def _unscoped(pattern: str) -> _Dialect:
    return _Dialect(
        pattern=re.compile(pattern),
        name=_default_name,
        version=_default_version,
        at=_default_at,
        fetch=_unpkg_fetch,
    )


def _scoped(pattern: str) -> _Dialect:
    return _Dialect(
        pattern=re.compile(pattern),
        name=_scoped_name,
        version=_scoped_version,
        at=_scoped_at,
        fetch=_scoped_fetch,
    )


def _github_backed(pattern: str) -> _Dialect:
    return _Dialect(
        pattern=re.compile(pattern),
        name=_owner_repo_name,
        version=_default_version,
        at=_default_at,
        fetch=_owner_repo_fetch,
    )


_DIALECTS: Dict[RegistryKind, _Dialect] = {
    RegistryKind.JSR: _specifier_dialect("jsr", lambda name, **kw: feeds.jsr_versions(name, **kw)),
    RegistryKind.DENO_LAND: _Dialect(
        pattern=re.compile(r"https?://deno.land/(?:std@[^'\"]*|x/[^/\"']*?@[^'\"]*)"),
        name=_deno_land_name,
        version=_default_version,
        at=_default_at,
        fetch=_deno_land_fetch,
    ),
    RegistryKind.UNPKG_SCOPE: _scoped(r"https?://unpkg\.com/@[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.UNPKG: _unscoped(r"https?://unpkg.com/[^/\"']*?@[^'\"]*"),
    RegistryKind.DENOPKG: _github_backed(r"https?://denopkg.com/[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.PAX_DENO_DEV: _github_backed(r"https?://pax.deno.dev/[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.JSPM: _unscoped(r"https?://dev.jspm.io/[^/\"']*?@[^'\"]*"),
    RegistryKind.PIKA_SCOPE: _scoped(r"https?://cdn\.pika\.dev(/_)?/@[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.PIKA: _unscoped(r"https?://cdn.pika.dev(/_)?/[^/\"']*?@[^'\"]*"),
    RegistryKind.SKYPACK_SCOPE: _scoped(r"https?://cdn\.skypack\.dev(/_)?/@[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.SKYPACK: _unscoped(r"https?://cdn.skypack.dev(/_)?/[^/\"']*?@[^'\"]*"),
    RegistryKind.ESM_SH_SCOPE: _scoped(r"https?://esm\.sh/@[^/\"']*?/[^/\"']*?@[^'\"]*"),
    RegistryKind.ESM_SH: _unscoped(r"https?://esm.sh/[^/\"']*?@[^'\"]*"),
    RegistryKind.GITHUB_RAW: _Dialect(
        pattern=re.compile(
            r"https?://raw\.githubusercontent\.com/[^/\"']+/[^/\"']+/(?!master)[^/\"']+/[^'\"]*"
        ),
        name=_source_repo_name,
        version=_segment_version(5),
        at=_segment_at(5),
        fetch=_github_raw_fetch,
    ),
    RegistryKind.GITLAB_RAW: _Dialect(
        pattern=re.compile(
            r"https?://gitlab\.com/[^/\"']+/[^/\"']+/-/raw/(?!master)[^/\"']+/[^'\"]*"
        ),
        name=_source_repo_name,
        version=_segment_version(7),
        at=_segment_at(7),
        fetch=_gitlab_raw_fetch,
    ),
    RegistryKind.JSDELIVR: _Dialect(
        pattern=re.compile(
            r"https?://cdn\.jsdelivr\.net/gh/[^/\"']+/[^/\"']+@(?!master)[^/\"']+/[^'\"]*"
        ),
        name=_jsdelivr_name,
        version=_jsdelivr_version,
        at=_jsdelivr_at,
        fetch=_jsdelivr_fetch,
    ),
    RegistryKind.NEST_LAND: _Dialect(
        pattern=re.compile(r"https?://x\.nest\.land/[^/\"']+@(?!master)[^/\"']+/[^'\"]*"),
        name=_nest_land_name,
        version=_default_version,
        at=_default_at,
        fetch=_nest_land_fetch,
    ),
    RegistryKind.NPM: _specifier_dialect("npm", lambda name, **kw: feeds.npm_versions(name, **kw)),
}
