"""Version list fetchers for each upstream source.

Every fetcher returns versions newest first and reads through the version
cache: a key that was fetched once is never fetched again. Feed sources
(GitHub releases, GitLab tags) are paginated with a hard page ceiling.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import quote

from constants import CacheFamily, Constants
from common.errors import NetworkError, ParseError
from common.http_client import HttpClient, fetch_json, fetch_text, safe_get_json
from common.logging_utils import extra_context, is_debug_enabled

from .cache import VersionCache, resolve_cache
from .compare import sort_descending

logger = logging.getLogger(__name__)

_GITHUB_ENTRY = re.compile(r"<id>tag:github\.com,2008:Repository/\d+/(.*?)</id>")
_GITLAB_ENTRY = re.compile(r"<id>https://gitlab\.com[^<]*?/-/tags/([^<]+?)</id>")
_UNPKG_OPTION = re.compile(r"<option[^<>]* value=\"(.*?)\">")


def _log_pages(source: str, key: str, pages: int, count: int) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            "Feed pagination finished",
            extra=extra_context(
                event="pagination",
                component="feeds",
                source=source,
                key=key,
                pages=pages,
                count=count,
            ),
        )


async def github_download_releases(
    owner: str,
    repo: str,
    last_version: Optional[str] = None,
    *,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Fetch one page of the GitHub releases feed, in feed order."""
    url = Constants.GITHUB_RELEASES_FEED_URL.format(owner=owner, repo=repo)
    if last_version:
        url += f"?after={quote(last_version, safe='')}"
    text = await fetch_text(url, context="github", client=client)
    return _GITHUB_ENTRY.findall(text)


async def github_releases(
    owner: str,
    repo: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """All release tags of a GitHub repository, newest first.

    A full first page means more may follow, so further pages are requested
    with an ``after`` cursor until a page makes no progress or
    GITHUB_FEED_MAX_EXTRA_PAGES more pages were read.
    """
    cache = resolve_cache(cache)
    cache_key = f"{owner}/{repo}"
    cached = cache.get(CacheFamily.GITHUB, cache_key)
    if cached is not None:
        return cached

    versions = await github_download_releases(owner, repo, client=client)
    pages = 1
    if len(versions) == Constants.GITHUB_FEED_PAGE_SIZE:
        last_version: Optional[str] = None
        extra = 0
        while last_version != versions[-1] and extra < Constants.GITHUB_FEED_MAX_EXTRA_PAGES:
            extra += 1
            last_version = versions[-1]
            versions.extend(
                await github_download_releases(owner, repo, last_version, client=client)
            )
        pages += extra
    _log_pages("github", cache_key, pages, len(versions))
    return cache.set(CacheFamily.GITHUB, cache_key, versions)


async def gitlab_download_releases(
    owner: str,
    repo: str,
    page: int,
    *,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Fetch one page of the GitLab tags feed, in feed order."""
    url = Constants.GITLAB_TAGS_FEED_URL.format(owner=owner, repo=repo, page=page)
    text = await fetch_text(url, context="gitlab", client=client)
    return _GITLAB_ENTRY.findall(text)


async def gitlab_releases(
    owner: str,
    repo: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """All tags of a GitLab project, newest first.

    Pages are numbered; reading stops on a page that makes no progress or
    after GITLAB_FEED_MAX_PAGES pages in total.
    """
    cache = resolve_cache(cache)
    cache_key = f"{owner}/{repo}"
    cached = cache.get(CacheFamily.GITLAB, cache_key)
    if cached is not None:
        return cached

    page = 1
    versions = await gitlab_download_releases(owner, repo, page, client=client)
    if len(versions) == Constants.GITLAB_FEED_PAGE_SIZE:
        last_version: Optional[str] = None
        while last_version != versions[-1] and page < Constants.GITLAB_FEED_MAX_PAGES:
            page += 1
            last_version = versions[-1]
            versions.extend(await gitlab_download_releases(owner, repo, page, client=client))
    _log_pages("gitlab", cache_key, page, len(versions))
    return cache.set(CacheFamily.GITLAB, cache_key, versions)


async def unpkg_versions(
    name: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Versions scraped from the unpkg browse page of a package.

    The page lists every version as an ``<option>``, oldest first.
    """
    cache = resolve_cache(cache)
    cached = cache.get(CacheFamily.UNPKG, name)
    if cached is not None:
        return cached

    text = await fetch_text(Constants.UNPKG_BROWSE_URL.format(name=name), context="unpkg", client=client)
    versions = _UNPKG_OPTION.findall(text)
    versions.reverse()
    return cache.set(CacheFamily.UNPKG, name, versions)


async def deno_land_versions(
    name: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Versions of a deno.land module from its versions.json (already newest first)."""
    cache = resolve_cache(cache)
    cached = cache.get(CacheFamily.DENO_LAND, name)
    if cached is not None:
        return cached

    data = await fetch_json(
        Constants.DENO_LAND_VERSIONS_URL.format(name=name), context="deno.land", client=client
    )
    versions = data.get("versions") if isinstance(data, dict) else None
    if not isinstance(versions, list):
        raise ParseError(f"versions.json for {name} has incorrect format")
    return cache.set(CacheFamily.DENO_LAND, name, list(versions))


async def jsr_versions(
    name: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Versions of a JSR package, sorted newest first by semantic version."""
    cache = resolve_cache(cache)
    cached = cache.get(CacheFamily.JSR, name)
    if cached is not None:
        return cached

    data = await fetch_json(Constants.JSR_META_URL.format(name=name), context="jsr", client=client)
    versions = data.get("versions") if isinstance(data, dict) else None
    if not isinstance(versions, dict):
        raise ParseError(f"versions.json for {name} has incorrect format")
    return cache.set(CacheFamily.JSR, name, sort_descending(versions.keys(), source=f"jsr {name}"))


async def npm_versions(
    name: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Versions of an npm package; the packument lists them oldest first."""
    cache = resolve_cache(cache)
    cached = cache.get(CacheFamily.NPM, name)
    if cached is not None:
        return cached

    data = await fetch_json(Constants.NPM_REGISTRY_URL.format(name=name), context="npm", client=client)
    versions = data.get("versions") if isinstance(data, dict) else None
    if not isinstance(versions, dict):
        raise ParseError(f"versions.json for {name} has incorrect format")
    ordered = list(versions.keys())
    ordered.reverse()
    return cache.set(CacheFamily.NPM, name, ordered)


async def nestland_releases(
    repo: str,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
) -> List[str]:
    """Versions from the nest.land upload log of a package.

    Upload names have the form ``<repo>@<version>``; the log is oldest first.
    """
    cache = resolve_cache(cache)
    cached = cache.get(CacheFamily.NEST_LAND, repo)
    if cached is not None:
        return cached

    data = await fetch_json(
        Constants.NEST_LAND_PACKAGE_URL.format(name=repo), context="nest.land", client=client
    )
    names = data.get("packageUploadNames") if isinstance(data, dict) else None
    versions: List[str] = []
    for upload in names or []:
        _, sep, version = upload.partition("@")
        if sep:
            versions.append(version.split("@", 1)[0])
    versions.reverse()
    return cache.set(CacheFamily.NEST_LAND, repo, versions)


def jsr_latest(package_name: str, defaults_to: str = "1") -> str:
    """Return a caret specifier for the newest version of a JSR package.

    Falls back to ``defaults_to`` when the registry cannot be reached or
    answers with something unexpected.

    Example:
        >>> jsr_latest("@deco/deco")  # doctest: +SKIP
        'jsr:@deco/deco@^1.0.0'
    """
    latest = defaults_to
    try:
        data = safe_get_json(Constants.JSR_META_URL.format(name=package_name), context="jsr")
    except NetworkError as exc:
        logger.warning("Using default version %s for %s: %s", defaults_to, package_name, exc)
    else:
        if isinstance(data, dict) and data.get("latest"):
            latest = str(data["latest"])
    return f"jsr:{package_name}@^{latest}"
