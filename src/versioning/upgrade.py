"""Upgrade decisions for a dependency map.

Aliases selected by the inclusion pattern are checked concurrently: each
check classifies the specifier, fetches the published versions and reads
the pinned one. Rewrites are applied only after every check has finished,
so a failing check leaves the map untouched. A second, sequential pass then
lifts aliases that sit below a configured minimum version.
"""
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from common.errors import ParseError, VersionNotFoundError
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled

from .cache import VersionCache, resolve_cache
from .compare import can_parse, is_prerelease, less_than
from .models import DependencyMap, LogFn, PackageInfo, Upgrade, UpgradeOutcome
from .registries import REGISTRIES, RegistryKind, lookup

logger = logging.getLogger(__name__)

# Aliases upgraded when no inclusion pattern is given.
PACKAGES_TO_CHECK = re.compile(
    r"(@deco\/.*)|(apps)|(deco)|(\$live)|(deco-sites\/.*\/$)|(partytown)"
)

# alias -> lowest acceptable version
REQUIRED_MIN_VERSIONS: Dict[str, str] = {}

UP_TO_DATE_MESSAGE = "dependencies are on the most recent releases of your dependencies!"


class _Reporter:
    """Routes user-facing lines to the injected callback or to the logger."""

    def __init__(self, log: Optional[LogFn], enabled: bool):
        self._log = log
        self._enabled = enabled

    def info(self, message: str) -> None:
        if not self._enabled:
            return
        if self._log is not None:
            self._log(message)
        else:
            logger.info(message)

    def warning(self, message: str) -> None:
        if not self._enabled:
            return
        if self._log is not None:
            self._log(message)
        else:
            logger.warning(message)


def pick_latest(versions: Sequence[str], allow_prerelease: bool = False) -> Optional[str]:
    """Newest entry of a newest-first list.

    Pre-releases are passed over unless ``allow_prerelease`` is set; tags
    that are not semantic versions count as releases.
    """
    for version in versions:
        if allow_prerelease or not is_prerelease(version):
            return version
    return None


async def pkg_info(
    specifier: str,
    allow_prerelease: bool = False,
    *,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
    registries: Sequence[RegistryKind] = REGISTRIES,
) -> Optional[PackageInfo]:
    """Classify a specifier and look up its current and latest versions.

    Returns:
        None when no registry recognises the specifier.
    """
    url = lookup(specifier, registries)
    if url is None:
        return None
    versions = await url.all(cache=cache, client=client)
    try:
        current: Optional[str] = url.version()
    except VersionNotFoundError:
        current = None
    return PackageInfo(url=url, current=current, latest=pick_latest(versions, allow_prerelease))


async def _check_all(
    imports: DependencyMap,
    aliases: List[str],
    allow_prerelease: bool,
    cache: Optional[VersionCache],
    client: Optional[HttpClient],
    registries: Sequence[RegistryKind],
) -> List[Tuple[str, Optional[PackageInfo]]]:
    async def check(alias: str) -> Tuple[str, Optional[PackageInfo]]:
        info = await pkg_info(
            imports[alias],
            allow_prerelease,
            cache=cache,
            client=client,
            registries=registries,
        )
        return alias, info

    tasks = [asyncio.ensure_future(check(alias)) for alias in aliases]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _apply_minimums(
    imports: DependencyMap,
    required_min_versions: Mapping[str, str],
    outcome: UpgradeOutcome,
    reporter: _Reporter,
    force: bool,
    registries: Sequence[RegistryKind],
) -> None:
    for alias, minimum in required_min_versions.items():
        specifier = imports.get(alias)
        if not specifier:
            continue
        url = lookup(specifier, registries)
        if url is None:
            reporter.warning(f"skipping {alias}: {specifier} does not match any known registry.")
            outcome.skipped.append((alias, None))
            continue
        try:
            current: Optional[str] = url.version()
        except VersionNotFoundError:
            current = None

        if current is None:
            below = True
        elif not can_parse(current):
            if not force:
                reporter.warning(f"skipping {alias} {current} -> {minimum}. Use --force to upgrade.")
                outcome.skipped.append((alias, current))
                continue
            below = True
        else:
            try:
                below = less_than(current, minimum)
            except ValueError as exc:
                raise ParseError(f"Invalid minimum version {minimum} for {alias}") from exc

        if below:
            reporter.info(f"upgrading {alias} {current} -> {minimum}.")
            rewritten = url.at(minimum).url
            imports[alias] = rewritten
            outcome.upgrades.append(Upgrade(alias, current, minimum, rewritten))
            outcome.changed = True


async def upgrade_dependencies(
    imports: DependencyMap,
    include: Union[str, Pattern[str]] = PACKAGES_TO_CHECK,
    *,
    required_min_versions: Optional[Mapping[str, str]] = None,
    allow_prerelease: bool = False,
    force: bool = False,
    log: Optional[LogFn] = None,
    logs: bool = True,
    cache: Optional[VersionCache] = None,
    client: Optional[HttpClient] = None,
    registries: Sequence[RegistryKind] = REGISTRIES,
) -> UpgradeOutcome:
    """Upgrade the specifiers of a dependency map in place.

    Args:
        imports: alias -> specifier map, mutated in place.
        include: Pattern selecting the aliases to upgrade.
        required_min_versions: alias -> minimum version, applied after the
            latest-version pass. Defaults to REQUIRED_MIN_VERSIONS.
        allow_prerelease: Let a pre-release count as the latest version.
        force: Upgrade even when the pinned version is not a semantic version.
        log: Callback receiving user-facing lines; defaults to this module's logger.
        logs: Emit user-facing lines at all.
        cache: Version cache override; defaults to the process-wide cache.
        client: HTTP client to reuse; a temporary one is opened otherwise.
        registries: Priority-ordered registry kinds used for classification.

    Returns:
        UpgradeOutcome whose ``imports`` is the mutated map.

    Raises:
        NetworkError: If any selected alias' versions cannot be fetched.
        ParseError: If a registry answers with an unusable document.
    """
    reporter = _Reporter(log, logs)
    reporter.info("looking up latest versions")

    pattern = re.compile(include) if isinstance(include, str) else include
    aliases = [alias for alias in imports if pattern.search(alias)]
    if is_debug_enabled(logger):
        logger.debug(
            "Selected aliases",
            extra=extra_context(
                event="decision",
                component="upgrade",
                action="select",
                count=len(aliases),
                total=len(imports),
            ),
        )

    outcome = UpgradeOutcome(changed=False, imports=imports)

    async with AsyncExitStack() as stack:
        if client is None and aliases:
            client = await stack.enter_async_context(HttpClient())
        results = await _check_all(imports, aliases, allow_prerelease, cache, client, registries)

    if is_debug_enabled(logger):
        logger.debug(
            "Version lookups finished",
            extra=extra_context(
                event="lookup_complete",
                component="upgrade",
                cache_entries=resolve_cache(cache).stats(),
            ),
        )

    for alias, info in results:
        if info is None or not info.latest:
            continue
        if not can_parse(info.current) and not force:
            reporter.warning(
                f"skipping {alias} {info.current} -> {info.latest}. Use --force to upgrade."
            )
            outcome.skipped.append((alias, info.current))
            continue
        if info.current != info.latest:
            reporter.info(f"upgrading {alias} {info.current} -> {info.latest}.")
            rewritten = info.url.at(info.latest).url
            imports[alias] = rewritten
            outcome.upgrades.append(Upgrade(alias, info.current, info.latest, rewritten))
            outcome.changed = True

    minimums = REQUIRED_MIN_VERSIONS if required_min_versions is None else required_min_versions
    _apply_minimums(imports, minimums, outcome, reporter, force, registries)

    if not outcome.changed:
        reporter.info(UP_TO_DATE_MESSAGE)
    return outcome


async def upgrade_import_map(
    import_map: Dict[str, Any],
    logs: bool = True,
    include: Union[str, Pattern[str]] = PACKAGES_TO_CHECK,
    log: Optional[LogFn] = None,
    **options: Any,
) -> bool:
    """Upgrade the ``imports`` section of an import map or deno.json document.

    The section is created empty when missing. Extra keyword arguments are
    passed to upgrade_dependencies().

    Returns:
        True if any specifier changed.
    """
    if import_map.get("imports") is None:
        import_map["imports"] = {}
    outcome = await upgrade_dependencies(
        import_map["imports"], include, log=log, logs=logs, **options
    )
    return outcome.changed
