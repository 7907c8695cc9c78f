"""Semantic version helpers built on semantic_version."""

from typing import Iterable, List, Optional

import semantic_version

from common.errors import ParseError


def parse_version(raw: str) -> semantic_version.Version:
    """Parse a version, tolerating a leading ``v`` or ``=``.

    Raises:
        ValueError: If the string is not a semantic version.
    """
    text = (raw or "").strip()
    if text[:1] in ("v", "="):
        text = text[1:]
    return semantic_version.Version(text)


def can_parse(raw: Optional[str]) -> bool:
    """Return True if ``raw`` is a semantic version."""
    if raw is None:
        return False
    try:
        parse_version(raw)
    except ValueError:
        return False
    return True


def is_prerelease(raw: str) -> bool:
    """True for semver pre-releases; non-semver tags count as releases."""
    try:
        return bool(parse_version(raw).prerelease)
    except ValueError:
        return False


def less_than(left: str, right: str) -> bool:
    """Compare two semantic versions.

    Raises:
        ValueError: If either side does not parse.
    """
    return parse_version(left) < parse_version(right)


def sort_descending(versions: Iterable[str], *, source: str) -> List[str]:
    """Sort version strings newest first.

    Raises:
        ParseError: If any entry is not a semantic version.
    """
    keyed = []
    for v in versions:
        try:
            keyed.append((parse_version(v), v))
        except ValueError as exc:
            raise ParseError(f"Invalid version {v!r} in {source}") from exc
    keyed.sort(key=lambda pair: pair[0], reverse=True)
    return [v for _, v in keyed]
