"""Discovery and persistence of deno.json / import map documents.

A directory's deno.json either inlines ``imports`` or points at an import
map file (``importMap``, default ./import_map.json). Workspace members
listed under ``workspace`` are visited recursively.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Tuple

from constants import Constants
from versioning.upgrade import upgrade_import_map

logger = logging.getLogger(__name__)

ImportMapDocument = Dict[str, Any]


class ManifestError(Exception):
    """A manifest is missing or unreadable."""


def find_deno_json(directory: str) -> Optional[str]:
    """Return the path of deno.json or deno.jsonc in ``directory``, if any."""
    for file_name in Constants.DENO_JSON_FILES:
        candidate = os.path.join(directory, file_name)
        if os.path.isfile(candidate):
            return candidate
    return None


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def iter_import_maps(directory: str) -> Iterator[Tuple[ImportMapDocument, str]]:
    """Yield (document, path) for every import map reachable from ``directory``.

    Raises:
        ManifestError: If ``directory`` (or a workspace member) has no
            deno.json, or the deno.json is not valid JSON.
    """
    deno_json_path = find_deno_json(directory)
    if deno_json_path is None:
        raise ManifestError(f"could not find deno.json definition in {directory}")
    try:
        deno_json = _read_json(deno_json_path)
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"could not read {deno_json_path}: {exc}") from exc

    if deno_json.get("imports") is not None:
        yield deno_json, deno_json_path
    else:
        import_map_file = deno_json.get("importMap") or Constants.DEFAULT_IMPORT_MAP
        import_map_path = os.path.join(directory, import_map_file.replace("./", "", 1))
        if os.path.exists(import_map_path):
            try:
                document = _read_json(import_map_path)
            except (OSError, json.JSONDecodeError):
                logger.warning("Unreadable import map %s, treating it as empty", import_map_path)
                document = {"imports": {}}
            yield document, import_map_path

    workspace = deno_json.get("workspace")
    if isinstance(workspace, list):
        for member in workspace:
            yield from iter_import_maps(os.path.join(directory, member))


def _prefixed_logger(path: str):
    label = os.path.relpath(path)

    def log(message: str) -> None:
        logger.info("%s: %s", label, message)

    return log


async def updated_import_maps(
    directory: Optional[str] = None,
    logs: bool = True,
    **options: Any,
) -> AsyncIterator[Tuple[ImportMapDocument, str]]:
    """Yield (document, path) for every import map whose imports changed.

    Extra keyword arguments are passed to upgrade_import_map().
    """
    for document, path in iter_import_maps(directory or os.getcwd()):
        log = _prefixed_logger(path)
        if await upgrade_import_map(document, logs, log=log, **options):
            yield document, path
            if logs:
                log("upgraded successfully")


def write_import_map(document: ImportMapDocument, path: str) -> None:
    """Serialize a document back to disk with two-space indentation."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{json.dumps(document, indent=2, ensure_ascii=False)}\n")


async def update(
    directory: Optional[str] = None,
    dry_run: bool = False,
    **options: Any,
) -> List[str]:
    """Upgrade every import map under ``directory`` and write the changed ones.

    Returns:
        Paths of the import maps that changed (written unless ``dry_run``).
    """
    changed: List[str] = []
    async for document, path in updated_import_maps(directory, **options):
        if not dry_run:
            write_import_map(document, path)
        changed.append(path)
    return changed
