"""Tests for deno.json / import map discovery and rewriting."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from manifest.import_map import (
    ManifestError,
    find_deno_json,
    iter_import_maps,
    update,
    write_import_map,
)
from versioning.cache import VersionCache


def _write_json(path, document):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")


class TestDiscovery:
    """Finding the import maps reachable from a directory."""

    def test_find_deno_json(self, tmp_path):
        assert find_deno_json(str(tmp_path)) is None
        (tmp_path / "deno.jsonc").write_text("{}", encoding="utf-8")
        assert find_deno_json(str(tmp_path)) == str(tmp_path / "deno.jsonc")
        (tmp_path / "deno.json").write_text("{}", encoding="utf-8")
        assert find_deno_json(str(tmp_path)) == str(tmp_path / "deno.json")

    def test_inline_imports(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"imports": {"@deco/deco": "jsr:@deco/deco@1.0.0"}})
        found = list(iter_import_maps(str(tmp_path)))
        assert len(found) == 1
        document, path = found[0]
        assert path == str(tmp_path / "deno.json")
        assert document["imports"] == {"@deco/deco": "jsr:@deco/deco@1.0.0"}

    def test_empty_inline_imports_win_over_import_map(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"imports": {}})
        _write_json(tmp_path / "import_map.json", {"imports": {"deco": "https://deno.land/x/deco@1.0.0/"}})
        paths = [path for _, path in iter_import_maps(str(tmp_path))]
        assert paths == [str(tmp_path / "deno.json")]

    def test_default_import_map_file(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"tasks": {}})
        _write_json(tmp_path / "import_map.json", {"imports": {"deco": "https://deno.land/x/deco@1.0.0/"}})
        [(document, path)] = list(iter_import_maps(str(tmp_path)))
        assert path == str(tmp_path / "import_map.json")
        assert "deco" in document["imports"]

    def test_named_import_map_file(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"importMap": "./maps/deps.json"})
        _write_json(tmp_path / "maps" / "deps.json", {"imports": {}})
        [(_, path)] = list(iter_import_maps(str(tmp_path)))
        assert path == str(tmp_path / "maps" / "deps.json")

    def test_missing_import_map_yields_nothing(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"tasks": {}})
        assert list(iter_import_maps(str(tmp_path))) == []

    def test_unreadable_import_map_is_treated_as_empty(self, tmp_path, caplog):
        _write_json(tmp_path / "deno.json", {})
        (tmp_path / "import_map.json").write_text("{not json", encoding="utf-8")
        [(document, _)] = list(iter_import_maps(str(tmp_path)))
        assert document == {"imports": {}}
        assert "Unreadable import map" in caplog.text

    def test_workspace_members_are_visited(self, tmp_path):
        _write_json(tmp_path / "deno.json", {
            "imports": {"@deco/deco": "jsr:@deco/deco@1.0.0"},
            "workspace": ["./site", "./apps"],
        })
        _write_json(tmp_path / "site" / "deno.json", {"imports": {"apps/": "jsr:@deco/apps@0.1.0/"}})
        _write_json(tmp_path / "apps" / "deno.json", {})
        _write_json(tmp_path / "apps" / "import_map.json", {"imports": {}})

        paths = [path for _, path in iter_import_maps(str(tmp_path))]
        assert paths[0] == str(tmp_path / "deno.json")
        assert paths[1].endswith("site/deno.json")
        assert paths[2].endswith("apps/import_map.json")

    def test_missing_deno_json(self, tmp_path):
        with pytest.raises(ManifestError, match="could not find deno.json"):
            list(iter_import_maps(str(tmp_path)))

    def test_missing_workspace_member(self, tmp_path):
        _write_json(tmp_path / "deno.json", {"imports": {"a": "b"}, "workspace": ["./gone"]})
        with pytest.raises(ManifestError):
            list(iter_import_maps(str(tmp_path)))

    def test_invalid_deno_json(self, tmp_path):
        (tmp_path / "deno.json").write_text("{", encoding="utf-8")
        with pytest.raises(ManifestError, match="could not read"):
            list(iter_import_maps(str(tmp_path)))


class TestWriteImportMap:
    def test_two_space_indent_and_trailing_newline(self, tmp_path):
        target = tmp_path / "import_map.json"
        write_import_map({"imports": {"@deco/deco": "jsr:@deco/deco@1.0.0"}}, str(target))
        text = target.read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert '\n  "imports": {\n    "@deco/deco"' in text
        assert json.loads(text) == {"imports": {"@deco/deco": "jsr:@deco/deco@1.0.0"}}


class TestUpdate:
    """Upgrading and writing every reachable import map."""

    def _project(self, tmp_path):
        _write_json(tmp_path / "deno.json", {
            "imports": {"@deco/deco": "jsr:@deco/deco@^1.0.0"},
            "workspace": ["./site"],
        })
        _write_json(tmp_path / "site" / "deno.json", {"importMap": "./import_map.json"})
        _write_json(tmp_path / "site" / "import_map.json", {"imports": {"std/": "https://deno.land/std@0.200.0/"}})

    @patch("versioning.feeds.jsr_versions", new_callable=AsyncMock)
    def test_writes_only_changed_maps(self, mock_jsr, tmp_path):
        self._project(tmp_path)
        mock_jsr.return_value = ["1.3.0", "1.0.0"]

        changed = asyncio.run(update(str(tmp_path), cache=VersionCache(), client=MagicMock()))

        assert changed == [str(tmp_path / "deno.json")]
        root = json.loads((tmp_path / "deno.json").read_text(encoding="utf-8"))
        assert root["imports"] == {"@deco/deco": "jsr:@deco/deco@^1.3.0"}
        assert root["workspace"] == ["./site"]
        site = json.loads((tmp_path / "site" / "import_map.json").read_text(encoding="utf-8"))
        assert site == {"imports": {"std/": "https://deno.land/std@0.200.0/"}}

    @patch("versioning.feeds.jsr_versions", new_callable=AsyncMock)
    def test_dry_run_does_not_write(self, mock_jsr, tmp_path):
        self._project(tmp_path)
        before = (tmp_path / "deno.json").read_text(encoding="utf-8")
        mock_jsr.return_value = ["1.3.0"]

        changed = asyncio.run(update(str(tmp_path), dry_run=True, cache=VersionCache(), client=MagicMock()))

        assert changed == [str(tmp_path / "deno.json")]
        assert (tmp_path / "deno.json").read_text(encoding="utf-8") == before

    @patch("versioning.feeds.jsr_versions", new_callable=AsyncMock)
    def test_progress_lines_are_prefixed_with_path(self, mock_jsr, tmp_path, caplog, monkeypatch):
        self._project(tmp_path)
        monkeypatch.chdir(tmp_path)
        mock_jsr.return_value = ["1.3.0"]

        with caplog.at_level("INFO", logger="manifest.import_map"):
            asyncio.run(update(str(tmp_path), cache=VersionCache(), client=MagicMock()))

        assert "deno.json: upgrading @deco/deco 1.0.0 -> 1.3.0." in caplog.text
        assert "deno.json: upgraded successfully" in caplog.text
        assert "site/import_map.json: dependencies are on the most recent releases" in caplog.text

    @patch("versioning.feeds.jsr_versions", new_callable=AsyncMock)
    def test_quiet_mode_emits_no_progress_lines(self, mock_jsr, tmp_path, caplog):
        self._project(tmp_path)
        mock_jsr.return_value = ["1.3.0"]

        with caplog.at_level("INFO", logger="manifest.import_map"):
            changed = asyncio.run(update(str(tmp_path), logs=False, cache=VersionCache(), client=MagicMock()))

        assert changed == [str(tmp_path / "deno.json")]
        assert not [r for r in caplog.records if r.name == "manifest.import_map"]

    def test_missing_manifest_raises(self, tmp_path):
        with pytest.raises(ManifestError):
            asyncio.run(update(str(tmp_path)))
