"""
Tests for import map loading and substitution.
"""

import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ts_deno_plugin.models import PathUtils
from ts_deno_plugin.resolvers.import_map import ImportMap, ImportMapCache, resolve


def write_map(path: Path, data) -> Path:
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding='utf-8')
    return path


def test_exact_match_beats_prefix_match():
    import_map = ImportMap.from_dict({"imports": {"a/": "/x/", "a/b": "/y"}})

    assert import_map.resolve("a/b") == "/y"
    assert import_map.resolve("a/c") == "/x/c"
    assert import_map.resolve("a/c/d.ts") == "/x/c/d.ts"


def test_longest_prefix_wins_regardless_of_order():
    import_map = ImportMap.from_dict({"imports": {
        "std/": "https://deno.land/std@0.50.0/",
        "std/http/": "https://deno.land/std@0.60.0/http/",
    }})

    assert import_map.resolve("std/http/server.ts") == "https://deno.land/std@0.60.0/http/server.ts"
    assert import_map.resolve("std/fs/mod.ts") == "https://deno.land/std@0.50.0/fs/mod.ts"


def test_key_without_slash_matches_only_exactly():
    import_map = ImportMap.from_dict({"imports": {"a": "/x"}})

    assert import_map.resolve("a") == "/x"
    assert import_map.resolve("ab") is None
    assert import_map.resolve("a/b") is None


def test_scope_precedence():
    import_map = ImportMap.from_dict({
        "imports": {"a": "/top"},
        "scopes": {"/pkg/": {"a": "/scoped"}},
    })

    assert import_map.resolve("a", "/pkg/mod.ts") == "/scoped"
    assert import_map.resolve("a", "/pkg/deep/mod.ts") == "/scoped"
    assert import_map.resolve("a", "/elsewhere/mod.ts") == "/top"
    assert import_map.resolve("a") == "/top"


def test_longest_scope_is_selected():
    import_map = ImportMap.from_dict({
        "scopes": {
            "/pkg/": {"a": "/outer"},
            "/pkg/sub/": {"a": "/inner"},
        },
    })

    assert import_map.resolve("a", "/pkg/sub/mod.ts") == "/inner"
    assert import_map.resolve("a", "/pkg/mod.ts") == "/outer"


def test_scope_without_match_falls_back_to_imports():
    import_map = ImportMap.from_dict({
        "imports": {"a": "/top"},
        "scopes": {"/pkg/": {"b": "/scoped-b"}},
    })

    assert import_map.resolve("a", "/pkg/mod.ts") == "/top"
    assert import_map.resolve("b", "/pkg/mod.ts") == "/scoped-b"
    assert import_map.resolve("b", "/other/mod.ts") is None


def test_url_scopes_match_remote_referrers():
    import_map = ImportMap.from_dict({
        "imports": {"fmt": "https://deno.land/std@0.50.0/fmt/colors.ts"},
        "scopes": {"https://deno.land/x/legacy/": {"fmt": "https://deno.land/std@0.40.0/fmt/colors.ts"}},
    })

    assert import_map.resolve("fmt", "https://deno.land/x/legacy/mod.ts") == \
        "https://deno.land/std@0.40.0/fmt/colors.ts"
    assert import_map.resolve("fmt", "https://deno.land/x/other/mod.ts") == \
        "https://deno.land/std@0.50.0/fmt/colors.ts"


def test_prefix_key_with_non_slash_target_is_ignored():
    import_map = ImportMap.from_dict({"imports": {"a/": "/x", "b": "/y"}})

    assert import_map.resolve("a/c") is None
    assert import_map.resolve("b") == "/y"


def test_non_string_targets_are_ignored():
    import_map = ImportMap.from_dict({"imports": {"a": 1, "b": None, "c": "/c"}})

    assert import_map.imports == (("c", "/c"),)


def test_load_resolves_relative_targets_against_map_directory(tmp_path):
    map_path = write_map(tmp_path / "import_map.json", {
        "imports": {"std/": "./vendor/std/", "utils": "../shared/utils.ts"},
        "scopes": {"./legacy/": {"utils": "./legacy/utils.ts"}},
    })
    base = PathUtils.to_posix_absolute(str(tmp_path))
    parent = PathUtils.to_posix_absolute(str(tmp_path.parent))

    import_map = ImportMap.load(str(map_path))

    assert import_map.resolve("std/fs/mod.ts") == f"{base}/vendor/std/fs/mod.ts"
    assert import_map.resolve("utils") == f"{parent}/shared/utils.ts"
    assert import_map.resolve("utils", f"{base}/legacy/main.ts") == f"{base}/legacy/utils.ts"


def test_load_malformed_json_yields_empty_map(tmp_path):
    map_path = write_map(tmp_path / "import_map.json", '{"imports": {"a": ')

    import_map = ImportMap.load(str(map_path))

    assert import_map.is_empty
    assert import_map.resolve("a") is None


def test_load_missing_file_yields_empty_map(tmp_path):
    import_map = ImportMap.load(str(tmp_path / "missing.json"))

    assert import_map.is_empty
    assert import_map.resolve("anything") is None


def test_load_wrong_shape_yields_empty_map(tmp_path):
    for index, data in enumerate([[], {"imports": []}, {"scopes": {"/x/": "nope"}}, {"scopes": []}]):
        map_path = write_map(tmp_path / f"map{index}.json", data)
        assert ImportMap.load(str(map_path)).is_empty


def test_load_unparseable_numbers_and_nesting_yield_empty_map(tmp_path):
    huge = write_map(tmp_path / "huge.json", '{"imports": {"a": ' + "1" * 5000 + '}}')
    deep = write_map(tmp_path / "deep.json", "[" * 100000 + "]" * 100000)

    assert ImportMap.load(str(huge)).is_empty
    assert ImportMap.load(str(deep)).is_empty

    cache = ImportMapCache()
    assert cache.get(str(deep)).is_empty
    assert str(deep) in cache


def test_resolve_without_map():
    assert resolve(None, "a", "/pkg/mod.ts") is None


def test_cache_reuses_maps_until_invalidated(tmp_path):
    map_path = write_map(tmp_path / "import_map.json", {"imports": {"a": "/one"}})
    cache = ImportMapCache()

    first = cache.get(str(map_path))
    assert cache.get(str(map_path)) is first
    assert str(map_path) in cache
    assert len(cache) == 1

    write_map(map_path, {"imports": {"a": "/two"}})
    assert cache.get(str(map_path)).resolve("a") == "/one"

    cache.invalidate()
    assert len(cache) == 0
    assert cache.get(str(map_path)).resolve("a") == "/two"
