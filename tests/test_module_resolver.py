"""
Tests for Deno-style module resolution.
"""

import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from ts_deno_plugin.models import ResolvedModule
from ts_deno_plugin.resolvers.deno_cache import DenoCache
from ts_deno_plugin.resolvers.import_map import ImportMap, ImportMapCache
from ts_deno_plugin.resolvers.module_resolver import ModuleResolver


def touch(path: Path, content: str = "export {};\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    return path


@pytest.fixture
def cache(tmp_path):
    return DenoCache(str(tmp_path / "deno"))


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    touch(root / "src" / "main.ts")
    touch(root / "src" / "a.ts")
    touch(root / "src" / "lib" / "index.ts")
    touch(root / "src" / "legacy.js")
    touch(root / "src" / "types.d.ts")
    return root


def cache_url(cache: DenoCache, url: str) -> Path:
    return touch(Path(cache.url_to_path(url)))


def test_relative_resolution_probes_extensions(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    assert resolver.resolve_modules(["./a"]) == [
        ResolvedModule(module="./a", filepath=str(project / "src" / "a.ts"))
    ]
    assert resolver.resolve_module("./a.ts").filepath == str(project / "src" / "a.ts")
    assert resolver.resolve_module("./legacy").filepath == str(project / "src" / "legacy.js")
    assert resolver.resolve_module("./types").filepath == str(project / "src" / "types.d.ts")


def test_relative_directory_resolves_to_index(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    resolved = resolver.resolve_module("./lib")

    assert resolved == ResolvedModule(module="./lib", filepath=str(project / "src" / "lib" / "index.ts"))


def test_relative_parent_directory(project, cache):
    resolver = ModuleResolver(str(project / "src" / "lib" / "index.ts"), project_root=str(project), cache=cache)

    assert resolver.resolve_module("../a").filepath == str(project / "src" / "a.ts")


def test_output_is_index_aligned(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)
    specifiers = ["./a", "lodash", "./missing", "./lib", "https://deno.land/std/mod.ts"]

    results = resolver.resolve_modules(specifiers)

    assert len(results) == len(specifiers)
    assert results[0].filepath == str(project / "src" / "a.ts")
    assert results[1] is None
    assert results[2] is None
    assert results[3].filepath == str(project / "src" / "lib" / "index.ts")
    assert results[4] is None


def test_cached_url_resolves_to_cache_file(project, cache):
    cached = cache_url(cache, "https://deno.land/std/http/server.ts")
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    resolved = resolver.resolve_module("https://Deno.Land/std/http/server.ts")

    assert resolved == ResolvedModule(module="https://deno.land/std/http/server.ts", filepath=str(cached))


def test_uncached_url_is_unresolved(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    assert resolver.resolve_modules(["https://deno.land/std/http/server.ts"]) == [None]


def test_file_url_resolves_locally(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)
    url = (project / "src" / "a").as_uri()

    assert resolver.resolve_module(url) == ResolvedModule(module=url, filepath=str(project / "src" / "a.ts"))


def test_bare_specifier_without_map_is_unresolved(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    assert resolver.resolve_modules(["lodash", "std/fs/mod.ts"]) == [None, None]


def test_bare_specifiers_through_import_map(project, cache):
    cached = cache_url(cache, "https://deno.land/std@0.50.0/http/server.ts")
    map_path = project / "import_map.json"
    map_path.write_text(json.dumps({"imports": {
        "std/": "https://deno.land/std@0.50.0/",
        "utils": "./src/a.ts",
        "lib/": "./src/lib/",
        "missing": "./src/missing.ts",
    }}), encoding='utf-8')

    resolver = ModuleResolver.create(
        str(project / "src" / "main.ts"), str(map_path), project_root=str(project), cache=cache
    )
    results = resolver.resolve_modules(["std/http/server.ts", "utils", "lib/index", "missing", "lodash"])

    assert results[0] == ResolvedModule(
        module="https://deno.land/std@0.50.0/http/server.ts", filepath=str(cached)
    )
    assert results[1].filepath == str(project / "src" / "a.ts")
    assert results[2].filepath == str(project / "src" / "lib" / "index.ts")
    assert results[3] is None
    assert results[4] is None


def test_relative_map_target_without_base_resolves_from_containing_file(project, cache):
    import_map = ImportMap.from_dict({"imports": {"utils": "./a.ts"}})
    resolver = ModuleResolver(
        str(project / "src" / "main.ts"), import_map, project_root=str(project), cache=cache
    )

    assert resolver.resolve_module("utils") == ResolvedModule(
        module="./a.ts", filepath=str(project / "src" / "a.ts")
    )


def test_scoped_mapping_uses_containing_file(project, cache):
    touch(project / "vendor" / "old.ts")
    touch(project / "vendor" / "new.ts")
    base = project.as_posix()
    import_map = ImportMap.from_dict({
        "imports": {"dep": f"{base}/vendor/new.ts"},
        "scopes": {f"{base}/src/lib/": {"dep": f"{base}/vendor/old.ts"}},
    })

    from_lib = ModuleResolver(str(project / "src" / "lib" / "index.ts"), import_map, str(project), cache)
    from_src = ModuleResolver(str(project / "src" / "main.ts"), import_map, str(project), cache)

    assert from_lib.resolve_module("dep").filepath == str(project / "vendor" / "old.ts")
    assert from_src.resolve_module("dep").filepath == str(project / "vendor" / "new.ts")


def test_malformed_import_map_leaves_bare_specifiers_unresolved(project, cache):
    map_path = project / "import_map.json"
    map_path.write_text("{ not json", encoding='utf-8')

    resolver = ModuleResolver.create(
        str(project / "src" / "main.ts"), str(map_path), project_root=str(project), cache=cache
    )

    assert resolver.resolve_modules(["utils", "std/fs.ts", "./a"]) == [
        None, None, ResolvedModule(module="./a", filepath=str(project / "src" / "a.ts"))
    ]


def test_deeply_nested_import_map_keeps_relative_resolution(project, cache):
    map_path = project / "import_map.json"
    map_path.write_text("[" * 100000 + "]" * 100000, encoding='utf-8')

    resolver = ModuleResolver.create(
        str(project / "src" / "main.ts"), str(map_path), project_root=str(project), cache=cache
    )

    assert resolver.resolve_modules(["utils", "./a"]) == [
        None, ResolvedModule(module="./a", filepath=str(project / "src" / "a.ts"))
    ]


def test_import_map_cycle_is_unresolved(project, cache):
    import_map = ImportMap.from_dict({"imports": {"a": "b", "b": "a", "self": "self"}})
    resolver = ModuleResolver(str(project / "src" / "main.ts"), import_map, str(project), cache)

    assert resolver.resolve_modules(["a", "self"]) == [None, None]


def test_untitled_document_resolves_from_project_root(project, cache):
    resolver = ModuleResolver("untitled:Untitled-1", project_root=str(project / "src"), cache=cache)

    assert resolver.containing_file is None
    assert resolver.resolve_module("./a").filepath == str(project / "src" / "a.ts")


def test_wrong_separators_are_normalized(project, cache):
    containing = str(project / "src" / "main.ts").replace("/", "\\")
    resolver = ModuleResolver(containing, project_root=str(project), cache=cache)

    assert resolver.resolve_module(".\\lib\\index").filepath == str(project / "src" / "lib" / "index.ts")
    assert resolver.resolve_module("./lib\\index.ts").filepath == str(project / "src" / "lib" / "index.ts")


def test_relative_import_inside_cached_module(project, cache):
    server = cache_url(cache, "https://deno.land/std/http/server.ts")
    bufio = cache_url(cache, "https://deno.land/std/io/bufio.ts")
    colors = cache_url(cache, "https://deno.land/std/fmt/colors.ts")
    import_map = ImportMap.from_dict({
        "scopes": {"https://deno.land/std/": {"colors": "https://deno.land/std/fmt/colors.ts"}},
    })

    resolver = ModuleResolver(str(server), import_map, str(project), cache)

    assert resolver.referrer == "https://deno.land/std/http/server.ts"
    assert resolver.resolve_module("../io/bufio.ts").filepath == str(bufio)
    assert resolver.resolve_module("colors").filepath == str(colors)


def test_create_uses_import_map_cache(project, cache):
    map_path = project / "import_map.json"
    map_path.write_text(json.dumps({"imports": {"utils": "./src/a.ts"}}), encoding='utf-8')
    maps = ImportMapCache()

    ModuleResolver.create(str(project / "src" / "main.ts"), str(map_path), str(project), cache, maps)

    assert str(map_path) in maps


def test_resolution_never_raises(project, cache):
    resolver = ModuleResolver(str(project / "src" / "main.ts"), project_root=str(project), cache=cache)

    assert resolver.resolve_modules([None, "./a"])[0] is None
