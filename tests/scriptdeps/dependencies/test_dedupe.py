import logging

import pytest

from scriptdeps.dependencies.dedupe import AssemblyRedirectMap, assemblyName, deduplicate
from scriptdeps.graph.models import DEFAULT_DEPENDENCY_NAME, ScriptDependency
from scriptdeps.versioning.nugetversion import parseNuGetVersion


def _dep(name, version, *paths, compile=()):
    return ScriptDependency(name=name, version=version, runtimePaths=tuple(paths), compileTimePaths=tuple(compile))


def test_highest_version_wins():
    deps = [
        _dep("A", "1.0.0", "/p/a/1.0.0/A.dll"),
        _dep("A", "2.0.0", "/p/a/2.0.0/A.dll"),
        _dep("B", "1.0.0", "/p/b/1.0.0/B.dll"),
    ]
    deduped = deduplicate(deps)
    assert set(deduped) == {"a", "b"}
    assert deduped["a"].path == "/p/a/2.0.0/A.dll"
    assert deduped["a"].version == parseNuGetVersion("2.0.0")
    assert deduped["b"].path == "/p/b/1.0.0/B.dll"


def test_order_does_not_matter_for_the_winner():
    deps = [_dep("A", "2.0.0", "/new/A.dll"), _dep("A", "1.0.0", "/old/A.dll")]
    assert deduplicate(deps)["a"].path == "/new/A.dll"


def test_first_seen_wins_ties():
    deps = [_dep("X", "1.0.0", "/first/Shared.dll"), _dep("Y", "1.0", "/second/Shared.dll")]
    assert deduplicate(deps)["shared"].path == "/first/Shared.dll"


def test_names_are_case_insensitive():
    deps = [_dep("A", "1.0.0", "/a/Foo.dll"), _dep("B", "3.0.0", "/b/foo.dll")]
    deduped = deduplicate(deps)
    assert list(deduped) == ["foo"]
    assert deduped["foo"].package == "B"


def test_default_entry_competes_with_framework_version():
    deps = [
        _dep("System.Text.Json", "6.0.0", "/pkgs/System.Text.Json.dll"),
        _dep(DEFAULT_DEPENDENCY_NAME, "8.0.4", "/shared/System.Text.Json.dll"),
    ]
    assert deduplicate(deps)["system.text.json"].path == "/shared/System.Text.Json.dll"


def test_compile_kind_uses_compile_assets_and_ignores_non_assemblies():
    deps = [_dep("A", "1.0.0", "/runtime/A.dll", compile=("/ref/A.dll", "/ref/A.xml"))]
    assert deduplicate(deps, kind="compile")["a"].path == "/ref/A.dll"
    assert deduplicate(deps, kind="runtime")["a"].path == "/runtime/A.dll"


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        deduplicate([], kind="native")  # type: ignore[arg-type]


def test_assemblyName():
    assert assemblyName("lib/net8.0/Foo.Bar.dll") == "Foo.Bar"
    assert assemblyName("C:\\x\\Baz.dll") == "Baz"


def test_redirect_map_resolves_and_logs_mismatch(caplog):
    deduped = deduplicate([_dep("A", "2.0.0", "/a/2/A.dll")])
    logger = logging.getLogger("test.redirect")
    redirects = AssemblyRedirectMap(deduped, logger=logger)

    with caplog.at_level(logging.DEBUG, logger="test.redirect"):
        assert redirects.resolve("a", "1.0.0") == "/a/2/A.dll"

    assert "A" in redirects
    assert redirects.resolve("Missing") is None
    assert any("Redirecting" in rec.getMessage() for rec in caplog.records)
