from pathlib import Path

import pytest

from scriptdeps.cache.execution_cache import HASH_MARKER_NAME, ExecutionCache
from scriptdeps.core.errors import CompilationFailedError, RestoreFailedError
from scriptdeps.pipeline.runner import CompilationResult, ExecutionOptions, ScriptPipeline
from scriptdeps.resolving.source_resolver import ScriptReferenceResolver
from scriptdeps.restore.restorer import CachedRestorer
from tests.support import FakeRestorer, assetsDocument


class FakeCompiler:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.requests = []

    def compile(self, request):
        self.requests.append(request)
        if self.fail:
            return CompilationResult(success=False, diagnostics=("main.csx(1,1): error CS0103: The name 'x' does not exist",))
        request.outputDirectory.mkdir(parents=True, exist_ok=True)
        assembly = request.outputDirectory / "main.dll"
        assembly.write_bytes(b"MZ" + str(len(self.requests)).encode())
        pdb = request.outputDirectory / "main.pdb"
        pdb.write_bytes(b"pdb")
        return CompilationResult(success=True, assemblyPath=assembly, pdbPath=pdb)


@pytest.fixture
def packageFolder(tmp_path: Path) -> Path:
    folder = tmp_path / "packages"
    (folder / "a" / "1.0.0" / "lib" / "net8.0").mkdir(parents=True)
    (folder / "a" / "1.0.0" / "lib" / "net8.0" / "A.dll").write_bytes(b"MZ")
    (folder / "scripty" / "2.0.0" / "contentFiles" / "csx" / "any").mkdir(parents=True)
    return folder


@pytest.fixture
def document(packageFolder: Path) -> dict:
    return assetsDocument(packageFolder, "net8.0", {
        "A/1.0.0": {
            "compile": {"lib/net8.0/A.dll": {}},
            "runtime": {"lib/net8.0/A.dll": {}},
        },
        "Scripty/2.0.0": {
            "contentFiles": {
                "contentFiles/csx/any/one.csx": {},
                "contentFiles/csx/any/two.csx": {},
            },
        },
    })


def _script(tmp_path: Path, version: str = "1.0.0") -> Path:
    path = tmp_path / "scripts" / "main.csx"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f'#r "nuget: A, {version}"\n#load "nuget: Scripty, 2.0.0"\nConsole.WriteLine(1);\n', encoding="utf-8")
    return path


def test_second_run_is_a_cache_hit(tmp_path, settings, document):
    inner = FakeRestorer(document)
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, CachedRestorer(inner))
    script = _script(tmp_path)

    first = pipeline.execute(script)
    second = pipeline.execute(script)

    assert not first.cacheHit
    assert first.hash is not None
    assert second.cacheHit
    assert second.hash == first.hash
    assert len(compiler.requests) == 1
    assert len(inner.calls) == 1
    assert second.assemblyPath.read_bytes() == b"MZ1"
    assert (second.assemblyPath.parent / HASH_MARKER_NAME).read_text(encoding="utf-8") == first.hash
    assert second.runtimeAssemblies["a"].path.endswith("A.dll")


def test_edit_invalidates_cache(tmp_path, settings, document):
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, CachedRestorer(FakeRestorer(document)))
    script = _script(tmp_path)

    first = pipeline.execute(script)
    script.write_text(script.read_text(encoding="utf-8") + "Console.WriteLine(2);\n", encoding="utf-8")
    second = pipeline.execute(script)

    assert not second.cacheHit
    assert second.hash != first.hash
    assert len(compiler.requests) == 2


def test_unpinned_script_is_never_cached(tmp_path, settings, document):
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, CachedRestorer(FakeRestorer(document)))
    script = _script(tmp_path, "1.*")

    first = pipeline.execute(script)
    second = pipeline.execute(script)

    assert first.hash is None and second.hash is None
    assert not second.cacheHit
    assert len(compiler.requests) == 2
    cacheDir = ExecutionCache().cacheDirFor(script, cacheRoot=settings.cacheRoot())
    assert not (cacheDir / HASH_MARKER_NAME).exists()


def test_no_cache_forces_restore_and_compile(tmp_path, settings, document):
    inner = FakeRestorer(document)
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, CachedRestorer(inner))
    script = _script(tmp_path)

    pipeline.execute(script)
    plan = pipeline.execute(script, ExecutionOptions(noCache=True))

    assert not plan.cacheHit
    assert plan.hash is None
    assert len(compiler.requests) == 2
    assert len(inner.calls) == 2


def test_compilation_request_contents(tmp_path, settings, document, packageFolder):
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, FakeRestorer(document))

    pipeline.execute(_script(tmp_path))

    (request,) = compiler.requests
    paths = [ref.path for ref in request.references]
    assert str(packageFolder / "a" / "1.0.0" / "lib/net8.0/A.dll") in paths
    assert any(p.endswith("System.Runtime.dll") for p in paths)
    assert isinstance(request.sourceResolver, ScriptReferenceResolver)
    assert request.sourceResolver.resolveReference("nuget: Scripty, 2.0.0", None) == "nuget: Scripty, 2.0.0"
    assert request.targetFramework == "net8.0"
    assert request.optimization == "debug"


def test_package_sources_are_forwarded(tmp_path, settings, document):
    inner = FakeRestorer(document)
    pipeline = ScriptPipeline(settings, FakeCompiler(), inner)
    pipeline.execute(_script(tmp_path), ExecutionOptions(packageSources=("/local/feed",)))
    assert inner.calls[0]["packageSources"] == ("/local/feed",)


def test_failed_restore_is_retried_once(tmp_path, settings, document):
    inner = FakeRestorer(document, failures=1)
    plan = ScriptPipeline(settings, FakeCompiler(), inner).execute(_script(tmp_path))
    assert len(inner.calls) == 2
    assert len(inner.invalidated) == 1
    assert plan.hash is not None


def test_second_restore_failure_suggests_no_cache(tmp_path, settings, document):
    inner = FakeRestorer(document, failures=2)
    with pytest.raises(RestoreFailedError) as excinfo:
        ScriptPipeline(settings, FakeCompiler(), inner).execute(_script(tmp_path))
    assert "no-cache" in str(excinfo.value)
    assert "NU1101" in str(excinfo.value)
    assert len(inner.calls) == 2


def test_compilation_failure_is_not_cached(tmp_path, settings, document):
    compiler = FakeCompiler(fail=True)
    pipeline = ScriptPipeline(settings, compiler, FakeRestorer(document))
    script = _script(tmp_path)

    with pytest.raises(CompilationFailedError) as excinfo:
        pipeline.execute(script)

    assert "CS0103" in str(excinfo.value)
    cacheDir = ExecutionCache().cacheDirFor(script, cacheRoot=settings.cacheRoot())
    assert not cacheDir.exists()


def test_references_without_compiling(tmp_path, settings, document):
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, FakeRestorer(document))
    refs = pipeline.references(_script(tmp_path))
    assert any(ref.name == "A" for ref in refs)
    assert compiler.requests == []


class BrokenStoreCache(ExecutionCache):
    def store(self, cacheDir, hash, artifacts):
        raise OSError(28, "No space left on device")


def _nativeScript(tmp_path: Path) -> Path:
    path = tmp_path / "scripts" / "native.csx"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('#r "nuget: Sqlite, 1.0.0"\n', encoding="utf-8")
    return path


def test_missing_native_asset_does_not_break_caching(tmp_path, settings, packageFolder):
    document = assetsDocument(packageFolder, "net8.0", {
        "Sqlite/1.0.0": {"native": {"runtimes/linux-x64/native/libe_sqlite3.so": {}}},
    })
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, CachedRestorer(FakeRestorer(document)))
    script = _nativeScript(tmp_path)

    first = pipeline.execute(script)
    second = pipeline.execute(script)

    assert first.hash is not None
    assert second.cacheHit
    assert len(compiler.requests) == 1
    assert not (second.assemblyPath.parent / "native").exists()


def test_cache_write_failure_returns_compiled_output(tmp_path, settings, document):
    compiler = FakeCompiler()
    pipeline = ScriptPipeline(settings, compiler, FakeRestorer(document), cache=BrokenStoreCache())
    script = _script(tmp_path)

    plan = pipeline.execute(script)

    assert not plan.cacheHit
    assert plan.hash is None
    assert plan.assemblyPath == compiler.requests[0].outputDirectory / "main.dll"
    assert plan.assemblyPath.read_bytes() == b"MZ1"
    assert not (ExecutionCache().cacheDirFor(script, cacheRoot=settings.cacheRoot()) / HASH_MARKER_NAME).exists()
