import pytest

from scriptdeps.directives.references import AssemblyReference, PackageReference


def test_packageReference_equality_ignores_case():
    a = PackageReference("Newtonsoft.Json", "13.0.1")
    b = PackageReference("newtonsoft.json", "13.0.1")
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_packageReference_different_versions_are_distinct():
    assert PackageReference("A", "1.0.0") != PackageReference("A", "2.0.0")


def test_packageReference_is_immutable():
    ref = PackageReference("A", "1.0.0")
    with pytest.raises(AttributeError):
        ref._id = "B"  # type: ignore[misc]


@pytest.mark.parametrize("packageId", ["", "   ", None])
def test_packageReference_requires_id(packageId):
    with pytest.raises(ValueError):
        PackageReference(packageId, "1.0.0")  # type: ignore[arg-type]


def test_packageReference_str():
    assert str(PackageReference("A", "1.0.0")) == "A, 1.0.0"
    assert str(PackageReference("A")) == "A"


def test_assemblyReference_fromPath_is_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ref = AssemblyReference.fromPath("lib/Foo.dll")
    assert ref.path == str((tmp_path / "lib" / "Foo.dll").resolve())
