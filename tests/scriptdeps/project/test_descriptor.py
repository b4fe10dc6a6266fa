from scriptdeps.directives.references import AssemblyReference, PackageReference
from scriptdeps.project.descriptor import DEFAULT_SDK, ManifestDescriptor


def test_duplicates_are_removed_in_order():
    descriptor = ManifestDescriptor(
        targetFramework="net8.0",
        packageReferences=(PackageReference("A", "1.0.0"), PackageReference("B", "1.0.0"), PackageReference("a", "1.0.0")),
        assemblyReferences=(AssemblyReference("/x.dll"), AssemblyReference("/x.dll")),
    )
    assert [r.id for r in descriptor.packageReferences] == ["A", "B"]
    assert len(descriptor.assemblyReferences) == 1


def test_same_id_different_versions_are_both_kept():
    descriptor = ManifestDescriptor(
        targetFramework="net8.0",
        packageReferences=(PackageReference("A", "1.0.0"), PackageReference("A", "2.0.0")),
    )
    assert len(descriptor.packageReferences) == 2


def test_structural_equality():
    a = ManifestDescriptor("net8.0", (PackageReference("A", "1.0.0"), PackageReference("B", "1.0.0")))
    b = ManifestDescriptor("NET8.0", (PackageReference("b", "1.0.0"), PackageReference("A", "1.0.0")), sdk="")
    assert a == b
    assert hash(a) == hash(b)
    assert a != ManifestDescriptor("net6.0", a.packageReferences)
    assert a != ManifestDescriptor("net8.0", a.packageReferences, sdk="Microsoft.NET.Sdk.Web")


def test_default_sdk_equals_explicit_default():
    assert ManifestDescriptor("net8.0", sdk=DEFAULT_SDK) == ManifestDescriptor("net8.0")


def test_isCacheable():
    assert ManifestDescriptor("net8.0").isCacheable
    assert ManifestDescriptor("net8.0", (PackageReference("A", "1.0.0"),)).isCacheable
    assert not ManifestDescriptor("net8.0", (PackageReference("A", "1.0.0"), PackageReference("B", "1.*"))).isCacheable


def test_withTargetFramework():
    descriptor = ManifestDescriptor("net8.0", (PackageReference("A", "1.0.0"),))
    other = descriptor.withTargetFramework("net6.0")
    assert other.targetFramework == "net6.0"
    assert other.packageReferences == descriptor.packageReferences
