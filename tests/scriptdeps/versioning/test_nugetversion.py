import pytest

from scriptdeps.versioning.nugetversion import (
    NuGetVersion,
    VersionSpec,
    parseNuGetVersion,
    pickHighest,
    tryParseNuGetVersion,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1",              (1, 0, 0, 0, ())),
        ("1.2",            (1, 2, 0, 0, ())),
        ("1.2.3",          (1, 2, 3, 0, ())),
        ("1.2.3.4",        (1, 2, 3, 4, ())),
        ("v2.0.1",         (2, 0, 1, 0, ())),
        ("1.2.3-beta.1",   (1, 2, 3, 0, ("beta", "1"))),
        ("1.2.3+sha.abc",  (1, 2, 3, 0, ())),
    ],
)
def test_parseNuGetVersion_valid(raw, expected):
    v = parseNuGetVersion(raw)
    assert (v.major, v.minor, v.patch, v.revision, v.prerelease) == expected


@pytest.mark.parametrize("raw", ["", "  ", ".1", "1.", "1..3", "1.2.3.4.5", "1.2.3-", "[1.0,2.0)", "1.*", "abc"])
def test_parseNuGetVersion_invalid(raw):
    with pytest.raises(ValueError):
        parseNuGetVersion(raw)


def test_parseNuGetVersion_rejects_non_string():
    with pytest.raises(TypeError):
        parseNuGetVersion(123)  # type: ignore[arg-type]


def test_tryParse_returns_none_for_garbage():
    assert tryParseNuGetVersion("not-a-version") is None
    assert tryParseNuGetVersion(None) is None


def test_short_forms_compare_equal_to_padded():
    assert parseNuGetVersion("1.2") == parseNuGetVersion("1.2.0") == parseNuGetVersion("1.2.0.0")
    assert hash(parseNuGetVersion("1.2")) == hash(parseNuGetVersion("1.2.0.0"))


@pytest.mark.parametrize(
    "a, b",
    [
        ("1.0.0-alpha", "1.0.0-alpha.1"),
        ("1.0.0-alpha.1", "1.0.0-alpha.beta"),
        ("1.0.0-beta.2", "1.0.0-beta.11"),
        ("1.0.0-rc.1", "1.0.0"),
        ("1.0.0", "1.0.0.1"),
        ("1.9.9", "1.10.0"),
    ],
)
def test_ordering(a, b):
    assert parseNuGetVersion(a) < parseNuGetVersion(b)


def test_prerelease_labels_compare_case_insensitively():
    assert parseNuGetVersion("1.0.0-BETA") == parseNuGetVersion("1.0.0-beta")


def test_build_metadata_ignored():
    assert parseNuGetVersion("1.0.0+a") == parseNuGetVersion("1.0.0+b")


def test_str_keeps_revision_only_when_set():
    assert str(parseNuGetVersion("1.2")) == "1.2.0"
    assert str(parseNuGetVersion("1.2.3.4-rc.1")) == "1.2.3.4-rc.1"


@pytest.mark.parametrize(
    "value, pinned",
    [
        ("1.2.3", True),
        ("1.2.3.4", True),
        ("1.2.3-beta.1", True),
        ("1.2.3+build", True),
        ("[1.2.3]", True),
        ("1.2", False),
        ("1.*", False),
        ("*", False),
        ("[1.0.0, 2.0.0)", False),
        ("(1.0.0,)", False),
        ("", False),
        (None, False),
    ],
)
def test_versionSpec_isPinned(value, pinned):
    assert VersionSpec(value).isPinned is pinned


@pytest.mark.parametrize("value", ["[1.*]", "[1 2 x]", "[1.2]", "[1.2.*]", "[1.2.3.4.5]", "[1.2.3-]", "[ 1.2.3 junk ]", "[]"])
def test_versionSpec_bracket_with_non_exact_version_is_not_pinned(value):
    assert VersionSpec(value).isPinned is False
    assert VersionSpec(value).exactVersion() is None


def test_versionSpec_bracket_tolerates_inner_whitespace():
    assert VersionSpec("[ 1.2.3 ]").isPinned is True


def test_versionSpec_equality_is_case_insensitive():
    assert VersionSpec("1.0.0-Beta") == VersionSpec("1.0.0-beta")
    assert hash(VersionSpec("1.0.0-Beta")) == hash(VersionSpec("1.0.0-beta"))
    assert VersionSpec("1.0.0") == "1.0.0"


def test_versionSpec_exactVersion():
    assert VersionSpec("[1.2.3]").exactVersion() == NuGetVersion(1, 2, 3)
    assert VersionSpec("1.2").exactVersion() is None


def test_pickHighest_first_seen_wins_ties():
    result = pickHighest([
        (parseNuGetVersion("1.0"), "a"),
        (parseNuGetVersion("2.0"), "b"),
        (parseNuGetVersion("2.0.0.0"), "c"),
    ])
    assert result.best is not None
    assert result.best[1] == "b"
    assert len(result.candidates) == 3


def test_pickHighest_empty():
    assert pickHighest([]).best is None
