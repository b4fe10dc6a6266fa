import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, strategies as st  # type: ignore[no-redef]

from scriptdeps.versioning.nugetversion import NuGetVersion, parseNuGetVersion, pickHighest


_part = st.integers(min_value=0, max_value=10_000)
_ident = st.one_of(
    st.integers(min_value=0, max_value=999).map(str),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=6),
)
_version = st.builds(
    NuGetVersion,
    major=_part,
    minor=_part,
    patch=_part,
    revision=_part,
    prerelease=st.lists(_ident, max_size=3).map(tuple),
)


@given(_version)
def test_str_roundtrips_through_parse(v):
    assert parseNuGetVersion(str(v)) == v


@given(_version, _version)
def test_ordering_is_total_and_antisymmetric(a, b):
    assert (a < b) + (a == b) + (a > b) == 1


@given(_version, _version, _version)
def test_ordering_is_transitive(a, b, c):
    if a <= b and b <= c:
        assert a <= c


@given(st.lists(_version, min_size=1, max_size=8))
def test_pickHighest_returns_a_maximum(versions):
    best = pickHighest((v, i) for i, v in enumerate(versions)).best
    assert best is not None
    assert all(best[0] >= v for v in versions)
    # First index holding the maximum
    assert best[1] == versions.index(max(versions))
