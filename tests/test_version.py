"""Tests for the semantic version value type."""

import pytest

from cvm.exceptions import ConfigurationError, MalformedVersion
from cvm.models.version import BumpKind, SemanticVersion, compare


def test_parse_and_str():
    v = SemanticVersion.parse("1.2.3")
    assert (v.major, v.minor, v.patch) == (1, 2, 3)
    assert str(v) == "1.2.3"


def test_parse_round_trip():
    for text in ["0.0.0", "1.2.3", "255.255.255", "10.0.7"]:
        assert str(SemanticVersion.parse(text)) == text
        v = SemanticVersion.parse(text)
        assert SemanticVersion.parse(str(v)) == v


def test_parse_ignores_extra_components():
    assert SemanticVersion.parse("1.2.3.4") == SemanticVersion(1, 2, 3)


@pytest.mark.parametrize("text", ["1.2", "1", "", "a.b.c", "1..2", "1.2.x", "1.2.3-alpha", "-1.2.3"])
def test_parse_rejects_malformed(text):
    with pytest.raises(MalformedVersion):
        SemanticVersion.parse(text)


def test_parse_rejects_overflow():
    with pytest.raises(MalformedVersion):
        SemanticVersion.parse("256.0.0")
    with pytest.raises(MalformedVersion):
        SemanticVersion.parse("1.2.300")


def test_malformed_version_is_value_error():
    with pytest.raises(ValueError):
        SemanticVersion.parse("nope")


def test_bump_minor_resets_patch():
    assert SemanticVersion(2, 4, 7).bump(BumpKind.MINOR) == SemanticVersion(2, 5, 0)


def test_bump_major_resets_minor_and_patch():
    assert SemanticVersion(2, 4, 7).bump(BumpKind.MAJOR) == SemanticVersion(3, 0, 0)


def test_bump_patch():
    assert SemanticVersion(2, 4, 7).bump(BumpKind.PATCH) == SemanticVersion(2, 4, 8)


def test_bump_laws():
    for v in [SemanticVersion(0, 0, 0), SemanticVersion(1, 9, 9), SemanticVersion(7, 3, 254)]:
        minor = v.bump(BumpKind.MINOR)
        assert minor.major == v.major and minor.minor == v.minor + 1 and minor.patch == 0
        major = v.bump(BumpKind.MAJOR)
        assert major.major == v.major + 1 and major.minor == 0 and major.patch == 0
        patch = v.bump(BumpKind.PATCH)
        assert (patch.major, patch.minor, patch.patch) == (v.major, v.minor, v.patch + 1)
        assert minor > v and major > v and patch > v


def test_bump_accepts_strings():
    assert SemanticVersion(1, 2, 0).bump("minor") == SemanticVersion(1, 3, 0)


def test_bump_does_not_mutate():
    v = SemanticVersion(1, 2, 0)
    v.bump(BumpKind.MAJOR)
    assert v == SemanticVersion(1, 2, 0)


def test_bump_overflow_is_malformed():
    with pytest.raises(MalformedVersion):
        SemanticVersion(1, 255, 0).bump(BumpKind.MINOR)


def test_total_order():
    versions = [SemanticVersion.parse(t) for t in ["0.9.9", "1.0.0", "1.0.1", "1.1.0", "2.0.0"]]
    for i, a in enumerate(versions):
        for j, b in enumerate(versions):
            expected = (i > j) - (i < j)
            assert compare(a, b) == expected
            assert compare(b, a) == -expected


def test_compare_equal():
    assert compare(SemanticVersion(1, 2, 3), SemanticVersion.parse("1.2.3")) == 0


def test_compare_major_dominates():
    assert SemanticVersion(2, 0, 0) > SemanticVersion(1, 255, 255)


def test_bump_kind_parse():
    assert BumpKind.parse("MAJOR") is BumpKind.MAJOR
    assert BumpKind.parse(BumpKind.PATCH) is BumpKind.PATCH
    with pytest.raises(ConfigurationError):
        BumpKind.parse("huge")
