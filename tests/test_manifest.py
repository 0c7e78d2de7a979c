"""Tests for package descriptors and workspace enumeration."""

import tempfile
from pathlib import Path

import pytest

from cvm.exceptions import ConfigurationError, ManifestNotFound, ManifestParseError, MalformedVersion
from cvm.manifest.descriptor import PackageDescriptor, parse_manifest
from cvm.manifest.workspace import enumerate_workspace
from cvm.models.version import SemanticVersion

PACKAGE_TOML = """\
[package]
name = "lib-a"
version = "1.2.0"

[dependencies]
serde = "1.0.0"
"""

WORKSPACE_TOML = """\
[workspace]
members = ["crates/lib-b", "lib-a"]
"""

MIXED_TOML = """\
[package]
name = "app"
version = "0.3.1"

[workspace]
members = ["lib-a"]
"""


def _write(root: Path, rel: str, content: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


# --- Descriptor Tests ---


def test_parse_manifest_bytes():
    data = parse_manifest(PACKAGE_TOML.encode())
    assert data["package"]["version"] == "1.2.0"


def test_parse_manifest_invalid_toml():
    with pytest.raises(ManifestParseError):
        parse_manifest(b"[package\nversion = ")


def test_parse_manifest_invalid_utf8():
    with pytest.raises(ManifestParseError):
        parse_manifest(b"\xff\xfe[package]")


def test_descriptor_package():
    d = PackageDescriptor.from_bytes(PACKAGE_TOML, Path("lib-a"))
    assert d.declared_version == SemanticVersion(1, 2, 0)
    assert d.name == "lib-a"
    assert d.is_package
    assert not d.is_workspace_root
    assert d.workspace_members == ()


def test_descriptor_workspace_root():
    d = PackageDescriptor.from_bytes(WORKSPACE_TOML, Path("."))
    assert d.declared_version is None
    assert d.is_workspace_root
    assert d.workspace_members == ("crates/lib-b", "lib-a")


def test_descriptor_package_without_version_is_malformed():
    with pytest.raises(MalformedVersion):
        PackageDescriptor.from_bytes('[package]\nname = "x"\n', Path("x"))


def test_descriptor_inherited_version_is_malformed():
    with pytest.raises(MalformedVersion):
        PackageDescriptor.from_bytes('[package]\nname = "x"\nversion.workspace = true\n', Path("x"))


def test_descriptor_bad_members():
    with pytest.raises(ManifestParseError):
        PackageDescriptor.from_bytes('[workspace]\nmembers = "lib-a"\n', Path("."))


def test_descriptor_load_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ManifestNotFound):
            PackageDescriptor.load(tmpdir)


def test_descriptor_load_custom_manifest_name():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Package.toml", PACKAGE_TOML)
        d = PackageDescriptor.load(root, "Package.toml")
        assert d.declared_version == SemanticVersion(1, 2, 0)
        assert d.path == root


# --- Workspace Tests ---


def test_enumerate_single_package():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Cargo.toml", PACKAGE_TOML)
        assert enumerate_workspace(root) == [Path(".")]


def test_enumerate_aggregator_excludes_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Cargo.toml", WORKSPACE_TOML)
        assert enumerate_workspace(root) == [Path("crates/lib-b"), Path("lib-a")]


def test_enumerate_mixed_root_comes_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Cargo.toml", MIXED_TOML)
        assert enumerate_workspace(root) == [Path("."), Path("lib-a")]


def test_enumerate_does_not_expand_members():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Cargo.toml", '[workspace]\nmembers = ["crates/*", "nested"]\n')
        _write(root, "nested/Cargo.toml", '[workspace]\nmembers = ["deeper"]\n')
        assert enumerate_workspace(root) == [Path("crates/*"), Path("nested")]


def test_enumerate_missing_root_manifest_is_fatal():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigurationError) as exc:
            enumerate_workspace(tmpdir)
        assert "Cargo.toml" in str(exc.value)


def test_enumerate_unreadable_root_manifest_is_fatal():
    with tempfile.TemporaryDirectory() as tmpdir:
        _write(Path(tmpdir), "Cargo.toml", "[workspace\n")
        with pytest.raises(ConfigurationError):
            enumerate_workspace(tmpdir)
