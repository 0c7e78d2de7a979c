"""Expand a root manifest into the packages to check."""

from __future__ import annotations

import logging
from pathlib import Path

from cvm.exceptions import ConfigurationError, CvmError, ManifestNotFound
from cvm.manifest.descriptor import DEFAULT_MANIFEST_NAME, PackageDescriptor

logger = logging.getLogger(__name__)


def load_root(root: str | Path, manifest_name: str = DEFAULT_MANIFEST_NAME) -> PackageDescriptor:
    """Load the root manifest; any failure is a fatal configuration error."""
    root = Path(root)
    try:
        return PackageDescriptor.load(root, manifest_name)
    except ManifestNotFound as e:
        raise ConfigurationError(
            f"cvm must be run in a directory containing a `{manifest_name}` file.\n"
            f"File does not exist at: {root / manifest_name}",
            context=e.context,
        ) from e
    except CvmError as e:
        raise ConfigurationError(
            f"Unreadable workspace manifest {root / manifest_name}: {e}",
            context=e.context,
        ) from e


def enumerate_workspace(
    root: str | Path,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> list[Path]:
    """Return the package directories to check, relative to *root*.

    The root itself comes first, and only when it declares a package.
    Workspace members follow in declaration order, unmodified: no glob
    expansion and no descent into nested workspaces.
    """
    descriptor = load_root(root, manifest_name)

    paths: list[Path] = []
    if descriptor.is_package:
        paths.append(Path("."))
    paths.extend(Path(member) for member in descriptor.workspace_members)

    logger.debug("Workspace at %s has %d package(s): %s", root, len(paths), paths)
    return paths
