"""Semantic version value type and bump kinds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cvm.exceptions import ConfigurationError, MalformedVersion

# Components are stored as unsigned bytes.
COMPONENT_MAX = 255


class BumpKind(Enum):
    """Which component a version bump increments."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @classmethod
    def parse(cls, value: str | BumpKind) -> BumpKind:
        """Map a CLI/config string (``major``, ``minor``, ``patch``) to a kind."""
        if isinstance(value, BumpKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Invalid option: {value!r}. Must be one of: major, minor, patch",
                context={"semver": value},
            ) from None


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """An immutable ``major.minor.patch`` triple.

    Field order doubles as the total order: major, then minor, then patch.
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedVersion(f"Version component {name} must be an integer, got {value!r}")
            if not 0 <= value <= COMPONENT_MAX:
                raise MalformedVersion(
                    f"Version component {name}={value} is outside 0-{COMPONENT_MAX}"
                )

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse ``"1.2.3"``.

        Raises:
            MalformedVersion: Fewer than three components, a non-numeric
                component, or a component outside 0-255.
        """
        if not isinstance(text, str):
            raise MalformedVersion(f"Invalid version number: {text!r}")

        parts = text.strip().split(".")
        numbers: list[int] = []
        for part in parts:
            if not part.isdigit() or not part.isascii():
                raise MalformedVersion(f"Invalid version number: {text!r}")
            numbers.append(int(part))

        if len(numbers) < 3:
            raise MalformedVersion(f"Invalid version number: {text!r}")

        try:
            return cls(numbers[0], numbers[1], numbers[2])
        except MalformedVersion as e:
            raise MalformedVersion(f"Invalid version number: {text!r} ({e})") from None

    def bump(self, kind: BumpKind | str) -> SemanticVersion:
        """Return the next version for *kind*; lower components reset to zero."""
        kind = BumpKind.parse(kind)
        if kind is BumpKind.MAJOR:
            return SemanticVersion(self.major + 1, 0, 0)
        if kind is BumpKind.MINOR:
            return SemanticVersion(self.major, self.minor + 1, 0)
        return SemanticVersion(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def compare(a: SemanticVersion, b: SemanticVersion) -> int:
    """Three-way comparison: -1 if a < b, 0 if equal, 1 if a > b."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0
