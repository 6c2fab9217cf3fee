"""Version parsing and bumping utilities.

Three kinds of versions show up in a Rust project:

- package versions (full semver, e.g. "0.3.0-dev"), handled with
  ``semver.Version``;
- Rust toolchain versions used for the MSRV (``RustVersion``, "1.70" or
  "1.70.0");
- Cargo version requirements on workspace dependencies (``VersionReq``,
  e.g. "^0.3.0-dev" or ">=1.2, <2").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering

import semver

from .errors import RequirementParseError, VersionParseError


def parse_version(version_str: str) -> semver.Version:
    """Parse a semver version string, accepting an optional leading "v".

    Examples:
        "1.2.3" → Version(1, 2, 3)
        "v0.3.0-dev" → Version(0, 3, 0, prerelease="dev")
    """
    text = version_str.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    try:
        return semver.Version.parse(text)
    except ValueError as exc:
        raise VersionParseError(f"invalid version: {version_str!r}") from exc


class Bump(Enum):
    """Which component of a version to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def bump_version(version: semver.Version, level: Bump) -> semver.Version:
    """Increment one component and reset the lower ones.

    Prerelease and build metadata are always dropped:
        1.2.3 + MAJOR → 2.0.0
        1.2.3 + MINOR → 1.3.0
        1.2.3 + PATCH → 1.2.4
    """
    match level:
        case Bump.MAJOR:
            return semver.Version(version.major + 1, 0, 0)
        case Bump.MINOR:
            return semver.Version(version.major, version.minor + 1, 0)
        case Bump.PATCH:
            return semver.Version(version.major, version.minor, version.patch + 1)


def next_dev_version(version: semver.Version) -> semver.Version | None:
    """Return the version a package moves to when development begins.

    A package is either released (no prerelease) or in development
    (prerelease present). Released packages move to the next minor version
    with a "-dev" suffix; packages already in development stay where they
    are, signalled by returning None.

    Examples:
        "0.2.0" → "0.3.0-dev"
        "0.3.0-dev" → None
    """
    if version.prerelease:
        return None
    return bump_version(version, Bump.MINOR).replace(prerelease="dev")


_RUST_VERSION_RE = re.compile(r"v?(\d+)\.(\d+)(?:\.(\d+))?")


@total_ordering
@dataclass(frozen=True)
class RustVersion:
    """A Rust toolchain version of the form X.Y or X.Y.Z."""

    major: int
    minor: int
    patch: int | None = None

    @classmethod
    def parse(cls, text: str) -> RustVersion:
        m = _RUST_VERSION_RE.fullmatch(text)
        if m is None:
            raise VersionParseError(f"invalid Rust version/MSRV: {text!r}")
        patch = int(m.group(3)) if m.group(3) is not None else None
        return cls(int(m.group(1)), int(m.group(2)), patch)

    def _key(self) -> tuple[int, int, int]:
        # A missing patch sorts before every explicit patch
        return (self.major, self.minor, -1 if self.patch is None else self.patch)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RustVersion):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        if self.patch is None:
            return f"{self.major}.{self.minor}"
        return f"{self.major}.{self.minor}.{self.patch}"


class Op(Enum):
    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


_COMPARATOR_RE = re.compile(
    r"""
    (?P<op>=|>=|>|<=|<|~|\^)?
    \s*
    (?P<major>\d+|[*xX])
    (?:\.(?P<minor>\d+|[*xX])
        (?:\.(?P<patch>\d+|[*xX])
            (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
            (?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?
        )?
    )?
    """,
    re.VERBOSE,
)


def _compare_pre(a: str, b: str) -> int:
    """Compare prerelease strings; an empty prerelease is the greatest."""
    return semver.Version(0, 0, 0, prerelease=a or None).compare(
        semver.Version(0, 0, 0, prerelease=b or None)
    )


@dataclass(frozen=True)
class Comparator:
    """One comma-separated term of a Cargo version requirement."""

    op: Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> Comparator:
        m = _COMPARATOR_RE.fullmatch(text.strip())
        if m is None:
            raise RequirementParseError(f"invalid version requirement: {text!r}")
        parts = [m.group("major"), m.group("minor"), m.group("patch")]
        wildcard = any(p is not None and not p.isdigit() for p in parts)
        numbers: list[int | None] = []
        for p in parts:
            if p is None or not p.isdigit():
                break
            numbers.append(int(p))
        if not numbers:
            raise RequirementParseError(
                f"wildcard major version not allowed here: {text!r}"
            )
        if m.group("op"):
            op = Op(m.group("op"))
        else:
            op = Op.WILDCARD if wildcard else Op.CARET
        numbers += [None] * (3 - len(numbers))
        return cls(op, numbers[0], numbers[1], numbers[2], m.group("pre") or "")

    def matches(self, version: semver.Version) -> bool:
        """Evaluate this comparator alone, without the prerelease gate."""
        match self.op:
            case Op.EXACT | Op.WILDCARD:
                return self._matches_exact(version)
            case Op.GREATER:
                return self._matches_greater(version)
            case Op.GREATER_EQ:
                return self._matches_exact(version) or self._matches_greater(version)
            case Op.LESS:
                return self._matches_less(version)
            case Op.LESS_EQ:
                return self._matches_exact(version) or self._matches_less(version)
            case Op.TILDE:
                return self._matches_tilde(version)
            case Op.CARET:
                return self._matches_caret(version)

    def allows_prerelease_of(self, version: semver.Version) -> bool:
        """Whether this comparator opts in to prereleases of ``version``."""
        return (
            bool(self.pre)
            and self.major == version.major
            and self.minor == version.minor
            and self.patch == version.patch
        )

    def _matches_exact(self, v: semver.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return False
        return (v.prerelease or "") == self.pre

    def _matches_greater(self, v: semver.Version) -> bool:
        if v.major != self.major:
            return v.major > self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor > self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch > self.patch
        return _compare_pre(v.prerelease or "", self.pre) > 0

    def _matches_less(self, v: semver.Version) -> bool:
        if v.major != self.major:
            return v.major < self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor < self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch < self.patch
        return _compare_pre(v.prerelease or "", self.pre) < 0

    def _matches_tilde(self, v: semver.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return v.patch > self.patch
        return _compare_pre(v.prerelease or "", self.pre) >= 0

    def _matches_caret(self, v: semver.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return v.minor >= self.minor
            return v.minor == self.minor
        if self.major > 0:
            if v.minor != self.minor:
                return v.minor > self.minor
            if v.patch != self.patch:
                return v.patch > self.patch
        elif self.minor > 0:
            if v.minor != self.minor:
                return False
            if v.patch != self.patch:
                return v.patch > self.patch
        elif v.minor != self.minor or v.patch != self.patch:
            return False
        return _compare_pre(v.prerelease or "", self.pre) >= 0


@dataclass(frozen=True)
class VersionReq:
    """A Cargo version requirement such as "^1.2", "~0.3.1" or ">=1, <2".

    Matching follows Cargo: every comparator must match, and a prerelease
    version only matches if some comparator names the same major.minor.patch
    with a prerelease of its own. A bare version means caret.
    """

    text: str
    comparators: tuple[Comparator, ...]

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        stripped = text.strip()
        if stripped == "*":
            return cls(text, ())
        if not stripped:
            raise RequirementParseError("empty version requirement")
        comparators = tuple(Comparator.parse(part) for part in stripped.split(","))
        return cls(text, comparators)

    def matches(self, version: semver.Version) -> bool:
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.prerelease:
            return True
        return any(c.allows_prerelease_of(version) for c in self.comparators)

    def has_caret_prerelease(self) -> bool:
        """Whether any caret comparator carries a prerelease, e.g. "^0.3.0-dev"."""
        return any(c.op is Op.CARET and c.pre for c in self.comparators)

    def __str__(self) -> str:
        return self.text
