"""Exception hierarchy for rsrelease.

Every failure is fatal: library code raises one of these and the CLI turns
it into a non-zero exit with the message on stderr. Nothing is retried.

- ParseError: malformed header/badge/copyright/version text.
- InvariantViolation: a file lacks something the command needs to update.
- ConsistencyError: tags, manifests and the workspace disagree with each
  other, usually meaning the repository is out of sync.
"""

from __future__ import annotations


class RsReleaseError(Exception):
    """Base class for all errors raised by rsrelease."""


class ParseError(RsReleaseError, ValueError):
    """Text could not be parsed into the expected structure."""


class ChangelogParseError(ParseError):
    """CHANGELOG.md does not follow the section/hrule layout."""


class UnexpectedHruleError(ChangelogParseError):
    def __init__(self) -> None:
        super().__init__("unexpected hrule")


class TextBeforeHeaderError(ChangelogParseError):
    def __init__(self) -> None:
        super().__init__("text before first header")


class InvalidHeaderError(ChangelogParseError):
    def __init__(self, header: str) -> None:
        super().__init__(f"invalid changelog header title: {header!r}")
        self.header = header


class ReadmeParseError(ParseError):
    """README.md lacks the badge/link header layout."""


class CopyrightParseError(ParseError):
    """A line is not a well-formed copyright line."""


class VersionParseError(ParseError):
    """A version string (semver or Rust version) is malformed."""


class RequirementParseError(ParseError):
    """A Cargo version requirement is malformed."""


class InvariantViolation(RsReleaseError):
    """A file is missing content that the command must update."""


class ConsistencyError(RsReleaseError):
    """Git tags, manifests, or the workspace graph contradict each other."""


class FileParseError(ParseError):
    """A package file (CHANGELOG.md, README.md) failed to parse."""

    def __init__(self, filename: str, cause: ParseError) -> None:
        super().__init__(f"failed to parse {filename}: {cause}")
        self.filename = filename
        self.cause = cause
