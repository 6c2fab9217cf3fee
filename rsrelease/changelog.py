"""CHANGELOG.md model.

A changelog is a list of sections, newest first. Each section starts with a
header line underlined by a row of hyphens::

    v0.3.0 (in development)
    -----------------------
    - Increase `foo` dependency to `0.3.0`

    v0.2.0 (2024-01-01)
    -------------------
    Initial release

Parsing and re-serializing an unmodified changelog reproduces it exactly.
"""

from __future__ import annotations

import datetime
import re
from typing import Union

import semver
from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    InvalidHeaderError,
    InvariantViolation,
    TextBeforeHeaderError,
    UnexpectedHruleError,
    VersionParseError,
)
from .versions import parse_version

_VERSIONED_HEADER_RE = re.compile(
    r"[vV](?P<version>\S+)[ \t]+"
    r"\((?:(?P<date>\d{4}-\d{2}-\d{2})|(?P<indev>(?i:in development)))\)"
)

_IN_DEVELOPMENT_RE = re.compile(r"in development", re.IGNORECASE)


class _Header(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class Released(_Header):
    """Header of a section for a published version."""

    version: semver.Version
    date: datetime.date

    def __str__(self) -> str:
        return f"v{self.version} ({self.date.isoformat()})"


class InProgress(_Header):
    """Header of a section for a known upcoming version."""

    version: semver.Version

    def __str__(self) -> str:
        return f"v{self.version} (in development)"


class InDevelopment(_Header):
    """Header of a section whose version has not been decided yet."""

    def __str__(self) -> str:
        return "In Development"


ChangelogHeader = Union[Released, InProgress, InDevelopment]


def parse_header(text: str) -> ChangelogHeader:
    """Parse a section header line.

    Matching is case-insensitive for the "in development" parts; the result
    always renders in canonical casing.

    Examples:
        "v1.2.3 (2024-01-01)" → Released(1.2.3, 2024-01-01)
        "V1.2.3 (IN DEVELOPMENT)" → InProgress(1.2.3)
        "In Development" → InDevelopment()
    """
    if _IN_DEVELOPMENT_RE.fullmatch(text):
        return InDevelopment()
    m = _VERSIONED_HEADER_RE.fullmatch(text)
    if m is None:
        raise InvalidHeaderError(text)
    try:
        version = parse_version(m.group("version"))
    except VersionParseError as exc:
        raise InvalidHeaderError(text) from exc
    if m.group("indev") is not None:
        return InProgress(version=version)
    try:
        date = datetime.date.fromisoformat(m.group("date"))
    except ValueError as exc:
        raise InvalidHeaderError(text) from exc
    return Released(version=version, date=date)


def split_lines(text: str) -> list[str]:
    """Split text into lines on "\\n", dropping a trailing "\\r" from each.

    A final newline does not start an extra empty line.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [ln.removesuffix("\r") for ln in lines]


def _is_hrule(line: str) -> bool:
    return len(line) >= 3 and line.strip("-") == ""


class ChangelogSection(BaseModel):
    """One header plus its body text.

    ``content`` holds the body with every line newline-terminated and
    trailing blank lines removed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    header: ChangelogHeader
    content: str = ""

    def upsert_bullet(self, prefix: str, line: str) -> bool:
        """Replace the first line starting with ``prefix``, else append ``line``.

        An appended line goes before any trailing blank lines.

        Returns:
            True if the content changed.
        """
        lines = split_lines(self.content)
        for i, existing in enumerate(lines):
            if existing.startswith(prefix):
                if existing == line:
                    return False
                lines[i] = line
                break
        else:
            trailing = 0
            while lines and lines[-1] == "":
                lines.pop()
                trailing += 1
            lines.append(line)
            lines.extend([""] * trailing)
        self.content = "".join(f"{ln}\n" for ln in lines)
        return True

    def __str__(self) -> str:
        header = str(self.header)
        return f"{header}\n{'-' * len(header)}\n{self.content}"


class Changelog(BaseModel):
    """A parsed CHANGELOG.md, sections ordered newest first."""

    sections: list[ChangelogSection] = Field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> Changelog:
        """Parse changelog text.

        Raises:
            UnexpectedHruleError: An hrule has no header line above it.
            TextBeforeHeaderError: Body text appears before the first header.
            InvalidHeaderError: A header line matches no known form.
        """
        sections: list[ChangelogSection] = []
        header: ChangelogHeader | None = None
        body: list[str] = []
        # One line of lookback: a line only becomes body text once we know
        # the line after it is not an hrule.
        prev: str | None = None

        def flush(current: ChangelogHeader) -> None:
            while body and body[-1] == "":
                body.pop()
            sections.append(
                ChangelogSection(
                    header=current, content="".join(f"{ln}\n" for ln in body)
                )
            )
            body.clear()

        for line in split_lines(text):
            if _is_hrule(line):
                if header is not None:
                    flush(header)
                if prev is None:
                    raise UnexpectedHruleError()
                header = parse_header(prev)
                prev = None
            else:
                if prev is not None:
                    if header is None:
                        raise TextBeforeHeaderError()
                    body.append(prev)
                prev = line
        if prev is not None:
            if header is None:
                raise TextBeforeHeaderError()
            body.append(prev)
        if header is not None:
            flush(header)
        return cls(sections=sections)

    def latest(self) -> ChangelogSection:
        """Return the most recent section.

        Raises:
            InvariantViolation: If the changelog has no sections.
        """
        if not self.sections:
            raise InvariantViolation("No changelog section to update")
        return self.sections[0]

    def __str__(self) -> str:
        rendered = [str(s) for s in self.sections]
        # Bodies with internal blank lines need a wider separator so that
        # section boundaries stay unambiguous.
        sep = "\n\n" if any("\n\n" in s for s in rendered) else "\n"
        return sep.join(rendered)
