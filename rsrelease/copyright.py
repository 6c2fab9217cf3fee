"""Copyright line parsing for LICENSE files.

A copyright line looks like::

    Copyright (c) 2021-2023, 2025 Jane Doe

The text up to the first year is kept verbatim so that unusual spacing or a
missing "(c)" survives a rewrite. Years are held in a ``YearSet`` so that
adding the current year to "2021-2022" yields "2021-2023".
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

from .errors import CopyrightParseError, InvariantViolation

_YEAR_TOKEN = r"\d+(?:\s*-\s*\d+)?"

_COPYRIGHT_RE = re.compile(
    rf"(?P<prefix>\s*Copyright\s+(?:\([cC]\)\s+)?)"
    rf"(?P<years>{_YEAR_TOKEN}(?:\s*,\s*{_YEAR_TOKEN})*)"
    r"\s+(?P<authors>.*)",
    re.DOTALL,
)

_RANGE_RE = re.compile(r"(\d+)(?:\s*-\s*(\d+))?")


class YearSet:
    """A set of years stored as sorted, disjoint, non-adjacent ranges."""

    def __init__(self, ranges: Iterable[tuple[int, int]] = ()) -> None:
        self._ranges: list[tuple[int, int]] = []
        for start, end in ranges:
            self.add(start, end)

    def add(self, start: int, end: int | None = None) -> None:
        """Insert the inclusive range start..end, merging with neighbours."""
        if end is None:
            end = start
        if end < start:
            raise ValueError(f"reversed year range: {start}-{end}")
        merged: list[tuple[int, int]] = []
        for lo, hi in self._ranges:
            if hi + 1 < start or end + 1 < lo:
                merged.append((lo, hi))
            else:
                start, end = min(lo, start), max(hi, end)
        merged.append((start, end))
        merged.sort()
        self._ranges = merged

    def update(self, years: Iterable[int]) -> None:
        for y in years:
            self.add(y)

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return iter(self._ranges)

    def __contains__(self, year: object) -> bool:
        return isinstance(year, int) and any(
            lo <= year <= hi for lo, hi in self._ranges
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, YearSet):
            return NotImplemented
        return self._ranges == other._ranges

    def __repr__(self) -> str:
        return f"YearSet({self._ranges!r})"

    def __str__(self) -> str:
        return ", ".join(
            str(lo) if lo == hi else f"{lo}-{hi}" for lo, hi in self._ranges
        )


class CopyrightLine:
    """A parsed ``Copyright (c) YEARS AUTHORS`` line."""

    def __init__(self, prefix: str, years: YearSet, authors: str) -> None:
        self.prefix = prefix
        self.years = years
        self.authors = authors

    @classmethod
    def parse(cls, line: str) -> CopyrightLine:
        m = _COPYRIGHT_RE.fullmatch(line)
        if m is None:
            raise CopyrightParseError(f"invalid copyright line: {line!r}")
        years = YearSet()
        # The years group is already validated, so the ranges are exactly
        # the "N" and "N-M" runs in it
        for rm in _RANGE_RE.finditer(m.group("years")):
            start = int(rm.group(1))
            end = int(rm.group(2)) if rm.group(2) is not None else None
            try:
                years.add(start, end)
            except ValueError as exc:
                raise CopyrightParseError(
                    f"invalid copyright line: {line!r}: {exc}"
                ) from exc
        return cls(m.group("prefix"), years, m.group("authors"))

    def add_year(self, year: int) -> None:
        self.years.add(year)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CopyrightLine):
            return NotImplemented
        return (self.prefix, self.years, self.authors) == (
            other.prefix,
            other.years,
            other.authors,
        )

    def __repr__(self) -> str:
        return (
            f"CopyrightLine(prefix={self.prefix!r}, years={self.years!r},"
            f" authors={self.authors!r})"
        )

    def __str__(self) -> str:
        return f"{self.prefix}{self.years} {self.authors}"


def update_copyright_years(text: str, years: Iterable[int]) -> str:
    """Add years to the first copyright line in a LICENSE text.

    Every other line, including line endings, is returned untouched.

    Raises:
        InvariantViolation: If no line parses as a copyright line.
    """
    lines = text.split("\n")
    for i, line in enumerate(lines):
        body = line.removesuffix("\r")
        try:
            crl = CopyrightLine.parse(body)
        except CopyrightParseError:
            continue
        crl.years.update(years)
        lines[i] = str(crl) + line[len(body) :]
        return "\n".join(lines)
    raise InvariantViolation("copyright line not found in LICENSE")
