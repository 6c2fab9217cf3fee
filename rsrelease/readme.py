"""README.md header model.

Only the header convention used by generated projects is understood::

    [![Project Status: WIP](https://www.repostatus.org/badges/latest/wip.svg)](https://www.repostatus.org/#wip)
    [![CI Status](https://github.com/o/r/actions/workflows/test.yml/badge.svg)](https://github.com/o/r/actions/workflows/test.yml)

    [GitHub](https://github.com/o/r) | [crates.io](https://crates.io/crates/r) | [Issues](https://github.com/o/r/issues)

    Everything from here on is kept verbatim.

The badge block, the optional links line and the body are parsed into
``Readme``; rendering an unmodified ``Readme`` gives back the original text.
"""

from __future__ import annotations

import re
from enum import Enum
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from .errors import ReadmeParseError
from .versions import RustVersion

_LINK = r"\[(?P<text>[^\]]+)\]\((?P<url>[^)]+)\)"
_LINK_RE = re.compile(_LINK)
_BADGE_RE = re.compile(
    r"\[!\[(?P<alt>[^\]]+)\]\((?P<url>[^)]+)\)\]\((?P<target>[^)]+)\)"
)
_LINK_PLAIN = r"\[[^\]]+\]\([^)]+\)"
_LINKS_LINE_RE = re.compile(rf"{_LINK_PLAIN}(?: \| {_LINK_PLAIN})*")
_LINK_SEPARATOR_RE = re.compile(r"[ \t]\|[ \t]")
_REPOSTATUS_RE = re.compile(
    r"https://www\.repostatus\.org/badges/latest/(?P<status>[^/]+)\.svg"
)


class Repostatus(Enum):
    """Project status values of the repostatus.org badge convention."""

    ABANDONED = "abandoned"
    ACTIVE = "active"
    CONCEPT = "concept"
    INACTIVE = "inactive"
    MOVED = "moved"
    SUSPENDED = "suspended"
    UNSUPPORTED = "unsupported"
    WIP = "wip"

    @classmethod
    def for_url(cls, url: str) -> Repostatus | None:
        m = _REPOSTATUS_RE.fullmatch(url)
        if m is None:
            return None
        try:
            return cls(m.group("status").lower())
        except ValueError:
            return None


class BadgeKind(Enum):
    REPOSTATUS = "repostatus"
    GITHUB_ACTIONS = "github-actions"
    CODECOV = "codecov"
    MSRV = "msrv"
    LICENSE = "license"


class Badge(BaseModel):
    """A linked badge image: ``[![alt](url)](target)``."""

    url: str
    alt: str
    target: str

    @property
    def kind(self) -> BadgeKind | None:
        """Classify the badge by the shape of its image URL."""
        try:
            parts = urlsplit(self.url)
        except ValueError:
            return None
        segments = parts.path.strip("/").split("/")
        match parts.hostname:
            case "www.repostatus.org":
                if Repostatus.for_url(self.url) is not None:
                    return BadgeKind.REPOSTATUS
            case "github.com":
                if len(segments) == 6 and segments[2:4] == ["actions", "workflows"]:
                    if segments[5] == "badge.svg":
                        return BadgeKind.GITHUB_ACTIONS
            case "codecov.io":
                if (
                    len(segments) == 7
                    and segments[3] == "branch"
                    and segments[5:] == ["graph", "badge.svg"]
                ):
                    return BadgeKind.CODECOV
            case "img.shields.io":
                if len(segments) == 2 and segments[0] == "badge":
                    if segments[1].startswith("MSRV-"):
                        return BadgeKind.MSRV
                if len(segments) == 4 and segments[1] == "license":
                    return BadgeKind.LICENSE
        return None

    @property
    def repostatus(self) -> Repostatus | None:
        return Repostatus.for_url(self.url)

    def __str__(self) -> str:
        return f"[![{self.alt}]({self.url})]({self.target})"


class Link(BaseModel):
    """A Markdown link in the header links line: ``[text](url)``."""

    url: str
    text: str

    def __str__(self) -> str:
        return f"[{self.text}]({self.url})"


def msrv_badge(msrv: RustVersion) -> Badge:
    return Badge(
        url=f"https://img.shields.io/badge/MSRV-{msrv}-orange",
        alt="Minimum Supported Rust Version",
        target="https://www.rust-lang.org",
    )


def repostatus_badge(status: Repostatus) -> Badge:
    """Build the standard badge for a repostatus.org status."""
    descriptions = {
        Repostatus.ACTIVE: (
            "Active – The project has reached a stable, usable state and is"
            " being actively developed."
        ),
        Repostatus.WIP: (
            "WIP – Initial development is in progress, but there has not yet"
            " been a stable, usable release suitable for the public."
        ),
    }
    label = descriptions.get(status, status.value.capitalize())
    return Badge(
        url=f"https://www.repostatus.org/badges/latest/{status.value}.svg",
        alt=f"Project Status: {label}",
        target=f"https://www.repostatus.org/#{status.value}",
    )


class Readme(BaseModel):
    """Badges, header links and verbatim body of a README.md."""

    badges: list[Badge] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    body: str = ""

    @classmethod
    def parse(cls, text: str) -> Readme:
        """Parse README text.

        Raises:
            ReadmeParseError: No leading badge, no blank line after the
                badges, or a malformed links line.
        """
        badges: list[Badge] = []
        pos = 0
        while (end := text.find("\n", pos)) != -1:
            m = _BADGE_RE.fullmatch(text, pos, end)
            if m is None:
                break
            badges.append(Badge(url=m["url"], alt=m["alt"], target=m["target"]))
            pos = end + 1
        if not badges:
            raise ReadmeParseError("README does not start with a badge line")
        if not text.startswith("\n", pos):
            raise ReadmeParseError("expected blank line after badges")
        pos += 1

        links: list[Link] = []
        end = text.find("\n", pos)
        line = text[pos:] if end == -1 else text[pos:end]
        is_links_line = _LINKS_LINE_RE.fullmatch(line) is not None
        blank_follows = end != -1 and text.startswith("\n", end + 1)
        if is_links_line and blank_follows:
            links = [
                Link(url=m["url"], text=m["text"]) for m in _LINK_RE.finditer(line)
            ]
            pos = end + 2
        elif _LINK_SEPARATOR_RE.search(line):
            # Looks like a links line but isn't one
            if not is_links_line:
                raise ReadmeParseError(f"invalid links line: {line!r}")
            raise ReadmeParseError("expected blank line after links")
        return cls(badges=badges, links=links, body=text[pos:])

    def repostatus(self) -> Repostatus | None:
        for badge in self.badges:
            if badge.kind is BadgeKind.REPOSTATUS:
                return badge.repostatus
        return None

    def set_repostatus_badge(self, badge: Badge) -> bool:
        """Replace the repostatus badge, or put ``badge`` first if there is none."""
        for i, existing in enumerate(self.badges):
            if existing.kind is BadgeKind.REPOSTATUS:
                if existing == badge:
                    return False
                self.badges[i] = badge
                return True
        self.badges.insert(0, badge)
        return True

    def set_msrv(self, msrv: RustVersion) -> bool:
        """Point the MSRV badge at ``msrv``.

        An existing MSRV badge keeps its position, alt text and target.
        Otherwise a new badge goes just before the license badge, or at the
        end when there is no license badge.
        """
        new = msrv_badge(msrv)
        for existing in self.badges:
            if existing.kind is BadgeKind.MSRV:
                if existing.url == new.url:
                    return False
                existing.url = new.url
                return True
        for i, existing in enumerate(self.badges):
            if existing.kind is BadgeKind.LICENSE:
                self.badges.insert(i, new)
                return True
        self.badges.append(new)
        return True

    def ensure_crates_links(self, package: str, is_lib: bool) -> bool:
        """Add "crates.io" (and for libraries "Documentation") header links.

        The crates.io link goes right after the "GitHub" link, or first if
        there is none; the docs.rs link goes right after the crates.io link.
        Links already present are left where they are.
        """
        changed = False
        texts = [lnk.text for lnk in self.links]
        if "crates.io" in texts:
            crates_index = texts.index("crates.io")
        else:
            crates_index = texts.index("GitHub") + 1 if "GitHub" in texts else 0
            self.links.insert(
                crates_index,
                Link(url=f"https://crates.io/crates/{package}", text="crates.io"),
            )
            changed = True
        if is_lib and not any(lnk.text == "Documentation" for lnk in self.links):
            self.links.insert(
                crates_index + 1,
                Link(url=f"https://docs.rs/{package}", text="Documentation"),
            )
            changed = True
        return changed

    def ensure_changelog_link(self, url: str) -> bool:
        """Append a "Changelog" header link unless one exists."""
        if any(lnk.text == "Changelog" for lnk in self.links):
            return False
        self.links.append(Link(url=url, text="Changelog"))
        return True

    def __str__(self) -> str:
        out = "".join(f"{b}\n" for b in self.badges) + "\n"
        if self.links:
            out += " | ".join(str(lnk) for lnk in self.links) + "\n\n"
        return out + self.body
