"""Reading the `source.properties` file shipped with SDK and NDK packages."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

_REVISION_RE = re.compile(
    r"(?P<version>(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)"
    r"(-beta(?P<beta>[0-9]+))?)"
)
_ENTRY_RE = re.compile(r"((?:\\.|[^\\=:\s])*)[ \t\f]*[=:]?[ \t\f]*(.*)", re.DOTALL)
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(text: str) -> str:
    out = []
    chars = iter(text)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        escaped = next(chars, "")
        if escaped == "u":
            digits = "".join(next(chars, "") for _ in range(4))
            if len(digits) != 4 or any(d not in string.hexdigits for d in digits):
                raise ValueError(f"malformed \\u escape in {text!r}")
            out.append(chr(int(digits, 16)))
        else:
            out.append(_ESCAPES.get(escaped, escaped))
    return "".join(out)


def _ends_with_continuation(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_entry(line: str) -> tuple[str, str]:
    match = _ENTRY_RE.match(line)
    assert match is not None
    return _unescape(match.group(1)), _unescape(match.group(2))


def parse_properties(stream: Iterable[str]) -> dict[str, str]:
    """Parse Java-style properties from an iterable of text lines."""
    props: dict[str, str] = {}
    pending: list[str] = []
    for raw in stream:
        line = raw.rstrip("\r\n").lstrip(" \t\f")
        if not pending and (not line or line[0] in "#!"):
            continue
        if _ends_with_continuation(line):
            pending.append(line[:-1])
            continue
        pending.append(line)
        key, value = _split_entry("".join(pending))
        props[key] = value
        pending = []
    if pending:
        key, value = _split_entry("".join(pending))
        props[key] = value
    return props


class RevisionError(ValueError):
    """A revision string could not be understood."""

    def __init__(self, revision: str):
        super().__init__(f"Failed to match regex in string {revision!r}")
        self.revision = revision


@dataclass(frozen=True)
class Revision:
    """A package revision: a version triple with an optional beta number."""

    major: int = 0
    minor: int = 0
    patch: int = 0
    beta: int | None = None

    @classmethod
    def parse(cls, text: str) -> Revision:
        match = _REVISION_RE.search(text)
        if match is None:
            raise RevisionError(text)
        beta = match.group("beta")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            beta=int(beta) if beta is not None else None,
        )

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.beta is not None:
            text += f"-beta{self.beta}"
        return text


class PkgError(ValueError):
    """The `Pkg` entries of a properties file are missing or invalid."""


class SourcePropsError(Exception):
    """A `source.properties` file could not be read."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class SourceProps:
    """The parts of `source.properties` this package cares about."""

    revision: Revision

    @classmethod
    def from_props(cls, props: Mapping[str, str]) -> SourceProps:
        try:
            text = props["Pkg.Revision"]
        except KeyError:
            raise PkgError("`Pkg.Revision` missing.") from None
        try:
            return cls(revision=Revision.parse(text))
        except RevisionError as err:
            raise PkgError(f"Failed to parse `Pkg.Revision`: {err}") from err

    @classmethod
    def from_path(cls, path: str | Path) -> SourceProps:
        path = Path(path)
        try:
            with path.open(encoding="latin-1") as handle:
                try:
                    props = parse_properties(handle)
                except ValueError as err:
                    raise SourcePropsError(
                        f"Failed to parse {str(path)!r}: {err}", path
                    ) from err
        except OSError as err:
            raise SourcePropsError(f"Failed to open {str(path)!r}: {err}", path) from err
        try:
            return cls.from_props(props)
        except PkgError as err:
            raise SourcePropsError(
                f"Failed to parse `Pkg` in {str(path)!r}: {err}", path
            ) from err