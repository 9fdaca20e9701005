"""
OSGi version semantics.

Artifact versions are free-form strings, but conflict resolution and
deduplication compare them the OSGi way: three numeric components and a
qualifier, missing components default to zero, the qualifier compares as
a plain string and an empty qualifier sorts first. So "1", "1.0" and
"1.0.0" are equal and "1.0.0" < "1.0.0.A" < "1.0.0.SNAPSHOT".

Maven versions are converted leniently (`1.0-SNAPSHOT`, `2_1`, ...) by
`from_maven`; `parse` accepts only the strict OSGi syntax.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, List, Optional

from .errors import InvalidInputError

_NUMBER = re.compile(r"[0-9]+")
_QUALIFIER = re.compile(r"[0-9A-Za-z_\-]*")


def _parse_int(value: Optional[str], version: str) -> int:
    if value is None or not _NUMBER.fullmatch(value):
        raise InvalidInputError(f"Invalid version {version}", version)
    return int(value)


def _sanitize_qualifier(qualifier: str) -> str:
    return "".join(c if (c.isascii() and c.isalnum()) or c in "_-" else "_" for c in qualifier)


@dataclass(frozen=True, order=True)
class OsgiVersion:
    """
    An OSGi version: major.minor.micro.qualifier.

    Field order matters: the generated ordering compares the numeric parts
    first and the qualifier last.
    """

    major: int = 0
    minor: int = 0
    micro: int = 0
    qualifier: str = ""

    EMPTY: ClassVar["OsgiVersion"]

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.micro) < 0:
            raise InvalidInputError(f"Negative version component in {self}")
        if not _QUALIFIER.fullmatch(self.qualifier):
            raise InvalidInputError(f"Invalid version qualifier {self.qualifier!r}", self.qualifier)

    @classmethod
    def parse(cls, text: str) -> "OsgiVersion":
        """
        Parse a strict OSGi version string.

        Args:
            text: Up to four dot-separated parts, e.g. "1.8" or "1.2.3.rc1".

        Returns:
            The parsed version; an empty string yields EMPTY.

        Raises:
            InvalidInputError: If the text is not a valid OSGi version.
        """
        text = text.strip()
        if not text:
            return cls.EMPTY
        parts = text.split(".", 3)
        major = _parse_int(parts[0], text)
        minor = _parse_int(parts[1], text) if len(parts) > 1 else 0
        micro = _parse_int(parts[2], text) if len(parts) > 2 else 0
        qualifier = parts[3] if len(parts) > 3 else ""
        return cls(major, minor, micro, qualifier)

    @classmethod
    def from_maven(cls, version: str) -> "OsgiVersion":
        """
        Convert a Maven-style version string to an OSGi version.

        Handles dash qualifiers (`1.0-SNAPSHOT`), underscore separated
        numbers (`1_2`), more than four parts (folded into the qualifier)
        and illegal qualifier characters (replaced by `_`).

        Raises:
            InvalidInputError: If a numeric part is not a number.
        """
        parts: List[Optional[str]] = list(version.split("."))
        while len(parts) > 1 and parts[-1] == "":
            parts.pop()

        if len(parts) < 4:
            last = parts[-1] or ""
            pos = last.find("-")
            if pos != -1:
                count = len(parts)
                parts = [
                    parts[0] if count > 1 else last[:pos],
                    parts[1] if count > 2 else (last[:pos] if count > 1 else "0"),
                    parts[2] if count > 3 else (last[:pos] if count > 2 else "0"),
                    last[pos + 1:],
                ]
            else:
                # strange versions like NUMBER_NUMBER
                i = 0
                while i < len(parts):
                    part = parts[i] or ""
                    pos = part.find("_")
                    if pos != -1 and pos < len(part) - 1:
                        parts[i:i + 1] = [part[:pos], part[pos + 1:]]
                    i += 1

        if len(parts) >= 4:
            micro = parts[2] or ""
            pos = micro.find("-")
            if pos != -1:
                parts[3] = micro[pos + 1:] + "." + (parts[3] or "")
                parts[2] = micro[:pos]

        if len(parts) > 4:
            parts = parts[:3] + [".".join(p or "" for p in parts[3:])]

        qualifier = _sanitize_qualifier(parts[3] or "") if len(parts) > 3 else ""
        major = _parse_int(parts[0], version)
        minor = _parse_int(parts[1], version) if len(parts) > 1 else 0
        micro_value = _parse_int(parts[2], version) if len(parts) > 2 else 0
        return cls(major, minor, micro_value, qualifier)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.micro}"
        return f"{base}.{self.qualifier}" if self.qualifier else base


OsgiVersion.EMPTY = OsgiVersion()


def try_osgi_version(version: str) -> Optional[OsgiVersion]:
    """Convert a Maven version, returning None if it has no OSGi reading."""
    try:
        return OsgiVersion.from_maven(version)
    except InvalidInputError:
        return None


def compare_versions(first: str, second: str) -> int:
    """
    Compare two version strings.

    Uses OSGi semantics when both convert, plain string comparison
    otherwise.

    Returns:
        Negative, zero or positive like a classic comparator.
    """
    v1 = try_osgi_version(first)
    v2 = try_osgi_version(second)
    if v1 is not None and v2 is not None:
        return (v1 > v2) - (v1 < v2)
    return (first > second) - (first < second)
