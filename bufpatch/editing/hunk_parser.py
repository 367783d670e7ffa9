"""
Hunk parser — turns the header lines of a normal-format line diff
(``2,3c2``, ``4a5,6``, ``7d6``) into edit descriptors.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Detail lines carry content, not addresses
_DETAIL_PREFIXES = ("<", "-", ">", "\\")

_HEADER_PATTERN = re.compile(
    r"^(?P<o1>\d+)(?:,(?P<o2>\d+))?(?P<op>[acd])(?P<n1>\d+)(?:,(?P<n2>\d+))?$"
)


class HunkParseError(ValueError):
    """Raised when a line looks like a hunk header but cannot be parsed."""

    def __init__(self, line: str, reason: str = "malformed hunk header"):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class EditKind(enum.Enum):
    ADD = "a"
    CHANGE = "c"
    DELETE = "d"


@dataclass(frozen=True)
class EditDescriptor:
    """One hunk: OLD lines to address, NEW lines supplying content."""
    old_start: int
    old_end: int
    kind: EditKind
    new_start: int
    new_end: int

    def __post_init__(self) -> None:
        if self.old_start > self.old_end or self.new_start > self.new_end:
            raise ValueError(f"inverted range in hunk {self.header()}")

    @property
    def reads_new(self) -> bool:
        return self.kind is not EditKind.DELETE

    def header(self) -> str:
        """Render the descriptor back into diff header form."""
        return (
            f"{_format_range(self.old_start, self.old_end)}"
            f"{self.kind.value}"
            f"{_format_range(self.new_start, self.new_end)}"
        )


@dataclass
class ParsedDiff:
    """Every descriptor of a diff text, in diff order, plus parse errors."""
    descriptors: list[EditDescriptor] = field(default_factory=list)
    parse_errors: list[str] = field(default_factory=list)

    @property
    def parse_successful(self) -> bool:
        return not self.parse_errors


def _format_range(start: int, end: int) -> str:
    return str(start) if start == end else f"{start},{end}"


class HunkParser:
    """Parse normal-format diff output one line at a time."""

    def parse(self, line: str) -> EditDescriptor | None:
        """Parse one line of diff output.

        Returns
        -------
        EditDescriptor | None
            The hunk described by a header line, or None for empty and
            detail lines.

        Raises
        ------
        HunkParseError
            If the line is neither a detail line nor a valid header.
        """
        line = line.rstrip("\r")
        if not line:
            return None
        if line.startswith(_DETAIL_PREFIXES):
            return None

        m = _HEADER_PATTERN.match(line)
        if not m:
            raise HunkParseError(line)

        old_start = int(m.group("o1"))
        old_end = int(m.group("o2") or old_start)
        new_start = int(m.group("n1"))
        new_end = int(m.group("n2") or new_start)
        kind = EditKind(m.group("op"))

        if kind is EditKind.ADD and old_start != old_end:
            raise HunkParseError(line, "add hunk with an old range")
        try:
            return EditDescriptor(old_start, old_end, kind, new_start, new_end)
        except ValueError:
            raise HunkParseError(line, "inverted line range") from None

    def parse_all(self, diff_text: str) -> ParsedDiff:
        """Parse a whole diff text, collecting descriptors and errors."""
        result = ParsedDiff()
        for line in diff_text.split("\n"):
            try:
                descriptor = self.parse(line)
            except HunkParseError as exc:
                logger.warning("[Patch] Skipping %s", exc)
                result.parse_errors.append(str(exc))
                continue
            if descriptor is not None:
                result.descriptors.append(descriptor)
        return result
