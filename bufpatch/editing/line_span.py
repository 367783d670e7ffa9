"""
Line spans — map 1-based inclusive line ranges onto byte ranges of a buffer.

Line numbers come from a diff computed against the same buffer, so
out-of-range requests degrade to empty spans instead of raising.
"""

from __future__ import annotations


def line_offset(buf: bytes, n: int) -> int:
    """Return the byte offset immediately after the *n*-th newline.

    ``0`` for ``n <= 0``; ``len(buf)`` when *buf* has fewer than *n*
    newlines.
    """
    if n <= 0:
        return 0
    pos = -1
    for _ in range(n):
        pos = buf.find(b"\n", pos + 1)
        if pos < 0:
            return len(buf)
    return pos + 1


def line_span(buf: bytes, start: int, end: int) -> tuple[int, int]:
    """Return ``(q0, q1)`` spanning lines *start* through *end* of *buf*.

    *start* may be one past the last line to denote the end of the buffer.
    An inverted range gives an empty span at the start offset.
    """
    q0 = line_offset(buf, start - 1)
    q1 = line_offset(buf, end)
    return q0, max(q0, q1)


def region(buf: bytes, start: int, end: int) -> bytes:
    """Return the bytes of lines *start* through *end*, newlines included."""
    q0, q1 = line_span(buf, start, end)
    return buf[q0:q1]


def count_lines(buf: bytes) -> int:
    """Number of lines in *buf*, counting an unterminated last line."""
    if not buf:
        return 0
    n = buf.count(b"\n")
    return n if buf.endswith(b"\n") else n + 1
