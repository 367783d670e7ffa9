"""
Buffer ports — the address-then-write surface the patch engine writes
through, plus an in-memory implementation and a file-backed one.
"""

from __future__ import annotations

import enum
import logging
import os
import re
import shutil
import sys
from typing import Protocol, TextIO

from .line_span import count_lines, line_offset, line_span

logger = logging.getLogger(__name__)

_BYTE_RANGE = re.compile(r"^#(\d+)(?:,#(\d+))?$")
_LINE_RANGE = re.compile(r"^(\d+)(?:,(\d+))?$")
_LINE_POINT = re.compile(r"^(\d+)\+#0$")


class BufferWriteError(RuntimeError):
    """Raised when a buffer rejects an address or a write."""


class AddressError(BufferWriteError):
    """Raised for malformed or out-of-range address specs."""

    def __init__(self, spec: str, reason: str = "bad address"):
        super().__init__(f"{reason}: {spec!r}")
        self.spec = spec


class AddressStyle(enum.Enum):
    """How the coordinator renders the addresses it sends to a port."""
    BYTES = "bytes"   # "#q0,#q1", computed against the old snapshot
    LINES = "lines"   # "n,m" / "n+#0", resolved by the port


def byte_address(q0: int, q1: int) -> str:
    return f"#{q0},#{q1}"


def line_address(start: int, end: int) -> str:
    return f"{start},{end}"


def point_after_line(n: int) -> str:
    return f"{n}+#0"


class BufferPort(Protocol):
    """Capabilities the patch engine needs from a live buffer."""

    def set_address(self, spec: str) -> None: ...

    def write_data(self, data: bytes) -> None: ...

    def begin_undo_group(self) -> None: ...

    def end_undo_group(self) -> None: ...

    def write_diagnostics(self, data: bytes) -> None: ...

    def get_dot(self) -> tuple[int, int]: ...

    def set_dot(self, q0: int, q1: int) -> None: ...


def _shift(pos: int, q0: int, q1: int, n: int) -> int:
    """Where *pos* ends up after ``[q0, q1)`` is replaced by *n* bytes.

    Positions before the write stay put, positions after it move by the
    change in length, and positions inside the replaced text collapse to
    its start.
    """
    if pos <= q0:
        return pos
    if pos >= q1:
        return pos + n - (q1 - q0)
    return q0


class InMemoryBuffer:
    """A buffer held in memory.

    Understands the address forms ``#q0,#q1``, ``#q``, ``n,m``, ``n``,
    ``n+#0`` and ``,``. Writes made between ``begin_undo_group`` and
    ``end_undo_group`` form one undo step; any other write is a step of
    its own.
    """

    def __init__(self, body: bytes = b"") -> None:
        self.body = body
        self.diagnostics = bytearray()
        self.writes: list[tuple[str, bytes]] = []
        self._addr: tuple[int, int] = (0, 0)
        self._addr_spec = "#0,#0"
        self._dot: tuple[int, int] = (0, 0)
        self._undo_stack: list[tuple[bytes, tuple[int, int]]] = []
        self._in_group = False
        self._group_recorded = False

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def set_address(self, spec: str) -> None:
        self._addr = self._resolve(spec)
        self._addr_spec = spec

    def read_address(self) -> tuple[int, int]:
        return self._addr

    def _resolve(self, spec: str) -> tuple[int, int]:
        size = len(self.body)
        if spec == ",":
            return 0, size

        m = _BYTE_RANGE.match(spec)
        if m:
            q0 = int(m.group(1))
            q1 = int(m.group(2)) if m.group(2) is not None else q0
            if q0 > q1 or q1 > size:
                raise AddressError(spec, "address out of range")
            return q0, q1

        nlines = count_lines(self.body)
        m = _LINE_POINT.match(spec)
        if m:
            n = int(m.group(1))
            if n > nlines:
                raise AddressError(spec, "address out of range")
            q = line_offset(self.body, n)
            return q, q

        m = _LINE_RANGE.match(spec)
        if m:
            start = int(m.group(1))
            end = int(m.group(2)) if m.group(2) is not None else start
            if start < 1 or start > end or end > nlines:
                raise AddressError(spec, "address out of range")
            return line_span(self.body, start, end)

        raise AddressError(spec)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_data(self, data: bytes) -> None:
        q0, q1 = self._addr
        if not self._in_group or not self._group_recorded:
            self._undo_stack.append((self.body, self._dot))
            self._group_recorded = self._in_group
        self.body = self.body[:q0] + data + self.body[q1:]
        self.writes.append((self._addr_spec, data))
        # the address now spans the written text
        self._addr = (q0, q0 + len(data))
        d0, d1 = self._dot
        self._dot = self._clamp(_shift(d0, q0, q1, len(data)),
                                _shift(d1, q0, q1, len(data)))

    def write_diagnostics(self, data: bytes) -> None:
        self.diagnostics.extend(data)

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def begin_undo_group(self) -> None:
        self._in_group = True
        self._group_recorded = False

    def end_undo_group(self) -> None:
        self._in_group = False
        self._group_recorded = False

    def undo(self) -> bool:
        """Revert the most recent undo step. Returns False if none is left."""
        if not self._undo_stack:
            return False
        self.body, self._dot = self._undo_stack.pop()
        return True

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    # ------------------------------------------------------------------
    # Dot (selection)
    # ------------------------------------------------------------------

    def get_dot(self) -> tuple[int, int]:
        return self._dot

    def set_dot(self, q0: int, q1: int) -> None:
        self._dot = self._clamp(q0, q1)

    def _clamp(self, q0: int, q1: int) -> tuple[int, int]:
        size = len(self.body)
        q0 = min(max(q0, 0), size)
        q1 = min(max(q1, q0), size)
        return q0, q1


class FileBuffer(InMemoryBuffer):
    """An in-memory buffer loaded from, and flushed back to, a file."""

    def __init__(self, path: str, diagnostics_stream: TextIO | None = None):
        self.path = path
        with open(path, "rb") as f:
            super().__init__(f.read())
        self._stream = diagnostics_stream or sys.stderr

    def write_diagnostics(self, data: bytes) -> None:
        super().write_diagnostics(data)
        self._stream.write(data.decode("utf-8", errors="replace"))
        self._stream.flush()

    def flush(self) -> None:
        """Write the body back to the file atomically via temp file + rename.

        Symlinks are followed so the link target is updated, and the
        target's permission bits are carried over to the new file.
        """
        abs_path = os.path.realpath(self.path)
        tmp_path = abs_path + ".bufpatch_tmp"
        try:
            with open(tmp_path, "wb") as f:
                f.write(self.body)
            if os.path.exists(abs_path):
                shutil.copymode(abs_path, tmp_path)
            os.replace(tmp_path, abs_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("[Buffer] Flushed %d bytes to %s", len(self.body), abs_path)
