"""
Patch coordinator — applies the difference between two versions of a
buffer as a series of addressed writes, last hunk first.

Every address is computed against the old snapshot. Walking the hunks in
reverse means a write only ever touches text after the regions still to
be processed, so no offset bookkeeping is needed between writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .buffer_port import (
    AddressStyle, BufferPort, BufferWriteError,
    byte_address, line_address, point_after_line,
)
from .diff_invoker import DiffInvocationError, DiffInvoker
from .hunk_parser import (
    EditDescriptor, EditKind, HunkParseError, HunkParser, ParsedDiff,
)
from .line_span import line_offset, line_span, region

logger = logging.getLogger(__name__)


class PatchApplyError(Exception):
    """Raised when the buffer rejects an address or a write mid-patch.

    Writes issued before the failure stay in the buffer.
    """


@dataclass
class ApplyResult:
    """Result of one patch call."""
    applied: bool = False
    hunks_applied: int = 0
    hunks_skipped: int = 0
    writes: list[tuple[str, bytes]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    noop_reason: str = ""


class PatchCoordinator:
    """Drive diff → parse → reverse-order writes against one buffer."""

    def __init__(
        self,
        port: BufferPort,
        invoker: DiffInvoker | None = None,
        group_undo: bool = True,
        address_style: AddressStyle = AddressStyle.BYTES,
        parser: HunkParser | None = None,
    ) -> None:
        self.port = port
        self.invoker = invoker or DiffInvoker()
        self.group_undo = group_undo
        self.address_style = address_style
        self._parser = parser or HunkParser()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def patch(self, old: bytes, new: bytes,
              group_undo: bool | None = None) -> ApplyResult:
        """Diff *old* against *new* and apply the result to the buffer.

        Raises
        ------
        DiffInvocationError
            If the diff tool fails; nothing has been written yet.
        PatchApplyError
            If the buffer rejects a write.
        """
        if not new:
            logger.info("[Patch] Empty output, leaving buffer alone")
            return ApplyResult(noop_reason="empty output")
        if old == new:
            logger.info("[Patch] No change")
            return ApplyResult(noop_reason="no change")

        diff_text = self._run_diff(old, new)
        return self.apply(old, new, diff_text, group_undo=group_undo)

    def plan(self, old: bytes, new: bytes) -> ParsedDiff:
        """Diff *old* against *new* and return the hunks without writing.

        Malformed headers land in ``parse_errors`` instead of the
        buffer's diagnostics. Empty or unchanged output plans no hunks.
        """
        if not new or old == new:
            return ParsedDiff()
        return self._parser.parse_all(self._run_diff(old, new))

    def apply(self, old: bytes, new: bytes, diff_text: str,
              group_undo: bool | None = None) -> ApplyResult:
        """Apply already computed *diff_text* (old → new) to the buffer."""
        if not new:
            return ApplyResult(noop_reason="empty output")
        if not diff_text.strip():
            return ApplyResult(noop_reason="no diff")

        if group_undo is None:
            group_undo = self.group_undo

        result = ApplyResult()
        lines = diff_text.split("\n")

        if group_undo:
            self.port.begin_undo_group()
        try:
            for line in reversed(lines):
                try:
                    descriptor = self._parser.parse(line)
                except HunkParseError as exc:
                    self._report_skipped(exc, result)
                    continue
                if descriptor is None:
                    continue
                self._apply_hunk(descriptor, old, new, result)
                result.hunks_applied += 1
        finally:
            if group_undo:
                self.port.end_undo_group()

        result.applied = result.hunks_applied > 0
        logger.info(
            "[Patch] Applied %d hunk(s), skipped %d",
            result.hunks_applied, result.hunks_skipped,
        )
        return result

    def replace_all(self, old: bytes, new: bytes) -> ApplyResult:
        """Replace the whole buffer in one write, keeping the dot."""
        if not new:
            return ApplyResult(noop_reason="empty output")
        if old == new:
            return ApplyResult(noop_reason="no change")

        result = ApplyResult()
        try:
            q0, q1 = self.port.get_dot()
            self._write(",", new, result)
            self.port.set_dot(min(q0, len(new)), min(q1, len(new)))
        except BufferWriteError as exc:
            raise PatchApplyError(f"whole-buffer write failed: {exc}") from exc
        result.applied = True
        return result

    def _run_diff(self, old: bytes, new: bytes) -> str:
        output = self.invoker.run(old, new)
        if output.stderr:
            self.port.write_diagnostics(output.stderr)
        if not output.ok:
            raise DiffInvocationError(
                f"diff exited with status {output.returncode}",
                returncode=output.returncode,
                stderr=output.stderr,
            )
        return output.text

    # ------------------------------------------------------------------
    # Single hunk
    # ------------------------------------------------------------------

    def _apply_hunk(self, d: EditDescriptor, old: bytes, new: bytes,
                    result: ApplyResult) -> None:
        data = region(new, d.new_start, d.new_end) if d.reads_new else b""
        address = self._address_for(d, old)
        logger.debug("[Patch] %s -> %s (%d bytes)", d.header(), address, len(data))
        try:
            self._write(address, data, result)
        except BufferWriteError as exc:
            raise PatchApplyError(
                f"hunk {d.header()} rejected at {address}: {exc}"
            ) from exc

    def _address_for(self, d: EditDescriptor, old: bytes) -> str:
        if self.address_style is AddressStyle.LINES:
            if d.kind is EditKind.ADD:
                return point_after_line(d.old_start)
            return line_address(d.old_start, d.old_end)

        if d.kind is EditKind.ADD:
            q = line_offset(old, d.old_start)
            return byte_address(q, q)
        return byte_address(*line_span(old, d.old_start, d.old_end))

    def _write(self, address: str, data: bytes, result: ApplyResult) -> None:
        self.port.set_address(address)
        self.port.write_data(data)
        result.writes.append((address, data))

    def _report_skipped(self, exc: HunkParseError, result: ApplyResult) -> None:
        logger.warning("[Patch] Skipping %s", exc)
        message = f"cannot parse diff: {exc.line}"
        result.errors.append(message)
        result.hunks_skipped += 1
        self.port.write_diagnostics((message + "\n").encode("utf-8"))
