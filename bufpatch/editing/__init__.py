"""Incremental buffer patching — diff two versions, write only what changed."""

from .line_span import line_offset, line_span, region, count_lines
from .hunk_parser import (
    HunkParser, HunkParseError, EditDescriptor, EditKind, ParsedDiff,
)
from .diff_invoker import (
    DiffInvoker, DiffOutput, DiffInvocationError,
    default_accept_status, accept_statuses,
)
from .buffer_port import (
    BufferPort, InMemoryBuffer, FileBuffer, AddressStyle,
    BufferWriteError, AddressError,
)
from .patch_coordinator import PatchCoordinator, ApplyResult, PatchApplyError
from .metrics import log_patch_metric, read_patch_stats

__all__ = [
    "line_offset", "line_span", "region", "count_lines",
    "HunkParser", "HunkParseError", "EditDescriptor", "EditKind", "ParsedDiff",
    "DiffInvoker", "DiffOutput", "DiffInvocationError",
    "default_accept_status", "accept_statuses",
    "BufferPort", "InMemoryBuffer", "FileBuffer", "AddressStyle",
    "BufferWriteError", "AddressError",
    "PatchCoordinator", "ApplyResult", "PatchApplyError",
    "log_patch_metric", "read_patch_stats",
]
