"""
bufpatch — incremental buffer patching.

Public API for library usage::

    from bufpatch import PatchCoordinator, InMemoryBuffer

    buf = InMemoryBuffer(b"a\nb\nc\n")
    PatchCoordinator(buf).patch(buf.body, b"a\nX\nc\n")
"""

from .editing import (
    PatchCoordinator, ApplyResult, PatchApplyError,
    InMemoryBuffer, FileBuffer, BufferPort, AddressStyle,
    DiffInvoker, DiffInvocationError, HunkParser, EditDescriptor, EditKind,
)

__all__ = [
    "PatchCoordinator", "ApplyResult", "PatchApplyError",
    "InMemoryBuffer", "FileBuffer", "BufferPort", "AddressStyle",
    "DiffInvoker", "DiffInvocationError", "HunkParser", "EditDescriptor",
    "EditKind",
]
