"""
Diff invoker — runs an external line-oriented diff tool over two buffer
versions and hands back its raw output and exit status.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

# diff(1): 0 = no differences, 1 = differences found, >1 = trouble
DEFAULT_OK_STATUSES = (0, 1)


class DiffInvocationError(RuntimeError):
    """Raised when the diff tool cannot run or exits with a rejected status."""

    def __init__(self, message: str, returncode: int | None = None,
                 stderr: bytes = b""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def default_accept_status(returncode: int) -> bool:
    """Accept the statuses diff(1) uses for "same" and "different"."""
    return returncode in DEFAULT_OK_STATUSES


def accept_statuses(codes: Sequence[int]) -> Callable[[int], bool]:
    """Build an accept-status predicate from a list of exit codes."""
    allowed = frozenset(codes)
    return lambda returncode: returncode in allowed


@dataclass
class DiffOutput:
    """Raw result of one diff run."""
    stdout: bytes
    stderr: bytes
    returncode: int
    accept_status: Callable[[int], bool] = default_accept_status
    encoding: str = "utf-8"

    @property
    def ok(self) -> bool:
        return self.accept_status(self.returncode)

    @property
    def text(self) -> str:
        # headers are ASCII; content lines are ignored downstream
        return self.stdout.decode(self.encoding, errors="replace")


class DiffInvoker:
    """Run ``<command> OLD NEW`` and capture its output."""

    def __init__(
        self,
        command: Sequence[str] = ("diff",),
        accept_status: Callable[[int], bool] = default_accept_status,
        encoding: str = "utf-8",
        tmp_prefix: str = "bufpatch_",
    ) -> None:
        if not command:
            raise ValueError("diff command must not be empty")
        self.command = list(command)
        self.accept_status = accept_status
        self.encoding = encoding
        self._tmp_prefix = tmp_prefix

    def run(self, old: bytes, new: bytes) -> DiffOutput:
        """Diff *old* against *new*.

        Both versions are written to temporary files which are removed
        afterwards. The exit status is recorded but not judged here; use
        ``DiffOutput.ok``.

        Raises
        ------
        DiffInvocationError
            If the temporary files cannot be written or the diff tool
            cannot be started.
        """
        paths: list[str] = []
        try:
            try:
                for data in (old, new):
                    self._tempfile(data, paths)
            except OSError as exc:
                raise DiffInvocationError(
                    f"cannot write temporary file: {exc}"
                ) from exc
            cmd = self.command + paths
            logger.debug("[Diff] Running %s", " ".join(cmd))
            try:
                proc = subprocess.run(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    check=False,
                )
            except OSError as exc:
                raise DiffInvocationError(
                    f"cannot run {self.command[0]}: {exc}"
                ) from exc
        finally:
            for path in paths:
                try:
                    os.unlink(path)
                except OSError:
                    pass

        logger.debug(
            "[Diff] Exit status %d, %d bytes of output",
            proc.returncode, len(proc.stdout),
        )
        return DiffOutput(
            stdout=proc.stdout,
            stderr=proc.stderr,
            returncode=proc.returncode,
            accept_status=self.accept_status,
            encoding=self.encoding,
        )

    def _tempfile(self, data: bytes, paths: list[str]) -> None:
        fd, path = tempfile.mkstemp(prefix=self._tmp_prefix)
        # recorded before writing so a failed write is still cleaned up
        paths.append(path)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
