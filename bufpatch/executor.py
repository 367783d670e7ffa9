"""
Executor — runs the transformation command whose output becomes the new
buffer contents.
"""

import subprocess
import sys
from dataclasses import dataclass
from typing import Sequence

from .cli_display import log


class CommandError(RuntimeError):
    """Raised when the transformation command cannot be run to completion."""


@dataclass
class CommandResult:
    stdout: bytes
    stderr: bytes
    returncode: int

    @property
    def failed(self) -> bool:
        return self.returncode != 0


def run_transform(args: Sequence[str], stdin_data: bytes,
                  timeout: float | None = None) -> CommandResult:
    """Run *args* with *stdin_data* on stdin and capture both output streams.

    A non-zero exit status is returned, not raised; only a command that
    cannot start or that times out raises :class:`CommandError`.
    """
    if not args:
        raise ValueError("no command given")
    log.debug(f"[Executor] Running: {' '.join(args)}")
    try:
        proc = subprocess.run(
            list(args),
            input=stdin_data,
            capture_output=True,
            timeout=timeout or None,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(f"{args[0]}: timed out after {e.timeout}s") from e
    except OSError as e:
        raise CommandError(f"{args[0]}: {e}") from e

    log.debug(f"[Executor] {args[0]} exited {proc.returncode}, "
              f"{len(proc.stdout)} bytes out, {len(proc.stderr)} bytes err")
    return CommandResult(proc.stdout, proc.stderr, proc.returncode)


def read_stdin() -> CommandResult:
    """Use our own stdin as the command output (no command given)."""
    return CommandResult(sys.stdin.buffer.read(), b"", 0)
