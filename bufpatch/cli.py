"""
CLI entry point — run a command over a file and patch the file with its
output, rewriting only the lines that changed.
"""

import argparse
import shlex
import sys

from .config import Config
from .cli_display import format_stats, setup_logger, summarize, log
from .executor import CommandError, read_stdin, run_transform
from .editing.buffer_port import AddressStyle, FileBuffer
from .editing.diff_invoker import DiffInvocationError, DiffInvoker
from .editing.metrics import log_patch_metric, read_patch_stats
from .editing.patch_coordinator import PatchApplyError, PatchCoordinator


def _fail(message: str) -> int:
    print(f"bufpatch: {message}", file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bufpatch",
        usage="%(prog)s [option ...] FILE [command [argument ...]]",
        description="Execute <command> with FILE on stdin and patch FILE "
                    "with its output. Diagnostics go to stderr.",
        epilog="Options must come before FILE. Everything after FILE is "
               "the command and its arguments, so '%(prog)s doc.txt sort -r' "
               "passes -r to sort.",
    )
    parser.add_argument("file", metavar="FILE", help="The file to patch")
    parser.add_argument("command", nargs=argparse.REMAINDER,
                        help="Command and arguments (default: read stdin)")
    parser.add_argument("--all", action="store_true",
                        help="Replace the file all at once")
    parser.add_argument("--mark", action="store_true",
                        help="Mark each changed region as a separate undo step")
    parser.add_argument("--lines", action="store_true",
                        help="Address hunks by line number instead of byte offset")
    parser.add_argument("--dry-run", action="store_true",
                        help="List the hunks that would be applied; leave FILE alone")
    parser.add_argument("--stats", action="store_true",
                        help="Print rolling patch statistics from the metrics log")
    parser.add_argument("--config", default=None,
                        help="Path to .bufpatch.yaml config file")
    parser.add_argument("--diff-cmd", default=None,
                        help="Diff command to run (default: from config)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Print a summary of the patch to stderr")
    return parser


def _print_plan(path: str, planned) -> None:
    for descriptor in planned.descriptors:
        print(f"{path}: {descriptor.header()}", file=sys.stderr)
    for error in planned.parse_errors:
        print(f"{path}: skipped: {error}", file=sys.stderr)
    print(f"{path}: {len(planned.descriptors)} hunk(s) planned", file=sys.stderr)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]

    # ── 0. Load config ──
    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR)

    # CLI overrides
    diff_command = shlex.split(args.diff_cmd) if args.diff_cmd else cfg.DIFF_COMMAND
    group_undo = cfg.GROUP_UNDO and not args.mark
    address_style = AddressStyle.LINES if args.lines else cfg.ADDRESS_STYLE

    # ── 1. Read the buffer ──
    try:
        buf = FileBuffer(args.file)
    except OSError as e:
        return _fail(f"{args.file}: {e.strerror or e}")
    old = buf.body

    # ── 2. Produce the new contents ──
    try:
        if args.command:
            produced = run_transform(args.command, old,
                                     timeout=cfg.COMMAND_TIMEOUT)
        else:
            produced = read_stdin()
    except CommandError as e:
        return _fail(str(e))

    if produced.stderr:
        buf.write_diagnostics(produced.stderr)
    if produced.failed:
        log.info(f"[CLI] Command failed with status {produced.returncode}, "
                 f"{args.file} left untouched")
        return produced.returncode

    # ── 3. Patch ──
    coordinator = PatchCoordinator(
        buf,
        DiffInvoker(diff_command, accept_status=cfg.make_accept_status()),
        group_undo=group_undo,
        address_style=address_style,
    )
    if args.dry_run:
        try:
            planned = coordinator.plan(old, produced.stdout)
        except DiffInvocationError as e:
            log.error(f"[CLI] {e}")
            return _fail(str(e))
        _print_plan(args.file, planned)
        return 0

    try:
        if args.all:
            result = coordinator.replace_all(old, produced.stdout)
        else:
            result = coordinator.patch(old, produced.stdout)
    except (DiffInvocationError, PatchApplyError) as e:
        # the file is only rewritten on success
        log.error(f"[CLI] {e}")
        return _fail(str(e))

    if result.writes:
        try:
            buf.flush()
        except OSError as e:
            return _fail(f"{args.file}: {e.strerror or e}")

    if cfg.METRICS_ENABLED:
        log_patch_metric({
            "file": args.file,
            "mode": "all" if args.all else "patch",
            "hunks_applied": result.hunks_applied,
            "hunks_skipped": result.hunks_skipped,
            "writes": len(result.writes),
            "noop": not result.writes,
        }, project_root=cfg.METRICS_ROOT)

    if args.verbose:
        print(f"{args.file}: {summarize(result)}", file=sys.stderr)
    if args.stats:
        stats = read_patch_stats(project_root=cfg.METRICS_ROOT)
        print(format_stats(stats), file=sys.stderr)
    return 0
