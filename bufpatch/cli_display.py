import logging
import os
from datetime import datetime

from .editing.patch_coordinator import ApplyResult


def setup_logger(log_dir: str = ".bufpatch/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"bufpatch_{timestamp}.log")

    logger = logging.getLogger("bufpatch")
    logger.setLevel(logging.DEBUG)

    # one file handler per process
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


# Package logger; handlers are attached by setup_logger()
log = logging.getLogger("bufpatch")


def summarize(result: ApplyResult) -> str:
    """One-line, human readable summary of a patch run."""
    if result.noop_reason:
        return f"unchanged ({result.noop_reason})"
    nbytes = sum(len(data) for _, data in result.writes)
    text = (f"{result.hunks_applied} hunk(s) applied, "
            f"{len(result.writes)} write(s), {nbytes} byte(s)")
    if result.hunks_skipped:
        text += f", {result.hunks_skipped} skipped"
    return text


def format_stats(stats: dict) -> str:
    """Render ``read_patch_stats`` output as one line."""
    if not stats["total_patches"]:
        return "no patch metrics recorded"
    text = (f"{stats['total_patches']} patch(es), "
            f"{stats['avg_hunks_applied']:.1f} hunk(s) avg, "
            f"{stats['skip_rate']:.0f}% skipped, "
            f"{stats['noop_rate']:.0f}% no-op")
    if stats["modes"]:
        modes = ", ".join(f"{mode} {pct:.0f}%"
                          for mode, pct in stats["modes"].items())
        text += f" ({modes})"
    return text
