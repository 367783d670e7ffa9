"""Tests for the CLI summary helpers."""

from bufpatch.cli_display import format_stats, summarize
from bufpatch.editing.patch_coordinator import ApplyResult


class TestSummarize:
    def test_noop(self):
        assert summarize(ApplyResult(noop_reason="no change")) == "unchanged (no change)"

    def test_counts(self):
        result = ApplyResult(applied=True, hunks_applied=2, hunks_skipped=1,
                             writes=[("#0,#2", b"ab"), ("#4", b"c")])
        assert summarize(result) == "2 hunk(s) applied, 2 write(s), 3 byte(s), 1 skipped"


class TestFormatStats:
    def test_empty(self):
        stats = {"total_patches": 0, "avg_hunks_applied": 0.0,
                 "skip_rate": 0.0, "noop_rate": 0.0, "modes": {}}
        assert format_stats(stats) == "no patch metrics recorded"

    def test_rates_and_modes(self):
        stats = {"total_patches": 4, "avg_hunks_applied": 1.5,
                 "skip_rate": 25.0, "noop_rate": 50.0,
                 "modes": {"patch": 75.0, "all": 25.0}}
        assert format_stats(stats) == (
            "4 patch(es), 1.5 hunk(s) avg, 25% skipped, 50% no-op "
            "(patch 75%, all 25%)"
        )
