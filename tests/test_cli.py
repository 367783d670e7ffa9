"""Tests for the bufpatch command-line entry point."""

import io
import json
import shutil
import sys

import pytest

from bufpatch.cli import build_parser, main

needs_diff = pytest.mark.skipif(shutil.which("diff") is None,
                                reason="diff(1) not installed")

UPPER_B = [sys.executable, "-c",
           "import sys; sys.stdout.write(sys.stdin.read().replace('b', 'B'))"]


@pytest.fixture
def env(tmp_path, monkeypatch):
    for key in ("BUFPATCH_DIFF_COMMAND", "BUFPATCH_DIFF_OK_STATUS",
                "BUFPATCH_GROUP_UNDO", "BUFPATCH_ADDRESS_STYLE",
                "BUFPATCH_METRICS", "BUFPATCH_METRICS_ROOT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BUFPATCH_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _run(env, *args):
    return main(["--config", str(env / "none.yaml"), *args])


@needs_diff
class TestPatchMode:
    def test_patches_file(self, env):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\nc\n")
        assert _run(env, str(path), *UPPER_B) == 0
        assert path.read_bytes() == b"a\nB\nc\n"

    def test_line_addresses(self, env):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\nc\nb\n")
        assert _run(env, "--lines", str(path), *UPPER_B) == 0
        assert path.read_bytes() == b"a\nB\nc\nB\n"

    def test_verbose_summary(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\nc\n")
        _run(env, "-v", str(path), *UPPER_B)
        assert "1 hunk(s) applied" in capsys.readouterr().err

    def test_stdin_as_output(self, env, monkeypatch):
        path = env / "doc.txt"
        path.write_bytes(b"one\ntwo\n")
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"one\n2\n")))
        assert _run(env, str(path)) == 0
        assert path.read_bytes() == b"one\n2\n"

    def test_metrics_logged(self, env, monkeypatch):
        monkeypatch.setenv("BUFPATCH_METRICS", "true")
        monkeypatch.setenv("BUFPATCH_METRICS_ROOT", str(env))
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        _run(env, str(path), *UPPER_B)

        with open(env / ".bufpatch" / "patch_metrics.jsonl") as f:
            entry = json.loads(f.readline())
        assert entry["mode"] == "patch"
        assert entry["hunks_applied"] == 1

    def test_bad_diff_status_leaves_file(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        false_diff = f"{sys.executable} -c 'import sys; sys.exit(2)'"
        assert _run(env, "--diff-cmd", false_diff, str(path), *UPPER_B) == 1
        assert path.read_bytes() == b"a\nb\n"
        assert "status 2" in capsys.readouterr().err


class TestReplaceAllMode:
    def test_replaces_file(self, env):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\nc\n")
        assert _run(env, "--all", str(path), *UPPER_B) == 0
        assert path.read_bytes() == b"a\nB\nc\n"


class TestFailures:
    def test_command_failure_keeps_file_and_status(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        cmd = [sys.executable, "-c",
               "import sys; sys.stderr.write('nope\\n'); sys.exit(4)"]
        assert _run(env, str(path), *cmd) == 4
        assert path.read_bytes() == b"a\nb\n"
        assert "nope" in capsys.readouterr().err

    def test_empty_output_is_not_a_delete(self, env):
        path = env / "doc.txt"
        path.write_bytes(b"keep me\n")
        cmd = [sys.executable, "-c", "pass"]
        assert _run(env, str(path), *cmd) == 0
        assert path.read_bytes() == b"keep me\n"

    def test_missing_file(self, env, capsys):
        assert _run(env, str(env / "missing.txt"), "cat") == 1
        assert "bufpatch:" in capsys.readouterr().err

    def test_missing_command(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"x\n")
        assert _run(env, str(path), "bufpatch-no-such-command") == 1
        assert path.read_bytes() == b"x\n"


class TestArgumentOrder:
    def test_help_says_options_come_first(self):
        text = " ".join(build_parser().format_help().split())
        assert "usage: bufpatch [option ...] FILE [command [argument ...]]" in text
        assert "Options must come before FILE" in text

    def test_option_after_file_belongs_to_command(self):
        args = build_parser().parse_args(["doc.txt", "sort", "--all"])
        assert args.all is False
        assert args.command == ["sort", "--all"]

    def test_option_before_file_is_ours(self):
        args = build_parser().parse_args(["--all", "doc.txt", "sort", "-r"])
        assert args.all is True
        assert args.file == "doc.txt"
        assert args.command == ["sort", "-r"]

    def test_all_before_file_replaces(self, env):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        assert _run(env, "--all", "--verbose", str(path), *UPPER_B) == 0
        assert path.read_bytes() == b"a\nB\n"


@needs_diff
class TestDryRun:
    def test_lists_hunks_and_keeps_file(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\nc\nb\n")
        assert _run(env, "--dry-run", str(path), *UPPER_B) == 0

        assert path.read_bytes() == b"a\nb\nc\nb\n"
        err = capsys.readouterr().err
        assert f"{path}: 2c2" in err
        assert f"{path}: 4c4" in err
        assert "2 hunk(s) planned" in err

    def test_bad_diff_status(self, env, capsys):
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        false_diff = f"{sys.executable} -c 'import sys; sys.exit(2)'"
        assert _run(env, "--dry-run", "--diff-cmd", false_diff,
                    str(path), *UPPER_B) == 1
        assert path.read_bytes() == b"a\nb\n"

    def test_no_metrics_logged(self, env, monkeypatch):
        monkeypatch.setenv("BUFPATCH_METRICS", "true")
        monkeypatch.setenv("BUFPATCH_METRICS_ROOT", str(env))
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        _run(env, "--dry-run", str(path), *UPPER_B)
        assert not (env / ".bufpatch" / "patch_metrics.jsonl").exists()


class TestStats:
    def test_prints_rolling_stats(self, env, monkeypatch, capsys):
        monkeypatch.setenv("BUFPATCH_METRICS", "true")
        monkeypatch.setenv("BUFPATCH_METRICS_ROOT", str(env))
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        assert _run(env, "--all", str(path), *UPPER_B) == 0
        assert _run(env, "--all", "--stats", str(path), *UPPER_B) == 0

        err = capsys.readouterr().err
        assert "2 patch(es)" in err
        assert "50% no-op" in err
        assert "all 100%" in err

    def test_no_metrics_yet(self, env, monkeypatch, capsys):
        monkeypatch.setenv("BUFPATCH_METRICS_ROOT", str(env))
        path = env / "doc.txt"
        path.write_bytes(b"a\nb\n")
        _run(env, "--stats", "--all", str(path), *UPPER_B)
        assert "no patch metrics recorded" in capsys.readouterr().err
