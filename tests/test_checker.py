import asyncio
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from apicompat.checker import (
    Compatible,
    ComplianceChecker,
    Incompatible,
    ToolError,
    classify,
    describe_exit_code,
)
from apicompat.config import CheckerConfig
from apicompat.errors import InstallError
from apicompat.util.shell import CmdResult


@pytest.mark.parametrize(
    "code,expected",
    [
        (1, "Incompatible"),
        (2, "Common error code (program execution failed)"),
        (3, "A system command was not found (program execution failed)"),
        (4, "Cannot access input files"),
        (7, "Invalid input API dump"),
        (8, "Unsupported version of input API dump"),
        (9, "Cannot find a module"),
        (5, "Unknown exit code 5"),
        (6, "Unknown exit code 6"),
        (42, "Unknown exit code 42"),
        (-9, "Unknown exit code -9"),
    ],
)
def test_describe_exit_code(code, expected):
    assert describe_exit_code(code) == expected


def test_classify():
    assert classify(0) == Compatible()
    assert classify(0).ok
    assert classify(1) == Incompatible()
    assert not classify(1).ok
    assert classify(4) == ToolError(code=4, description="Cannot access input files")
    assert classify(99) == ToolError(code=99, description="Unknown exit code 99")
    assert not classify(99).ok


def _fake_checker(ws: Path, body: str) -> ComplianceChecker:
    cfg = CheckerConfig()
    script = cfg.entry_script(ws)
    script.parent.mkdir(parents=True)
    script.write_text(f"#!{sys.executable}\n{body}\n")
    script.chmod(0o755)
    return ComplianceChecker(cfg, ws)


def test_check_passes_paths_and_streams(tmp_path):
    body = "import sys\nprint('old=' + sys.argv[1])\nprint('new=' + sys.argv[2])\nsys.exit(0)"
    checker = _fake_checker(tmp_path, body)
    lines = []
    checker.on_line = lines.append
    outcome = asyncio.run(checker.check(Path("core.jar"), Path("core-main.jar")))
    assert outcome == Compatible()
    assert lines == ["old=core.jar", "new=core-main.jar"]


@pytest.mark.parametrize("code", [1, 2, 7, 13])
def test_check_classifies_exit(tmp_path, code):
    checker = _fake_checker(tmp_path, f"import sys\nsys.exit({code})")
    assert asyncio.run(checker.check(Path("a.jar"), Path("a-main.jar"))) == classify(code)


def test_check_extra_args(tmp_path):
    ws = tmp_path
    cfg = CheckerConfig(extra_args=["-lib", "core"])
    checker = ComplianceChecker(cfg, ws)
    assert checker.command(Path("a.jar"), Path("b.jar"))[1:] == ["a.jar", "b.jar", "-lib", "core"]


def test_check_launch_failure(tmp_path):
    checker = ComplianceChecker(CheckerConfig(), tmp_path)
    outcome = asyncio.run(checker.check(Path("a.jar"), Path("b.jar")))
    assert isinstance(outcome, ToolError)
    assert outcome.code == 127


def test_install_steps(tmp_path):
    checker = ComplianceChecker(CheckerConfig(), tmp_path)
    (clone, clone_cwd), (make, make_cwd) = checker.install_steps()
    assert clone[:2] == ["git", "clone"]
    assert "--branch" in clone and clone[clone.index("--branch") + 1] == "2.4"
    assert clone[-2] == "https://github.com/lvc/japi-compliance-checker.git"
    assert clone[-1] == str(tmp_path / ".japi_compliance_checker")
    assert clone_cwd == tmp_path
    assert make == ["sudo", "make", "install"]
    assert make_cwd == tmp_path / ".japi_compliance_checker"

    no_sudo = ComplianceChecker(CheckerConfig(use_sudo=False), tmp_path)
    assert no_sudo.install_steps()[1][0] == ["make", "install"]


def test_install_runs_steps_and_marks_executable(tmp_path):
    checker = ComplianceChecker(CheckerConfig(), tmp_path)

    async def fake_stream(argv, cwd, on_line, env=None):
        if argv[:2] == ["git", "clone"]:
            script = checker.entry_script
            script.parent.mkdir(parents=True)
            script.write_text("#!/usr/bin/perl\n")
            script.chmod(0o644)
        return CmdResult(cmd=" ".join(argv), returncode=0, elapsed_s=0.0)

    with patch("apicompat.checker.stream_cmd", side_effect=fake_stream) as mock_stream:
        asyncio.run(checker.install())
    assert mock_stream.call_count == 2
    assert os.access(checker.entry_script, os.X_OK)


def test_install_skips_when_present(tmp_path):
    checker = _fake_checker(tmp_path, "pass")
    with patch("apicompat.checker.stream_cmd", new_callable=AsyncMock) as mock_stream:
        asyncio.run(checker.install())
    mock_stream.assert_not_called()


def test_install_failure(tmp_path):
    checker = ComplianceChecker(CheckerConfig(), tmp_path)
    failed = CmdResult(cmd="git clone ...", returncode=128, elapsed_s=0.0)
    with patch("apicompat.checker.stream_cmd", new=AsyncMock(return_value=failed)):
        with pytest.raises(InstallError, match="code 128"):
            asyncio.run(checker.install())


def test_install_launch_error(tmp_path):
    checker = ComplianceChecker(CheckerConfig(), tmp_path)
    with patch("apicompat.checker.stream_cmd", new=AsyncMock(side_effect=FileNotFoundError("git"))):
        with pytest.raises(InstallError):
            asyncio.run(checker.install())


@pytest.mark.timeout(10)
def test_check_overlong_output_line(tmp_path, monkeypatch):
    monkeypatch.setattr("apicompat.util.shell._LINE_LIMIT", 1024)
    checker = _fake_checker(tmp_path, "import sys\nprint('y' * 50000)\nsys.exit(1)")
    assert asyncio.run(checker.check(Path("a.jar"), Path("a-main.jar"))) == Incompatible()
