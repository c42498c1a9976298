"""japi-compliance-checker driver.

CONTRACT
- Inputs: CheckerConfig, workspace, pairs of (old, new) jar paths
- Outputs (required):
  - install(): entry script present and executable under the workspace
  - check(): CheckOutcome per pair, classified from the exit code
- Invariants:
  - Checker output is logged line by line while it runs
  - Exit codes follow https://lvc.github.io/japi-compliance-checker/#Error
  - One invocation per pair; no retries
- Failure:
  - install() raises InstallError on any failed step
  - check() never raises for a failed check; launch errors become ToolError
"""

from __future__ import annotations

import asyncio
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

from loguru import logger

from .config import CheckerConfig
from .errors import InstallError
from .util.shell import format_cmd, stream_cmd

EXIT_CODES: dict[int, str] = {
    1: "Incompatible",
    2: "Common error code (program execution failed)",
    3: "A system command was not found (program execution failed)",
    4: "Cannot access input files",
    7: "Invalid input API dump",
    8: "Unsupported version of input API dump",
    9: "Cannot find a module",
}

# Shell convention for "command could not be executed"
LAUNCH_FAILED = 127


@dataclass(frozen=True)
class Compatible:
    ok = True
    code = 0


@dataclass(frozen=True)
class Incompatible:
    ok = False
    code = 1
    description = EXIT_CODES[1]


@dataclass(frozen=True)
class ToolError:
    code: int
    description: str
    ok = False


CheckOutcome = Union[Compatible, Incompatible, ToolError]


def describe_exit_code(code: int) -> str:
    return EXIT_CODES.get(code, f"Unknown exit code {code}")


def classify(code: int) -> CheckOutcome:
    if code == 0:
        return Compatible()
    if code == 1:
        return Incompatible()
    return ToolError(code=code, description=describe_exit_code(code))


def _log_line(line: str) -> None:
    if line:
        logger.info(line)


@dataclass
class ComplianceChecker:
    config: CheckerConfig
    workspace: Path
    on_line: Callable[[str], None] = _log_line

    @property
    def entry_script(self) -> Path:
        return self.config.entry_script(self.workspace)

    def is_installed(self) -> bool:
        return self.entry_script.is_file()

    def install_steps(self) -> list[tuple[list[str], Path]]:
        cfg = self.config
        install_dir = self.workspace / cfg.install_dir
        make = ["sudo", "make", "install"] if cfg.use_sudo else ["make", "install"]
        return [
            (
                [
                    "git", "clone",
                    "-c", "advice.detachedHead=false",
                    "--depth", "1",
                    "--branch", cfg.version,
                    cfg.repo,
                    str(install_dir),
                ],
                self.workspace,
            ),
            (make, install_dir),
        ]

    async def install(self) -> None:
        if self.is_installed():
            logger.info(f"japi-compliance-checker already present at {self.entry_script}")
        else:
            for argv, cwd in self.install_steps():
                logger.info(f"> {format_cmd(argv)}")
                try:
                    res = await stream_cmd(argv, cwd, self.on_line)
                except OSError as e:
                    raise InstallError(f"{argv[0]}: {e}") from e
                if res.returncode != 0:
                    raise InstallError(f"`{res.cmd}` exited with code {res.returncode}")
        await asyncio.to_thread(self._make_executable)

    def _make_executable(self) -> None:
        script = self.entry_script
        try:
            mode = script.stat().st_mode
            os.chmod(script, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise InstallError(f"Cannot mark {script} executable: {e}") from e

    def command(self, old: Path, new: Path) -> list[str]:
        return [str(self.entry_script), str(old), str(new), *self.config.extra_args]

    async def check(self, old: Path, new: Path) -> CheckOutcome:
        argv = self.command(old, new)
        logger.info(f"> {format_cmd(argv)}")
        try:
            res = await stream_cmd(argv, self.workspace, self.on_line)
        except OSError as e:
            logger.error(str(e))
            return ToolError(code=LAUNCH_FAILED, description=f"Cannot launch checker: {e}")
        return classify(res.returncode)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Describe a japi-compliance-checker exit code")
    parser.add_argument("code", type=int)
    args = parser.parse_args()
    print(describe_exit_code(args.code) if args.code else "Compatible")
