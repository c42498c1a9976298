from __future__ import annotations

"""Shell command execution.

CONTRACT
- Inputs: argv list (never a shell string for streamed commands), cwd
- Outputs (required):
  - LineStream: async iterator of decoded output lines (stdout+stderr merged)
  - CmdResult(cmd, returncode, elapsed_s, lines)
- Invariants:
  - Output is yielded as each line arrives, never buffered until exit
  - A line longer than the reader limit yields TRUNCATED in place of its
    buffered part, then streaming continues
  - returncode is only read after the stream is fully drained
  - No timeout is imposed here; the surrounding pipeline owns that
- Failure:
  - Launch failures (missing binary, permission) raise OSError
  - Non-zero exit never raises; caller inspects returncode
"""

import asyncio
import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Sequence


_LINE_LIMIT = 1024 * 1024
TRUNCATED = "[line exceeded output limit, truncated]"


def which(cmd: str) -> str | None:
    for p in os.environ.get("PATH", "").split(os.pathsep):
        candidate = Path(p) / cmd
        if candidate.exists() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


def format_cmd(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(a)) for a in argv)


@dataclass(frozen=True)
class CmdResult:
    cmd: str
    returncode: int
    elapsed_s: float
    lines: int = 0
    output: str = ""


class LineStream:
    """Line-buffered view of a running child process."""

    def __init__(self, proc: asyncio.subprocess.Process, cmd: str):
        self._proc = proc
        self.cmd = cmd
        self.lines = 0

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[str]:
        assert self._proc.stdout is not None
        while True:
            try:
                raw = await self._proc.stdout.readline()
            except ValueError:
                # Line exceeded the reader limit; its buffered part is already dropped.
                self.lines += 1
                yield TRUNCATED
                continue
            if not raw:
                break
            self.lines += 1
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def wait(self) -> int:
        # Drain anything the caller did not consume so the child cannot block on a full pipe.
        async for _ in self:
            pass
        return await self._proc.wait()


async def open_stream(
    argv: Sequence[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> LineStream:
    proc = await asyncio.create_subprocess_exec(
        *[str(a) for a in argv],
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        limit=_LINE_LIMIT,
        env=(os.environ | env) if env else None,
    )
    return LineStream(proc, format_cmd(argv))


async def stream_cmd(
    argv: Sequence[str],
    cwd: Path,
    on_line: Callable[[str], None],
    env: dict[str, str] | None = None,
) -> CmdResult:
    """Run argv, handing each output line to on_line as it arrives."""
    start_t = time.time()
    stream = await open_stream(argv, cwd, env=env)
    async for line in stream:
        on_line(line)
    rc = await stream.wait()
    return CmdResult(
        cmd=stream.cmd,
        returncode=rc,
        elapsed_s=time.time() - start_t,
        lines=stream.lines,
    )


def run_cmd(
    cmd: str | list[str],
    cwd: Path,
    timeout_s: float | None = None,
) -> CmdResult:
    """Run a short command to completion and capture its output.

    CONTRACT:
    - Accepts cmd as str (run with shell=True) or list[str] (run with shell=False).
    - Never raises for non-zero exit; caller inspects return code.
    """
    use_shell = isinstance(cmd, str)
    start_t = time.time()
    try:
        p = subprocess.run(
            cmd,
            cwd=str(cwd),
            shell=use_shell,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout_s,
            text=True,
        )
        rc, out = p.returncode, p.stdout or ""
    except subprocess.TimeoutExpired:
        rc, out = 124, "Timeout expired."
    except OSError as e:
        rc, out = 127, f"Exception: {e}"

    return CmdResult(
        cmd=cmd if isinstance(cmd, str) else format_cmd(cmd),
        returncode=rc,
        elapsed_s=time.time() - start_t,
        lines=len(out.splitlines()),
        output=out,
    )
