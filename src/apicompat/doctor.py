from __future__ import annotations

"""Environment health checks.

CONTRACT
- Inputs: Workspace path, cache directory
- Outputs (required):
  - DoctorReport (ok=bool, items=[(name, status, details)])
- Invariants:
  - Checks: cache dir, git, make, perl, sudo, installed checker
  - Does not modify system state beyond creating the cache dir
- Failure:
  - Returns DoctorReport with ok=False if critical checks fail (cache, git, make, perl)
"""

from dataclasses import dataclass
from pathlib import Path

from .cache import DirectoryCacheStore
from .config import CheckerConfig
from .util.shell import run_cmd, which


@dataclass(frozen=True)
class DoctorItem:
    name: str
    status: str
    details: str


@dataclass(frozen=True)
class DoctorReport:
    ok: bool
    items: list[DoctorItem]


def doctor_report(
    workspace: Path,
    cache_dir: Path | None,
    checker: CheckerConfig | None = None,
) -> DoctorReport:
    checker = checker or CheckerConfig()
    items: list[DoctorItem] = []
    ok = True

    # 1. Critical: cache
    store = DirectoryCacheStore(root=cache_dir, workspace=workspace)
    if store.is_feature_available():
        items.append(DoctorItem("cache", "OK", str(cache_dir)))
    else:
        ok = False
        details = "No cache dir configured (INPUT_CACHE-DIR / APICOMPAT_CACHE_DIR)" if cache_dir is None else f"{cache_dir} is not writable"
        items.append(DoctorItem("cache", "FAIL", details))

    # 2. Critical: tools needed to install and run the checker
    for tool in ("git", "make", "perl"):
        path = which(tool)
        if path:
            items.append(DoctorItem(tool, "OK", path))
        else:
            ok = False
            items.append(DoctorItem(tool, "FAIL", f"{tool} not found in PATH"))

    if which("perl"):
        res = run_cmd(["perl", "-e", "print $]"], cwd=workspace, timeout_s=5)
        if res.returncode == 0:
            items.append(DoctorItem("perl version", "OK", res.output.strip()))

    if checker.use_sudo:
        if which("sudo"):
            items.append(DoctorItem("sudo", "OK", "make install will run via sudo"))
        else:
            items.append(DoctorItem("sudo", "WARN", "sudo not found; set checker.use_sudo: false"))

    script = checker.entry_script(workspace)
    if script.is_file():
        items.append(DoctorItem("japi-compliance-checker", "OK", str(script)))
    else:
        items.append(
            DoctorItem("japi-compliance-checker", "INFO", f"not installed; {checker.version} will be cloned on compare")
        )

    return DoctorReport(ok=ok, items=items)
