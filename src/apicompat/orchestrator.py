from __future__ import annotations

"""Orchestrator for publish and compare runs.

CONTRACT
- Inputs: RunConfig (key prefix, glob, checker settings), PipelineContext,
  CacheGateway, ComplianceChecker
- Outputs (required):
  - RunResult (status OK/FAIL, mode, message, cache key, per-artifact checks)
- Invariants:
  - Cache availability is checked before any other work
  - Publish runs (push/schedule/workflow_dispatch) never run the checker
  - Compare runs check artifacts strictly one at a time in resolver order
  - A failed check never stops the loop; the verdict comes after the last one
  - Nothing is retried
- Failure:
  - Fatal conditions return RunResult(status="FAIL") with a single message
  - Unexpected exceptions from collaborators propagate
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from .artifacts.schemas import CheckRecord, RunReport
from .cache import CacheGateway, cache_key, now_ms
from .checker import CheckOutcome, Compatible, ComplianceChecker, Incompatible
from .config import RunConfig
from .context import ManualDispatch, Other, PipelineContext, PullRequestUpdate, Push, ScheduledRun
from .errors import InstallError
from .naming import name_for
from .resolver import filter_eligible, resolve

CACHE_UNAVAILABLE = "Cache feature unavailable"
NO_VALID_PATHS = "No valid paths."
NOT_CACHED = "Original not cached"
INSTALL_FAILED = "Failed to install japi-compliance-checker"
RENAME_COLLISION = "Renamed file would overwrite {}"


@dataclass
class RunResult:
    status: str
    mode: str = "init"
    message: str = ""
    cache_key: str | None = None
    artifacts: list[Path] = field(default_factory=list)
    checks: list[CheckRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "OK"

    def to_report(self, event: str = "") -> RunReport:
        return RunReport(
            status="OK" if self.ok else "FAIL",
            mode=self.mode,
            event=event,
            message=self.message,
            cache_key=self.cache_key,
            artifacts=[str(p) for p in self.artifacts],
            checks=self.checks,
        )


class _Fatal(Exception):
    pass


def failure_message(fails: int) -> str:
    return f"{fails} file{'' if fails == 1 else 's'} failed API compliance checks"


def _record(path: Path, baseline: Path, outcome: CheckOutcome) -> CheckRecord:
    if isinstance(outcome, Compatible):
        kind = "compatible"
    elif isinstance(outcome, Incompatible):
        kind = "incompatible"
    else:
        kind = "tool_error"
    return CheckRecord(
        path=str(path),
        baseline_path=str(baseline),
        outcome=kind,
        exit_code=outcome.code,
        description=getattr(outcome, "description", ""),
    )


@dataclass
class Orchestrator:
    cfg: RunConfig
    ctx: PipelineContext
    cache: CacheGateway
    checker: ComplianceChecker

    async def run(self) -> RunResult:
        result = RunResult(status="RUNNING")
        try:
            if not self.cache.is_feature_available():
                raise _Fatal(CACHE_UNAVAILABLE)

            result.artifacts = await self._resolve()

            event = self.ctx.event
            if isinstance(event, (Push, ScheduledRun, ManualDispatch)):
                result.mode = "publish"
                await self._publish(event, result)
            elif isinstance(event, PullRequestUpdate):
                result.mode = "compare"
                await self._compare(event, result)
            else:
                name = event.name if isinstance(event, Other) else self.ctx.event_name
                raise _Fatal(f"Unexpected event: {name}")
        except _Fatal as e:
            result.status = "FAIL"
            result.message = str(e)
            logger.error(result.message)
            return result

        if result.status == "RUNNING":
            result.status = "OK"
        return result

    async def _resolve(self) -> list[Path]:
        pattern = self.cfg.file
        paths = await asyncio.to_thread(resolve, pattern, self.ctx.workspace)
        logger.info(f'Path "{pattern}" matched {len(paths)} file(s)')
        eligible = filter_eligible(paths)
        if not eligible:
            raise _Fatal(NO_VALID_PATHS)
        return eligible

    async def _publish(self, event: Push | ScheduledRun | ManualDispatch, result: RunResult) -> None:
        identifier = event.sha if isinstance(event, Push) else str(now_ms())
        key = cache_key(self.cfg.key, identifier)
        result.cache_key = key
        logger.info(f"Saving cache: {key}")
        if not await self.cache.save(result.artifacts, key):
            logger.warning(f"Cache {key} was not saved")

    async def _rename(self, src: Path, dst: Path) -> None:
        ws = self.ctx.workspace
        try:
            await asyncio.to_thread((ws / src).rename, ws / dst)
        except OSError as e:
            logger.error(str(e))
            raise _Fatal(f"Failed to rename {src}") from e

    def _check_rename_targets(self, paths: list[Path], ref: str) -> None:
        # A renamed PR build must not land on another eligible artifact or an existing file.
        eligible = set(paths)
        for p in paths:
            target = name_for(p, ref)
            if target in eligible or (self.ctx.workspace / target).exists():
                raise _Fatal(RENAME_COLLISION.format(target))

    async def _compare(self, event: PullRequestUpdate, result: RunResult) -> None:
        paths = result.artifacts
        await asyncio.to_thread(self._check_rename_targets, paths, event.base_ref)
        # Move the PR build aside so the restored baseline can take the original names.
        for p in paths:
            await self._rename(p, name_for(p, event.base_ref))

        key = cache_key(self.cfg.key, event.base_sha)
        matched = await self.cache.restore(paths, key, [cache_key(self.cfg.key, "")])
        if matched is None:
            raise _Fatal(NOT_CACHED)
        result.cache_key = matched
        logger.info(f"Cache {matched} retrieved")

        logger.info("Installing japi-compliance-checker")
        try:
            await self.checker.install()
        except InstallError as e:
            logger.error(str(e))
            raise _Fatal(INSTALL_FAILED) from e
        logger.info("japi-compliance-checker install finished")

        fails = 0
        for p in paths:
            renamed = name_for(p, event.base_ref)
            logger.info(f"Checking {p}")
            outcome = await self.checker.check(p, renamed)
            result.checks.append(_record(p, renamed, outcome))
            if not outcome.ok:
                logger.error("Fail")
                logger.error(f"Reason: {outcome.description}")
                fails += 1

        if fails > 0:
            raise _Fatal(failure_message(fails))


async def run_action(
    cfg: RunConfig,
    ctx: PipelineContext,
    *,
    cache: CacheGateway,
    checker: ComplianceChecker | None = None,
) -> RunResult:
    checker = checker or ComplianceChecker(cfg.checker, ctx.workspace)
    return await Orchestrator(cfg=cfg, ctx=ctx, cache=cache, checker=checker).run()
