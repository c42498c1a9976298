from __future__ import annotations

"""Pipeline trigger context.

CONTRACT
- Inputs: GitHub Actions environment (GITHUB_EVENT_NAME, GITHUB_SHA,
  GITHUB_EVENT_PATH, GITHUB_WORKSPACE) or explicit values in tests
- Outputs (required):
  - PipelineContext holding exactly one TriggerEvent case
- Invariants:
  - Captured once per run; frozen afterwards
  - Unknown event names map to Other(name), never to a publish/compare case
- Failure:
  - Raises ContextError for a pull_request event without base metadata
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

from .errors import ContextError


@dataclass(frozen=True)
class Push:
    sha: str


@dataclass(frozen=True)
class ScheduledRun:
    pass


@dataclass(frozen=True)
class ManualDispatch:
    pass


@dataclass(frozen=True)
class PullRequestUpdate:
    base_ref: str
    base_sha: str


@dataclass(frozen=True)
class Other:
    name: str


TriggerEvent = Union[Push, ScheduledRun, ManualDispatch, PullRequestUpdate, Other]


@dataclass(frozen=True)
class PipelineContext:
    event: TriggerEvent
    event_name: str
    sha: str
    workspace: Path


def parse_event(event_name: str, *, sha: str = "", payload: Mapping[str, Any] | None = None) -> TriggerEvent:
    payload = payload or {}
    if event_name == "push":
        return Push(sha=sha)
    if event_name == "schedule":
        return ScheduledRun()
    if event_name == "workflow_dispatch":
        return ManualDispatch()
    if event_name == "pull_request":
        base = (payload.get("pull_request") or {}).get("base") or {}
        ref = base.get("ref")
        base_sha = base.get("sha")
        if not ref or not base_sha:
            raise ContextError("pull_request payload is missing pull_request.base.{ref, sha}")
        return PullRequestUpdate(base_ref=str(ref), base_sha=str(base_sha))
    return Other(name=event_name)


def _read_payload(path: str) -> dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    data = json.loads(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def load_context(env: Mapping[str, str] | None = None, *, workspace: Path | None = None) -> PipelineContext:
    env = os.environ if env is None else env
    event_name = env.get("GITHUB_EVENT_NAME", "")
    sha = env.get("GITHUB_SHA", "")
    payload = _read_payload(env.get("GITHUB_EVENT_PATH", ""))
    ws = workspace or Path(env.get("GITHUB_WORKSPACE") or os.getcwd())
    return PipelineContext(
        event=parse_event(event_name, sha=sha, payload=payload),
        event_name=event_name,
        sha=sha,
        workspace=ws,
    )
