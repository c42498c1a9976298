from __future__ import annotations

"""Artifact schemas.

CONTRACT
- Inputs: Pydantic models
- Outputs:
  - Validated JSON-serializable objects (MANIFEST.json, run report)
- Invariants:
  - All schemas have schema_version int field
- Failure:
  - Raises ValidationError on schema mismatch
"""

from typing import Literal

from pydantic import BaseModel, Field


class CachedFile(BaseModel):
    path: str
    stored_as: str
    size: int = 0


class CacheManifest(BaseModel):
    schema_version: int = 1
    key: str
    version: str
    created_ms: int
    files: list[CachedFile] = Field(default_factory=list)


class CheckRecord(BaseModel):
    schema_version: int = 1
    path: str
    baseline_path: str
    outcome: Literal["compatible", "incompatible", "tool_error"]
    exit_code: int
    description: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == "compatible"


class RunReport(BaseModel):
    schema_version: int = 1
    status: Literal["OK", "FAIL"]
    mode: Literal["init", "publish", "compare"] = "init"
    event: str = ""
    message: str = ""
    cache_key: str | None = None
    artifacts: list[str] = Field(default_factory=list)
    checks: list[CheckRecord] = Field(default_factory=list)
