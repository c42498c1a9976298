"""Artifact resolution.

CONTRACT
- Inputs: glob pattern, workspace directory
- Outputs (required):
  - resolve(): matched paths, relative patterns kept relative to the workspace
  - filter_eligible(): paths that are .jar files and not -sources/-javadoc bundles
- Invariants:
  - Order is stable within a run (sorted glob results)
  - Every skipped path is logged with its reason
- Failure:
  - Never raises for "no matches"; the caller decides (empty set is fatal there)
"""

from __future__ import annotations

import glob
from pathlib import Path

from loguru import logger

ARTIFACT_EXTENSION = ".jar"
SOURCES_SUFFIX = "-sources.jar"
JAVADOC_SUFFIX = "-javadoc.jar"


def resolve(pattern: str, cwd: Path) -> list[Path]:
    root = str(cwd)
    matches = glob.glob(pattern, root_dir=root, recursive=True)
    return [Path(m) for m in sorted(matches)]


def skip_reason(path: Path) -> str | None:
    name = str(path)
    if not name.endswith(ARTIFACT_EXTENSION):
        return f"Skipping unexpected file: {name} (does not end with {ARTIFACT_EXTENSION})"
    if name.endswith(SOURCES_SUFFIX):
        return f"Skipping source file: {name}"
    if name.endswith(JAVADOC_SUFFIX):
        return f"Skipping javadoc file: {name}"
    return None


def filter_eligible(paths: list[Path]) -> list[Path]:
    eligible: list[Path] = []
    for p in paths:
        reason = skip_reason(p)
        if reason:
            logger.info(reason)
            continue
        eligible.append(p)
    return eligible


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="List eligible artifacts for a glob")
    parser.add_argument("pattern", help="Glob pattern, e.g. build/libs/*.jar")
    parser.add_argument("--cwd", default=".", help="Workspace directory")
    args = parser.parse_args()

    for p in filter_eligible(resolve(args.pattern, Path(args.cwd))):
        print(p)
