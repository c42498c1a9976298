from __future__ import annotations

"""Baseline file naming.

CONTRACT
- name_for(path, ref): `lib.jar` + `main` -> `lib-main.jar` (same directory)
- strip_ref(): exact inverse of name_for for the same ref
- Invariants:
  - Injective over refs for a fixed path (separators are percent-escaped)
- Pure functions, no filesystem access
"""

from pathlib import Path

from .resolver import ARTIFACT_EXTENSION

# `%` first so an escaped separator can never be confused with a literal one
_ESCAPES = (("%", "%25"), ("/", "%2F"), ("\\", "%5C"))


def ref_segment(ref: str) -> str:
    for raw, escaped in _ESCAPES:
        ref = ref.replace(raw, escaped)
    return ref


def name_for(path: Path, ref: str) -> Path:
    name = path.name
    if not name.endswith(ARTIFACT_EXTENSION):
        raise ValueError(f"Not an artifact path: {path}")
    stem = name[: -len(ARTIFACT_EXTENSION)]
    return path.with_name(f"{stem}-{ref_segment(ref)}{ARTIFACT_EXTENSION}")


def strip_ref(path: Path, ref: str) -> Path:
    suffix = f"-{ref_segment(ref)}{ARTIFACT_EXTENSION}"
    if not path.name.endswith(suffix):
        raise ValueError(f"{path} is not named for ref {ref!r}")
    return path.with_name(path.name[: -len(suffix)] + ARTIFACT_EXTENSION)
