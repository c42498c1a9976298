from __future__ import annotations

"""Cache gateway and directory-backed cache store.

CONTRACT
- Inputs: artifact paths (workspace-relative or absolute), cache keys
- Outputs (required):
  - save: entry written under the fully qualified key
  - restore: matched key (exact first, then newest entry per restore-key
    prefix, in the order supplied) or None; files materialized at the
    requested paths
- Invariants:
  - Entries are immutable; a key is written at most once
  - Restore only matches entries saved for the same path set (version)
  - A miss is not an error
- Failure:
  - Raises CacheError / CacheKeyExists / OSError from the store; the gateway
    logs them as warnings and reports save failures as False and restore
    failures as a miss (None)
"""

import asyncio
import hashlib
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from loguru import logger
from pydantic import ValidationError

from .artifacts.schemas import CachedFile, CacheManifest
from .errors import CacheError, CacheKeyExists
from .util.paths import safe_filename

MANIFEST = "MANIFEST.json"


def now_ms() -> int:
    return int(time.time() * 1000)


def cache_key(prefix: str, identifier: str) -> str:
    return f"{prefix}-{identifier}"


def paths_version(paths: Sequence[Path]) -> str:
    h = hashlib.sha256()
    for p in sorted(str(x) for x in paths):
        h.update(p.encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest()


class CacheStore(Protocol):
    def is_feature_available(self) -> bool: ...

    def save_cache(self, paths: Sequence[Path], key: str) -> str: ...

    def restore_cache(
        self, paths: Sequence[Path], key: str, restore_keys: Sequence[str] = ()
    ) -> str | None: ...


@dataclass(frozen=True)
class DirectoryCacheStore:
    """Cache store on a local or mounted directory.

    Layout: <root>/<safe key>-<digest>/{MANIFEST.json, files/<n>}
    """

    root: Path | None
    workspace: Path

    def is_feature_available(self) -> bool:
        if self.root is None:
            return False
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"Cache root {self.root} unusable: {e}")
            return False
        return os.access(self.root, os.W_OK)

    def _root(self) -> Path:
        if self.root is None:
            raise CacheError("Cache root is not configured")
        return self.root

    def _entry_dir(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return self._root() / f"{safe_filename(key, default='key')}-{digest}"

    def _abs(self, p: Path) -> Path:
        return p if p.is_absolute() else self.workspace / p

    def _manifests(self) -> list[tuple[Path, CacheManifest]]:
        found: list[tuple[Path, CacheManifest]] = []
        root = self._root()
        if not root.exists():
            return found
        for d in root.iterdir():
            mf = d / MANIFEST
            if not mf.is_file():
                continue
            try:
                found.append((d, CacheManifest.model_validate_json(mf.read_text(encoding="utf-8"))))
            except ValidationError:
                logger.warning(f"Ignoring corrupt cache entry: {d}")
        return found

    def save_cache(self, paths: Sequence[Path], key: str) -> str:
        if not paths:
            raise CacheError("Path Validation Error: at least one path is required")
        entry = self._entry_dir(key)
        if entry.exists():
            raise CacheKeyExists(key)

        root = self._root()
        root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=root))
        try:
            (staging / "files").mkdir()
            files: list[CachedFile] = []
            for i, p in enumerate(paths):
                src = self._abs(p)
                if not src.is_file():
                    raise CacheError(f"Cannot cache missing file: {p}")
                stored = f"files/{i}"
                shutil.copy2(src, staging / stored)
                files.append(CachedFile(path=str(p), stored_as=stored, size=src.stat().st_size))
            manifest = CacheManifest(
                key=key,
                version=paths_version(paths),
                created_ms=now_ms(),
                files=files,
            )
            (staging / MANIFEST).write_text(manifest.model_dump_json(indent=2) + "\n", encoding="utf-8")
            try:
                staging.rename(entry)
            except OSError as e:
                if entry.exists():
                    raise CacheKeyExists(key) from e
                raise CacheError(f"Failed to commit cache entry {key}: {e}") from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)
        return key

    def _lookup(self, version: str, key: str, restore_keys: Sequence[str]) -> tuple[Path, CacheManifest] | None:
        entries = [(d, m) for d, m in self._manifests() if m.version == version]
        for d, m in entries:
            if m.key == key:
                return d, m
        for prefix in restore_keys:
            matching = [(d, m) for d, m in entries if m.key.startswith(prefix)]
            if matching:
                return max(matching, key=lambda e: (e[1].created_ms, e[1].key))
        return None

    def restore_cache(
        self, paths: Sequence[Path], key: str, restore_keys: Sequence[str] = ()
    ) -> str | None:
        if not paths:
            raise CacheError("Path Validation Error: at least one path is required")
        hit = self._lookup(paths_version(paths), key, restore_keys)
        if hit is None:
            return None
        entry, manifest = hit
        for f in manifest.files:
            dest = self._abs(Path(f.path))
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(entry / f.stored_as, dest)
        return manifest.key


@dataclass
class CacheGateway:
    """Async facade over a CacheStore; store calls run off the event loop."""

    store: CacheStore

    def is_feature_available(self) -> bool:
        return self.store.is_feature_available()

    async def save(self, paths: Sequence[Path], key: str) -> bool:
        try:
            await asyncio.to_thread(self.store.save_cache, list(paths), key)
        except CacheKeyExists as e:
            logger.warning(f"Failed to save: {e}")
            return False
        except (CacheError, OSError) as e:
            logger.warning(f"Failed to save cache {key}: {e}")
            return False
        return True

    async def restore(
        self, paths: Sequence[Path], key: str, fallback_prefixes: Sequence[str] = ()
    ) -> str | None:
        try:
            return await asyncio.to_thread(self.store.restore_cache, list(paths), key, list(fallback_prefixes))
        except (CacheError, OSError) as e:
            logger.warning(f"Failed to restore cache {key}: {e}")
            return None
