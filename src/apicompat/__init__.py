"""apicompat package.

Simple API for pipeline scripts:

    import apicompat

    # Publish on push, compare on pull_request (reads the GitHub Actions env)
    result = apicompat.run("japi", "build/libs/*.jar", cache_dir="/mnt/cache")
"""

import asyncio
from pathlib import Path
from typing import Mapping, Optional

__version__ = "0.1.0"

from .cache import CacheGateway, DirectoryCacheStore
from .config import ActionInputs, CheckerConfig, RunConfig
from .context import PipelineContext, load_context
from .orchestrator import RunResult, run_action


def run(
    key: str,
    file: str,
    *,
    cache_dir: str | Path,
    workspace: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
    checker: Optional[CheckerConfig] = None,
) -> dict:
    """Run the gate once. Returns structured result.

    Returns:
        dict with keys: status, mode, message, cache_key, checks
    """
    ctx = load_context(env, workspace=Path(workspace).resolve() if workspace else None)
    cfg = RunConfig(
        inputs=ActionInputs(key=key, file=file, cache_dir=Path(cache_dir)),
        workspace=ctx.workspace,
        checker=checker or CheckerConfig(),
    )
    store = DirectoryCacheStore(root=Path(cache_dir), workspace=ctx.workspace)
    result = asyncio.run(run_action(cfg, ctx, cache=CacheGateway(store)))
    return {
        "status": result.status,
        "mode": result.mode,
        "message": result.message,
        "cache_key": result.cache_key,
        "checks": [c.model_dump() for c in result.checks],
    }


__all__ = [
    "run",
    "run_action",
    "RunConfig",
    "RunResult",
    "CheckerConfig",
    "PipelineContext",
]
