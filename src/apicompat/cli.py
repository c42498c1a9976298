"""CLI entrypoint.

Primary mode:
- apicompat run      (publish baseline or compare against it, by trigger event)

Utilities:
- apicompat doctor
- apicompat explain <exit-code>

CONTRACT
- Inputs: Command line arguments (parsed by Typer); unset options fall back to
  the GitHub Actions inputs in the environment (INPUT_KEY, INPUT_FILE, ...)
- Outputs (required):
  - Exit code 0 on success, 1 on a failed run, 2 on bad config / doctor failure
  - `::error::<message>` on stdout for a failed run
- Invariants:
  - Context and inputs are read once, then passed explicitly
- Failure:
  - Invalid inputs raise Typer BadParameter
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from . import __version__
from .cache import CacheGateway, DirectoryCacheStore
from .checker import describe_exit_code
from .config import RunConfig, load_checker_config, load_inputs
from .context import load_context
from .doctor import doctor_report
from .errors import ConfigError, ContextError
from .orchestrator import run_action
from .util.paths import ensure_dir

app = typer.Typer(add_completion=False, help="Binary API compatibility gate for pull requests.")

console = Console(stderr=True)


def _version_callback(value: bool):
    if value:
        console.print(f"apicompat version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    )
):
    pass


def configure_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, format="{message}", level="DEBUG" if verbose else "INFO")


_KEY_OPTION = typer.Option(None, "--key", help="Cache key prefix (default: INPUT_KEY).")
_FILE_OPTION = typer.Option(None, "--file", help="Artifact glob (default: INPUT_FILE).")
_CACHE_DIR_OPTION = typer.Option(
    None, "--cache-dir", help="Cache directory (default: INPUT_CACHE-DIR or APICOMPAT_CACHE_DIR)."
)
_CONFIG_OPTION = typer.Option(None, "--config", help="apicompat.yaml with checker settings.")
_WORKSPACE_OPTION = typer.Option(None, "--workspace", help="Workspace root (default: GITHUB_WORKSPACE or cwd).")
_REPORT_OPTION = typer.Option(None, "--report", help="Write a JSON run report here.")
_VERBOSE_OPTION = typer.Option(False, "--verbose", help="Show more details.")


def _env_with(**inputs: str | Path | None) -> dict[str, str]:
    env = dict(os.environ)
    for name, value in inputs.items():
        if value is not None:
            env[f"INPUT_{name.replace('_', '-').upper()}"] = str(value)
    return env


@app.command()
def run(
    key: str | None = _KEY_OPTION,
    file: str | None = _FILE_OPTION,
    cache_dir: Path | None = _CACHE_DIR_OPTION,
    config: Path | None = _CONFIG_OPTION,
    workspace: Path | None = _WORKSPACE_OPTION,
    report: Path | None = _REPORT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Publish or check artifacts depending on the triggering event."""
    configure_logging(verbose)
    env = _env_with(key=key, file=file, cache_dir=cache_dir, config=config)
    try:
        inputs = load_inputs(env)
        checker_cfg = load_checker_config(inputs.config_file)
        ctx = load_context(env, workspace=workspace)
    except (ConfigError, ContextError) as e:
        raise typer.BadParameter(str(e)) from e

    cfg = RunConfig(inputs=inputs, workspace=ctx.workspace, checker=checker_cfg, report_path=report)
    store = DirectoryCacheStore(root=inputs.cache_dir, workspace=ctx.workspace)
    result = asyncio.run(run_action(cfg, ctx, cache=CacheGateway(store)))

    if cfg.report_path:
        ensure_dir(cfg.report_path.parent)
        cfg.report_path.write_text(result.to_report(ctx.event_name).model_dump_json(indent=2) + "\n", encoding="utf-8")

    if not result.ok:
        typer.echo(f"::error::{result.message}")
        raise typer.Exit(code=1)
    console.print(f"[green]{result.mode} finished[/green]" + (f" ({result.cache_key})" if result.cache_key else ""))


@app.command()
def doctor(
    workspace: Path = typer.Option(Path("."), "--workspace", help="Workspace root."),
    cache_dir: Path | None = _CACHE_DIR_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Environment and preflight checks."""
    if cache_dir is None and os.environ.get("APICOMPAT_CACHE_DIR"):
        cache_dir = Path(os.environ["APICOMPAT_CACHE_DIR"])
    try:
        checker_cfg = load_checker_config(config)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e

    rep = doctor_report(workspace, cache_dir, checker_cfg)
    table = Table(title="apicompat doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for item in rep.items:
        table.add_row(item.name, item.status, item.details)
    console.print(table)
    if rep.ok:
        console.print("[green]OK[/green]")
    else:
        raise typer.Exit(code=2)


@app.command()
def explain(code: int = typer.Argument(..., help="japi-compliance-checker exit code.")) -> None:
    """Describe a japi-compliance-checker exit code."""
    typer.echo("Compatible" if code == 0 else describe_exit_code(code))


if __name__ == "__main__":
    app()
