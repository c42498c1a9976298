from __future__ import annotations

"""Configuration models.

CONTRACT
- Inputs: Action inputs from the environment (INPUT_<NAME>) and an optional
  YAML file (apicompat.yaml) overriding checker settings
- Outputs (required):
  - Validated ActionInputs, CheckerConfig, RunConfig objects
- Invariants:
  - `key` and `file` are required and non-empty
  - Default checker settings pin japi-compliance-checker 2.4
- Failure:
  - Raises ConfigError on missing inputs or invalid schema
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError

CHECKER_REPO = "https://github.com/lvc/japi-compliance-checker.git"
CHECKER_VERSION = "2.4"
INSTALL_DIRECTORY = ".japi_compliance_checker"
EXECUTABLE = "japi-compliance-checker.pl"


@dataclass(frozen=True)
class ActionInputs:
    key: str
    file: str
    cache_dir: Path | None = None
    config_file: Path | None = None


@dataclass(frozen=True)
class CheckerConfig:
    repo: str = CHECKER_REPO
    version: str = CHECKER_VERSION
    install_dir: str = INSTALL_DIRECTORY
    executable: str = EXECUTABLE
    use_sudo: bool = True
    extra_args: list[str] = field(default_factory=list)

    def entry_script(self, workspace: Path) -> Path:
        return workspace / self.install_dir / self.executable


@dataclass(frozen=True)
class RunConfig:
    inputs: ActionInputs
    workspace: Path
    checker: CheckerConfig = field(default_factory=CheckerConfig)
    report_path: Path | None = None

    @property
    def key(self) -> str:
        return self.inputs.key

    @property
    def file(self) -> str:
        return self.inputs.file


def _input(env: Mapping[str, str], name: str) -> str:
    # Same convention as @actions/core: spaces become underscores, name uppercased.
    return env.get(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()


def get_input(env: Mapping[str, str], name: str, *, required: bool = False) -> str:
    value = _input(env, name)
    if required and not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def load_inputs(env: Mapping[str, str] | None = None) -> ActionInputs:
    env = os.environ if env is None else env
    cache_dir = get_input(env, "cache-dir") or env.get("APICOMPAT_CACHE_DIR", "").strip()
    config_file = get_input(env, "config")
    return ActionInputs(
        key=get_input(env, "key", required=True),
        file=get_input(env, "file", required=True),
        cache_dir=Path(cache_dir) if cache_dir else None,
        config_file=Path(config_file) if config_file else None,
    )


CHECKER_SCHEMA = {
    "type": "object",
    "properties": {
        "checker": {
            "type": "object",
            "properties": {
                "repo": {"type": "string", "minLength": 1},
                "version": {"type": "string", "minLength": 1},
                "install_dir": {"type": "string", "minLength": 1},
                "executable": {"type": "string", "minLength": 1},
                "use_sudo": {"type": "boolean"},
                "extra_args": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        },
    },
}


def load_checker_config(path: Path | None, base: CheckerConfig | None = None) -> CheckerConfig:
    import jsonschema  # lazy import

    base = base or CheckerConfig()
    if path is None:
        return base
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    try:
        jsonschema.validate(instance=data, schema=CHECKER_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Invalid config schema: {e.message}") from e

    raw = data.get("checker", {}) or {}
    overrides: dict[str, Any] = {k: v for k, v in raw.items() if k != "extra_args"}
    if "extra_args" in raw:
        overrides["extra_args"] = list(raw["extra_args"])
    return replace(base, **overrides)


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Config Loader CLI")
    parser.add_argument("--config", required=True, help="Path to apicompat.yaml")
    args = parser.parse_args()

    try:
        cfg = load_checker_config(Path(args.config))
        print(f"Checker: {cfg}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
