"""Exception types.

CONTRACT
- ApiCompatError is the root of everything this package raises on purpose.
- Fatal run conditions are NOT exceptions: the orchestrator reports them as
  RunResult(status="FAIL"). These types cover collaborator failures.
"""

from __future__ import annotations


class ApiCompatError(Exception):
    pass


class ConfigError(ApiCompatError, ValueError):
    """Missing or invalid action input / config file."""


class ContextError(ApiCompatError):
    """Pipeline context is missing data required for the event kind."""


class CacheError(ApiCompatError):
    """Cache store rejected or failed an operation."""


class CacheKeyExists(CacheError):
    def __init__(self, key: str):
        super().__init__(f"Cache entry already exists: {key}")
        self.key = key


class InstallError(ApiCompatError):
    """Checker installation step failed."""
