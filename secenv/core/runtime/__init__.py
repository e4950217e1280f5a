"""Profile resolution and execution of the resolved values."""

from secenv.core.runtime.exceptions import ExecutionError, ResolutionError
from secenv.core.runtime.executor import (
    build_environment,
    cleanup_files,
    materialize_files,
    run_command,
)
from secenv.core.runtime.resolver import ProfileResolver, ResolvedProfile

__all__ = [
    "ProfileResolver",
    "ResolvedProfile",
    "ResolutionError",
    "ExecutionError",
    "build_environment",
    "materialize_files",
    "cleanup_files",
    "run_command",
]
