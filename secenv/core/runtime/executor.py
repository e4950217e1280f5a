"""Hand resolved values to the outside world: files, environment, child process."""

import logging
import os
import re
import subprocess
from typing import Dict, Iterable, List, Mapping, Optional

from secenv.core.runtime.exceptions import ExecutionError

logger = logging.getLogger(__name__)

SECRET_FILE_MODE = 0o600


def build_environment(
    resolved_env: Mapping[str, str],
    keep: Optional[List[str]] = None,
    host_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build the child process environment.

    Args:
        resolved_env: Resolved variables; they always win over host values
        keep: Patterns for host variables to pass on; all of them when None
        host_env: Host environment; os.environ when None

    Returns:
        The complete environment for the child
    """
    host_env = os.environ if host_env is None else host_env

    if keep is None:
        env = dict(host_env)
    else:
        patterns = [re.compile(pattern) for pattern in keep]
        env = {
            name: value
            for name, value in host_env.items()
            if any(pattern.search(name) for pattern in patterns)
        }
        logger.debug(f"Kept {len(env)} host variable(s) matching {keep}")

    env.update(resolved_env)
    return env


def materialize_files(files: Mapping[str, str], force: bool = False) -> List[str]:
    """
    Write resolved files, creating parent directories as needed.

    Every target is checked before anything is written, so an existing
    file leaves the filesystem untouched.

    Returns:
        Paths written, for cleanup_files

    Raises:
        ExecutionError: If a target exists without `force`, or a write fails
    """
    targets = [(os.path.expanduser(path), content) for path, content in files.items()]

    for path, _ in targets:
        if os.path.exists(path) and not force:
            raise ExecutionError(f"File '{path}' already exists. Use --force to overwrite.")

    written = []
    for path, content in targets:
        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SECRET_FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            cleanup_files(written)
            raise ExecutionError(f"Failed to write file: {path}: {e}") from e
        written.append(path)
        logger.debug(f"Wrote {path}")

    return written


def cleanup_files(paths: Iterable[str]) -> None:
    """Remove materialized files; failures are logged, not raised."""
    for path in paths:
        try:
            os.remove(path)
            logger.debug(f"Removed {path}")
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.error(f"Failed to remove file '{path}': {e}")


def run_command(command: List[str], env: Mapping[str, str]) -> int:
    """
    Run the child process to completion with `env` as its whole environment.

    Returns:
        The child's exit status; 1 if it was killed by a signal

    Raises:
        ExecutionError: If the command is empty or cannot be started
    """
    if not command:
        raise ExecutionError("No command provided")

    logger.info(f"Running {command[0]}")
    try:
        result = subprocess.run(command, env=dict(env))
    except OSError as e:
        raise ExecutionError(f"Failed to execute command: {command[0]}: {e}") from e

    if result.returncode < 0:
        return 1
    return result.returncode
