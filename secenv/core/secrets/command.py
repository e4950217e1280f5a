"""Run trusted external tools (gpg, gcloud) and capture their output."""

import logging
import subprocess
from typing import List, Optional

from secenv.core.secrets.exceptions import SecretBackendError

logger = logging.getLogger(__name__)


def run_command(
    args: List[str], input_text: Optional[str] = None, backend: str = "command"
) -> str:
    """
    Run a command to completion and return its standard output.

    No timeout is applied: the tools may prompt the user (pinentry,
    browser login) and the run waits for them.

    Args:
        args: Program and arguments
        input_text: Text written to the command's stdin; stdin is closed if None
        backend: Backend name, used in error messages

    Returns:
        Captured stdout

    Raises:
        SecretBackendError: If the program is missing or exits non-zero
    """
    logger.debug(f"Running {args[0]} for backend '{backend}'")
    try:
        result = subprocess.run(
            args,
            input=input_text,
            stdin=subprocess.DEVNULL if input_text is None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
        )
    except FileNotFoundError as e:
        raise SecretBackendError(
            f"`{args[0]}` command not found. Install it or configure its path.",
            backend=backend,
        ) from e
    except UnicodeDecodeError as e:
        raise SecretBackendError(
            f"{args[0]} output is not valid UTF-8", backend=backend
        ) from e

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise SecretBackendError(
            f"{args[0]} failed with exit code {result.returncode}: {stderr}",
            backend=backend,
            stderr=stderr,
        )

    return result.stdout
