"""Interactive password prompt."""

import getpass
import sys

from secenv.core.pgp.exceptions import PasswordPromptError


def getpass_prompt(prompt_text: str) -> str:
    """
    Ask for a password on the terminal with echo turned off.

    Raises:
        PasswordPromptError: If there is no terminal or input ends
    """
    if not sys.stdin or not sys.stdin.isatty():
        raise PasswordPromptError(
            "A password is required but no interactive terminal is available"
        )
    try:
        return getpass.getpass(prompt_text)
    except EOFError as e:
        raise PasswordPromptError("No password entered") from e
