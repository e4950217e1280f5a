"""Custom exceptions for profile resolution and execution."""


class ResolutionError(Exception):
    """Raised when a variable or file of a profile cannot be resolved.

    `kind` is "variable" or "file"; `name` is the variable name or path.
    The underlying error is chained as `__cause__`.
    """

    def __init__(self, message: str, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(message)


class ExecutionError(Exception):
    """Raised when resolved values cannot be written or the command cannot start."""

    pass
