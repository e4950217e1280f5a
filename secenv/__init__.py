"""secenv - resolve declarative secrets into a child process environment."""

__version__ = "1.0.0"
