"""Exceptions raised by sweetlog."""
from typing import Optional


class SweetlogError(Exception):
    """Base class for every error sweetlog reports to the operator."""


class CommandFailed(SweetlogError):
    def __init__(self, cmd: str, returncode: Optional[int], stderr: str = "", message: Optional[str] = None):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        if message is None:
            message = f"Command failed ({returncode}): {cmd}: {stderr.strip() or 'no output'}"
        super().__init__(message)


class CommandTimeout(CommandFailed):
    def __init__(self, cmd: str, timeout: float):
        self.timeout = timeout
        super().__init__(cmd, None, message=f"Command timed out after {timeout}s: {cmd}")


class SourceUnavailable(SweetlogError):
    """The commit log could not be read or could not be parsed."""


class BoundaryUnfixable(SweetlogError):
    """The first commit of the ledger is disallowed and has nothing to anchor to."""


class AnchorNotFound(SweetlogError):
    """No earlier allowed or already fixed commit exists for a disallowed commit."""


class RewriteFailed(SweetlogError):
    """Rewriting the history of a single commit failed."""


class PublishFailed(SweetlogError):
    """Force pushing the rewritten history failed."""


class MaxPassesExceeded(SweetlogError):
    """The fixed-point loop did not settle within the configured number of passes."""
