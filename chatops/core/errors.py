# chatops/core/errors.py
"""Exception types raised by the dispatch pipeline."""


class ChatOpsError(Exception):
    """Base class for all chatops errors."""


class ExecutionError(ChatOpsError):
    """Raised when a command body fails.

    Attributes:
        command: Name of the command that failed.
    """

    def __init__(self, message: str, command: str):
        super().__init__(message)
        self.command = command


class TransportError(ChatOpsError):
    """Raised when a chat platform API call fails.

    Attributes:
        method: Name of the API method that failed.
    """

    def __init__(self, message: str, method: str):
        super().__init__(message)
        self.method = method


class TokenDecodeError(ChatOpsError):
    """Raised when a resumable form token cannot be decoded."""


class PermissionConfigError(ChatOpsError):
    """Raised when a permission rule contains an invalid regex."""


class RegistryError(ChatOpsError):
    """Raised when the command registry cannot be built."""
