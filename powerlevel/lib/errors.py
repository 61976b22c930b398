"""
Error taxonomy for Powerlevel.

ValidationError and NotFoundError come from bad input or missing cache
records. Remote errors are split by whether a later retry can fix them.
"""


class PowerlevelError(Exception):
    """Base class for all Powerlevel errors."""
    pass


class ValidationError(PowerlevelError):
    """Malformed input to a primitive. Never retried automatically."""
    pass


class NotFoundError(PowerlevelError):
    """Referenced epic or issue does not exist in the cache."""
    pass


class RemoteError(PowerlevelError):
    """A call to the remote tracker failed."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class TransientRemoteError(RemoteError):
    """Rate limit, timeout or network failure. Safe to retry later."""
    pass


class FatalRemoteError(RemoteError):
    """Remote record missing or authorization rejected. Retry won't help."""
    pass
