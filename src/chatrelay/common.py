class GenericException(Exception):
    def __init__(self, msg: str):
        super().__init__(msg)
        self._msg = msg

    @property
    def message(self) -> str:
        return self._msg


class TransportError(GenericException):
    """Raised when an underlying socket operation fails.

    Parameters
    ----------
    operation : str
        Name of the failing socket call, e.g. ``"bind"`` or ``"recv"``.
    cause : OSError, optional
        The error reported by the operating system, if any.
    """

    def __init__(self, operation: str, cause: OSError | None = None):
        msg = f"{operation}() has failed"
        if cause is not None and cause.strerror:
            msg = f"{msg}: {cause.strerror}"
        super().__init__(msg)
        self.operation = operation
        self.cause = cause


class LocalIOError(GenericException):
    def __init__(self, cause: OSError):
        msg = "read() has failed"
        if cause.strerror:
            msg = f"{msg}: {cause.strerror}"
        super().__init__(msg)
        self.cause = cause


class Constants:

    BACKLOG = 5
    BUFFER_SIZE = 1024

    DEFAULT_ADDRESS = "0.0.0.0"
    DEFAULT_PORT = 10000

    POLL_TIMEOUT_MS = 1000

    # Read up to 1 MiB at a time on the peer side.
    PEER_READ_SIZE = 1024 ** 2
