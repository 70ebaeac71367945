
class BackendError(RuntimeError):
    """Raised for backend failures (network, bad status, malformed or unsuccessful response). The message is shown to the user as-is."""
    pass


class BackendBusyError(BackendError):
    """Raised when the backend reports it is temporarily overloaded (HTTP 503). Submissions retry it, lookups treat it as a failure."""
    pass
