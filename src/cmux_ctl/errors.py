"""Error taxonomy for the control client.

Every failure carries a machine-readable code and a human-readable message.
Transport and resolution errors abort the invocation; there is no local retry.
"""


class CmuxError(Exception):
    """Base error raised by transport, resolver, and store operations."""

    def __init__(self, code: str, message: str) -> None:
        """Initialize with a machine-readable code and a human-readable message.

        Args:
            code: Machine-readable error code (e.g. "socket_not_found").
            message: Human-readable error description.

        """
        super().__init__(message)
        self.code = code


# --- Transport ---


class SocketNotFoundError(CmuxError):
    """Control socket path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__("socket_not_found", f"Socket not found at {path}")


class SocketPermissionError(CmuxError):
    """Control socket is owned by another user."""

    def __init__(self, path: str) -> None:
        super().__init__("permission_denied", f"Socket at {path} is not owned by the current user, refusing to connect")


class ConnectFailedError(CmuxError):
    """Socket could not be created or connected."""

    def __init__(self, message: str) -> None:
        super().__init__("connect_failed", message)


class ResponseTimeoutError(CmuxError):
    """No response terminator arrived before the deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__("timeout", f"Command timed out after {timeout:g}s")


class ProtocolError(CmuxError):
    """Response could not be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__("protocol_error", message)


class RemoteError(CmuxError):
    """Server returned a failure response.

    Structured v2 failures render as ``<code>: <message>``; plain ``ERROR:`` lines
    are surfaced verbatim with the generic ``remote_error`` code.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(code or "remote_error", f"{code}: {message}" if code else message)
        self.remote_code = code
        self.remote_message = message


# --- Resolution ---


class InvalidHandleError(CmuxError):
    """Token is neither a canonical id, a ref, nor an index."""

    def __init__(self, kind: str, raw: str) -> None:
        super().__init__(
            "invalid_handle", f"Invalid {kind} handle: {raw} (expected UUID, ref like {kind}:1, or index)"
        )


class IndexNotFoundError(CmuxError):
    """No listed entity carries the requested index (or ref, for canonical-id lookups)."""

    def __init__(self, kind: str, index: int | str) -> None:
        label = "ref" if isinstance(index, str) else "index"
        super().__init__("index_not_found", f"{kind.capitalize()} {label} not found: {index}")


class NoImplicitTargetError(CmuxError):
    """No current/focused entity exists for an implicit target."""

    def __init__(self, kind: str) -> None:
        super().__init__("no_implicit_target", f"No {kind} is currently selected")


# --- Output / store ---


class InvalidIdFormatError(CmuxError):
    """Unknown --id-format value."""

    def __init__(self, raw: str) -> None:
        super().__init__("invalid_id_format", f"--id-format must be one of: refs, uuids, both (got '{raw}')")


class StoreIOError(CmuxError):
    """Session affinity store file or lock failure."""

    def __init__(self, message: str) -> None:
        super().__init__("store_io_error", message)
