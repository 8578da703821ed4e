from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ADDRESS = "InvalidAddress"
    NOT_FOUND = "NotFound"
    INTERNAL_ERROR = "InternalError"


# === Exceptions ===
class BlocklistError(Exception):
    """Base error for blocklist operations.

    Each subclass maps to one ErrorKind and the HTTP status the API answers
    with. ``message`` is safe to show to clients.
    """

    kind = ErrorKind.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "message": self.message}


class InvalidAddressError(BlocklistError):
    kind = ErrorKind.INVALID_ADDRESS
    status_code = 400

    def __init__(self, value, reason: str = "not a valid IPv4 or IPv6 address"):
        self.value = value
        super().__init__(f"{value!r} is {reason}")


class NotFoundError(BlocklistError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"IP '{address}' is not in the blocklist")


class StoreUnavailableError(BlocklistError):
    """Raised when exclusive access to the store can't be obtained in time."""

    kind = ErrorKind.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str = "Blocklist is temporarily unavailable"):
        super().__init__(message)


class RequestTimeoutError(BlocklistError):
    kind = ErrorKind.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)


class RequestCancelledError(BlocklistError):
    kind = ErrorKind.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str = "Request was cancelled by the client"):
        super().__init__(message)
