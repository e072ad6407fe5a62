"""Error taxonomy for talking to a New API server.

Every failure in the fetch pipeline is one of these. They are raised at the
lowest layer that can detect them and propagate unchanged up to the caller.
"""


class NewAPIError(Exception):
    """Base class for all New API client errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(NewAPIError):
    """Transport failure: DNS, connection refused/reset, timeout."""

    kind = "network"

    def __init__(self, reason: str):
        super().__init__(f"Network request failed: {reason}")


class ParseError(NewAPIError):
    """A 2xx response whose body is not valid JSON or not shaped as expected."""

    kind = "parse"

    def __init__(self, reason: str = "invalid JSON body"):
        super().__init__(f"Failed to parse response: {reason}")


class AuthError(NewAPIError):
    """HTTP 401: stale or invalid credentials."""

    kind = "auth"

    def __init__(self):
        super().__init__("Authentication failed, check user id and session cookie")


class NotFoundError(NewAPIError):
    """HTTP 404: usually a misconfigured base URL."""

    kind = "not_found"

    def __init__(self, url: str = ""):
        super().__init__(f"API endpoint not found: {url}" if url else "API endpoint not found")
        self.url = url


class HttpError(NewAPIError):
    kind = "http"

    def __init__(self, status: int):
        super().__init__(f"API request failed with status {status}")
        self.status = status


class MissingDataError(NewAPIError):
    """Well-formed success response that lacks the expected payload."""

    kind = "missing_data"

    def __init__(self, what: str):
        super().__init__(f"Response is missing {what}")
        self.what = what


class ApiError(NewAPIError):
    """The server answered with success=false and (maybe) a message."""

    kind = "api"
