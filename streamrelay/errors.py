"""Error kinds raised by the relay pipeline.

Each error carries the HTTP status the route should answer with and a short
human-readable message.  Route handlers render them; nothing below the route
layer builds a response.
"""


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(RelayError):
    """The caller sent a missing or malformed target URL."""

    status_code = 400


class UpstreamHTTPError(RelayError):
    """The upstream answered with a status the relay does not pass through."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"Target returned {status_code}", status_code=status_code)
        self.reason = reason


class UpstreamUnreachable(RelayError):
    """DNS, connection, timeout or protocol failure reaching the upstream."""

    status_code = 500
