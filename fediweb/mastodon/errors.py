"""Exceptions raised by the gateway between browser sessions and Mastodon instances.

Views decide what HTTP status each of these becomes.
"""


class GatewayError(Exception):
    """Base class for all errors raised in the course of handling a request."""


class InvalidSession(GatewayError):
    """No session cookie, an unknown session, or a session with no registered app."""

    def __init__(self, message="invalid session"):
        super().__init__(message)


class InvalidCSRFToken(GatewayError):
    """CSRF token missing from the request or not matching the session’s."""

    def __init__(self, message="invalid csrf token"):
        super().__init__(message)


class InvalidArgument(GatewayError):
    """Caller omitted a required value."""


class AppNotFound(GatewayError):
    """No app registered for this instance yet."""


class SessionNotFound(GatewayError):
    """No session with this ID."""


class StorageError(GatewayError):
    """The database refused to store or retrieve a record."""


class RemoteError(GatewayError):
    """The Mastodon instance could not be reached or gave an unusable response.

    Attributes --
        status_code -- HTTP status of the response, or None if there was no response
        detail -- error message from the instance or the transport
    """

    def __init__(self, message, status_code=None, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self):
        message = super().__str__()
        if self.status_code:
            message = f"{message} (HTTP {self.status_code})"
        if self.detail:
            message = f"{message}: {self.detail}"
        return message


class RegistrationError(RemoteError):
    """Registering our app with an instance failed."""


class TokenExchangeError(RemoteError):
    """Exchanging an authorization code for an access token failed."""
