# jira_errors.py
"""Errors raised by the Jira client and the fields codec."""
from __future__ import annotations

from typing import Optional


class JiraError(RuntimeError):
    """Jira error with the request context it failed on."""

    def __init__(
            self,
            message: str,
            method: Optional[str] = None,
            url: Optional[str] = None,
            status_code: Optional[int] = None,
            response_text: Optional[str] = None
    ):
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_text = response_text


class InvalidEndpoint(JiraError):
    """Base URL and path do not join into a usable URL."""


class TransportFailure(JiraError):
    """The request could not be sent or its response could not be read."""


class RequestFailed(JiraError):
    """The server answered with an HTTP status of 400 or above."""


class Unauthorized(RequestFailed):
    pass


class NotFound(RequestFailed):
    pass


class MethodNotAllowed(RequestFailed):
    pass


class UnsupportedMediaType(RequestFailed):
    pass


class BadGateway(RequestFailed):
    pass


class DecodeError(JiraError):
    """Response body is not valid JSON or does not match the expected shape."""


class ValidationError(JiraError):
    """Caller input rejected before any request was made."""


STATUS_ERRORS = {
    401: Unauthorized,
    404: NotFound,
    405: MethodNotAllowed,
    415: UnsupportedMediaType,
    502: BadGateway,
}
