from typing import Optional


class DbtCloudError(Exception):
    """Base class for every error raised by the dbt Cloud client"""


class TransportError(DbtCloudError):
    """The request could not be executed or the server answered with a non-success status.

    Args:
        message: human readable description
        url: the url that was requested
        status_code: HTTP status code of the response, None when no response was received
        body: raw response body, if any
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None, body: bytes = b""):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.body = body


class DecodeError(DbtCloudError):
    """The response body does not unmarshal into the expected `{data, status}` envelope"""
