"""HTTP primitive functions.
"""

from urllib.error import HTTPError
from http.client import HTTPResponse, HTTPException
import urllib.request
import json
import ssl

import certifi

from . import LAUNCHER_NAME, LAUNCHER_VERSION

from typing import Optional, Any, cast


__all__ = ["HttpResponse", "HttpError", "http_request", "http_open", "ssl_context"]


class HttpResponse:
    """An HTTP response containing the status, data and received headers.
    """
    
    def __init__(self, res: Optional[HTTPResponse]) -> None:

        self.status = 0 if res is None else res.status
        self.data = b"null" if res is None else res.read()
        self.headers = {}

        if res is not None:
            for header_name, header_value in res.getheaders():
                self.headers[header_name] = header_value

    def json(self) -> Any:
        """Parse the data as JSON. This may raise a JSONDecodeError.
        """
        return json.loads(self.data)
    
    def text(self) -> str:
        """Parse the data as UTF-8 text.
        """
        return self.data.decode()

    def __repr__(self) -> str:
        return f"<HttpResponse {self.status}>"


class HttpError(Exception):
    """An HTTP error, raised when the status code of the response is not 2xx.

    If any network error happens and it's impossible to receive a response from the 
    server, an instance of `HttpResponse` with status equal to 0 is used (also has no 
    headers and `null` data). The original reason for this error is given in the 
    `reason` attribute in any case.
    """

    def __init__(self, res: HttpResponse, method: str, url: str, reason: Exception) -> None:
        self.res = res
        self.method = method
        self.url = url
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.method} {self.url}: {self.res.status} ({self.reason})"

    def __repr__(self) -> str:
        return f"<HttpError {self.res}, origin: {self.method} {self.url}, reason: {self.reason}>"


def ssl_context() -> ssl.SSLContext:
    """Return the SSL context used for every connection, trusting certifi's bundle.
    """
    return ssl.create_default_context(cafile=certifi.where())


def _build_request(method: str, url: str,
    data: Optional[bytes],
    headers: Optional[dict],
    accept: Optional[str],
    content_type: Optional[str]
) -> urllib.request.Request:

    if headers is None:
        headers = {}
    if accept is not None:
        headers["Accept"] = accept
    if content_type is not None:
        headers["Content-Type"] = content_type
    if "User-Agent" not in headers:
        headers["User-Agent"] = f"{LAUNCHER_NAME}/{LAUNCHER_VERSION}"

    return urllib.request.Request(url, data, headers, method=method)


def http_request(method: str, url: str, *,
    data: Optional[bytes] = None,
    headers: Optional[dict] = None,
    accept: Optional[str] = None,
    content_type: Optional[str] = None
) -> HttpResponse:
    """Make a synchronous HTTP request, the whole body is read.

    :return: The response returned should've a status of 2xx.
    :raises HttpError: An error wrapping a response that is not of status 2xx, or a 
    transport error (invalid URL, connection, timeout or body read) with status 0.
    """

    try:
        req = _build_request(method, url, data, headers, accept, content_type)
        res: HTTPResponse = urllib.request.urlopen(req, context=ssl_context())
        return HttpResponse(res)
    except HTTPError as error:
        raise HttpError(_error_response(error), method, url, error)
    except (HTTPException, OSError, ValueError) as error:
        raise HttpError(HttpResponse(None), method, url, error)


def http_open(url: str, *, accept: Optional[str] = None) -> HTTPResponse:
    """Open a GET request and return the raw response without reading its body, this
    is used for streaming large files. Redirections are followed by urllib. The caller
    is responsible for closing the response, errors while reading it are not wrapped.

    :raises HttpError: An error wrapping a response that is not of status 2xx, or a
    transport error with status 0.
    """

    try:
        req = _build_request("GET", url, None, None, accept, None)
        return urllib.request.urlopen(req, context=ssl_context())
    except HTTPError as error:
        raise HttpError(_error_response(error), "GET", url, error)
    except (HTTPException, OSError, ValueError) as error:
        raise HttpError(HttpResponse(None), "GET", url, error)


def _error_response(error: HTTPError) -> HttpResponse:
    """Internal function to read the response of an HTTP error, only its status is 
    kept if the body can't be read.
    """
    try:
        return HttpResponse(cast(HTTPResponse, error))
    except (HTTPException, OSError):
        res = HttpResponse(None)
        res.status = error.code
        return res
