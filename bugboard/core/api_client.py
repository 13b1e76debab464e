"""
BugBoard REST Transport
=======================

HTTP client for the BugBoard backend, built on ``requests``.

The client exposes four primitives used by the services layer:

- ``get(path)`` / ``post(path, body)``: JSON endpoints, return the response
  text (possibly empty).
- ``get_stream(path)``: binary download, returns bytes.
- ``post_multipart(path, file_path)``: file upload, returns the response text.

Every request except login carries ``Authorization: Bearer <token>`` read
from the Session. Status codes are mapped to exceptions:

- 2xx  -> success
- 404  -> NotFoundError (subclass of ApiError)
- >=400 -> ApiError with ``status_code`` and ``body``
- connection failures / timeouts -> CommunicationError

Requests are attempted exactly once; there is no retry policy.
"""

import json
import logging
import mimetypes
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

from .config import CONNECT_TIMEOUT_SECONDS, DEFAULT_API_BASE_URL, NETWORK_TIMEOUT_SECONDS
from .errors import BugBoardError
from .session import Session
from ..utils.logger import log_api_request, log_api_response


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ApiError(BugBoardError):
    """Raised when the backend answers with a status code >= 400."""

    def __init__(self, status_code: int, message: str, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotFoundError(ApiError):
    """Raised when a resource is not found (404)."""
    pass


class CommunicationError(BugBoardError):
    """Raised when the backend cannot be reached or does not answer in time."""
    pass


# ============================================================================
# CLIENT
# ============================================================================

class ApiClient:
    """
    Thin transport over ``requests.Session``.

    Safe to call from background threads: the only shared state read per
    request is the Session token, which is read under the Session lock.

    Attributes:
        base_url: Backend root, e.g. ``http://localhost:8080/api``
        session: The authentication Session supplying the bearer token
        timeout: ``(connect, read)`` timeout tuple passed to requests
    """

    def __init__(
        self,
        session: Session,
        base_url: str = DEFAULT_API_BASE_URL,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        read_timeout: float = NETWORK_TIMEOUT_SECONDS,
        http: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.session = session
        self.timeout = (connect_timeout, read_timeout)
        self.http = http or requests.Session()
        self.logger = logging.getLogger(__name__)

        self._metrics_lock = threading.Lock()
        self._request_count = 0
        self._error_counts: Dict[str, int] = {}

        self.logger.info(f"Initialized ApiClient for {self.base_url}")

    def __repr__(self) -> str:
        return f"<ApiClient base_url={self.base_url} requests={self._request_count}>"

    # ------------------------------------------------------------------------
    # PUBLIC PRIMITIVES
    # ------------------------------------------------------------------------

    def get(self, endpoint: str) -> str:
        return self._send("GET", endpoint).text

    def post(self, endpoint: str, body: Union[str, Dict[str, Any], list]) -> str:
        if not isinstance(body, str):
            body = json.dumps(body)
        return self._send("POST", endpoint, data=body.encode('utf-8')).text

    def get_stream(self, endpoint: str) -> bytes:
        return self._send("GET", endpoint, accept="*/*").content

    def post_multipart(self, endpoint: str, file_path: Union[str, Path]) -> str:
        """
        Upload a local file as the ``file`` part of a multipart request.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = Path(file_path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with open(path, "rb") as fh:
            files = {"file": (path.name, fh, content_type)}
            return self._send("POST", endpoint, files=files).text

    def get_metrics(self) -> Dict[str, Any]:
        """Return request/error counters collected since startup."""
        with self._metrics_lock:
            return {"requests": self._request_count, "errors": dict(self._error_counts)}

    # ------------------------------------------------------------------------
    # REQUEST HANDLING
    # ------------------------------------------------------------------------

    def _headers(self, accept: str, json_body: bool) -> Dict[str, str]:
        headers = {"Accept": accept}
        if json_body:
            headers["Content-Type"] = "application/json"
        token = self.session.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _count_error(self, name: str) -> None:
        with self._metrics_lock:
            self._error_counts[name] = self._error_counts.get(name, 0) + 1

    def _send(
        self,
        method: str,
        endpoint: str,
        data: Optional[bytes] = None,
        files: Optional[Dict[str, Any]] = None,
        accept: str = "application/json"
    ) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        headers = self._headers(accept, json_body=files is None)

        log_api_request(
            self.logger, method, endpoint, headers=headers,
            data=data.decode('utf-8') if data else None
        )
        with self._metrics_lock:
            self._request_count += 1
        start_time = time.time()

        try:
            response = self.http.request(
                method, url, headers=headers, data=data, files=files, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            self._count_error(type(e).__name__)
            raise CommunicationError(f"Request to {endpoint} timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            self._count_error(type(e).__name__)
            raise CommunicationError(f"Network error on {endpoint}: {e}") from e

        elapsed = time.time() - start_time
        log_api_response(
            self.logger, response.status_code,
            response.content if accept != "application/json" else response.text,
            elapsed
        )

        if response.status_code >= 400:
            self._count_error(f"HTTP{response.status_code}")
            body = response.text
            self.logger.warning(f"API Error {response.status_code} on {method} {endpoint}: {body}")
            message = f"API call failed ({response.status_code}): {body}"
            if response.status_code == 404:
                raise NotFoundError(response.status_code, message, body)
            raise ApiError(response.status_code, message, body)

        return response
