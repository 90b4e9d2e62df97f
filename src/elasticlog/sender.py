"""
HTTP transport for the Elasticsearch REST API.
"""

import logging
import threading
from typing import Dict, NamedTuple, Optional, Union

import requests
from requests.auth import HTTPBasicAuth

from .errors import TransportError

logger = logging.getLogger(__name__)


class TransportResponse(NamedTuple):
    status: int
    body: str


class ElasticTransport:
    """
    Sends requests to an Elasticsearch server.

    Every call carries the configured timeout. A failed call surfaces as
    TransportError and never as a requests exception.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        """
        Initialize ElasticTransport.

        Args:
            base_url: Server URL, e.g. ``http://localhost:9200``
            timeout: Request timeout in seconds
            headers: Additional headers to send with requests
            session: Custom requests.Session to use (e.g., shared by application)
            username: Optional username for Basic Auth
            password: Optional password for Basic Auth
        """
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = timeout
        self.username = username
        self.password = password
        self._owns_session = session is None
        self._session_lock = threading.Lock()
        self._session = (
            self._build_session()
            if session is None
            else self._prepare_session(session)
        )

    def _build_session(self) -> requests.Session:
        return self._prepare_session(requests.Session())

    def _prepare_session(self, session: requests.Session) -> requests.Session:
        session.headers.update(self.headers)
        if self.username and self.password:
            session.auth = HTTPBasicAuth(self.username, self.password)
        return session

    def reset_session(self, failed: Optional[requests.Session] = None) -> None:
        """Replace an internally-owned session with a fresh one.

        With ``failed`` given, the swap only happens if that session is still
        the current one, so concurrent failures refresh it once. The replaced
        session is dropped, not closed, since other workers may still be
        sending through it.
        """
        if not self._owns_session:
            return
        with self._session_lock:
            if failed is None or self._session is failed:
                self._session = self._build_session()

    def url_for(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str = "",
        payload: Optional[Union[str, bytes]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> TransportResponse:
        """
        Perform one HTTP request.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            payload: Request body; text is sent as UTF-8
            headers: Headers for this request only

        Returns:
            Status code and decoded body

        Raises:
            TransportError: the request could not be completed
        """
        url = self.url_for(path)
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        session = self._session
        try:
            response = session.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            # Refresh internal session so future requests can recover cleanly
            self.reset_session(session)
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return TransportResponse(response.status_code, response.text)

    def close(self) -> None:
        """Close the HTTP session."""
        if self._owns_session:
            with self._session_lock:
                self._session.close()
