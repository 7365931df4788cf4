from __future__ import annotations

import contextlib
import functools
from typing import Callable, Iterator

import requests
import urllib3
from requests.adapters import HTTPAdapter

from .config import ClientConfig

BODY_BUFFER_BYTES = 50_000

RequestSender = Callable[[bytearray], None]


def create_session(pool_size: int, config: ClientConfig | None = None) -> requests.Session:
    """Build a session whose connection pool holds ``pool_size`` idle connections."""
    config = config or ClientConfig()
    session = requests.Session()

    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=max(pool_size, 1), max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    if not config.compress:
        session.headers["Accept-Encoding"] = "identity"
    if not config.keep_alive:
        session.headers["Connection"] = "close"
    if config.insecure:
        session.verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    return session


def send_request(
    session: requests.Session,
    url: str,
    host: str | None,
    body_buffer: bytearray,
    timeout: tuple[float, float] | None = None,
) -> None:
    """Issue one GET and drain the body into ``body_buffer``.

    The status code is ignored. Transport failures surface as
    ``requests.RequestException``.
    """
    headers = {"Host": host} if host else None
    response = session.get(url, headers=headers, stream=True, timeout=timeout)
    with response:
        try:
            while response.raw.readinto(body_buffer):
                pass
        except urllib3.exceptions.HTTPError as exc:
            # Reading raw bypasses requests' own wrapping of mid-body failures.
            raise requests.ConnectionError(exc, response=response) from exc


class HttpTarget:
    """Endpoint under test plus the client settings used to reach it."""

    def __init__(self, url: str, host: str | None = None, config: ClientConfig | None = None) -> None:
        self._url = url
        self._host = host
        self._config = config or ClientConfig()

    @property
    def url(self) -> str:
        return self._url

    @contextlib.contextmanager
    def open(self, pool_size: int) -> Iterator[RequestSender]:
        session = create_session(pool_size, self._config)
        timeout = (self._config.connect_timeout_s, self._config.request_timeout_s)
        try:
            yield functools.partial(send_request, session, self._url, self._host, timeout=timeout)
        finally:
            session.close()


def new_body_buffer() -> bytearray:
    return bytearray(BODY_BUFFER_BYTES)


__all__ = [
    "BODY_BUFFER_BYTES",
    "HttpTarget",
    "RequestSender",
    "create_session",
    "new_body_buffer",
    "send_request",
]
