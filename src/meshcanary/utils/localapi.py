"""Async client for the Tailscale LocalAPI served by ``tailscaled``.

The daemon exposes an HTTP API on a unix domain socket. Requests must
carry the ``local-tailscaled.sock`` host name; the daemon rejects any
other ``Host`` header.

Endpoints used:

* ``GET /localapi/v0/status`` -- mesh membership, local node and link state.
* ``POST /localapi/v0/ping?ip=<addr>&type=<kind>`` -- one connectivity
  probe. The daemon answers ``200`` even when the peer does not respond;
  the failure is reported in the body's ``Err`` field.

Examples:
    ```python
    async with LocalApiClient() as client:
        status = await client.status()
        pong = await client.ping("100.64.0.7", ping_type="disco", timeout=5.0)
    ```
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Final, Self

import aiohttp

from .http import read_bounded_json


DEFAULT_SOCKET_PATH: Final[str] = "/var/run/tailscale/tailscaled.sock"
LOCALAPI_HOST: Final[str] = "local-tailscaled.sock"
DEFAULT_MAX_RESPONSE_SIZE: Final[int] = 16 * 1024 * 1024


class LocalApiError(Exception):
    """The daemon answered a LocalAPI request with an error status."""

    def __init__(self, status: int, detail: str) -> None:
        message = f"localapi returned HTTP {status}"
        super().__init__(f"{message}: {detail}" if detail else message)
        self.status = status
        self.detail = detail


class LocalApiClient:
    """Minimal LocalAPI client over a unix socket.

    The aiohttp session is created lazily on first use (or by ``open()``)
    so the client can be constructed outside a running event loop.

    Args:
        socket_path: Path of the ``tailscaled`` unix socket.
        max_response_size: Upper bound for response bodies in bytes.
        session: Pre-built session to use instead of a unix-socket one.
            The client does not close sessions it did not create.
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        *,
        max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._socket_path = socket_path
        self._max_response_size = max_response_size
        self._session = session
        self._owns_session = session is None

    @property
    def socket_path(self) -> str:
        return self._socket_path

    async def open(self) -> None:
        """Create the unix-socket session if none exists yet."""
        self._ensure_session()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.UnixConnector(path=self._socket_path)
            self._session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def status(self, timeout: float = 10.0) -> dict[str, Any]:  # noqa: ASYNC109
        """Fetch ``/localapi/v0/status``.

        Raises:
            LocalApiError: On a non-success HTTP status.
            aiohttp.ClientError: If the socket cannot be reached.
            TimeoutError: If the request exceeds *timeout*.
            ValueError: If the body is oversized, not JSON, or not an object.
        """
        data = await self._request("GET", "/localapi/v0/status", timeout=timeout)
        if not isinstance(data, dict):
            raise ValueError(f"status must be a JSON object, got {type(data).__name__}")
        return data

    async def ping(
        self,
        ip: str,
        *,
        ping_type: str = "disco",
        timeout: float = 5.0,  # noqa: ASYNC109
    ) -> dict[str, Any]:
        """Issue one ``/localapi/v0/ping`` probe and return the raw result.

        Raises:
            LocalApiError: On a non-success HTTP status.
            aiohttp.ClientError: If the socket cannot be reached.
            TimeoutError: If the request exceeds *timeout*.
            ValueError: If the body is oversized, not JSON, or not an object.
        """
        data = await self._request(
            "POST",
            "/localapi/v0/ping",
            params={"ip": ip, "type": ping_type},
            timeout=timeout,
        )
        if not isinstance(data, dict):
            raise ValueError(f"ping result must be a JSON object, got {type(data).__name__}")
        return data

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        timeout: float,  # noqa: ASYNC109
    ) -> Any:
        session = self._ensure_session()
        async with session.request(
            method,
            f"http://{LOCALAPI_HOST}{path}",
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            if response.status >= 400:
                detail = (await response.text()).strip()[:200]
                raise LocalApiError(response.status, detail)
            return await read_bounded_json(response, self._max_response_size)
