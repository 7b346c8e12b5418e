"""Client facade owning the HTTP session."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime

import aiohttp

from .backend.rest import Backend
from .const import DEFAULT_RETRY_BACKOFF, MAX_READ_RETRIES
from .exceptions import ConfigError
from .models import SchedulingPolicy
from .service import ReservationService
from .util import utcnow

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


class Client:
    """Facade for building a reservation service backed by the REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = MAX_READ_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url
        self._api_uri = api_uri
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._retry_backoff = retry_backoff
        self._headers = dict(headers or {})

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def backend(self, *, base_url: str | None = None, api_uri: str | None = None) -> Backend:
        base_url = base_url if base_url is not None else self._base_url
        if base_url is None:
            raise ConfigError("base_url is required.")
        return Backend(
            self._ensure_session(),
            base_url=base_url,
            api_uri=api_uri if api_uri is not None else self._api_uri,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_backoff=self._retry_backoff,
            headers=self._headers,
        )

    def reservation_service(
        self,
        *,
        policy: SchedulingPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
        create_retry_count: int = 0,
    ) -> ReservationService:
        # aiohttp already bounds each call; the service timeout is a backstop.
        operation_timeout = (self._timeout.total or 30) * 2 + self._retry_backoff
        return ReservationService(
            self.backend(),
            policy=policy,
            clock=clock,
            operation_timeout=operation_timeout,
            create_retry_count=create_retry_count,
        )

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session
