"""Backend collaborator contract and shared HTTP behavior."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

import aiohttp

from ..const import DEFAULT_RETRY_BACKOFF, MAX_READ_RETRIES
from ..exceptions import (
    AuthError,
    BackendError,
    BackendTimeoutError,
    ConfigError,
    NetworkError,
    NotFoundError,
    PyEVChargingError,
    ServiceUnavailableError,
    ValidationError,
)
from ..models import Reservation, ReservationRequest, StoredStatus

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


class BaseBackend(ABC):
    """Reservation storage owned by the backend.

    ``create_reservation`` is the arbitration point: it either returns the
    new reservation or raises SlotConflictError. A create carrying an
    idempotency key the backend has already seen returns the original
    reservation.
    """

    @abstractmethod
    async def create_reservation(self, request: ReservationRequest) -> Reservation:
        """Create a reservation for ``request``."""

    @abstractmethod
    async def cancel_reservation(self, reservation_id: str) -> Reservation:
        """Mark a reservation cancelled."""

    @abstractmethod
    async def list_reservations(
        self,
        user_id: str | None = None,
        *,
        station_id: str | None = None,
        statuses: Iterable[StoredStatus] | None = None,
    ) -> list[Reservation]:
        """Return stored reservations matching the filters."""

    async def aclose(self) -> None:
        return None


class HttpBackend(BaseBackend):
    """Base class for backends reached over HTTP with aiohttp."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = MAX_READ_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if session is None:
            raise ConfigError("Session is required.")
        self._session = session
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(api_uri)
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = min(MAX_READ_RETRIES, max(0, retry_count))
        self._retry_backoff = max(0.0, retry_backoff)
        self._headers = dict(headers or {})

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ConfigError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ConfigError("Use relative paths when building backend requests.")
        if self._base_url is None:
            raise ConfigError("base_url is required to build backend requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        headers = {**self._headers, **kwargs.pop("headers", {})}
        return await self._request(method, url, headers=headers, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Only GET is retried, once at most, on transport failures and 5xx
        answers. Writes are never retried here; the caller decides, reusing
        the same idempotency key.
        """
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        for attempt in range(attempts):
            last_attempt = attempt >= attempts - 1
            try:
                async with self._session.request(
                    method,
                    url,
                    timeout=self._timeout,
                    **kwargs,
                ) as response:
                    payload = await self._read_payload(response)
                    if response.status >= 500 and not last_attempt:
                        _LOGGER.debug("%s %s answered %s, retrying", method, url, response.status)
                        await self._backoff(attempt)
                        continue
                    self._raise_for_status(method, response.status, payload)
                    return payload
            except TimeoutError as exc:
                if last_attempt:
                    raise BackendTimeoutError("Backend request timed out.") from exc
            except aiohttp.ClientError as exc:
                if last_attempt:
                    raise NetworkError("Network request failed.") from exc
            _LOGGER.debug("%s %s failed, retrying", method, url)
            await self._backoff(attempt)
        raise BackendError("Request failed.")

    async def _backoff(self, attempt: int) -> None:
        if self._retry_backoff:
            await asyncio.sleep(self._retry_backoff * (attempt + 1))

    async def _read_payload(self, response: aiohttp.ClientResponse) -> Any:
        if response.status == 204:
            return None
        try:
            return await response.json()
        except (aiohttp.ContentTypeError, ValueError) as exc:
            if 200 <= response.status < 300:
                raise BackendError("Response did not contain valid JSON.") from exc
            return None

    def _raise_for_status(self, method: str, status: int, payload: Any) -> None:
        if 200 <= status < 300:
            return
        message = self._error_message(payload)
        if status in (401, 403):
            raise AuthError("Authentication failed.", detail=message)
        if status == 404:
            raise NotFoundError(message or "Record not found.")
        if status == 409:
            raise self._conflict_error(method, payload, message)
        if status in (400, 422):
            raise ValidationError(message or "Backend rejected the request.")
        if status >= 500:
            raise ServiceUnavailableError(f"Backend request failed with status {status}.", detail=message)
        raise BackendError(f"Backend request failed with status {status}.", detail=message)

    def _conflict_error(self, method: str, payload: Any, message: str | None) -> PyEVChargingError:
        return BackendError(message or "Backend reported a conflict.")

    def _error_message(self, payload: Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        for key in ("msg", "message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def _normalize_base_url(self, base_url: str | None) -> str | None:
        if base_url is None:
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            raise ConfigError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str | None) -> str:
        if api_uri is None:
            return ""
        if not isinstance(api_uri, str):
            raise ConfigError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"
