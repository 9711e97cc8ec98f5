"""Async HTTP client for the Refood REST API."""

import asyncio
from typing import Any

import httpx

from refood.config import Settings, get_settings
from refood.errors import (
    NetworkError,
    NotFoundError,
    RequestRejected,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
)
from refood.state.session import SessionProvider
from refood.utils.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_ERRORS = (RequestTimeoutError, NetworkError, ServerError)


def _server_message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        for key in ("message", "messaggio", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class RefoodClient:
    """Authenticated JSON client with per-call timeouts and error mapping."""

    def __init__(
        self,
        session: SessionProvider,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(base_url=self.settings.api_url)

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self.http.aclose()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET with retry and exponential backoff."""
        max_retries = self.settings.max_retries
        retry_delay = self.settings.retry_delay

        for attempt in range(max_retries):
            try:
                return await self._send("GET", path, params=params)
            except RETRYABLE_ERRORS as e:
                if attempt == max_retries - 1:
                    raise

                wait_time = retry_delay * (2**attempt)
                logger.warning(
                    "remote_read_retry",
                    path=path,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    wait_seconds=wait_time,
                    error=e.message,
                )
                await asyncio.sleep(wait_time)

        raise NetworkError(f"Nessuna risposta da {path}")

    async def post(self, path: str, json: dict[str, Any] | None = None) -> Any:
        return await self._send("POST", path, json=json)

    async def put(self, path: str, json: dict[str, Any] | None = None) -> Any:
        return await self._send("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self._send("DELETE", path)

    async def _headers(self) -> dict[str, str]:
        token = await self.session.get_token()
        if not token:
            raise UnauthorizedError("Sessione scaduta. Effettua nuovamente il login.")
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        headers = await self._headers()
        timeout = (
            self.settings.read_timeout if method == "GET" else self.settings.write_timeout
        )

        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Timeout durante la richiesta {method} {path}. "
                "Verifica la connessione al server.",
                method=method,
                path=path,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                "Nessuna risposta dal server. Verifica la connessione di rete.",
                method=method,
                path=path,
                reason=str(e),
            ) from e

        body = self._decode(response)
        if response.is_success:
            logger.debug(
                "remote_call",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            return body

        self._raise_for_status(method, path, response.status_code, body)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    @staticmethod
    def _raise_for_status(method: str, path: str, status_code: int, body: Any) -> None:
        logger.warning(
            "remote_call_failed",
            method=method,
            path=path,
            status_code=status_code,
            message=_server_message(body, ""),
        )

        if status_code in (401, 403):
            raise UnauthorizedError(
                _server_message(body, "Sessione scaduta. Effettua nuovamente il login."),
                status_code=status_code,
            )
        if status_code == 404:
            raise NotFoundError(
                _server_message(body, f"Risorsa non trovata: {path}"),
                status_code=status_code,
            )
        if status_code == 408:
            raise RequestTimeoutError(
                _server_message(body, f"Timeout durante la richiesta {method} {path}"),
                status_code=status_code,
            )
        if status_code >= 500:
            raise ServerError(
                _server_message(body, f"Errore dal server: {status_code}"),
                status_code=status_code,
                payload=body,
            )
        raise RequestRejected(
            _server_message(body, f"Richiesta rifiutata: {status_code}"),
            status_code=status_code,
            payload=body,
        )
