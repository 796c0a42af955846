"""HTTP transport for the circ JSON API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from sharealyzer._constants import USER_AGENT
from sharealyzer.config import CircConfig
from sharealyzer.exceptions import AuthenticationRequiredError, ProviderApiError, TransportError
from sharealyzer.models.token import ProviderErrorBody

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`JsonTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
        access_token: str | None = None,
    ) -> Any:
        ...


def error_from_response(endpoint: str, status: int, text: str) -> ProviderApiError:
    """Build the exception for an error response.

    4xx answers mean the provider wants a (re-)authentication; anything
    else is reported as a plain :class:`ProviderApiError`.
    """
    try:
        body = ProviderErrorBody.model_validate(json.loads(text)) if text else ProviderErrorBody()
    except (json.JSONDecodeError, ValidationError, TypeError):
        body = ProviderErrorBody(message=text[:200])

    message = f"[CircError] HTTP {status} from {endpoint}: {body.error or 'error'}: {body.message}"
    error_cls = AuthenticationRequiredError if 400 <= status < 500 else ProviderApiError
    return error_cls(
        message,
        status_code=status,
        endpoint=endpoint,
        error=body.error,
        path=body.path,
    )


class JsonTransport:
    """HTTP transport sending and receiving JSON documents."""

    def __init__(self, config: CircConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
        access_token: str | None = None,
    ) -> Any:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if access_token:
            headers["authorization"] = access_token

        url = f"{self._config.base_url}{endpoint}"
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=body,
                headers=headers,
                timeout=timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise TransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except TimeoutError as exc:
            raise TransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

        if status >= 400:
            raise error_from_response(endpoint, status, text)

        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            _logger.debug("Unexpected body (code: %d): %s", status, text[:200])
            raise TransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc
