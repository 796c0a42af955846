"""Phone login and token refresh endpoints.

Endpoints:
  - /verification/phone/start
  - /signup/phone
  - /login/refresh
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from sharealyzer._constants import LOGIN_START_PATH, SIGNUP_PATH, TOKEN_REFRESH_PATH
from sharealyzer._redact import redact_for_log
from sharealyzer._transport import Transport
from sharealyzer.config import CircConfig
from sharealyzer.exceptions import AuthenticationError, ProviderApiError
from sharealyzer.models.token import AuthResponse, TokenRefreshResponse
from sharealyzer.session import Session

_logger = logging.getLogger(__name__)


def _phone_payload(config: CircConfig) -> dict[str, Any]:
    if not config.phone_number:
        raise AuthenticationError("No phone number configured (set SHAREALYZER_PHONE_NUMBER)")
    return {
        "phoneCountryCode": config.phone_prefix,
        "phoneNumber": config.phone_number,
    }


async def start_phone_verification(transport: Transport, config: CircConfig) -> None:
    """Ask the provider to send a verification code by SMS."""
    payload = _phone_payload(config)
    _logger.debug("Starting phone verification: %s", redact_for_log(payload))
    try:
        await transport.request_json("POST", LOGIN_START_PATH, payload=payload)
    except ProviderApiError as exc:
        raise AuthenticationError(f"Phone verification could not be started: {exc}") from exc


async def verify_phone_code(transport: Transport, config: CircConfig, code: str) -> Session:
    """Exchange the SMS *code* for a token pair."""
    code = code.strip()
    if not code:
        raise AuthenticationError("Empty verification code")
    payload = {**_phone_payload(config), "token": code}
    try:
        data = await transport.request_json("POST", SIGNUP_PATH, payload=payload)
    except ProviderApiError as exc:
        raise AuthenticationError(f"Verification code rejected: {exc}") from exc

    try:
        auth = AuthResponse.model_validate(data)
    except ValidationError as exc:
        _logger.debug("Unexpected signup response: %s", redact_for_log(data))
        raise AuthenticationError("Signup response did not contain a token pair") from exc

    _logger.info("Logged in as account %s", auth.identifier or auth.id)
    return Session(
        access_token=auth.access_token,
        refresh_token=auth.refresh_token,
        refresh_interval=config.token_refresh_interval,
    )


async def refresh_tokens(transport: Transport, config: CircConfig, session: Session) -> Session:
    """Obtain a fresh token pair for *session*.

    Raises
    ------
    AuthenticationRequiredError
        The provider no longer accepts the refresh token.
    TransportError
        Network failure or server error; the old tokens may still be valid.
    """
    payload = {"accessToken": session.access_token, "refreshToken": session.refresh_token}
    data = await transport.request_json("POST", TOKEN_REFRESH_PATH, payload=payload)
    try:
        refreshed = TokenRefreshResponse.model_validate(data)
    except ValidationError as exc:
        _logger.debug("Unexpected refresh response: %s", redact_for_log(data))
        raise AuthenticationError("Token refresh response did not contain a token pair") from exc

    _logger.debug("Access token refreshed after %.0f s", session.age)
    return Session(
        access_token=refreshed.access_token,
        refresh_token=refreshed.refresh_token,
        refresh_interval=config.token_refresh_interval,
    )
