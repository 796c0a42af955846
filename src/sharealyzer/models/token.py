"""Authentication payload models."""

from __future__ import annotations

from pydantic import Field

from sharealyzer.models._base import EpochTimestamp, ProviderBaseModel


class ProviderErrorBody(ProviderBaseModel):
    """Error body returned by the circ API.

    Error handling on the provider side is inconsistent, so every field is
    optional and parsing is best effort only.
    """

    timestamp: EpochTimestamp = None
    status: int | None = None
    error: str = ""
    message: str = ""
    path: str = ""


class AuthResponse(ProviderBaseModel):
    """Data received after a successful phone verification.

    Parameters
    ----------
    id : int or None
        Numeric account id.
    identifier : str
        Account identifier.
    access_token : str
        Token sent as ``Authorization`` header.
    refresh_token : str
        Token used to obtain a new access token.
    """

    id: int | None = None
    identifier: str = ""
    phone_mobile: str = ""
    phone_mobile_verified: bool = False
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)


class TokenRefreshResponse(ProviderBaseModel):
    """Response of the token refresh endpoint."""

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    user_id: int | None = None
    user_uuid: str = ""
