"""SSO connector Pydantic models."""

from datetime import datetime
from typing import Any

from pydantic import Field, model_validator

from .common import TesseraBaseModel


class SsoConnectorResponse(TesseraBaseModel):
    """A supported SSO connector."""

    id: str
    provider_name: str
    provider_type: str
    connector_name: str
    config: dict[str, Any]
    domains: list[str]
    created_at: datetime


class SsoConnectorProviderResponse(TesseraBaseModel):
    """A registered SSO provider and its config schema."""

    provider_name: str
    provider_type: str
    config_schema: dict[str, Any]


class IdpInitiatedAuthConfigCreate(TesseraBaseModel):
    """Body for creating a connector's IdP-initiated auth config."""

    default_application_id: str = Field(min_length=1)
    redirect_uri: str | None = Field(
        default=None,
        min_length=1,
        description="Defaults to the application's first registered redirect URI",
    )
    auth_parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Extra authorization request parameters; 'scope' is space-delimited",
    )


class IdpInitiatedAuthConfigUpdate(TesseraBaseModel):
    """Partial update. Only fields present in the body are changed."""

    default_application_id: str | None = Field(default=None, min_length=1)
    redirect_uri: str | None = Field(default=None, min_length=1)
    auth_parameters: dict[str, str] | None = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "IdpInitiatedAuthConfigUpdate":
        for name in ("default_application_id", "auth_parameters"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class IdpInitiatedAuthConfigResponse(TesseraBaseModel):
    connector_id: str
    default_application_id: str
    redirect_uri: str | None
    auth_parameters: dict[str, Any]
    created_at: datetime
