"""Tessera API Pydantic models."""

from .common import ErrorResponse, PaginationParams
from .sso_connectors import (
    IdpInitiatedAuthConfigCreate,
    IdpInitiatedAuthConfigResponse,
    IdpInitiatedAuthConfigUpdate,
    SsoConnectorProviderResponse,
    SsoConnectorResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "PaginationParams",
    # SSO connectors
    "IdpInitiatedAuthConfigCreate",
    "IdpInitiatedAuthConfigResponse",
    "IdpInitiatedAuthConfigUpdate",
    "SsoConnectorProviderResponse",
    "SsoConnectorResponse",
]
