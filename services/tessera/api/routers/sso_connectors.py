"""SSO connector router.

Consumers:
    Admin console (enterprise SSO pages):
        GET    /api/sso-connector-providers
        GET    /api/sso-connectors
        GET    /api/sso-connectors/available
        GET    /api/sso-connectors/{id}
        GET    /api/sso-connectors/{id}/idp-initiated-auth-config
        PUT    /api/sso-connectors/{id}/idp-initiated-auth-config
        PATCH  /api/sso-connectors/{id}/idp-initiated-auth-config
        DELETE /api/sso-connectors/{id}/idp-initiated-auth-config

Connectors with an unregistered provider never appear in responses and
404 when addressed by id.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from tessera.api.dependencies import get_queries, get_sso_connector_service
from tessera.api.models.common import PaginationParams
from tessera.api.models.sso_connectors import (
    IdpInitiatedAuthConfigCreate,
    IdpInitiatedAuthConfigResponse,
    IdpInitiatedAuthConfigUpdate,
    SsoConnectorProviderResponse,
    SsoConnectorResponse,
)
from tessera.config import settings
from tessera.db.models import SsoConnector
from tessera.db.queries import Queries
from tessera.errors import NotFoundError, RequestError
from tessera.logging_config import get_logger
from tessera.services.sso_connector_service import SsoConnectorService
from tessera.sso import SsoProviderType, list_sso_connector_factories, sso_connector_factories

router = APIRouter(tags=["sso-connectors"])
logger = get_logger(__name__)

TOTAL_NUMBER_HEADER = "Total-Number"


def _to_response(connector: SsoConnector) -> SsoConnectorResponse:
    factory = sso_connector_factories[connector.provider_name]
    return SsoConnectorResponse(
        id=connector.id,
        provider_name=connector.provider_name,
        provider_type=factory.provider_type,
        connector_name=connector.connector_name,
        config=connector.config,
        domains=connector.domains,
        created_at=connector.created_at,
    )


@router.get("/sso-connector-providers", response_model=list[SsoConnectorProviderResponse])
async def list_providers() -> list[SsoConnectorProviderResponse]:
    """List registered SSO providers with their config schemas."""
    return [SsoConnectorProviderResponse(**p) for p in list_sso_connector_factories()]


@router.get("/sso-connectors", response_model=list[SsoConnectorResponse])
async def list_sso_connectors(
    response: Response,
    pagination: Annotated[PaginationParams, Query()],
    service: SsoConnectorService = Depends(get_sso_connector_service),
) -> list[SsoConnectorResponse]:
    """List supported connectors, newest first.

    The Total-Number header carries the count of all persisted connectors,
    so a page can hold fewer items than page_size.
    """
    page_size = pagination.page_size or settings.sso.default_page_size
    count, connectors = await service.get_sso_connectors(
        limit=page_size,
        offset=(pagination.page - 1) * page_size,
    )
    response.headers[TOTAL_NUMBER_HEADER] = str(count)
    return [_to_response(c) for c in connectors]


@router.get("/sso-connectors/available", response_model=list[SsoConnectorResponse])
async def list_available_sso_connectors(
    service: SsoConnectorService = Depends(get_sso_connector_service),
) -> list[SsoConnectorResponse]:
    """List connectors with a valid config and at least one domain."""
    connectors = await service.get_available_sso_connectors()
    return [_to_response(c) for c in connectors]


@router.get("/sso-connectors/{connector_id}", response_model=SsoConnectorResponse)
async def get_sso_connector(
    connector_id: str,
    service: SsoConnectorService = Depends(get_sso_connector_service),
) -> SsoConnectorResponse:
    connector = await service.get_sso_connector_by_id(connector_id)
    return _to_response(connector)


@router.get(
    "/sso-connectors/{connector_id}/idp-initiated-auth-config",
    response_model=IdpInitiatedAuthConfigResponse,
)
async def get_idp_initiated_auth_config(
    connector_id: str,
    service: SsoConnectorService = Depends(get_sso_connector_service),
    queries: Queries = Depends(get_queries),
) -> IdpInitiatedAuthConfigResponse:
    await service.get_sso_connector_by_id(connector_id)
    config = await queries.sso_connectors.find_idp_initiated_auth_config_by_connector_id(
        connector_id
    )
    if config is None:
        raise NotFoundError(
            "entity.not_found",
            message="IdP-initiated auth config not found",
            connector_id=connector_id,
        )
    return IdpInitiatedAuthConfigResponse.model_validate(config)


@router.put(
    "/sso-connectors/{connector_id}/idp-initiated-auth-config",
    response_model=IdpInitiatedAuthConfigResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_idp_initiated_auth_config(
    connector_id: str,
    body: IdpInitiatedAuthConfigCreate,
    service: SsoConnectorService = Depends(get_sso_connector_service),
) -> IdpInitiatedAuthConfigResponse:
    """Enable IdP-initiated SSO for a SAML connector."""
    connector = await service.get_sso_connector_by_id(connector_id)
    if sso_connector_factories[connector.provider_name].provider_type != SsoProviderType.SAML:
        raise RequestError(
            "connector.saml_only_idp_initiated_auth",
            message="IdP-initiated SSO is only available for SAML connectors",
        )

    config = await service.create_idp_initiated_auth_config(
        {"connector_id": connector_id, **body.model_dump()}
    )
    return IdpInitiatedAuthConfigResponse.model_validate(config)


@router.patch(
    "/sso-connectors/{connector_id}/idp-initiated-auth-config",
    response_model=IdpInitiatedAuthConfigResponse,
)
async def update_idp_initiated_auth_config(
    connector_id: str,
    body: IdpInitiatedAuthConfigUpdate,
    service: SsoConnectorService = Depends(get_sso_connector_service),
) -> IdpInitiatedAuthConfigResponse:
    """Update only the fields present in the body."""
    await service.get_sso_connector_by_id(connector_id)
    config = await service.update_idp_initiated_auth_config(
        connector_id, body.model_dump(exclude_unset=True)
    )
    return IdpInitiatedAuthConfigResponse.model_validate(config)


@router.delete(
    "/sso-connectors/{connector_id}/idp-initiated-auth-config",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_idp_initiated_auth_config(
    connector_id: str,
    service: SsoConnectorService = Depends(get_sso_connector_service),
    queries: Queries = Depends(get_queries),
) -> Response:
    await service.get_sso_connector_by_id(connector_id)
    await queries.sso_connectors.delete_idp_initiated_auth_config(connector_id)
    logger.info("IdP-initiated auth config deleted", connector_id=connector_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
