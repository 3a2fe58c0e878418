"""Provider-specific connector config schemas.

Connector configs are stored verbatim as JSON with camelCase keys (they are
shared with the admin console), so every model accepts camelCase aliases and
tolerates unknown keys.
"""

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator
from pydantic.alias_generators import to_camel

GOOGLE_ISSUER = "https://accounts.google.com"


class ConnectorConfigModel(BaseModel):
    """Base model for stored connector configs."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        str_strip_whitespace=True,
    )


class OidcConnectorConfig(ConnectorConfigModel):
    """Generic OIDC identity provider."""

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    issuer: HttpUrl
    scope: str | None = Field(default=None, description="Space-delimited extra scopes")
    trust_unverified_email: bool = False


class GoogleWorkspaceConnectorConfig(ConnectorConfigModel):
    """Google Workspace; the issuer is fixed by Google."""

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    issuer: HttpUrl = Field(default=HttpUrl(GOOGLE_ISSUER))
    scope: str | None = None


class SamlAttributeMapping(ConnectorConfigModel):
    id: str | None = None
    email: str | None = None
    name: str | None = None


class SamlConnectorConfig(ConnectorConfigModel):
    """SAML identity provider.

    IdP metadata is given either as a metadata URL, as raw metadata XML, or
    manually as entity id + sign-in endpoint + signing certificate.
    """

    metadata_url: HttpUrl | None = None
    metadata: str | None = None
    entity_id: str | None = None
    sign_in_endpoint: HttpUrl | None = None
    x509_certificate: str | None = None
    attribute_mapping: SamlAttributeMapping | None = None

    @model_validator(mode="after")
    def check_metadata_source(self) -> "SamlConnectorConfig":
        if self.metadata_url or self.metadata:
            return self
        if self.entity_id and self.sign_in_endpoint and self.x509_certificate:
            return self
        raise ValueError(
            "Either metadataUrl, metadata, or entityId + signInEndpoint + "
            "x509Certificate must be provided"
        )
