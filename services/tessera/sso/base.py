"""SSO connector capability descriptor."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ValidationError


class SsoProviderType(StrEnum):
    OIDC = "oidc"
    SAML = "saml"


@dataclass(frozen=True)
class SsoConnectorFactory:
    """What Tessera knows about one SSO provider.

    The factory does not talk to the identity provider; it only knows how to
    validate and describe the provider's stored config.
    """

    provider_name: str
    provider_type: SsoProviderType
    config_model: type[BaseModel]

    def parse(self, config: Any) -> BaseModel:
        """Parse a stored config. Raises pydantic.ValidationError."""
        return self.config_model.model_validate(config)

    def validate(self, config: Any) -> bool:
        """Return True if ``config`` satisfies this provider's schema."""
        try:
            self.parse(config)
        except ValidationError:
            return False
        return True

    def describe(self) -> dict[str, Any]:
        """JSON schema of the provider config, keyed by stored (camelCase) names."""
        return self.config_model.model_json_schema(by_alias=True)
